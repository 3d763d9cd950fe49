from __future__ import annotations

"""
A Scratch 3 project assembled in code.

    stage = Target()
    stage.add_costume("backdrop1", "svg", backdrop_bytes)
    cat = Target("Cat")
    cat.add_costume("costume1", "svg", cat_bytes)
    cat.add_script(
        Script(top_level=True)
        .push(block("event_whenflagclicked"))
        .push(block("motion_movesteps", inputs={"STEPS": {"type": 4, "value": "10"}}))
    )
    project = Project()
    project.add_target(stage)
    project.add_target(cat)
    project.save(Path("cat.sb3"))
"""

import json
import logging
from pathlib import Path
from typing import Callable, Mapping

from archive import ArchiveError, ArchiveFile, is_rewindable, pack_sb3, write_sb3
from ids import AssetIdCache
from target import AssetFile, Target

logger = logging.getLogger(__name__)

SEMVER = "3.0.0"
VM_VERSION = "2.3.0"
DEFAULT_USER_AGENT = "Created with sb3build"
PROJECT_JSON = "project.json"

Packager = Callable[[Mapping[str, ArchiveFile]], bytes]


class MissingStageError(ValueError):
    """Raised when a project without a stage is serialized."""


class Project:
    def __init__(self, user_agent: str = DEFAULT_USER_AGENT, asset_ids: AssetIdCache | None = None) -> None:
        self.user_agent = user_agent
        self.extensions: list[str] = []
        self.extension_urls: dict[str, str] = {}
        self.asset_ids = asset_ids if asset_ids is not None else AssetIdCache()
        self._stage: Target | None = None
        self._sprites: list[Target] = []
        # Streams that cannot be rewound, kept alive so their id() stays unique.
        self._exported_streams: dict[int, AssetFile] = {}

    @property
    def stage(self) -> Target | None:
        return self._stage

    @property
    def sprites(self) -> tuple[Target, ...]:
        return tuple(self._sprites)

    def add_target(self, target: Target) -> None:
        """Add a sprite after the existing ones, or replace the stage."""
        if target.is_stage:
            if self._stage is not None:
                logger.debug("Replacing previously added stage")
            self._stage = target
            return
        self._sprites.append(target)

    def add_extension(self, extension_id: str, url: str | None = None) -> None:
        if extension_id not in self.extensions:
            self.extensions.append(extension_id)
        if url is not None:
            self.extension_urls[extension_id] = url

    def to_json(self) -> dict:
        stage = self._require_stage("to_json")
        return {
            "targets": [stage.to_json(self.asset_ids), *(sprite.to_json(self.asset_ids) for sprite in self._sprites)],
            "monitors": [],
            "extensions": list(self.extensions),
            "extensionURLs": dict(self.extension_urls),
            "meta": {
                "semver": SEMVER,
                "vm": VM_VERSION,
                "agent": self.user_agent,
            },
        }

    def get_assets(self) -> dict[str, AssetFile]:
        """Map every costume and sound file to its name inside the archive."""
        stage = self._require_stage("get_assets")
        assets: dict[str, AssetFile] = {}
        for target in [stage, *self._sprites]:
            for asset in target.iter_assets():
                assets[f"{self.asset_ids.resolve(asset.file)}.{asset.data_format}"] = asset.file
        return assets

    def get_files(self) -> dict[str, AssetFile]:
        """Every file of the .sb3 archive: the assets plus project.json."""
        self._require_stage("get_files")
        files = self.get_assets()
        files[PROJECT_JSON] = json.dumps(self.to_json(), indent=2).encode("utf-8")
        return files

    def zip(self, packager: Packager = pack_sb3) -> bytes:
        files = self._files_for_export()
        logger.debug("Packing %d files", len(files))
        try:
            return packager(files)
        finally:
            self._mark_exported(files)

    def save(self, output_path: Path) -> None:
        files = self._files_for_export()
        try:
            write_sb3(files, output_path)
        finally:
            self._mark_exported(files)

    def _files_for_export(self) -> dict[str, AssetFile]:
        files = self.get_files()
        for file_name, content in files.items():
            if id(content) in self._exported_streams:
                raise ArchiveError(
                    f"Cannot pack '{file_name}' again: its stream was read by an earlier export and cannot be rewound."
                )
        return files

    def _mark_exported(self, files: Mapping[str, AssetFile]) -> None:
        for content in files.values():
            if not is_rewindable(content):
                self._exported_streams[id(content)] = content

    def _require_stage(self, operation: str) -> Target:
        if self._stage is None:
            raise MissingStageError(f"Project.{operation} called without an added stage.")
        return self._stage
