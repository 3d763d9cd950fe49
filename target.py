from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import BinaryIO, Iterator, Literal, Union

from ids import AssetIdCache, generate_id
from script import Block, Script, merge_blocks

logger = logging.getLogger(__name__)

AssetFile = Union[bytes, BinaryIO]
RotationStyle = Literal["all around", "left-right", "don't rotate"]

VECTOR_FORMAT = "svg"


class MissingCostumeError(ValueError):
    """Raised when a target without costumes is serialized."""


class InvalidMutationError(ValueError):
    """Raised when a sprite-only operation is used on the stage."""


@dataclass(eq=False)
class Costume:
    name: str
    data_format: str
    file: AssetFile
    rotation_center_x: float = 0
    rotation_center_y: float = 0

    def to_json(self, asset_id: str) -> dict:
        return {
            "name": self.name,
            "dataFormat": self.data_format,
            "assetId": asset_id,
            "md5ext": f"{asset_id}.{self.data_format}",
            "bitmapResolution": 1 if self.data_format == VECTOR_FORMAT else 2,
            "rotationCenterX": self.rotation_center_x,
            "rotationCenterY": self.rotation_center_y,
        }


@dataclass(eq=False)
class Sound:
    name: str
    data_format: str
    file: AssetFile

    def to_json(self, asset_id: str) -> dict:
        # Audio is never decoded, so rate and sample count stay as placeholders.
        return {
            "name": self.name,
            "dataFormat": self.data_format,
            "assetId": asset_id,
            "md5ext": f"{asset_id}.{self.data_format}",
            "format": "",
            "rate": 0,
            "sampleCount": 0,
        }


class Target:
    """
    A sprite, or the stage when created without a name.

    The pose and display attributes only matter for sprites; the tempo and
    video attributes are only written out for the stage. A target has to be
    added to a `Project` before Scratch can load it.
    """

    def __init__(self, name: str | None = None) -> None:
        self._name = name
        self.volume = 100
        self.current_costume = 0
        self.x: float = 0
        self.y: float = 0
        self.size: float = 100
        self.direction: float = 90
        self.draggable = False
        self.rotation_style: RotationStyle = "all around"
        self.layer_order = 1
        self.visible = True
        self.tempo = 60
        self.video_transparency = 50
        self.video_state = "on"
        self.text_to_speech_language: str | None = None
        self.costumes: list[Costume] = []
        self.sounds: list[Sound] = []
        self.blocks: dict[str, Block] = {}
        self.variables: dict[str, list] = {}
        self.lists: dict[str, list] = {}
        self.broadcasts: dict[str, str] = {}

    @property
    def name(self) -> str | None:
        return self._name

    @property
    def is_stage(self) -> bool:
        return self._name is None

    def set_name(self, name: str) -> None:
        if self.is_stage:
            raise InvalidMutationError("Cannot rename the stage; only sprites have names.")
        self._name = name

    def add_costume(
        self,
        name: str,
        data_format: str,
        file: AssetFile,
        rotation_center_x: float = 0,
        rotation_center_y: float = 0,
    ) -> Costume:
        costume = Costume(
            name=name,
            data_format=data_format,
            file=file,
            rotation_center_x=rotation_center_x,
            rotation_center_y=rotation_center_y,
        )
        self.costumes.append(costume)
        return costume

    def add_sound(self, name: str, data_format: str, file: AssetFile) -> Sound:
        sound = Sound(name=name, data_format=data_format, file=file)
        self.sounds.append(sound)
        return sound

    def add_script(self, script: Script) -> None:
        merge_blocks(self.blocks, script.blocks)

    def add_variable(self, name: str, value: float | str = 0) -> str:
        var_id = generate_id()
        self.variables[var_id] = [name, value]
        return var_id

    def add_list(self, name: str, items: tuple | list = ()) -> str:
        list_id = generate_id()
        self.lists[list_id] = [name, list(items)]
        return list_id

    def add_broadcast(self, name: str) -> str:
        broadcast_id = generate_id()
        self.broadcasts[broadcast_id] = name
        return broadcast_id

    def iter_assets(self) -> Iterator[Costume | Sound]:
        yield from self.costumes
        yield from self.sounds

    def to_json(self, asset_ids: AssetIdCache | None = None) -> dict:
        if not self.costumes:
            raise MissingCostumeError(f"Target '{self._name or 'Stage'}' has no costumes; add at least one.")
        if asset_ids is None:
            asset_ids = AssetIdCache()
        target_json = {
            "isStage": self.is_stage,
            "name": self._name if self._name is not None else "Stage",
            "variables": {var_id: list(entry) for var_id, entry in self.variables.items()},
            "lists": {list_id: [entry[0], list(entry[1])] for list_id, entry in self.lists.items()},
            "broadcasts": dict(self.broadcasts),
            "blocks": {block_id: individual.to_json() for block_id, individual in self.blocks.items()},
            "comments": {},
            "currentCostume": self.current_costume,
            "costumes": [costume.to_json(asset_ids.resolve(costume.file)) for costume in self.costumes],
            "sounds": [sound.to_json(asset_ids.resolve(sound.file)) for sound in self.sounds],
            "volume": self.volume,
            "layerOrder": 0 if self.is_stage else self.layer_order,
            "visible": self.visible,
            "x": self.x,
            "y": self.y,
            "size": self.size,
            "direction": self.direction,
            "draggable": self.draggable,
            "rotationStyle": self.rotation_style,
        }
        if self.is_stage:
            target_json.update(
                {
                    "tempo": self.tempo,
                    "videoTransparency": self.video_transparency,
                    "videoState": self.video_state,
                    "textToSpeechLanguage": self.text_to_speech_language,
                }
            )
        logger.debug(
            "Serialized target '%s' with %d blocks, %d costumes, %d sounds",
            target_json["name"],
            len(self.blocks),
            len(self.costumes),
            len(self.sounds),
        )
        return target_json
