from __future__ import annotations

import io
import logging
import zipfile
from pathlib import Path
from typing import BinaryIO, Mapping, Union

logger = logging.getLogger(__name__)

ArchiveFile = Union[bytes, BinaryIO]


class ArchiveError(ValueError):
    """Raised when a file cannot be packed into an .sb3 archive."""


def pack_sb3(files: Mapping[str, ArchiveFile]) -> bytes:
    """Zip `files` in memory, keeping each name as its path in the archive."""
    buffer = io.BytesIO()
    _write_entries(buffer, files)
    return buffer.getvalue()


def write_sb3(files: Mapping[str, ArchiveFile], output_path: Path) -> None:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    with output_path.open("wb") as handle:
        _write_entries(handle, files)
    logger.info("Wrote %d files to '%s'", len(files), output_path)


def is_rewindable(content: ArchiveFile) -> bool:
    """Whether `content` can be packed again after an earlier export."""
    if isinstance(content, (bytes, bytearray)):
        return True
    seekable = getattr(content, "seekable", None)
    return seekable is not None and bool(seekable())


def _write_entries(target: BinaryIO, files: Mapping[str, ArchiveFile]) -> None:
    # A handle listed under several names is read once and packed under each.
    contents: dict[int, bytes] = {}
    with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as zf:
        for file_name, content in files.items():
            data = contents.get(id(content))
            if data is None:
                data = _read_content(file_name, content)
                contents[id(content)] = data
            zf.writestr(file_name, data)
            logger.debug("Packed '%s'", file_name)


def _read_content(file_name: str, content: ArchiveFile) -> bytes:
    if isinstance(content, (bytes, bytearray)):
        return bytes(content)
    read = getattr(content, "read", None)
    if read is None:
        raise ArchiveError(f"Cannot pack '{file_name}': expected bytes or a binary file, got {type(content).__name__}.")
    if is_rewindable(content):
        content.seek(0)
    data = read()
    if not isinstance(data, (bytes, bytearray)):
        raise ArchiveError(f"Cannot pack '{file_name}': file was not opened in binary mode.")
    return bytes(data)
