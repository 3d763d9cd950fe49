from __future__ import annotations

"""
Identifiers for blocks, variables and asset files.

Scratch expects these to look like md5 digests (32 lowercase hex characters),
but it never checks that they are real hashes, so random tokens are used and
no asset content is ever read to name it.
"""

import logging
import uuid
from typing import Any, Callable

logger = logging.getLogger(__name__)

ID_LENGTH = 32


def generate_id() -> str:
    return uuid.uuid4().hex


class AssetIdCache:
    """Maps asset handles to stable ids, by handle identity rather than content."""

    def __init__(self, generator: Callable[[], str] = generate_id) -> None:
        self._generator = generator
        # id(handle) -> (handle, token); the handle is kept so its id() stays unique.
        self._ids: dict[int, tuple[Any, str]] = {}

    def resolve(self, handle: Any) -> str:
        entry = self._ids.get(id(handle))
        if entry is not None:
            return entry[1]
        token = self._generator()
        self._ids[id(handle)] = (handle, token)
        logger.debug("Assigned asset id %s", token)
        return token

    def __contains__(self, handle: object) -> bool:
        return id(handle) in self._ids

    def __len__(self) -> int:
        return len(self._ids)
