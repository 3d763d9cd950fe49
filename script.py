from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Any, Mapping, Union

from ids import generate_id

logger = logging.getLogger(__name__)


class InvalidInputError(ValueError):
    """Raised when a block input cannot be encoded."""


@dataclass(frozen=True)
class Literal:
    type: int
    value: str


@dataclass(frozen=True)
class Connected:
    block_id: str


@dataclass(frozen=True)
class ConnectedWithFallback:
    block_id: str
    type: int
    value: str


InputValue = Union[Literal, Connected, ConnectedWithFallback]
FieldValue = tuple[str, Union[str, None]]


def encode_input(value: InputValue) -> list:
    """Encode an input slot into its project.json array form."""
    if isinstance(value, Literal):
        return [1, [value.type, value.value]]
    if isinstance(value, Connected):
        return [2, value.block_id]
    if isinstance(value, ConnectedWithFallback):
        return [3, value.block_id, [value.type, value.value]]
    raise InvalidInputError(f"Unsupported input encoding '{type(value).__name__}'.")


@dataclass
class Block:
    """A single block, keyed by its id inside a block table."""

    opcode: str
    inputs: dict[str, InputValue] = field(default_factory=dict)
    fields: dict[str, FieldValue] = field(default_factory=dict)
    parent: str | None = None
    next: str | None = None
    x: float = 0
    y: float = 0
    shadow: bool = False
    top_level: bool = False

    def to_json(self) -> dict:
        return {
            "opcode": self.opcode,
            "next": self.next,
            "parent": self.parent,
            "inputs": {name: encode_input(value) for name, value in self.inputs.items()},
            "fields": {name: [value, field_id] for name, (value, field_id) in self.fields.items()},
            "shadow": self.shadow,
            "topLevel": self.top_level,
            "x": self.x,
            "y": self.y,
        }


@dataclass
class BlockFragment:
    """
    The blocks making up one logical block: the base block plus every block
    brought in through its inputs. Push it into a `Script` to use it.
    """

    base: str
    blocks: dict[str, Block]

    @property
    def base_block(self) -> Block:
        return self.blocks[self.base]


def merge_blocks(into: dict[str, Block], blocks: Mapping[str, Block]) -> None:
    """Copy `blocks` into `into`, overwriting entries with the same id."""
    for block_id, individual in blocks.items():
        into[block_id] = replace(individual, inputs=dict(individual.inputs), fields=dict(individual.fields))


def block(
    opcode: str,
    inputs: Mapping[str, Mapping[str, Any]] | None = None,
    fields: Mapping[str, str | tuple[str, str | None]] | None = None,
    x: float = 0,
    y: float = 0,
) -> BlockFragment:
    """
    Create a block which may depend on other blocks.

    Each input is either a literal, ``{"type": 4, "value": "10"}``, or a
    script, ``{"value": script}`` with an optional
    ``"fallback": {"type": 10, "value": ""}`` shown once the script is
    removed in the editor. Inputs given an empty script are left out.
    Fields are plain strings, or ``(value, id)`` pairs for fields that refer
    to a variable, list or broadcast.
    """
    base_id = generate_id()
    base = Block(opcode=opcode, fields=_encode_fields(opcode, fields or {}), x=x, y=y)
    blocks: dict[str, Block] = {base_id: base}
    for name, input_spec in (inputs or {}).items():
        value = input_spec.get("value")
        if isinstance(value, str):
            base.inputs[name] = Literal(*_literal(opcode, name, input_spec))
            continue
        if not isinstance(value, Script):
            raise InvalidInputError(
                f"Input '{name}' of '{opcode}' must be a string or a Script, got {type(value).__name__}."
            )
        if value.first is None:
            continue
        merge_blocks(blocks, value.blocks)
        fallback = input_spec.get("fallback")
        if fallback is None:
            base.inputs[name] = Connected(block_id=value.first)
        else:
            fallback_type, fallback_value = _literal(opcode, name, fallback)
            base.inputs[name] = ConnectedWithFallback(block_id=value.first, type=fallback_type, value=fallback_value)
    return BlockFragment(base=base_id, blocks=blocks)


def _literal(opcode: str, name: str, input_spec: Mapping[str, Any]) -> tuple[int, str]:
    literal_type = input_spec.get("type")
    if literal_type is None:
        raise InvalidInputError(f"Literal for input '{name}' of '{opcode}' is missing its type.")
    value = input_spec.get("value")
    if not isinstance(value, str):
        raise InvalidInputError(
            f"Literal for input '{name}' of '{opcode}' must have a string value, got {type(value).__name__}."
        )
    return literal_type, value


def _encode_fields(opcode: str, fields: Mapping[str, str | tuple[str, str | None]]) -> dict[str, FieldValue]:
    encoded: dict[str, FieldValue] = {}
    for name, value in fields.items():
        if isinstance(value, str):
            encoded[name] = (value, None)
        elif isinstance(value, tuple) and len(value) == 2:
            encoded[name] = (value[0], value[1])
        else:
            raise InvalidInputError(f"Field '{name}' of '{opcode}' must be a string or a (value, id) pair.")
    return encoded


class Script:
    """
    A chain of blocks, in the order they were pushed.

    A shadow script marks every block it receives as a shadow, including the
    blocks nested in their inputs. A top-level script marks its first block
    as the start of a script in the editor.
    """

    def __init__(self, shadow: bool = False, top_level: bool = False) -> None:
        self._blocks: dict[str, Block] = {}
        self._first: str | None = None
        self._last: str | None = None
        self._shadow = shadow
        self._top_level = top_level

    def push(self, fragment: BlockFragment) -> Script:
        if fragment.base in self._blocks:
            raise InvalidInputError(f"Block {fragment.base} ({fragment.base_block.opcode}) is already in this script.")
        previous = self._last
        merge_blocks(self._blocks, fragment.blocks)
        for block_id in fragment.blocks:
            merged = self._blocks[block_id]
            if self._shadow:
                merged.shadow = True
            if block_id == fragment.base:
                merged.parent = previous
        if previous is not None:
            self._blocks[previous].next = fragment.base
        else:
            self._first = fragment.base
            if self._top_level:
                self._blocks[fragment.base].top_level = True
        self._last = fragment.base
        logger.debug("Pushed block %s (%s) after %s", fragment.base, fragment.base_block.opcode, previous)
        return self

    @property
    def blocks(self) -> dict[str, Block]:
        return self._blocks

    @property
    def first(self) -> str | None:
        return self._first

    @property
    def last(self) -> str | None:
        return self._last

    @property
    def shadow(self) -> bool:
        return self._shadow

    @property
    def top_level(self) -> bool:
        return self._top_level

    def to_json(self) -> dict[str, dict]:
        return {block_id: individual.to_json() for block_id, individual in self._blocks.items()}

    def __len__(self) -> int:
        return len(self._blocks)

    def __bool__(self) -> bool:
        return self._first is not None
