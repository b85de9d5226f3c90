"""Wire messages exchanged between game clients and the server.

Client messages are JSON objects tagged by a ``"type"`` field.  Server
messages are serialised the same way, with the tag written first.
"""

from __future__ import annotations

import json
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Union

U32_MAX = 2**32 - 1


class ProtocolError(ValueError):
    """Raised when a message cannot be decoded."""


def _dumps(value: Any) -> str:
    return json.dumps(value, separators=(",", ":"), ensure_ascii=False)


def _loads(text: str) -> Any:
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as exc:
        raise ProtocolError(f"invalid JSON: {exc}") from exc


def _field(data: Mapping[str, Any], key: str) -> Any:
    try:
        return data[key]
    except KeyError:
        raise ProtocolError(f"missing field `{key}`") from None


def _as_u32(value: Any, key: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ProtocolError(f"field `{key}` must be an unsigned 32-bit integer")
    if not 0 <= value <= U32_MAX:
        raise ProtocolError(f"field `{key}` is out of range for u32: {value}")
    return value


def _as_uuid(value: Any, key: str) -> uuid.UUID:
    if not isinstance(value, str):
        raise ProtocolError(f"field `{key}` must be a UUID string")
    try:
        return uuid.UUID(value)
    except ValueError as exc:
        raise ProtocolError(f"field `{key}` is not a valid UUID: {value!r}") from exc


def _as_str(value: Any, key: str) -> str:
    if not isinstance(value, str):
        raise ProtocolError(f"field `{key}` must be a string")
    return value


@dataclass(frozen=True)
class Character:
    """A character standing on the grid."""

    id: uuid.UUID
    x: int = 0
    y: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"id": str(self.id), "x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: Any) -> "Character":
        if not isinstance(data, Mapping):
            raise ProtocolError("a character must be a JSON object")
        return cls(
            id=_as_uuid(_field(data, "id"), "id"),
            x=_as_u32(_field(data, "x"), "x"),
            y=_as_u32(_field(data, "y"), "y"),
        )


@dataclass(frozen=True)
class JoinGame:
    id: uuid.UUID


@dataclass(frozen=True)
class MoveTo:
    id: uuid.UUID
    x: int
    y: int


@dataclass(frozen=True)
class CastSpell:
    spell_id: int
    target_x: int
    target_y: int


@dataclass(frozen=True)
class Chat:
    id: uuid.UUID
    text: str


ClientMessage = Union[JoinGame, MoveTo, CastSpell, Chat]


def _characters_to_dict(characters: Mapping[uuid.UUID, Character]) -> Dict[str, Any]:
    return {str(key): character.to_dict() for key, character in characters.items()}


@dataclass(frozen=True)
class CharactersSnapshot:
    """Every online character, keyed by id."""

    characters: Dict[uuid.UUID, Character] = field(default_factory=dict)

    def to_json(self) -> str:
        return _dumps(
            {
                "type": "CharactersSnapshot",
                "characters": _characters_to_dict(self.characters),
            }
        )


@dataclass(frozen=True)
class ChatBroadcast:
    """A chat line relayed to every session."""

    id: uuid.UUID
    text: str

    def to_json(self) -> str:
        return _dumps({"type": "ChatBroadcast", "id": str(self.id), "text": self.text})


OutgoingMessage = Union[CharactersSnapshot, ChatBroadcast]


def parse_client_message(text: str, allow_chat: bool = True) -> ClientMessage:
    """Decode one client message; ``allow_chat`` enables the ``Chat`` variant."""
    data = _loads(text)
    if not isinstance(data, dict):
        raise ProtocolError("a client message must be a JSON object")
    kind = _field(data, "type")
    if kind == "JoinGame":
        return JoinGame(id=_as_uuid(_field(data, "id"), "id"))
    if kind == "MoveTo":
        return MoveTo(
            id=_as_uuid(_field(data, "id"), "id"),
            x=_as_u32(_field(data, "x"), "x"),
            y=_as_u32(_field(data, "y"), "y"),
        )
    if kind == "CastSpell":
        return CastSpell(
            spell_id=_as_u32(_field(data, "spell_id"), "spell_id"),
            target_x=_as_u32(_field(data, "target_x"), "target_x"),
            target_y=_as_u32(_field(data, "target_y"), "target_y"),
        )
    if kind == "Chat" and allow_chat:
        return Chat(
            id=_as_uuid(_field(data, "id"), "id"),
            text=_as_str(_field(data, "text"), "text"),
        )
    raise ProtocolError(f"unknown variant `{kind}`")


def encode_characters(characters: Mapping[uuid.UUID, Character]) -> str:
    """Serialise a bare id-to-character map."""
    return _dumps(_characters_to_dict(characters))


def decode_characters(text: str) -> Dict[uuid.UUID, Character]:
    """Parse a bare id-to-character map."""
    data = _loads(text)
    if not isinstance(data, dict):
        raise ProtocolError("a character map must be a JSON object")
    return {
        _as_uuid(key, "key"): Character.from_dict(value) for key, value in data.items()
    }