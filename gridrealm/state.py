"""The authoritative game state and the events that change it."""

from __future__ import annotations

import asyncio
import logging
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, Protocol, Union

from gridrealm.protocol import Character, CharactersSnapshot, ChatBroadcast, OutgoingMessage

logger = logging.getLogger(__name__)

GRID_SIZE = 10


class Outbox(Protocol):
    """Where messages for one session are queued."""

    def put_nowait(self, item: Any) -> None: ...


@dataclass(frozen=True)
class CharacterJoined:
    id: uuid.UUID
    session: Outbox


@dataclass(frozen=True)
class CharacterLeft:
    id: uuid.UUID


@dataclass(frozen=True)
class CharacterMoved:
    id: uuid.UUID
    x: int
    y: int


@dataclass(frozen=True)
class ChatMessage:
    id: uuid.UUID
    text: str


@dataclass(frozen=True)
class Snapshot:
    """Asks for the number of online characters, delivered to ``reply``."""

    reply: Callable[[int], None]


GameEvent = Union[CharacterJoined, CharacterLeft, CharacterMoved, ChatMessage, Snapshot]


@dataclass
class GameState:
    """Online characters and the outboxes of their sessions."""

    online_characters: Dict[uuid.UUID, Character] = field(default_factory=dict)
    sessions: Dict[uuid.UUID, Outbox] = field(default_factory=dict)

    def broadcast(self, message: OutgoingMessage) -> None:
        """Queue ``message`` for every session, skipping ones that cannot take it."""
        for session in self.sessions.values():
            try:
                session.put_nowait(message)
            except asyncio.QueueFull:
                logger.warning("Dropped message for a full session outbox")

    def _broadcast_characters(self) -> None:
        self.broadcast(CharactersSnapshot(characters=dict(self.online_characters)))

    def apply_event(self, event: GameEvent) -> None:
        match event:
            case CharacterJoined(id=cid, session=session):
                self.online_characters[cid] = Character(id=cid, x=0, y=0)
                self.sessions[cid] = session
                logger.info("Character %s has joined the world.", cid)
                self._broadcast_characters()
            case CharacterLeft(id=cid):
                self.online_characters.pop(cid, None)
                self.sessions.pop(cid, None)
                logger.info("Character %s has left the world.", cid)
                self._broadcast_characters()
            case ChatMessage(id=cid, text=text):
                self.broadcast(ChatBroadcast(id=cid, text=text))
            case CharacterMoved(id=cid, x=x, y=y):
                if x >= GRID_SIZE or y >= GRID_SIZE:
                    logger.info(
                        "Rejected move for %s to out-of-bounds position: (%s, %s)",
                        cid,
                        x,
                        y,
                    )
                    return
                character = self.online_characters.get(cid)
                if character is not None:
                    self.online_characters[cid] = replace(character, x=x, y=y)
                self._broadcast_characters()
            case Snapshot(reply=reply):
                reply(len(self.online_characters))
            case _:
                raise TypeError(f"unknown game event: {event!r}")