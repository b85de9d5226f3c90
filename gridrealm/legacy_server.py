"""Earlier server flavour: no chat, snapshots sent as a bare character map."""

from __future__ import annotations

import asyncio
import sys
from typing import Any, Optional

from gridrealm.protocol import (
    CharactersSnapshot,
    OutgoingMessage,
    encode_characters,
    parse_client_message,
)
from gridrealm.server import _main, _run_server, _serve_session
from gridrealm.state import GameEvent

DEFAULT_ADDRESS = "127.0.0.1:8080"


def _encode(message: OutgoingMessage) -> Optional[str]:
    if isinstance(message, CharactersSnapshot):
        return encode_characters(message.characters)
    return None


async def handle_connection(websocket: Any, queue: "asyncio.Queue[GameEvent]") -> None:
    """Run one client session without chat, replying with bare character maps."""
    await _serve_session(
        websocket,
        queue,
        lambda text: parse_client_message(text, allow_chat=False),
        _encode,
    )


async def serve(host: str, port: int) -> None:
    """Accept game clients on ``host:port`` until cancelled."""
    await _run_server(host, port, handle_connection)


def main(argv: Optional[list] = None) -> int:
    """Start the server on the address given as the first argument."""
    return _main(argv, DEFAULT_ADDRESS, serve)


if __name__ == "__main__":
    sys.exit(main())