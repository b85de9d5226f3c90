"""Small command-line clients for exercising the game server."""

from __future__ import annotations

import asyncio
import json
import sys
import uuid
from typing import Callable, List, Optional

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedOK

from gridrealm.protocol import ProtocolError, decode_characters

DEFAULT_URL = "ws://127.0.0.1:8080"
PING_INTERVAL = 5.0


def describe_snapshot(text: str) -> List[str]:
    """Render a bare character map as report lines, or explain why it is not one."""
    try:
        characters = decode_characters(text)
    except ProtocolError as exc:
        return [f"Failed to parse characters: {exc}", f"Raw message: {text}"]
    lines = ["Received character snapshot:"]
    lines.extend(
        f"Character {cid} is at ({character.x}, {character.y})"
        for cid, character in characters.items()
    )
    return lines


async def ping(url: str, interval: float = PING_INTERVAL, limit: Optional[int] = None) -> int:
    """Send ``Ping #n`` text frames every ``interval`` seconds; returns how many were sent."""
    sent = 0
    async with websockets.connect(url) as ws:
        print("Connected to server")
        while limit is None or sent < limit:
            await ws.send(f"Ping #{sent}")
            print(f"Sent Ping #{sent}")
            sent += 1
            if limit is None or sent < limit:
                await asyncio.sleep(interval)
    return sent


def _print_reply(text: str) -> None:
    print(f"Server: {text}")


async def join(url: str, on_message: Optional[Callable[[str], None]] = None) -> uuid.UUID:
    """Join the game with a fresh id and hand each text reply to ``on_message``."""
    handle = _print_reply if on_message is None else on_message
    cid = uuid.uuid4()
    async with websockets.connect(url) as ws:
        print("Connected to server")
        await ws.send(json.dumps({"type": "JoinGame", "id": str(cid)}, separators=(",", ":")))
        print(f"Sent JoinGame with id: {cid}")
        try:
            async for message in ws:
                if isinstance(message, str):
                    handle(message)
            print("Server closed the connection")
        except ConnectionClosedOK:
            print("Server closed the connection")
        except ConnectionClosed as exc:
            print(f"Error reading message: {exc}", file=sys.stderr)
    return cid


def _print_snapshot(text: str) -> None:
    for line in describe_snapshot(text):
        print(line)


def _run(argv: Optional[list], start: Callable[[str], object]) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    url = args[0] if args else DEFAULT_URL
    try:
        asyncio.run(start(url))
    except KeyboardInterrupt:
        pass
    except (OSError, websockets.exceptions.WebSocketException) as exc:
        print(f"Failed to connect: {exc}", file=sys.stderr)
        return 1
    return 0


def ping_main(argv: Optional[list] = None) -> int:
    """Ping the server forever."""
    return _run(argv, lambda url: ping(url, PING_INTERVAL, None))


def join_main(argv: Optional[list] = None) -> int:
    """Join the game and print every reply."""
    return _run(argv, lambda url: join(url))


def snapshot_main(argv: Optional[list] = None) -> int:
    """Join the game and print each character snapshot."""
    return _run(argv, lambda url: join(url, _print_snapshot))