"""WebSocket game server: one event loop owns the state, sessions feed it events."""

from __future__ import annotations

import asyncio
import logging
import sys
import uuid
from typing import Any, Awaitable, Callable, Optional, Tuple

import websockets
from websockets.exceptions import ConnectionClosed

from gridrealm.protocol import (
    CastSpell,
    Chat,
    ClientMessage,
    JoinGame,
    MoveTo,
    OutgoingMessage,
    ProtocolError,
    parse_client_message,
)
from gridrealm.state import (
    CharacterJoined,
    CharacterLeft,
    CharacterMoved,
    ChatMessage,
    GameEvent,
    GameState,
    Snapshot,
)

logger = logging.getLogger(__name__)

DEFAULT_ADDRESS = "0.0.0.0:8080"
EVENT_QUEUE_SIZE = 32
MONITOR_INTERVAL = 5.0

Parser = Callable[[str], ClientMessage]
Encoder = Callable[[OutgoingMessage], Optional[str]]
ConnectionHandler = Callable[[Any, "asyncio.Queue[GameEvent]"], Awaitable[None]]


def parse_address(addr: Optional[str], default: str = DEFAULT_ADDRESS) -> Tuple[str, int]:
    """Split ``host:port`` into its parts, falling back to ``default``."""
    text = default if addr is None else addr
    host, sep, port_text = text.rpartition(":")
    if not sep or not host:
        raise ValueError(f"address must have the form host:port, got {text!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port = int(port_text)
    except ValueError:
        raise ValueError(f"invalid port in address {text!r}") from None
    if not 0 <= port <= 65535:
        raise ValueError(f"port out of range in address {text!r}")
    return host, port


async def run_event_loop(state: GameState, queue: "asyncio.Queue[GameEvent]") -> None:
    """Apply queued events to ``state`` one at a time, forever."""
    while True:
        event = await queue.get()
        try:
            state.apply_event(event)
        finally:
            queue.task_done()


async def monitor(queue: "asyncio.Queue[GameEvent]", interval: float = MONITOR_INTERVAL) -> None:
    """Log the number of connected players every ``interval`` seconds."""
    loop = asyncio.get_running_loop()
    while True:
        answer: "asyncio.Future[int]" = loop.create_future()

        def reply(count: int, answer: "asyncio.Future[int]" = answer) -> None:
            if not answer.done():
                answer.set_result(count)

        await queue.put(Snapshot(reply=reply))
        count = await answer
        logger.info("Currently connected players: %s", count)
        await asyncio.sleep(interval)


def _peer(websocket: Any) -> str:
    address = getattr(websocket, "remote_address", None)
    if isinstance(address, tuple) and len(address) >= 2:
        return f"{address[0]}:{address[1]}"
    return str(address)


async def _pump(websocket: Any, outbox: "asyncio.Queue[OutgoingMessage]", encode: Encoder) -> None:
    while True:
        message = await outbox.get()
        text = encode(message)
        if text is None:
            logger.error("Cannot serialise message for this session: %r", message)
            continue
        logger.info("Sending message: %s", text)
        try:
            await websocket.send(text)
        except ConnectionClosed:
            pass


async def _dispatch(
    message: ClientMessage,
    queue: "asyncio.Queue[GameEvent]",
    outbox: "asyncio.Queue[OutgoingMessage]",
) -> Optional[uuid.UUID]:
    """Forward one client message; returns the id a join claimed."""
    match message:
        case JoinGame(id=cid):
            await queue.put(CharacterJoined(id=cid, session=outbox))
            return cid
        case Chat(id=cid, text=text):
            await queue.put(ChatMessage(id=cid, text=text))
        case MoveTo(id=cid, x=x, y=y):
            await queue.put(CharacterMoved(id=cid, x=x, y=y))
        case CastSpell():
            pass
    return None


async def _serve_session(
    websocket: Any,
    queue: "asyncio.Queue[GameEvent]",
    parse: Parser,
    encode: Encoder,
) -> None:
    addr = _peer(websocket)
    logger.info("Peer address: %s", addr)
    logger.info("New WebSocket connection: %s", addr)
    outbox: "asyncio.Queue[OutgoingMessage]" = asyncio.Queue()
    writer = asyncio.create_task(_pump(websocket, outbox, encode))
    character_id: Optional[uuid.UUID] = None
    try:
        try:
            async for message in websocket:
                if isinstance(message, (bytes, bytearray)):
                    logger.info("Received binary from %s: %r", addr, bytes(message))
                    continue
                try:
                    client_message = parse(message)
                except ProtocolError as exc:
                    logger.warning("Failed to parse message: %s", exc)
                    continue
                joined = await _dispatch(client_message, queue, outbox)
                if joined is not None:
                    character_id = joined
            logger.info("%s closed the connection", addr)
        except ConnectionClosed as exc:
            logger.info("WebSocket error from %s: %s", addr, exc)
        if character_id is not None:
            await queue.put(CharacterLeft(id=character_id))
    finally:
        writer.cancel()
        try:
            await writer
        except asyncio.CancelledError:
            pass
    logger.info("Disconnected: %s", addr)


async def handle_connection(websocket: Any, queue: "asyncio.Queue[GameEvent]") -> None:
    """Run one client session: chat enabled, tagged JSON replies."""
    await _serve_session(
        websocket,
        queue,
        lambda text: parse_client_message(text, allow_chat=True),
        lambda message: message.to_json(),
    )


async def _run_server(host: str, port: int, handle: ConnectionHandler) -> None:
    state = GameState()
    queue: "asyncio.Queue[GameEvent]" = asyncio.Queue(maxsize=EVENT_QUEUE_SIZE)
    tasks = [
        asyncio.create_task(run_event_loop(state, queue)),
        asyncio.create_task(monitor(queue, MONITOR_INTERVAL)),
    ]

    async def handler(websocket: Any) -> None:
        await handle(websocket, queue)

    try:
        async with websockets.serve(handler, host, port):
            logger.info("Server listening on: %s:%s", host, port)
            await asyncio.Future()
    finally:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)


async def serve(host: str, port: int) -> None:
    """Accept game clients on ``host:port`` until cancelled."""
    await _run_server(host, port, handle_connection)


def _main(argv: Optional[list], default: str, run: Callable[[str, int], Awaitable[None]]) -> int:
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        host, port = parse_address(args[0] if args else None, default)
    except ValueError as exc:
        print(exc, file=sys.stderr)
        return 2
    logging.basicConfig(level=logging.INFO)
    try:
        asyncio.run(run(host, port))
    except KeyboardInterrupt:
        pass
    return 0


def main(argv: Optional[list] = None) -> int:
    """Start the server on the address given as the first argument."""
    return _main(argv, DEFAULT_ADDRESS, serve)


if __name__ == "__main__":
    sys.exit(main())