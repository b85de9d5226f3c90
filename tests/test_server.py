import asyncio
import json
import uuid
from contextlib import asynccontextmanager

import pytest
import websockets

from gridrealm.protocol import CharactersSnapshot
from gridrealm.server import (
    handle_connection,
    main,
    monitor,
    parse_address,
    run_event_loop,
)
from gridrealm.state import CharacterJoined, GameState, Snapshot


@asynccontextmanager
async def running_server():
    state = GameState()
    queue = asyncio.Queue()
    loop_task = asyncio.create_task(run_event_loop(state, queue))

    async def handler(websocket):
        await handle_connection(websocket, queue)

    try:
        async with websockets.serve(handler, "127.0.0.1", 0) as server:
            port = server.sockets[0].getsockname()[1]
            yield f"ws://127.0.0.1:{port}", state
    finally:
        loop_task.cancel()
        await asyncio.gather(loop_task, return_exceptions=True)


async def recv_json(ws):
    return json.loads(await asyncio.wait_for(ws.recv(), 2))


async def wait_until(predicate, timeout=2.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            return False
        await asyncio.sleep(0.01)
    return True


def test_parse_address_explicit():
    assert parse_address("127.0.0.1:9000") == ("127.0.0.1", 9000)


def test_parse_address_default():
    assert parse_address(None) == ("0.0.0.0", 8080)


def test_parse_address_bracketed_ipv6():
    assert parse_address("[::1]:8080") == ("::1", 8080)


@pytest.mark.parametrize("bad", ["nohost", ":80", "host:abc", "host:70000"])
def test_parse_address_rejects(bad):
    with pytest.raises(ValueError):
        parse_address(bad)


def test_main_bad_address_returns_error():
    assert main(["not-an-address"]) == 2


@pytest.mark.asyncio
async def test_run_event_loop_applies_events():
    state = GameState()
    queue = asyncio.Queue()
    outbox = asyncio.Queue()
    task = asyncio.create_task(run_event_loop(state, queue))
    cid = uuid.uuid4()
    await queue.put(CharacterJoined(id=cid, session=outbox))
    await asyncio.wait_for(queue.join(), 2)
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    assert list(state.online_characters) == [cid]
    message = outbox.get_nowait()
    assert isinstance(message, CharactersSnapshot)
    assert set(message.characters) == {cid}


@pytest.mark.asyncio
async def test_monitor_requests_counts_repeatedly(caplog):
    caplog.set_level("INFO")
    queue = asyncio.Queue()
    task = asyncio.create_task(monitor(queue, 0.01))
    first = await asyncio.wait_for(queue.get(), 2)
    assert isinstance(first, Snapshot)
    first.reply(2)
    second = await asyncio.wait_for(queue.get(), 2)
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)
    assert isinstance(second, Snapshot)
    assert "Currently connected players: 2" in caplog.text


@pytest.mark.asyncio
async def test_join_broadcasts_snapshot():
    async with running_server() as (url, state):
        async with websockets.connect(url) as ws:
            cid = str(uuid.uuid4())
            await ws.send(json.dumps({"type": "JoinGame", "id": cid}))
            reply = await recv_json(ws)
    assert reply == {
        "type": "CharactersSnapshot",
        "characters": {cid: {"id": cid, "x": 0, "y": 0}},
    }


@pytest.mark.asyncio
async def test_move_and_out_of_bounds_rejection():
    async with running_server() as (url, state):
        async with websockets.connect(url) as ws:
            cid = str(uuid.uuid4())
            await ws.send(json.dumps({"type": "JoinGame", "id": cid}))
            await recv_json(ws)
            await ws.send(json.dumps({"type": "MoveTo", "id": cid, "x": 3, "y": 4}))
            moved = await recv_json(ws)
            await ws.send(json.dumps({"type": "MoveTo", "id": cid, "x": 10, "y": 0}))
            await ws.send(json.dumps({"type": "Chat", "id": cid, "text": "hello"}))
            chat = await recv_json(ws)
    assert moved["characters"][cid] == {"id": cid, "x": 3, "y": 4}
    assert chat == {"type": "ChatBroadcast", "id": cid, "text": "hello"}


@pytest.mark.asyncio
async def test_invalid_message_is_ignored():
    async with running_server() as (url, state):
        async with websockets.connect(url) as ws:
            cid = str(uuid.uuid4())
            await ws.send("garbage")
            await ws.send(json.dumps({"type": "CastSpell", "spell_id": 1, "target_x": 2, "target_y": 3}))
            await ws.send(json.dumps({"type": "JoinGame", "id": cid}))
            reply = await recv_json(ws)
    assert list(reply["characters"]) == [cid]


@pytest.mark.asyncio
async def test_second_join_reaches_first_client_and_leave_removes():
    async with running_server() as (url, state):
        async with websockets.connect(url) as first:
            a = str(uuid.uuid4())
            await first.send(json.dumps({"type": "JoinGame", "id": a}))
            await recv_json(first)
            async with websockets.connect(url) as second:
                b = str(uuid.uuid4())
                await second.send(json.dumps({"type": "JoinGame", "id": b}))
                both = await recv_json(first)
            after_leave = await recv_json(first)
        gone = await wait_until(lambda: not state.online_characters)
    assert set(both["characters"]) == {a, b}
    assert set(after_leave["characters"]) == {a}
    assert gone is True