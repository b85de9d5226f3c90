import asyncio
import json
import uuid
from contextlib import asynccontextmanager

import pytest
import websockets

from gridrealm.legacy_server import handle_connection, main
from gridrealm.protocol import Character, decode_characters
from gridrealm.server import run_event_loop
from gridrealm.state import GameState


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


async def recv(ws):
    return await asyncio.wait_for(ws.recv(), 2)


def test_main_bad_address_returns_error():
    assert main(["host:port"]) == 2


@pytest.mark.asyncio
async def test_join_sends_bare_character_map():
    async with running_server() as (url, state):
        async with websockets.connect(url) as ws:
            cid = uuid.uuid4()
            await ws.send(json.dumps({"type": "JoinGame", "id": str(cid)}))
            text = await recv(ws)
    assert json.loads(text) == {str(cid): {"id": str(cid), "x": 0, "y": 0}}
    assert decode_characters(text) == {cid: Character(id=cid, x=0, y=0)}


@pytest.mark.asyncio
async def test_chat_is_not_understood():
    async with running_server() as (url, state):
        async with websockets.connect(url) as ws:
            cid = uuid.uuid4()
            await ws.send(json.dumps({"type": "JoinGame", "id": str(cid)}))
            await recv(ws)
            await ws.send(json.dumps({"type": "Chat", "id": str(cid), "text": "hi"}))
            await ws.send(json.dumps({"type": "MoveTo", "id": str(cid), "x": 9, "y": 9}))
            text = await recv(ws)
    assert decode_characters(text) == {cid: Character(id=cid, x=9, y=9)}


@pytest.mark.asyncio
async def test_out_of_bounds_move_sends_nothing():
    async with running_server() as (url, state):
        async with websockets.connect(url) as ws:
            cid = uuid.uuid4()
            await ws.send(json.dumps({"type": "JoinGame", "id": str(cid)}))
            await recv(ws)
            await ws.send(json.dumps({"type": "MoveTo", "id": str(cid), "x": 0, "y": 10}))
            await ws.send(json.dumps({"type": "MoveTo", "id": str(cid), "x": 1, "y": 2}))
            text = await recv(ws)
        assert state.online_characters[cid] == Character(id=cid, x=1, y=2)
    assert decode_characters(text)[cid] == Character(id=cid, x=1, y=2)