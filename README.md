# gridrealm

gridrealm is a small multiplayer game server that speaks JSON over WebSockets.
A player joins with an identifier (a UUID) and appears at `(0, 0)` on a 10x10
grid. Players can then move around the grid and chat. When a player joins, leaves
or moves, every connected player receives a snapshot of all online characters.

## Installation

```
pip install .
```

To run the tests, install the test extra and run pytest:

```
pip install ".[test]"
pytest
```

## Running the server

```
gridrealm-server
gridrealm-server 127.0.0.1:9000
```

The optional argument is the `host:port` to listen on. It defaults to
`0.0.0.0:8080`. An IPv6 host may be written in brackets, for example `[::1]:8080`.
If the address is malformed, the command prints the error and exits with status 2.
Every five seconds the server logs how many players are connected.

`gridrealm-legacy-server` runs the earlier version of the protocol. That version
has no chat, sends bare character maps instead of tagged messages, and listens on
`127.0.0.1:8080` by default.

## Protocol

Each client message is a JSON text frame with a `type` tag:

```json
{"type": "JoinGame", "id": "5f0c6c1e-0000-4000-8000-000000000000"}
{"type": "MoveTo", "id": "5f0c6c1e-0000-4000-8000-000000000000", "x": 3, "y": 7}
{"type": "Chat", "id": "5f0c6c1e-0000-4000-8000-000000000000", "text": "hello"}
{"type": "CastSpell", "spell_id": 1, "target_x": 2, "target_y": 2}
```

Coordinates and spell ids must be unsigned 32-bit integers. The server logs any
message it cannot parse and ignores it. It also logs binary frames and ignores them.

- `JoinGame` places the character at `(0, 0)` and registers the connection to receive updates.
- `MoveTo` is rejected, and nothing is sent, when `x` or `y` is 10 or more.
- `Chat` is relayed to every joined connection. The legacy server does not accept `Chat`.
- `CastSpell` is accepted and then ignored.

When the connection closes, the character joined on it leaves the world.

The server sends two kinds of message:

```json
{"type": "CharactersSnapshot", "characters": {"<uuid>": {"id": "<uuid>", "x": 0, "y": 0}}}
{"type": "ChatBroadcast", "id": "<uuid>", "text": "hello"}
```

The legacy server sends only the bare map, `{"<uuid>": {"id": "<uuid>", "x": 0, "y": 0}}`.

## Clients

```
gridrealm-ping [URL]       # sends "Ping #n" text frames every five seconds
gridrealm-join [URL]       # joins with a fresh UUID and prints every server message
gridrealm-snapshot [URL]   # joins and prints the position of each character in every snapshot
```

The URL defaults to `ws://127.0.0.1:8080`. If a client cannot connect, it exits
with status 1.

`gridrealm-snapshot` reads the bare character maps that the legacy server sends.
For any other message it prints the parse error and the raw message.

## As a library

- `gridrealm.protocol` has the message dataclasses (`JoinGame`, `MoveTo`,
  `CastSpell`, `Chat`, `CharactersSnapshot`, `ChatBroadcast`, `Character`).
  It also has `parse_client_message(text, allow_chat=True)`,
  `encode_characters` and `decode_characters`. Malformed input raises
  `ProtocolError`, which is a `ValueError`.
- `gridrealm.state` has `GameState` and the events it applies (`CharacterJoined`,
  `CharacterLeft`, `CharacterMoved`, `ChatMessage`, `Snapshot`).
  `GameState.apply_event(event)` changes the world. It queues updates on every
  registered session, which can be any object with `put_nowait`, such as an
  `asyncio.Queue`. `Snapshot(reply=...)` calls `reply` with the number of online
  characters.
- `gridrealm.server` has `serve(host, port)`, `handle_connection(websocket, queue)`,
  `run_event_loop(state, queue)`, `monitor(queue, interval)` and `parse_address(addr, default)`.
  `gridrealm.legacy_server` offers `serve` and `handle_connection` for the earlier protocol.
- `gridrealm.clients` has `ping(url, interval, limit)`, `join(url, on_message)` and
  `describe_snapshot(text)`.

## What it does not do

The world exists only in memory and is lost when the server stops. Players are
not authenticated: any connection may join, move or chat under any id. Spells
have no effect. The server listens on plain `ws://` and does not set up TLS.