[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "gridrealm"
version = "0.1.0"
description = "A small WebSocket game server where characters join, move on a 10x10 grid and chat, plus simple command-line clients"
requires-python = ">=3.10"
dependencies = [
    "websockets",
]
keywords = ["game", "server", "websocket", "multiplayer", "mud", "asyncio"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Framework :: AsyncIO",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Games/Entertainment :: Multi-User Dungeons (MUD)",
]

[project.optional-dependencies]
test = [
    "pytest",
    "pytest-asyncio",
]

[project.scripts]
gridrealm-server = "gridrealm.server:main"
gridrealm-legacy-server = "gridrealm.legacy_server:main"
gridrealm-ping = "gridrealm.clients:ping_main"
gridrealm-join = "gridrealm.clients:join_main"
gridrealm-snapshot = "gridrealm.clients:snapshot_main"

[tool.hatch.build.targets.wheel]
packages = ["gridrealm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
