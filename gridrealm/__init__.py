"""A WebSocket game server with a shared 10x10 character grid, chat, and simple clients."""

__version__ = "0.1.0"