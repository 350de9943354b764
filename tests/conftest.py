"""Shared fakes for all tests."""
from __future__ import annotations

import asyncio
import json
import sys
from pathlib import Path
from types import SimpleNamespace

import aiohttp
import pytest

# Ensure repo root is on path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))


_END_TYPES = (aiohttp.WSMsgType.CLOSE, aiohttp.WSMsgType.CLOSING, aiohttp.WSMsgType.CLOSED)


# ── Fake wings websocket ────────────────────────────────────────────
class FakeWebSocket:
    """Queue-backed stand-in for aiohttp.ClientWebSocketResponse."""

    def __init__(self, frames=()):
        self.queue: asyncio.Queue = asyncio.Queue()
        self.sent = []
        self.closed = False
        for frame in frames:
            self.push_event(*frame)

    def push(self, data: str, msg_type=aiohttp.WSMsgType.TEXT):
        self.queue.put_nowait(SimpleNamespace(type=msg_type, data=data, extra=None))

    def push_event(self, event, *args):
        self.push(json.dumps({"event": event, "args": list(args)}))

    def push_error(self):
        self.push(None, aiohttp.WSMsgType.ERROR)

    def remote_close(self):
        self.closed = True
        self.push(None, aiohttp.WSMsgType.CLOSED)

    def exception(self):
        return ConnectionResetError("connection reset by peer")

    async def send_json(self, data):
        self.sent.append(data)

    async def close(self):
        if not self.closed:
            self.closed = True
            self.push(None, aiohttp.WSMsgType.CLOSED)
        return True

    async def receive(self, timeout=None):
        return await asyncio.wait_for(self.queue.get(), timeout)

    def __aiter__(self):
        return self

    async def __anext__(self):
        msg = await self.queue.get()
        if msg.type in _END_TYPES:
            raise StopAsyncIteration
        return msg


# ── Fake panel facade ───────────────────────────────────────────────
class FakePanel:
    """Records console opens; every open hands out a fresh FakeWebSocket."""

    def __init__(self, error: Exception | None = None, delay: float = 0, errors: dict | None = None):
        self.error = error
        self.delay = delay
        self.errors = errors or {}
        self.opened: list[tuple[str, FakeWebSocket]] = []
        self.reauthed: list[str] = []

    async def open_console(self, identifier):
        if self.delay:
            await asyncio.sleep(self.delay)
        error = self.errors.get(identifier, self.error)
        if error is not None:
            raise error
        ws = FakeWebSocket()
        self.opened.append((identifier, ws))
        return ws

    async def authenticate_console(self, identifier, ws):
        self.reauthed.append(identifier)

    async def get_server_details(self, identifier):
        return {"identifier": identifier, "name": f"Server {identifier}", "status": "running"}


# ── Fake Discord channel ────────────────────────────────────────────
class FakeChannel:

    def __init__(self, channel_id=1234):
        self.id = channel_id
        self.mention = f"<#{channel_id}>"
        self.messages: list[str] = []

    async def send(self, content=None, **kwargs):
        self.messages.append(content)


class FakeClock:
    """Callable clock in seconds, moved by hand."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float):
        self.now += seconds


async def settle(rounds: int = 10):
    """Let background reader tasks drain their queues."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def uptime_file(tmp_path):
    return tmp_path / "data" / "uptime.json"
