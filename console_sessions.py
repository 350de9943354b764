"""
console_sessions.py
Live console streaming — one websocket per server, fanned out to a sink.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Dict, List, Optional

import aiohttp
import discord

from api_client import CONSOLE_OUTPUT, PterodactylClient


log = logging.getLogger("ptero-bot.console")

OutputSink = Callable[[str], Awaitable[None]]

MESSAGE_LIMIT = 1900


# ═══════════════════════════════════════════════════════════════
# OUTPUT FORMATTING
# ═══════════════════════════════════════════════════════════════

def chunk_output(output: Optional[str], limit: int = MESSAGE_LIMIT) -> List[str]:
    """Split console output into message-sized pieces. Blank output yields nothing."""
    text = (output or "").strip()
    if not text:
        return []
    if len(text) <= limit:
        return [text]
    return [text[i:i + limit] for i in range(0, len(text), limit)]


def channel_sink(channel: discord.abc.Messageable) -> OutputSink:
    """Sink that posts every chunk to ``channel`` as its own code block."""

    async def sink(output: str) -> None:
        for chunk in chunk_output(output):
            await channel.send(f"```\n{chunk}\n```")

    return sink


# ═══════════════════════════════════════════════════════════════
# REGISTRY
# ═══════════════════════════════════════════════════════════════

@dataclass(eq=False)
class ConsoleSession:
    identifier: str
    ws: aiohttp.ClientWebSocketResponse
    sink: OutputSink
    ptero: PterodactylClient
    task: Optional[asyncio.Task] = field(default=None, repr=False)


class ConsoleSessionRegistry:
    """
    Owns at most one live console socket per server identifier.

    subscribe() always tears down the previous socket for the same server
    before opening the next one, so a server never has two live streams.
    """

    def __init__(self, ptero: PterodactylClient):
        self._ptero = ptero
        self._sessions: Dict[str, ConsoleSession] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def is_subscribed(self, identifier: str) -> bool:
        return identifier in self._sessions

    def identifiers(self) -> List[str]:
        return list(self._sessions)

    def _lock(self, identifier: str) -> asyncio.Lock:
        return self._locks.setdefault(identifier, asyncio.Lock())

    # ───────── LIFECYCLE ─────────

    async def subscribe(
        self,
        identifier: str,
        sink: OutputSink,
        ptero: Optional[PterodactylClient] = None,
    ) -> aiohttp.ClientWebSocketResponse:
        # close, open and register run as one step per identifier
        async with self._lock(identifier):
            await self._close(identifier)

            client = ptero or self._ptero
            ws = await client.open_console(identifier)

            session = ConsoleSession(identifier, ws, sink, client)
            self._sessions[identifier] = session
            session.task = asyncio.create_task(
                self._read(session),
                name=f"console-{identifier}",
            )
        log.info(f"Console stream opened for {identifier}")
        return ws

    async def unsubscribe(self, identifier: str) -> None:
        async with self._lock(identifier):
            await self._close(identifier)

    async def _close(self, identifier: str) -> None:
        session = self._sessions.pop(identifier, None)
        if session is None:
            return
        await session.ws.close()
        log.info(f"Console stream closed for {identifier}")

    async def close_all(self) -> None:
        for identifier in self.identifiers():
            await self.unsubscribe(identifier)

    # ───────── READER ─────────

    async def _read(self, session: ConsoleSession) -> None:
        try:
            async for msg in session.ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    await self._handle_frame(session, msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    log.error(f"Console socket error for {session.identifier}: {session.ws.exception()}")
        except Exception as exc:
            log.error(f"Console reader for {session.identifier} failed: {exc}", exc_info=True)
        finally:
            # a newer subscribe may already own this identifier
            if self._sessions.get(session.identifier) is session:
                del self._sessions[session.identifier]
            log.info(f"Console socket closed for {session.identifier}")

    async def _handle_frame(self, session: ConsoleSession, raw: str) -> None:
        try:
            frame = json.loads(raw)
            event = frame["event"]
            args = frame.get("args") or []
        except (ValueError, KeyError, TypeError, AttributeError) as exc:
            log.warning(f"Dropping malformed console frame for {session.identifier}: {exc}")
            return

        if event == CONSOLE_OUTPUT:
            if not args:
                log.warning(f"Console output frame without payload for {session.identifier}")
                return
            try:
                await session.sink(str(args[0]))
            except Exception as exc:
                log.error(f"Console sink for {session.identifier} raised: {exc}", exc_info=True)

        elif event in ("token expiring", "token expired"):
            try:
                await session.ptero.authenticate_console(session.identifier, session.ws)
            except Exception as exc:
                log.error(f"Could not refresh console token for {session.identifier}: {exc}")
