"""
uptime.py
Lifetime uptime bookkeeping and the self-restart timer.

The tracker never exits the process. A restart is handed to the owner as a
RestartRequested signal; main.py closes the bot and exits so the process
supervisor (pm2, systemd, docker restart policy...) can bring it back.
"""

from __future__ import annotations

import asyncio
import json
import logging
import re
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Optional


log = logging.getLogger("ptero-bot.uptime")

INTERVAL_RE = re.compile(r"^(\d+)([smhd])$")
MULTIPLIERS = {
    "s": 1000,
    "m": 60 * 1000,
    "h": 60 * 60 * 1000,
    "d": 24 * 60 * 60 * 1000,
}

SCHEDULED_DELAY = 2
MANUAL_DELAY    = 1

RESTART_NOTICE = (
    "🔄 **Bot Restart**\n"
    "Scheduled restart is happening now to clear cache and refresh connections."
)


@dataclass(frozen=True)
class RestartRequested:
    reason: str
    exit_code: int = 0


def parse_interval(interval: Optional[str]) -> int:
    """``"45s"`` -> 45000. Anything that is not ``<digits><s|m|h|d>`` gives 0."""
    match = INTERVAL_RE.match(interval or "")
    if not match:
        return 0
    value, unit = match.groups()
    return int(value) * MULTIPLIERS[unit]


def format_uptime(ms: int) -> str:
    days, rest    = divmod(int(ms), MULTIPLIERS["d"])
    hours, rest   = divmod(rest, MULTIPLIERS["h"])
    minutes, rest = divmod(rest, MULTIPLIERS["m"])
    seconds       = rest // 1000

    parts = []
    if days:    parts.append(f"{days}d")
    if hours:   parts.append(f"{hours}h")
    if minutes: parts.append(f"{minutes}m")
    parts.append(f"{seconds}s")
    return " ".join(parts)


def format_total_uptime(ms: int) -> str:
    days, rest  = divmod(int(ms), MULTIPLIERS["d"])
    hours, rest = divmod(rest, MULTIPLIERS["h"])
    minutes     = rest // MULTIPLIERS["m"]

    parts = []
    if days:    parts.append(f"{days}d")
    if hours:   parts.append(f"{hours}h")
    if minutes: parts.append(f"{minutes}m")
    return " ".join(parts) or "0m"


class UptimeTracker:

    def __init__(
        self,
        data_path: str | Path,
        restart_interval: Optional[str] = None,
        notifier: Optional[Callable[[str], Awaitable[None]]] = None,
        on_restart: Optional[Callable[[RestartRequested], Awaitable[None]]] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.data_path = Path(data_path)
        self.restart_interval = restart_interval
        self.notifier = notifier
        self.on_restart = on_restart
        self._clock = clock

        self.start_time: Optional[int] = None
        self.total_uptime = 0
        self.last_shutdown: Optional[int] = None
        self._timer: Optional[asyncio.TimerHandle] = None
        self._restart_task: Optional[asyncio.Task] = None

        try:
            self.data_path.parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            log.error(f"Could not create uptime data directory: {exc}")

        self.load_data()

    def _now(self) -> int:
        return int(self._clock() * 1000)

    @property
    def running(self) -> bool:
        return self.start_time is not None

    # ───────── PERSISTENCE ─────────

    def load_data(self) -> None:
        self.total_uptime = 0
        self.last_shutdown = None
        if not self.data_path.exists():
            return
        try:
            data = json.loads(self.data_path.read_text(encoding="utf-8"))
            self.total_uptime = int(data.get("totalUptime") or 0)
            self.last_shutdown = data.get("lastShutdown")
        except (OSError, ValueError, TypeError, AttributeError) as exc:
            log.error(f"Error loading uptime data: {exc}")
            self.total_uptime = 0
            self.last_shutdown = None

    def save_data(self) -> None:
        data = {
            "totalUptime": self.total_uptime,
            "lastShutdown": self._now(),
            "currentSessionStart": self.start_time,
        }
        try:
            self.data_path.write_text(json.dumps(data, indent=2), encoding="utf-8")
            self.last_shutdown = data["lastShutdown"]
        except OSError as exc:
            log.error(f"Error saving uptime data: {exc}")

    # ───────── LIFECYCLE ─────────

    def start(self) -> None:
        """Begin a session and arm the restart timer. Must run inside the event loop."""
        self.start_time = self._now()
        log.info(f"Bot session started, lifetime uptime so far {format_total_uptime(self.total_uptime)}")

        delay = parse_interval(self.restart_interval)
        if delay > 0:
            loop = asyncio.get_running_loop()
            self._timer = loop.call_later(delay / 1000, self._fire_restart)
            log.info(f"Next restart scheduled in: {self.restart_interval}")

    def stop(self) -> None:
        if self.start_time is not None:
            session = self.get_current_uptime()
            self.total_uptime += session
            self.save_data()
            self.start_time = None
            log.info(f"Bot stopping. Session uptime: {format_uptime(session)}")

        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def get_current_uptime(self) -> int:
        if self.start_time is None:
            return 0
        return max(0, self._now() - self.start_time)

    def get_total_uptime(self) -> int:
        return self.total_uptime + self.get_current_uptime()

    def get_uptime_string(self) -> str:
        return format_uptime(self.get_current_uptime())

    def get_total_uptime_string(self) -> str:
        return format_total_uptime(self.get_total_uptime())

    # ───────── RESTART ─────────

    def _fire_restart(self) -> None:
        self._timer = None
        self._restart_task = asyncio.get_running_loop().create_task(self.schedule_restart())

    async def schedule_restart(self) -> RestartRequested:
        log.info("Scheduled restart initiated...")

        if self.notifier is not None:
            try:
                await self.notifier(RESTART_NOTICE)
            except Exception as exc:
                log.error(f"Could not notify developer about restart: {exc}")

        self.stop()
        await asyncio.sleep(SCHEDULED_DELAY)
        return await self._request_restart("scheduled")

    async def force_restart(self) -> RestartRequested:
        log.info("Manual restart initiated...")
        self.stop()
        await asyncio.sleep(MANUAL_DELAY)
        return await self._request_restart("manual")

    async def _request_restart(self, reason: str) -> RestartRequested:
        signal = RestartRequested(reason)
        if self.on_restart is not None:
            await self.on_restart(signal)
        return signal
