"""
console_channels.py
Channel → server bindings for console streaming, kept in a small JSON file
so streams can be resumed after the bot restarts.
"""

from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Dict, Iterator, Optional, Tuple


log = logging.getLogger("ptero-bot.console")


class ConsoleChannelStore:

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._bindings: Dict[str, Dict] = {}
        self.load()

    def __contains__(self, channel_id: int) -> bool:
        return str(channel_id) in self._bindings

    def __len__(self) -> int:
        return len(self._bindings)

    def load(self) -> None:
        self._bindings = {}
        if not self.path.exists():
            return
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.error(f"Error loading console channels: {exc}")
            return
        if isinstance(data, dict):
            self._bindings = {str(k): v for k, v in data.items() if isinstance(v, dict)}

    def save(self) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(self._bindings, indent=2), encoding="utf-8")
        except OSError as exc:
            log.error(f"Error saving console channels: {exc}")

    def get(self, channel_id: int) -> Optional[Dict]:
        return self._bindings.get(str(channel_id))

    def bind(
        self,
        channel_id: int,
        server_id: str,
        api_key: Optional[str],
        guild_id: Optional[int],
        setup_by: int,
    ) -> Dict:
        binding = {
            "serverId": server_id,
            "apiKey": api_key,
            "guildId": guild_id,
            "setupBy": setup_by,
            "setupAt": int(time.time() * 1000),
        }
        self._bindings[str(channel_id)] = binding
        self.save()
        return binding

    def unbind(self, channel_id: int) -> Optional[Dict]:
        binding = self._bindings.pop(str(channel_id), None)
        if binding is not None:
            self.save()
        return binding

    def items(self) -> Iterator[Tuple[int, Dict]]:
        for channel_id, binding in list(self._bindings.items()):
            yield int(channel_id), binding
