"""
Tests for the command-layer helpers: console snapshot, power button ids,
the server pager and the console channel store.
"""
from __future__ import annotations

import asyncio
import json

import discord
import pytest

import cogs.utils as utils
from cogs.servers import ServerPager, build_server_embed
from cogs.usage import build_power_row, build_usage_embed, parse_power_id
from cogs.utils import console_snapshot, strip_ansi, trunc
from console_channels import ConsoleChannelStore


# ── Console snapshot ────────────────────────────────────────────────

class TestConsoleSnapshot:

    def test_ansi_sequences_are_removed(self):
        assert strip_ansi("\x1b[33m[12:00] \x1b[1;32mINFO\x1b[0m ready\x1b[K") == "[12:00] INFO ready"

    def test_keeps_last_lines_only(self):
        lines = [f"line {i}" for i in range(20)]
        assert console_snapshot(lines, count=10).splitlines() == [f"line {i}" for i in range(10, 20)]

    def test_strips_before_truncating(self):
        colour = "\x1b[31m" + "x" * 10 + "\x1b[0m"
        lines = [colour] * 10
        text = console_snapshot(lines, count=10, length=200)
        assert "\x1b" not in text
        assert text == "\n".join(["x" * 10] * 10)

    def test_truncates_to_display_length(self):
        lines = ["y" * 300] * 10
        assert len(console_snapshot(lines, count=10, length=1000)) == 1000

    def test_empty_history_placeholder(self):
        assert console_snapshot([]) == "No recent console output"

    def test_trunc(self):
        assert trunc("abcdef", 5) == "ab..."
        assert trunc(None) == ""


def test_admin_ids(monkeypatch):
    monkeypatch.setattr(utils, "OWNER_ID", 1)
    monkeypatch.setattr(utils, "ADMIN_IDS", {2, 3})
    assert utils.is_admin_id(1)
    assert utils.is_admin_id(3)
    assert not utils.is_admin_id(4)


# ── Power buttons ───────────────────────────────────────────────────

class TestPowerButtons:

    @pytest.mark.parametrize("custom_id, expected", [
        ("start_abc123", ("start", "abc123")),
        ("stop_abc123", ("stop", "abc123")),
        ("restart_1a2b_3c", ("restart", "1a2b_3c")),
        ("kill_abc123", None),
        ("prev_server", None),
        ("start_", None),
        ("", None),
    ])
    def test_parse_power_id(self, custom_id, expected):
        assert parse_power_id(custom_id) == expected

    def test_buttons_follow_server_state(self):
        async def scenario():
            running = {b.custom_id: b.disabled for b in build_power_row("abc", "running").children}
            offline = {b.custom_id: b.disabled for b in build_power_row("abc", "offline").children}
            return running, offline

        running, offline = asyncio.run(scenario())
        assert running == {"start_abc": True, "stop_abc": False, "restart_abc": False}
        assert offline == {"start_abc": False, "stop_abc": True, "restart_abc": True}

    def test_usage_embed_fields(self):
        server = {"name": "Survival", "limits": {"memory": 1024, "disk": 2048}}
        usage = {
            "current_state": "running",
            "resources": {
                "memory_bytes": 512 * 1024 * 1024,
                "cpu_absolute": 12.345,
                "disk_bytes": 0,
                "network_rx_bytes": 0,
                "network_tx_bytes": 0,
                "uptime": 61_000,
            },
        }
        embed = build_usage_embed("abc", server, usage, ["\x1b[32mhello\x1b[0m"])
        fields = {f.name: f.value for f in embed.fields}

        assert embed.title == "📊 Survival - Usage Statistics"
        assert fields["⚡ CPU Usage"] == "12.3%"
        assert "(50.0%)" in fields["💾 Memory Usage"]
        assert fields["⏱️ Uptime"] == "1m 1s"
        assert fields["🖥️ Console Snapshot"] == "```\nhello\n```"


# ── Server pager ────────────────────────────────────────────────────

SERVERS = [
    {"identifier": f"srv{i}", "name": f"Server {i}", "status": "running"}
    for i in range(3)
]


class TestServerPager:

    def test_navigation_wraps_both_ways(self):
        async def scenario():
            pager = ServerPager(SERVERS, owner_id=42)
            steps = [pager.move(-1), pager.move(1), pager.move(1), pager.move(1)]
            return steps, [o.default for o in pager.jump.options]

        steps, defaults = asyncio.run(scenario())
        assert steps == [2, 0, 1, 2]
        assert defaults == [False, False, True]

    def test_select_limited_to_25_servers(self):
        many = [{"identifier": f"s{i}", "name": f"S{i}"} for i in range(40)]

        async def scenario():
            return len(ServerPager(many, owner_id=1).jump.options)

        assert asyncio.run(scenario()) == 25

    def test_embed_for_server_with_failed_details(self):
        servers = [{"identifier": "bad", "name": "Broken", "status": "unknown", "error": True}]
        embed = build_server_embed(servers, 0)
        fields = {f.name: f.value for f in embed.fields}

        assert embed.title == "🖥️ Server: Broken"
        assert fields["💾 Resource Limits"] == "No limit data"
        assert "📊 Current Usage" not in fields
        assert embed.footer.text == "Server 1 of 1 | Last updated"


# ── Console channel store ───────────────────────────────────────────

class TestConsoleChannelStore:

    def test_bind_persists_and_reloads(self, tmp_path):
        path = tmp_path / "data" / "console_channels.json"
        store = ConsoleChannelStore(path)
        store.bind(111, "abc123", None, 999, 42)

        reloaded = ConsoleChannelStore(path)
        assert 111 in reloaded
        binding = reloaded.get(111)
        assert binding["serverId"] == "abc123"
        assert binding["setupBy"] == 42
        assert list(dict(reloaded.items())) == [111]

    def test_unbind_removes_entry(self, tmp_path):
        path = tmp_path / "channels.json"
        store = ConsoleChannelStore(path)
        store.bind(1, "a", "key", None, 5)
        assert store.unbind(1)["apiKey"] == "key"
        assert store.unbind(1) is None
        assert json.loads(path.read_text()) == {}

    def test_corrupt_file_loads_empty(self, tmp_path):
        path = tmp_path / "channels.json"
        path.write_text("[[[")
        assert len(ConsoleChannelStore(path)) == 0
