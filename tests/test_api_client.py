"""
Tests for api_client.py — console auth handshake, log replay and formatting.
HTTP is never touched; credential lookups and the socket are stubbed.
"""
from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock

import aiohttp
import pytest

from api_client import PterodactylClient, PterodactylError
from tests.conftest import FakeWebSocket


def _client_with_socket(ws: FakeWebSocket) -> PterodactylClient:
    client = PterodactylClient(api_key="ptlc_test", base_url="https://panel.example.com/")
    client.websocket_credentials = AsyncMock(return_value=("jwt-token", "wss://node.example.com/ws"))
    session = SimpleNamespace(ws_connect=AsyncMock(return_value=ws))
    client._get_ws_session = AsyncMock(return_value=session)
    return client


class TestOpenConsole:

    def test_sends_token_and_waits_for_auth_success(self):
        async def scenario():
            ws = FakeWebSocket([("status", "running"), ("auth success",)])
            client = _client_with_socket(ws)
            result = await client.open_console("abc123")

            session = await client._get_ws_session()
            args, kwargs = session.ws_connect.call_args
            assert args == ("wss://node.example.com/ws",)
            assert kwargs["origin"] == "https://panel.example.com"
            return result, ws

        result, ws = asyncio.run(scenario())
        assert result is ws
        assert ws.sent == [{"event": "auth", "args": ["jwt-token"]}]
        assert not ws.closed

    def test_rejected_token_closes_socket(self):
        async def scenario():
            ws = FakeWebSocket([("jwt error", "signature invalid")])
            client = _client_with_socket(ws)
            with pytest.raises(PterodactylError) as info:
                await client.open_console("abc123")
            return info.value, ws

        error, ws = asyncio.run(scenario())
        assert error.status == 401
        assert "signature invalid" in error.message
        assert ws.closed

    def test_socket_closing_before_auth_fails(self):
        async def scenario():
            ws = FakeWebSocket()
            ws.remote_close()
            client = _client_with_socket(ws)
            with pytest.raises(PterodactylError):
                await client.open_console("abc123")

        asyncio.run(scenario())

    def test_missing_socket_url_fails_before_connecting(self):
        async def scenario():
            client = _client_with_socket(FakeWebSocket())
            client.websocket_credentials = AsyncMock(return_value=("", ""))
            with pytest.raises(PterodactylError):
                await client.open_console("abc123")

        asyncio.run(scenario())

    def test_non_object_frames_are_ignored_during_auth(self):
        async def scenario():
            ws = FakeWebSocket()
            ws.push("[1, 2]")
            ws.push("42")
            ws.push_event("auth success")
            client = _client_with_socket(ws)
            return await client.open_console("abc123"), ws

        result, ws = asyncio.run(scenario())
        assert result is ws


class TestConsoleHistory:

    def test_collects_replayed_lines_until_quiet(self):
        async def scenario():
            ws = FakeWebSocket([
                ("auth success",),
                ("console output", "\x1b[33m[Server] Starting\x1b[0m"),
                ("stats", "{}"),
                ("console output", "Done (3.2s)!"),
            ])
            client = _client_with_socket(ws)
            lines = await client.get_console_history("abc123", wait=0.05)
            return lines, ws

        lines, ws = asyncio.run(scenario())
        assert lines == ["\x1b[33m[Server] Starting\x1b[0m", "Done (3.2s)!"]
        assert {"event": "send logs", "args": [None]} in ws.sent
        assert ws.closed

    def test_non_object_frames_are_skipped(self):
        async def scenario():
            ws = FakeWebSocket([("auth success",)])
            ws.push("[\"console output\", \"x\"]")
            ws.push("null")
            ws.push_event("console output", "kept")
            client = _client_with_socket(ws)
            return await client.get_console_history("abc123", wait=0.05)

        assert asyncio.run(scenario()) == ["kept"]


class TestTransportErrors:

    @pytest.mark.parametrize("error", [
        aiohttp.ClientConnectionError("connection refused"),
        asyncio.TimeoutError(),
    ])
    def test_network_failures_become_panel_errors(self, error):
        async def scenario():
            client = PterodactylClient(api_key="k", base_url="https://panel")
            client._get_session = AsyncMock(return_value=SimpleNamespace(request=Mock(side_effect=error)))
            with pytest.raises(PterodactylError) as info:
                await client.get_usage("abc")
            return info.value

        failure = asyncio.run(scenario())
        assert failure.status == 503
        assert failure.message.startswith("Panel unreachable")


class TestDetails:

    def test_details_merge_live_state(self):
        async def scenario():
            client = PterodactylClient(api_key="k", base_url="https://panel")
            client.get_server = AsyncMock(return_value={"name": "Survival", "identifier": "abc"})
            client.get_usage = AsyncMock(return_value={"current_state": "running", "resources": {}})
            return await client.get_server_details("abc")

        details = asyncio.run(scenario())
        assert details["name"] == "Survival"
        assert details["status"] == "running"
        assert details["usage"]["current_state"] == "running"

    def test_power_shortcuts_send_signal(self):
        async def scenario():
            client = PterodactylClient(api_key="k", base_url="https://panel")
            client._request = AsyncMock(return_value={})
            await client.restart_server("abc")
            await client.send_command("abc", "say hi")
            return client._request.call_args_list

        calls = asyncio.run(scenario())
        assert calls[0].args == ("POST", "/servers/abc/power", {"signal": "restart"})
        assert calls[1].args == ("POST", "/servers/abc/command", {"command": "say hi"})


class TestFormatting:

    @pytest.mark.parametrize("state, text", [
        ("running", "🟢 Online"),
        ("starting", "🟡 Starting"),
        ("stopping", "🟡 Stopping"),
        ("offline", "🔴 Offline"),
        ("installing", "⚪ Unknown"),
        (None, "⚪ Unknown"),
    ])
    def test_format_status(self, state, text):
        assert PterodactylClient.format_status(state) == text

    @pytest.mark.parametrize("num, text", [
        (0, "0 Bytes"),
        (512, "512 Bytes"),
        (1536, "1.5 KB"),
        (1024 ** 2, "1 MB"),
        (3 * 1024 ** 3, "3 GB"),
    ])
    def test_format_bytes(self, num, text):
        assert PterodactylClient.format_bytes(num) == text
