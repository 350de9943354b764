"""
api_client.py
Async Pterodactyl Client API wrapper — REST calls plus the wings console websocket.
"""

from __future__ import annotations

import asyncio
import json
from typing import Any, Dict, List, Optional, Tuple

import aiohttp

from config import PTERODACTYL_URL, PTERODACTYL_API_KEY


CONSOLE_OUTPUT = "console output"
AUTH_TIMEOUT   = 10


# ═══════════════════════════════════════════════════════════════
# ERROR
# ═══════════════════════════════════════════════════════════════

class PterodactylError(Exception):
    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"[HTTP {status}] {message}")


# ═══════════════════════════════════════════════════════════════
# CLIENT
# ═══════════════════════════════════════════════════════════════

class PterodactylClient:
    """
    Thin facade over /api/client.

    One instance per API key. The bot keeps a shared instance built from
    PTERODACTYL_API_KEY; commands given a personal key get their own
    instance, cached by the bot and closed at shutdown.
    """

    def __init__(self, api_key: Optional[str] = None, base_url: Optional[str] = None):
        self._api_key = api_key or PTERODACTYL_API_KEY
        self._panel   = (base_url or PTERODACTYL_URL).rstrip("/")
        self._base    = f"{self._panel}/api/client"
        self._session: Optional[aiohttp.ClientSession] = None
        self._ws_session: Optional[aiohttp.ClientSession] = None

    # ───────── SESSION ─────────

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._api_key}",
            "Accept": "application/json",
            "Content-Type": "application/json",
        }

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            timeout = aiohttp.ClientTimeout(total=30)
            self._session = aiohttp.ClientSession(
                headers=self._headers(),
                timeout=timeout,
            )
        return self._session

    async def _get_ws_session(self) -> aiohttp.ClientSession:
        # wings authenticates with the JWT sent over the socket, never with the panel key
        if self._ws_session is None or self._ws_session.closed:
            self._ws_session = aiohttp.ClientSession()
        return self._ws_session

    async def close(self):
        for session in (self._session, self._ws_session):
            if session and not session.closed:
                await session.close()

    # ───────── REQUEST ─────────

    async def _request(
        self,
        method: str,
        endpoint: str,
        payload: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:

        session = await self._get_session()
        url = f"{self._base}{endpoint}"

        try:
            async with session.request(method, url, json=payload, params=params) as resp:
                return await self._read_response(resp)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise PterodactylError(503, f"Panel unreachable: {str(exc) or type(exc).__name__}") from exc

    @staticmethod
    async def _read_response(resp: aiohttp.ClientResponse) -> Any:
        if resp.status == 204:
            return {}

        text = await resp.text()
        if not text.strip():
            if resp.status >= 400:
                raise PterodactylError(resp.status, resp.reason or "Request failed")
            return {}

        try:
            data = await resp.json(content_type=None)
        except Exception:
            raise PterodactylError(resp.status, text[:500])

        if resp.status >= 400:
            errors = data.get("errors", []) if isinstance(data, dict) else []
            message = errors[0].get("detail") if errors else str(data)
            raise PterodactylError(resp.status, message)

        return data

    # ───────── PAGINATION ─────────

    async def _paginate(self, endpoint: str, params: Optional[Dict] = None) -> List[Dict]:

        results: List[Dict] = []
        page = 1

        while True:
            query = {"per_page": 100, "page": page, **(params or {})}
            data = await self._request("GET", endpoint, params=query)

            results.extend(data.get("data", []))

            meta = data.get("meta", {}).get("pagination", {})
            if meta.get("current_page", 1) >= meta.get("total_pages", 1):
                break

            page += 1

        return results

    # ═══════════════════════════════════════════════════════════════
    # SERVERS
    # ═══════════════════════════════════════════════════════════════

    async def list_servers(self) -> List[Dict]:
        servers = await self._paginate("", params={"include": "allocations"})
        return [s.get("attributes", {}) for s in servers]

    async def get_server(self, identifier: str) -> Dict:
        data = await self._request(
            "GET",
            f"/servers/{identifier}",
            params={"include": "allocations"},
        )
        return data.get("attributes", {})

    async def get_usage(self, identifier: str) -> Dict:
        data = await self._request("GET", f"/servers/{identifier}/resources")
        return data.get("attributes", {})

    async def get_server_details(self, identifier: str) -> Dict:
        server = await self.get_server(identifier)
        usage  = await self.get_usage(identifier)
        return {**server, "status": usage.get("current_state", "offline"), "usage": usage}

    # ───────── POWER ─────────

    async def send_power(self, identifier: str, signal: str) -> Dict:
        return await self._request(
            "POST",
            f"/servers/{identifier}/power",
            {"signal": signal},
        )

    async def start_server(self, identifier: str) -> Dict:
        return await self.send_power(identifier, "start")

    async def stop_server(self, identifier: str) -> Dict:
        return await self.send_power(identifier, "stop")

    async def restart_server(self, identifier: str) -> Dict:
        return await self.send_power(identifier, "restart")

    async def send_command(self, identifier: str, command: str) -> Dict:
        return await self._request(
            "POST",
            f"/servers/{identifier}/command",
            {"command": command},
        )

    # ═══════════════════════════════════════════════════════════════
    # CONSOLE WEBSOCKET
    # ═══════════════════════════════════════════════════════════════

    async def websocket_credentials(self, identifier: str) -> Tuple[str, str]:
        data = await self._request("GET", f"/servers/{identifier}/websocket")
        creds = data.get("data", {})
        return creds.get("token", ""), creds.get("socket", "")

    async def authenticate_console(
        self,
        identifier: str,
        ws: aiohttp.ClientWebSocketResponse,
    ) -> None:
        token, _ = await self.websocket_credentials(identifier)
        await ws.send_json({"event": "auth", "args": [token]})

    async def open_console(self, identifier: str) -> aiohttp.ClientWebSocketResponse:
        """Connect to the server's console socket and return it once wings accepts the token."""
        token, socket_url = await self.websocket_credentials(identifier)
        if not socket_url:
            raise PterodactylError(502, f"No console socket returned for `{identifier}`.")

        session = await self._get_ws_session()
        try:
            ws = await session.ws_connect(socket_url, origin=self._panel, heartbeat=30)
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise PterodactylError(502, f"Console connection failed: {exc}") from exc

        try:
            await ws.send_json({"event": "auth", "args": [token]})
            await asyncio.wait_for(_await_auth(ws), timeout=AUTH_TIMEOUT)
        except asyncio.TimeoutError:
            await ws.close()
            raise PterodactylError(504, "Console authentication timed out.")
        except BaseException:
            await ws.close()
            raise

        return ws

    async def get_console_history(self, identifier: str, wait: float = 2.0) -> List[str]:
        """Ask wings to replay its log buffer and collect it until the socket goes quiet."""
        ws = await self.open_console(identifier)
        lines: List[str] = []
        try:
            await ws.send_json({"event": "send logs", "args": [None]})
            while True:
                try:
                    msg = await ws.receive(timeout=wait)
                except asyncio.TimeoutError:
                    break
                if msg.type != aiohttp.WSMsgType.TEXT:
                    if msg.type in _CLOSED_TYPES:
                        break
                    continue
                frame = _decode_frame(msg.data)
                if frame is None:
                    continue
                args = frame.get("args")
                if frame.get("event") == CONSOLE_OUTPUT and isinstance(args, list) and args:
                    lines.append(str(args[0]))
        finally:
            await ws.close()
        return lines

    # ═══════════════════════════════════════════════════════════════
    # FORMATTING
    # ═══════════════════════════════════════════════════════════════

    @staticmethod
    def format_status(status: Optional[str]) -> str:
        status_map = {
            "running":  "🟢 Online",
            "starting": "🟡 Starting",
            "stopping": "🟡 Stopping",
            "offline":  "🔴 Offline",
        }
        return status_map.get(status or "", "⚪ Unknown")

    @staticmethod
    def format_bytes(num: float) -> str:
        if not num or num <= 0:
            return "0 Bytes"
        sizes = ["Bytes", "KB", "MB", "GB", "TB"]
        i = 0
        while num >= 1024 and i < len(sizes) - 1:
            num /= 1024
            i += 1
        return f"{round(num, 2):g} {sizes[i]}"


_CLOSED_TYPES = (
    aiohttp.WSMsgType.CLOSE,
    aiohttp.WSMsgType.CLOSING,
    aiohttp.WSMsgType.CLOSED,
    aiohttp.WSMsgType.ERROR,
)


def _decode_frame(raw: Any) -> Optional[Dict[str, Any]]:
    """Parse a wings frame; anything that is not a JSON object is ignored."""
    try:
        frame = json.loads(raw)
    except (TypeError, ValueError):
        return None
    return frame if isinstance(frame, dict) else None


async def _await_auth(ws: aiohttp.ClientWebSocketResponse) -> None:
    async for msg in ws:
        if msg.type != aiohttp.WSMsgType.TEXT:
            continue
        frame = _decode_frame(msg.data)
        if frame is None:
            continue
        event = frame.get("event")
        if event == "auth success":
            return
        if event in ("jwt error", "token expired"):
            detail = (frame.get("args") or ["token rejected"])[0]
            raise PterodactylError(401, f"Console authentication failed: {detail}")
    raise PterodactylError(502, "Console socket closed before authentication.")
