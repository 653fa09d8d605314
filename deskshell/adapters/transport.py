"""HTTP client for the remote agent server.

Thin request/response wrapper: no session state lives here. Every
non-2xx status raises RemoteRequestError and every network failure
raises RemoteConnectionError, so callers see a single TransportError
family.
"""
from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

import aiohttp

from deskshell.engine.errors import (
    RemoteConnectionError,
    RemoteRequestError,
    TransportError,
)
from deskshell.shared.models.message import Message
from deskshell.shared.models.session import RemoteSession

logger = logging.getLogger(__name__)

EVENT_PATH = "/event"


class TransportClient:
    """Async wrapper over the remote JSON API."""

    def __init__(
        self,
        base_url: str,
        request_timeout_seconds: float = 0.0,
        http: aiohttp.ClientSession | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._request_timeout = request_timeout_seconds
        self._http = http
        self._owns_http = http is None

    @property
    def base_url(self) -> str:
        return self._base_url

    def _session(self) -> aiohttp.ClientSession:
        if self._http is None or self._http.closed:
            total = self._request_timeout if self._request_timeout > 0 else None
            self._http = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=total),
            )
            self._owns_http = True
        return self._http

    async def close(self) -> None:
        if self._http is not None and self._owns_http and not self._http.closed:
            await self._http.close()
        self._http = None

    async def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Issue a JSON request and return the decoded body (None if empty)."""
        url = f"{self._base_url}{path}"
        try:
            async with self._session().request(method, url, json=body) as resp:
                if resp.status < 200 or resp.status >= 300:
                    raise RemoteRequestError(method, path, resp.status, resp.reason or "")
                text = await resp.text()
        except aiohttp.ClientError as exc:
            raise RemoteConnectionError(method, path, str(exc) or type(exc).__name__) from exc
        except asyncio.TimeoutError as exc:
            raise RemoteConnectionError(method, path, "timed out") from exc
        if not text.strip():
            return None
        try:
            return json.loads(text)
        except ValueError as exc:
            raise RemoteConnectionError(method, path, f"invalid JSON body: {exc}") from exc

    # ── health ──

    async def check_health(self) -> bool:
        try:
            health = await self.request("GET", "/global/health")
        except TransportError:
            return False
        return isinstance(health, dict) and health.get("healthy") is True

    async def wait_for_server(
        self,
        max_attempts: int = 30,
        interval_seconds: float = 1.0,
    ) -> bool:
        """Poll health until the server answers healthy or attempts run out."""
        for attempt in range(1, max_attempts + 1):
            if await self.check_health():
                logger.info("Remote server is ready (%s)", self._base_url)
                return True
            logger.info(
                "Waiting for remote server... (%d/%d)", attempt, max_attempts,
            )
            if attempt < max_attempts:
                await asyncio.sleep(interval_seconds)
        logger.error("Remote server did not become ready: %s", self._base_url)
        return False

    # ── sessions ──

    async def list_sessions(self) -> list[RemoteSession]:
        data = await self.request("GET", "/session")
        sessions: list[RemoteSession] = []
        for item in data or []:
            if not isinstance(item, dict):
                continue
            try:
                sessions.append(RemoteSession.from_dict(item))
            except ValueError:
                logger.debug("Skipping session without id: %r", item)
        return sessions

    async def create_session(self, title: str) -> RemoteSession:
        data = await self.request("POST", "/session", {"title": title})
        if not isinstance(data, dict):
            raise RemoteConnectionError("POST", "/session", "unexpected response body")
        try:
            return RemoteSession.from_dict(data)
        except ValueError as exc:
            raise RemoteConnectionError("POST", "/session", str(exc)) from exc

    async def delete_session(self, session_id: str) -> bool:
        """Delete a session. 404 counts as success; other failures return False."""
        path = f"/session/{session_id}"
        try:
            await self.request("DELETE", path)
        except RemoteRequestError as exc:
            if exc.status == 404:
                logger.debug("Session %s already deleted", session_id)
                return True
            logger.warning("Delete session %s failed: %s", session_id, exc)
            return False
        except TransportError as exc:
            logger.warning("Delete session %s failed: %s", session_id, exc)
            return False
        return True

    # ── messages ──

    async def send_message(
        self,
        session_id: str,
        text: str,
        message_id: str | None = None,
    ) -> Any:
        body: dict[str, Any] = {"parts": [{"type": "text", "text": text}]}
        if message_id:
            body["messageID"] = message_id
        return await self.request("POST", f"/session/{session_id}/message", body)

    async def get_messages(self, session_id: str) -> list[Message]:
        data = await self.request("GET", f"/session/{session_id}/message")
        messages: list[Message] = []
        for item in data or []:
            if not isinstance(item, dict):
                continue
            try:
                messages.append(Message.from_dict(item))
            except ValueError as exc:
                logger.debug("Skipping unparseable message: %s", exc)
        return messages

    async def abort(self, session_id: str) -> Any:
        return await self.request("POST", f"/session/{session_id}/abort")

    # ── events ──

    def open_event_stream(self):
        """Return an ``async with`` context yielding the raw SSE response."""
        return self._session().get(
            f"{self._base_url}{EVENT_PATH}",
            headers={"Accept": "text/event-stream", "Cache-Control": "no-cache"},
            timeout=aiohttp.ClientTimeout(total=None, sock_read=None),
        )
