"""Shared fixtures: an in-process fake agent server speaking HTTP + SSE."""

from __future__ import annotations

import asyncio
import itertools
import json
import time
from unittest.mock import MagicMock

import pytest
from aiohttp import web
from aiohttp.test_utils import TestServer

from deskshell.engine.config import ShellConfig
from deskshell.engine.context import ShellContext


class FakeAgentServer:
    """Minimal stand-in for the remote agent API."""

    def __init__(self) -> None:
        self.healthy = True
        self.sessions: dict[str, dict] = {}
        self.messages: dict[str, list[dict]] = {}
        self.sent: list[tuple[str, dict]] = []
        self.aborted: list[str] = []
        self.deleted: list[str] = []
        self.fail_send = False
        self.fail_create = False
        self.fail_delete: set[str] = set()
        self.fail_abort = False
        self.echo_events = True
        self.event_status = 200
        self.send_gate: asyncio.Event | None = None
        self.connections = 0
        self.subscribers: list[asyncio.Queue] = []
        self.base_url = ""
        self._ids = itertools.count(1)

        self.app = web.Application()
        self.app.router.add_get("/global/health", self._health)
        self.app.router.add_get("/session", self._list_sessions)
        self.app.router.add_post("/session", self._create_session)
        self.app.router.add_delete("/session/{id}", self._delete_session)
        self.app.router.add_get("/session/{id}/message", self._get_messages)
        self.app.router.add_post("/session/{id}/message", self._post_message)
        self.app.router.add_post("/session/{id}/abort", self._abort)
        self.app.router.add_get("/event", self._events)

    # ── test controls ──

    def add_session(self, title: str, session_id: str | None = None) -> dict:
        session_id = session_id or f"ses_{next(self._ids)}"
        session = {"id": session_id, "title": title}
        self.sessions[session_id] = session
        self.messages[session_id] = []
        return session

    def add_message(
        self, session_id: str, message_id: str, role: str, text: str = "",
    ) -> dict:
        message = {
            "info": {
                "id": message_id,
                "role": role,
                "time": {"created": int(time.time() * 1000)},
            },
            "parts": [{"type": "text", "id": f"prt_{message_id}", "text": text}],
        }
        self.messages[session_id].append(message)
        return message

    def titled(self, title: str) -> list[dict]:
        return [s for s in self.sessions.values() if s["title"] == title]

    def push(self, event: dict) -> None:
        self.push_raw(json.dumps(event))

    def push_raw(self, payload: str) -> None:
        for queue in list(self.subscribers):
            queue.put_nowait(payload)

    def inject_user_message(self, session_id: str, message_id: str, text: str) -> None:
        """Simulate input arriving from another client."""
        self.add_message(session_id, message_id, "user", text)
        self.push(message_created(message_id, "user", session_id))

    def drop_streams(self) -> None:
        for queue in list(self.subscribers):
            queue.put_nowait(None)

    # ── handlers ──

    async def _health(self, request: web.Request) -> web.Response:
        if not self.healthy:
            return web.json_response({"healthy": False}, status=503)
        return web.json_response({"healthy": True, "version": "test"})

    async def _list_sessions(self, request: web.Request) -> web.Response:
        return web.json_response(list(self.sessions.values()))

    async def _create_session(self, request: web.Request) -> web.Response:
        if self.fail_create:
            return web.json_response({"error": "boom"}, status=500)
        body = await request.json()
        return web.json_response(self.add_session(body.get("title", "")))

    async def _delete_session(self, request: web.Request) -> web.Response:
        session_id = request.match_info["id"]
        if session_id in self.fail_delete:
            return web.json_response({"error": "locked"}, status=500)
        if session_id not in self.sessions:
            return web.json_response({"error": "not found"}, status=404)
        del self.sessions[session_id]
        self.messages.pop(session_id, None)
        self.deleted.append(session_id)
        return web.json_response(True)

    async def _get_messages(self, request: web.Request) -> web.Response:
        session_id = request.match_info["id"]
        if session_id not in self.sessions:
            return web.json_response({"error": "not found"}, status=404)
        return web.json_response(self.messages[session_id])

    async def _post_message(self, request: web.Request) -> web.Response:
        session_id = request.match_info["id"]
        body = await request.json()
        self.sent.append((session_id, body))
        if self.send_gate is not None:
            await self.send_gate.wait()
        if self.fail_send or session_id not in self.sessions:
            return web.json_response({"error": "rejected"}, status=500)

        user_id = body.get("messageID") or f"msg_{next(self._ids)}"
        text = body["parts"][0]["text"]
        self.add_message(session_id, user_id, "user", text)
        if self.echo_events:
            self.push(message_created(user_id, "user", session_id))
        reply_id = f"msg_{next(self._ids)}"
        return web.json_response(
            {"info": {"id": reply_id, "role": "assistant"}, "parts": []}
        )

    async def _abort(self, request: web.Request) -> web.Response:
        self.aborted.append(request.match_info["id"])
        if self.fail_abort:
            return web.json_response({"error": "abort failed"}, status=500)
        return web.json_response(True)

    async def _events(self, request: web.Request) -> web.StreamResponse:
        if self.event_status != 200:
            return web.json_response({"error": "unavailable"}, status=self.event_status)
        resp = web.StreamResponse(headers={"Content-Type": "text/event-stream"})
        await resp.prepare(request)
        queue: asyncio.Queue = asyncio.Queue()
        self.subscribers.append(queue)
        self.connections += 1
        try:
            await resp.write(b": connected\n\n")
            while True:
                payload = await queue.get()
                if payload is None:
                    break
                await resp.write(f"data: {payload}\n\n".encode())
        except ConnectionResetError:
            pass
        finally:
            self.subscribers.remove(queue)
        return resp


# ── event builders ──


def message_created(message_id: str, role: str, session_id: str = "") -> dict:
    return {
        "type": "message.created",
        "properties": {
            "info": {"id": message_id, "role": role, "sessionID": session_id},
        },
    }


def part_updated(message_id: str, part: dict) -> dict:
    return {
        "type": "message.part.updated",
        "properties": {"part": {"messageID": message_id, **part}},
    }


def session_status(status: str) -> dict:
    return {"type": "session.status", "properties": {"status": {"type": status}}}


def session_idle(session_id: str = "") -> dict:
    return {"type": "session.idle", "properties": {"sessionID": session_id}}


async def wait_until(predicate, timeout: float = 3.0, interval: float = 0.01) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


# ── fixtures ──


@pytest.fixture
async def fake_server():
    fake = FakeAgentServer()
    server = TestServer(fake.app)
    await server.start_server()
    fake.base_url = str(server.make_url("")).rstrip("/")
    yield fake
    fake.drop_streams()
    await server.close()


@pytest.fixture
def fast_config(fake_server) -> ShellConfig:
    return ShellConfig(
        server_url=fake_server.base_url,
        health_max_attempts=2,
        health_interval_seconds=0.01,
        reconnect_delay_seconds=0.05,
        reconnect_max_delay_seconds=0.05,
    )


@pytest.fixture
async def context(fast_config):
    ctx = ShellContext(fast_config, launcher=MagicMock())
    yield ctx
    await ctx.close()
