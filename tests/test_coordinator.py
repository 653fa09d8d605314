"""Tests for canonical session discovery and reset convergence."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from deskshell.adapters.transport import TransportClient
from deskshell.engine.coordinator import SessionCoordinator
from deskshell.engine.errors import RemoteUnavailable


@pytest.fixture
async def transport(fake_server):
    client = TransportClient(fake_server.base_url)
    yield client
    await client.close()


@pytest.fixture
def stream():
    mock = AsyncMock()
    return mock


class TestEnsureSession:
    async def test_creates_when_missing(self, fake_server, transport, stream):
        coord = SessionCoordinator(transport, stream, "desktop")
        session = await coord.ensure_session()
        assert session.title == "desktop"
        assert coord.session_id == session.id
        assert len(fake_server.titled("desktop")) == 1

    async def test_adopts_first_existing(self, fake_server, transport, stream):
        fake_server.add_session("other")
        first = fake_server.add_session("desktop")
        fake_server.add_session("desktop")

        coord = SessionCoordinator(transport, stream, "desktop")
        session = await coord.ensure_session()
        assert session.id == first["id"]
        assert len(fake_server.sessions) == 3

    async def test_list_failure_is_unavailable(self, stream):
        client = TransportClient("http://127.0.0.1:1")
        try:
            coord = SessionCoordinator(client, stream, "desktop")
            with pytest.raises(RemoteUnavailable):
                await coord.ensure_session()
            assert coord.session is None
        finally:
            await client.close()

    async def test_create_failure_is_unavailable(self, fake_server, transport, stream):
        fake_server.fail_create = True
        coord = SessionCoordinator(transport, stream, "desktop")
        with pytest.raises(RemoteUnavailable):
            await coord.ensure_session()


class TestResetSession:
    async def test_converges_to_single_canonical_session(
        self, fake_server, transport, stream,
    ):
        for _ in range(4):
            fake_server.add_session("desktop")
        other = fake_server.add_session("notes")

        coord = SessionCoordinator(transport, stream, "desktop")
        old = await coord.ensure_session()
        outcome = await coord.reset_session()

        canonical = fake_server.titled("desktop")
        assert len(canonical) == 1
        assert canonical[0]["id"] == outcome.session.id != old.id
        assert coord.session_id == outcome.session.id
        assert other["id"] in fake_server.sessions
        assert outcome.messages == []
        assert old.id in fake_server.aborted

    async def test_closes_then_resubscribes_stream(self, fake_server, transport, stream):
        coord = SessionCoordinator(transport, stream, "desktop")
        await coord.ensure_session()
        await coord.reset_session()
        stream.close.assert_awaited_once()
        stream.subscribe.assert_awaited_once()

    async def test_failed_cleanup_delete_is_skipped(self, fake_server, transport, stream):
        stuck = fake_server.add_session("desktop")
        fake_server.fail_delete.add(stuck["id"])

        coord = SessionCoordinator(transport, stream, "desktop")
        outcome = await coord.reset_session()
        assert outcome.session.id != stuck["id"]
        assert stuck["id"] in fake_server.sessions

    async def test_create_failure_clears_session_and_resubscribes(
        self, fake_server, transport, stream,
    ):
        coord = SessionCoordinator(transport, stream, "desktop")
        await coord.ensure_session()
        fake_server.fail_create = True

        with pytest.raises(RemoteUnavailable):
            await coord.reset_session()
        assert coord.session is None
        stream.subscribe.assert_awaited_once()
