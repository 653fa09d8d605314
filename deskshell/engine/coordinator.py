"""Canonical session coordination.

Guarantees that exactly one server-side conversation carries the
canonical title and owns the id every other component talks to.
Nothing here locks: concurrent ensure/reset calls can briefly create
duplicates, and the title sweep in ``reset_session`` cleans them up.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from deskshell.engine.config import CANONICAL_SESSION_TITLE
from deskshell.engine.errors import RemoteUnavailable, TransportError
from deskshell.shared.models.message import Message
from deskshell.shared.models.session import RemoteSession

if TYPE_CHECKING:
    from deskshell.adapters.event_stream import EventStreamManager
    from deskshell.adapters.transport import TransportClient

logger = logging.getLogger(__name__)


@dataclass
class ResetOutcome:
    session: RemoteSession
    messages: list[Message] = field(default_factory=list)


class SessionCoordinator:
    """Single writer of the canonical session id."""

    def __init__(
        self,
        transport: TransportClient,
        stream: EventStreamManager,
        title: str = CANONICAL_SESSION_TITLE,
    ) -> None:
        self._transport = transport
        self._stream = stream
        self._title = title
        self._session: RemoteSession | None = None

    @property
    def title(self) -> str:
        return self._title

    @property
    def session(self) -> RemoteSession | None:
        return self._session

    @property
    def session_id(self) -> str | None:
        return self._session.id if self._session else None

    async def ensure_session(self, title: str | None = None) -> RemoteSession:
        """Adopt the first remote session titled *title*, creating one if needed."""
        title = title or self._title
        try:
            sessions = await self._transport.list_sessions()
        except TransportError as exc:
            raise RemoteUnavailable(f"Could not list sessions: {exc}") from exc

        existing = next((s for s in sessions if s.title == title), None)
        if existing is not None:
            logger.info("Found existing session: %s (%s)", existing.id, title)
            self._session = existing
            return existing

        try:
            created = await self._transport.create_session(title)
        except TransportError as exc:
            raise RemoteUnavailable(f"Could not create session: {exc}") from exc
        logger.info("Created new session: %s (%s)", created.id, title)
        self._session = created
        return created

    async def reset_session(self) -> ResetOutcome:
        """Replace the canonical session with a fresh one.

        Every cleanup step is best-effort; only the final create can
        fail the reset. The event stream is re-subscribed either way.
        """
        logger.info("Resetting canonical session (current=%s)", self.session_id)
        await self._stream.close()
        try:
            current = self.session_id
            if current:
                try:
                    await self._transport.abort(current)
                except TransportError as exc:
                    logger.debug("Abort before reset ignored: %s", exc)
                await self._transport.delete_session(current)

            try:
                sessions = await self._transport.list_sessions()
            except TransportError as exc:
                logger.warning("Could not list sessions for cleanup: %s", exc)
                sessions = []
            stragglers = [s for s in sessions if s.title == self._title]
            for straggler in stragglers:
                await self._transport.delete_session(straggler.id)
            if stragglers:
                logger.info(
                    "Swept %d session(s) titled %r", len(stragglers), self._title,
                )

            try:
                fresh = await self._transport.create_session(self._title)
            except TransportError as exc:
                self._session = None
                raise RemoteUnavailable(f"Could not create session: {exc}") from exc
            self._session = fresh
            logger.info("Created fresh session: %s", fresh.id)
        finally:
            await self._stream.subscribe()
        return ResetOutcome(session=fresh)
