"""Live subscription to the remote event stream.

Owns at most one SSE connection at a time and a connection-status
state machine (see engine/lifecycle.py). A supervised task reads the
stream, decodes frames, tags user ``message.created`` events with
their provenance and forwards every event to a single callback. When
the stream fails it reports ``disconnected`` then ``reconnecting`` and
retries according to a ReconnectPolicy.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

import aiohttp

from deskshell.adapters.events import MessageCreated, ServerEvent, parse_event
from deskshell.adapters.provenance import ProvenanceTracker
from deskshell.adapters.sse import SSEDecoder, SSEFrame
from deskshell.adapters.transport import TransportClient
from deskshell.engine.config import EventCallback, StatusCallback, fire_event
from deskshell.engine.errors import MalformedEvent, StreamDropped
from deskshell.engine.lifecycle import validate_transition
from deskshell.engine.models import ConnectionStatus

logger = logging.getLogger(__name__)


@dataclass
class ReconnectPolicy:
    """Delay schedule for stream reconnects.

    The defaults retry every 3 seconds forever. ``backoff`` > 1 grows
    the delay geometrically up to ``max_delay``; ``max_attempts`` > 0
    stops retrying after that many consecutive failures.
    """
    initial_delay: float = 3.0
    backoff: float = 1.0
    max_delay: float = 3.0
    max_attempts: int = 0

    def delay_for(self, failures: int) -> float:
        """Delay before the reconnect following the *failures*-th failure."""
        if failures <= 1 or self.backoff <= 1.0:
            return self.initial_delay
        delay = self.initial_delay * (self.backoff ** (failures - 1))
        return min(delay, max(self.max_delay, self.initial_delay))

    def should_retry(self, failures: int) -> bool:
        return self.max_attempts <= 0 or failures < self.max_attempts


class EventStreamManager:
    """Maintains one live event subscription with reconnect semantics."""

    def __init__(
        self,
        transport: TransportClient,
        provenance: ProvenanceTracker,
        policy: ReconnectPolicy | None = None,
    ) -> None:
        self._transport = transport
        self._provenance = provenance
        self._policy = policy or ReconnectPolicy()
        self._status = ConnectionStatus.DISCONNECTED
        self._task: asyncio.Task | None = None
        self._failures = 0
        self._event_callback: EventCallback | None = None
        self._status_callback: StatusCallback | None = None
        # Bumped per subscribe(); lets a cancelled reader skip late status writes
        self._generation = 0

    # ── wiring ──

    def set_event_callback(self, callback: EventCallback | None) -> None:
        self._event_callback = callback

    def set_status_callback(self, callback: StatusCallback | None) -> None:
        self._status_callback = callback

    @property
    def status(self) -> ConnectionStatus:
        return self._status

    @property
    def policy(self) -> ReconnectPolicy:
        return self._policy

    @property
    def is_active(self) -> bool:
        return self._task is not None and not self._task.done()

    # ── lifecycle ──

    async def subscribe(self) -> None:
        """Close any open stream, then start a fresh supervised subscription."""
        await self._stop_task()
        self._generation += 1
        self._failures = 0
        await self._set_status(ConnectionStatus.RECONNECTING)
        logger.info("Subscribing to remote events: %s/event", self._transport.base_url)
        self._task = asyncio.create_task(
            self._supervise(self._generation), name="deskshell-event-stream",
        )

    async def close(self) -> None:
        """Tear down the live subscription, if any."""
        await self._stop_task()
        self._generation += 1
        await self._set_status(ConnectionStatus.DISCONNECTED)

    async def _stop_task(self) -> None:
        task, self._task = self._task, None
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _set_status(self, status: ConnectionStatus) -> None:
        if status == self._status:
            return
        validate_transition(self._status, status)
        self._status = status
        logger.info("Event stream status: %s", status.value)
        await fire_event(self._status_callback, status)

    # ── supervised reader ──

    async def _supervise(self, generation: int) -> None:
        while True:
            try:
                await self._consume(generation)
            except (aiohttp.ClientError, asyncio.TimeoutError, StreamDropped) as exc:
                logger.warning("Event stream dropped: %s", exc or type(exc).__name__)
            except Exception:
                logger.exception("Unexpected event stream failure")

            if generation != self._generation:
                return
            self._failures += 1
            await self._set_status(ConnectionStatus.DISCONNECTED)
            if not self._policy.should_retry(self._failures):
                logger.error(
                    "Event stream giving up after %d consecutive failures",
                    self._failures,
                )
                return
            await self._set_status(ConnectionStatus.RECONNECTING)
            delay = self._policy.delay_for(self._failures)
            logger.info("Reconnecting event stream in %.1fs (failure %d)", delay, self._failures)
            await asyncio.sleep(delay)

    async def _consume(self, generation: int) -> None:
        async with self._transport.open_event_stream() as response:
            if response.status != 200:
                raise StreamDropped(f"event stream returned HTTP {response.status}")
            if generation != self._generation:
                return
            self._failures = 0
            await self._set_status(ConnectionStatus.CONNECTED)

            decoder = SSEDecoder()
            async for raw in response.content:
                frame = decoder.feed(raw.decode("utf-8", errors="replace"))
                if frame is not None:
                    await self._dispatch(frame)
        raise StreamDropped("event stream closed by server")

    async def _dispatch(self, frame: SSEFrame) -> None:
        try:
            event = parse_event(frame.data)
        except MalformedEvent as exc:
            logger.debug("Dropping %s frame (id=%s): %s", frame.event, frame.id, exc)
            return
        self._classify(event)
        await fire_event(self._event_callback, event)

    def _classify(self, event: ServerEvent) -> None:
        if isinstance(event, MessageCreated) and event.role == "user":
            event.is_external = self._provenance.classify(event.message_id)
            logger.debug(
                "User message %s classified %s",
                event.message_id, "external" if event.is_external else "local",
            )
