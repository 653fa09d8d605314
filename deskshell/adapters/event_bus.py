"""Async event bus bridging the core to presentation consumers.

The state machine publishes PresentationEvents as it folds server
events and user actions into session state; the UI's consumer loop
reads them back in order.
"""
from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator

from deskshell.adapters.events import PresentationEvent

logger = logging.getLogger(__name__)


class EventBus:
    """Async queue bridging state machine updates to UI consumers."""

    def __init__(self, maxsize: int = 5000) -> None:
        self._queue: asyncio.Queue[PresentationEvent] = asyncio.Queue(
            maxsize=maxsize
        )
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def qsize(self) -> int:
        return self._queue.qsize()

    async def emit(self, event: PresentationEvent) -> None:
        """Publish an event; drops the oldest queued event when full."""
        if self._closed:
            return
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            dropped = self._queue.get_nowait()
            logger.warning(
                "EventBus full, dropping oldest: %s (queue size: %d)",
                dropped.event_type,
                self._queue.qsize(),
            )
            self._queue.put_nowait(event)

    async def consume(self) -> AsyncIterator[PresentationEvent]:
        """Yield events as they arrive. Stops on close()."""
        while not self._closed:
            try:
                event = await asyncio.wait_for(
                    self._queue.get(), timeout=0.5
                )
                yield event
            except asyncio.TimeoutError:
                continue

    def close(self) -> None:
        """Stop the consumer loop permanently."""
        self._closed = True

