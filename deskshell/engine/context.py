"""Owned context for one desktop shell process.

Builds and owns every core component (transport, provenance tagger,
event stream, coordinator, reconciler, state machine, event bus) so
nothing lives in module globals. Lifecycle: INIT -> ACTIVE -> TORN_DOWN.
"""
from __future__ import annotations

import logging

from deskshell.adapters.event_bus import EventBus
from deskshell.adapters.event_stream import EventStreamManager, ReconnectPolicy
from deskshell.adapters.launcher import Launcher
from deskshell.adapters.provenance import ProvenanceTracker
from deskshell.adapters.transport import TransportClient
from deskshell.engine.config import ShellConfig
from deskshell.engine.coordinator import SessionCoordinator
from deskshell.engine.lifecycle import validate_transition
from deskshell.engine.models import ContextState, ShellResult
from deskshell.engine.reconciler import MessageReconciler
from deskshell.engine.state_machine import SessionStateMachine

logger = logging.getLogger(__name__)


def reconnect_policy_from(config: ShellConfig) -> ReconnectPolicy:
    return ReconnectPolicy(
        initial_delay=config.reconnect_delay_seconds,
        backoff=config.reconnect_backoff,
        max_delay=config.reconnect_max_delay_seconds,
        max_attempts=config.reconnect_max_attempts,
    )


class ShellContext:
    """Explicit owner of all session and stream state."""

    def __init__(
        self,
        config: ShellConfig | None = None,
        transport: TransportClient | None = None,
        launcher: Launcher | None = None,
    ) -> None:
        self.config = config or ShellConfig()
        self.transport = transport or TransportClient(
            self.config.base_url, self.config.request_timeout_seconds,
        )
        self.provenance = ProvenanceTracker(
            correlate=self.config.correlate_message_ids,
        )
        self.stream = EventStreamManager(
            self.transport, self.provenance, reconnect_policy_from(self.config),
        )
        self.coordinator = SessionCoordinator(
            self.transport, self.stream, self.config.session_title,
        )
        self.reconciler = MessageReconciler()
        self.bus = EventBus()
        self.session = SessionStateMachine(
            transport=self.transport,
            coordinator=self.coordinator,
            stream=self.stream,
            provenance=self.provenance,
            reconciler=self.reconciler,
            bus=self.bus,
            launcher=launcher or Launcher(self.config.terminal),
            health_max_attempts=self.config.health_max_attempts,
            health_interval_seconds=self.config.health_interval_seconds,
        )
        self._state = ContextState.INIT

    @property
    def state(self) -> ContextState:
        return self._state

    async def start(self) -> ShellResult:
        """Initialize the session.

        The context stays ACTIVE when init fails so the caller can retry
        through ``session.init()``.
        """
        validate_transition(self._state, ContextState.ACTIVE)
        self._state = ContextState.ACTIVE
        logger.info("Starting shell context for %s", self.config.base_url)
        return await self.session.init()

    async def close(self) -> None:
        """Tear down the stream, bus and HTTP session. Idempotent."""
        if self._state == ContextState.TORN_DOWN:
            return
        validate_transition(self._state, ContextState.TORN_DOWN)
        self._state = ContextState.TORN_DOWN
        await self.stream.close()
        self.bus.close()
        await self.transport.close()
        logger.info("Shell context torn down")

    async def __aenter__(self) -> ShellContext:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()
