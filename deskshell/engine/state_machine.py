"""Client-facing session state.

This is the only surface the presentation layer talks to: session
status, the ordered message list, connection status, and the submit /
abort / reset / provenance-query operations. It folds server events
from the EventStreamManager into local state and publishes
PresentationEvents on the EventBus.

Busy gate: while the status is BUSY every submission fails with
"Session is busy" and changes nothing. Only agent prompts move the
session to BUSY; the server's ``session.idle`` moves it back.
"""
from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from deskshell.adapters.events import (
    ConnectionChanged,
    MessageCreated,
    MessagePartUpdated,
    MessagesChanged,
    PartUpdated,
    PresentationEvent,
    ServerEvent,
    SessionIdle,
    SessionReset,
    SessionStatusChanged,
    StatusChanged,
)
from deskshell.engine.errors import (
    RemoteUnavailable,
    ShellError,
    SubmissionFailed,
    TransportError,
)
from deskshell.engine.lifecycle import can_transition, validate_transition
from deskshell.engine.models import ConnectionStatus, SessionStatus, ShellResult
from deskshell.engine.reconciler import MessageReconciler
from deskshell.shared.commands import InputKind, parse_input
from deskshell.shared.models.message import (
    CONTENT_PART_KINDS,
    Message,
    MessageRole,
    TextPart,
    gen_local_id,
    parse_part,
)

if TYPE_CHECKING:
    from deskshell.adapters.event_bus import EventBus
    from deskshell.adapters.event_stream import EventStreamManager
    from deskshell.adapters.launcher import Launcher
    from deskshell.adapters.provenance import ProvenanceTracker
    from deskshell.adapters.transport import TransportClient
    from deskshell.engine.coordinator import SessionCoordinator

logger = logging.getLogger(__name__)

BUSY_ERROR = "Session is busy"
NO_SESSION_ERROR = "No active session"
EMPTY_INPUT_ERROR = "Empty input"


class SessionStateMachine:
    """Status, optimistic echo, busy gating, abort and reset."""

    def __init__(
        self,
        transport: TransportClient,
        coordinator: SessionCoordinator,
        stream: EventStreamManager,
        provenance: ProvenanceTracker,
        reconciler: MessageReconciler,
        bus: EventBus,
        launcher: Launcher,
        health_max_attempts: int = 30,
        health_interval_seconds: float = 1.0,
    ) -> None:
        self._transport = transport
        self._coordinator = coordinator
        self._stream = stream
        self._provenance = provenance
        self._reconciler = reconciler
        self._bus = bus
        self._launcher = launcher
        self._health_max_attempts = health_max_attempts
        self._health_interval = health_interval_seconds

        self._status = SessionStatus.LOADING
        self._error: str | None = None
        self._is_streaming = False
        self._streaming_message_id: str | None = None
        self._external_ids: set[str] = set()

        stream.set_event_callback(self.handle_event)
        stream.set_status_callback(self._on_connection_status)

    # ── read-only view ──

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def messages(self) -> list[Message]:
        return self._reconciler.messages

    @property
    def connection_status(self) -> ConnectionStatus:
        return self._stream.status

    @property
    def is_streaming(self) -> bool:
        return self._is_streaming

    @property
    def streaming_message_id(self) -> str | None:
        return self._streaming_message_id

    @property
    def session_id(self) -> str | None:
        return self._coordinator.session_id

    def is_external_message(self, message_id: str) -> bool:
        """True if *message_id* was a user message injected from outside."""
        return message_id in self._external_ids

    # ── internal helpers ──

    async def _publish(self, event: PresentationEvent) -> None:
        await self._bus.emit(event)

    async def _set_status(self, status: SessionStatus, *, strict: bool = True) -> None:
        if status == self._status:
            return
        if strict:
            validate_transition(self._status, status)
        elif not can_transition(self._status, status):
            logger.debug(
                "Ignoring status change %s -> %s", self._status.value, status.value,
            )
            return
        logger.debug("Session status %s -> %s", self._status.value, status.value)
        self._status = status
        await self._publish(StatusChanged(status=status, error=self._error))

    def _clear_streaming(self) -> None:
        self._is_streaming = False
        self._streaming_message_id = None

    async def _messages_changed(self) -> None:
        await self._publish(MessagesChanged(count=len(self._reconciler)))

    # ── init ──

    async def init(self) -> ShellResult:
        """Wait for the server, adopt the canonical session, load it, subscribe."""
        if self._status not in (SessionStatus.LOADING, SessionStatus.ERROR):
            return ShellResult.failure("Session already initialized")
        await self._set_status(SessionStatus.LOADING)

        try:
            ready = await self._transport.wait_for_server(
                self._health_max_attempts, self._health_interval,
            )
            if not ready:
                raise RemoteUnavailable("Remote server not available")
            session = await self._coordinator.ensure_session()
            messages = await self._transport.get_messages(session.id)
            self._reconciler.load_snapshot(messages)
            await self._stream.subscribe()
        except ShellError as exc:
            logger.error("Failed to initialize session: %s", exc)
            self._error = str(exc)
            await self._set_status(SessionStatus.ERROR)
            return ShellResult.failure(self._error)

        self._error = None
        await self._messages_changed()
        await self._set_status(SessionStatus.READY)
        return ShellResult(
            success=True, session=session, messages=self._reconciler.messages,
        )

    # ── submit ──

    async def send_message(self, text: str) -> ShellResult:
        """Classify and submit one line of user input."""
        if self._status == SessionStatus.BUSY:
            return ShellResult.failure(BUSY_ERROR)

        parsed = parse_input(text)
        if parsed.kind == InputKind.NONE:
            return ShellResult.failure(EMPTY_INPUT_ERROR)
        if parsed.kind == InputKind.APP:
            launched = self._launcher.launch_app(parsed.value)
            return ShellResult(
                success=launched.success, error=launched.error, type=parsed.kind.value,
                response=launched.target,
            )
        if parsed.kind == InputKind.SHELL:
            launched = self._launcher.launch_shell(parsed.value)
            return ShellResult(
                success=launched.success, error=launched.error, type=parsed.kind.value,
                response=launched.target,
            )
        return await self._submit_prompt(parsed.value)

    async def _submit_prompt(self, prompt: str) -> ShellResult:
        session_id = self._coordinator.session_id
        if not session_id or self._status != SessionStatus.READY:
            return ShellResult.failure(NO_SESSION_ERROR)

        # Everything up to the network call runs without yielding, so the
        # busy gate and the provenance mark are in place before any await.
        token = self._provenance.expect()
        echo = Message(
            id=gen_local_id(),
            role=MessageRole.USER,
            parts=[TextPart(text=prompt)],
            local=True,
        )
        self._reconciler.append(echo)
        self._status = SessionStatus.BUSY
        self._is_streaming = True
        await self._messages_changed()
        await self._publish(StatusChanged(status=SessionStatus.BUSY))

        try:
            response = await self._transport.send_message(
                session_id, prompt, message_id=token,
            )
        except TransportError as exc:
            failure = SubmissionFailed(session_id, str(exc))
            logger.warning("Failed to send message: %s", failure)
            if self._reconciler.remove(echo.id):
                await self._messages_changed()
            self._clear_streaming()
            await self._set_status(SessionStatus.READY, strict=False)
            return ShellResult.failure(str(failure), type=InputKind.PROMPT.value)

        return ShellResult(
            success=True,
            type=InputKind.PROMPT.value,
            prompt=prompt,
            response=response,
        )

    # ── abort / reset / refresh ──

    async def abort(self) -> ShellResult:
        """Ask the server to stop generating; a busy session always drops back to READY."""
        session_id = self._coordinator.session_id
        if not session_id:
            result = ShellResult.failure(NO_SESSION_ERROR)
        else:
            result = ShellResult(success=True)
            try:
                await self._transport.abort(session_id)
            except TransportError as exc:
                logger.warning("Abort failed: %s", exc)
                result = ShellResult.failure(str(exc))

        self._clear_streaming()
        if self._status == SessionStatus.BUSY:
            await self._set_status(SessionStatus.READY)
        return result

    async def reset(self) -> ShellResult:
        """Replace the canonical session and clear all local state.

        Local state is cleared even when the reset fails: by then the old
        session may already be deleted server-side.
        """
        try:
            outcome = await self._coordinator.reset_session()
        except ShellError as exc:
            logger.error("Failed to reset session: %s", exc)
            await self._clear_local_state(self._coordinator.session_id)
            return ShellResult.failure(str(exc))

        await self._clear_local_state(outcome.session.id)
        return ShellResult(success=True, session=outcome.session, messages=[])

    async def handle_external_reset(self) -> None:
        """Clear local state after a reset performed outside this object.

        Hook for embedders that drive ``SessionCoordinator.reset_session``
        themselves while this machine is live. The TUI goes through
        ``reset()``; the ``reset`` CLI command runs without a started machine.
        """
        await self._clear_local_state(self._coordinator.session_id)

    async def _clear_local_state(self, session_id: str | None) -> None:
        self._reconciler.clear()
        self._external_ids.clear()
        self._provenance.clear()
        self._clear_streaming()
        self._error = None
        await self._publish(SessionReset(session_id=session_id))
        await self._messages_changed()
        await self._set_status(SessionStatus.READY)

    async def refresh_messages(self) -> ShellResult:
        """Replace the message list with the server's snapshot."""
        session_id = self._coordinator.session_id
        if not session_id:
            return ShellResult.failure(NO_SESSION_ERROR)
        try:
            messages = await self._transport.get_messages(session_id)
        except TransportError as exc:
            logger.error("Failed to refresh messages: %s", exc)
            return ShellResult.failure(str(exc))
        self._reconciler.load_snapshot(messages)
        await self._messages_changed()
        return ShellResult(success=True, messages=self._reconciler.messages)

    # ── event stream inputs ──

    async def _on_connection_status(self, status: ConnectionStatus) -> None:
        await self._publish(ConnectionChanged(status=status))

    async def handle_event(self, event: ServerEvent) -> None:
        """Fold one server event into local state."""
        if isinstance(event, SessionStatusChanged):
            if event.status == "busy":
                self._is_streaming = True
                await self._set_status(SessionStatus.BUSY, strict=False)
            elif event.status == "idle":
                await self._set_status(SessionStatus.READY, strict=False)

        elif isinstance(event, SessionIdle):
            self._clear_streaming()
            await self._set_status(SessionStatus.READY, strict=False)
            await self.refresh_messages()

        elif isinstance(event, MessageCreated):
            if event.role != MessageRole.USER.value:
                return
            if event.is_external and event.message_id:
                self._external_ids.add(event.message_id)
            await self.refresh_messages()

        elif isinstance(event, MessagePartUpdated):
            if event.part_kind not in CONTENT_PART_KINDS or not event.message_id:
                return
            part = parse_part(event.part)
            if part is None:
                return
            self._streaming_message_id = event.message_id
            self._reconciler.apply_part_update(part, event.message_id)
            await self._publish(PartUpdated(message_id=event.message_id))
