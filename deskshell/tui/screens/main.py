"""Main screen with the conversation, input line and status bar."""

from __future__ import annotations

import logging

from textual import work
from textual.app import ComposeResult
from textual.screen import Screen
from textual.widgets import Header, Input

from deskshell.adapters.events import (
    ConnectionChanged,
    MessagesChanged,
    PartUpdated,
    SessionReset,
    StatusChanged,
)
from deskshell.engine.context import ShellContext
from deskshell.engine.models import ShellResult
from deskshell.shared.commands import INPUT_LABELS, InputKind, parse_input
from deskshell.tui.widgets.conversation import ConversationView
from deskshell.tui.widgets.status_bar import StatusBar

logger = logging.getLogger(__name__)


class MainScreen(Screen):
    """Single-session chat screen driven by a ShellContext."""

    DEFAULT_CSS = """
    #conversation {
        height: 1fr;
        border: round $primary;
    }
    #prompt-input {
        dock: bottom;
        margin-bottom: 1;
    }
    """

    def __init__(self, context: ShellContext, **kwargs) -> None:
        super().__init__(**kwargs)
        self.context = context

    def compose(self) -> ComposeResult:
        yield Header()
        yield ConversationView(id="conversation")
        yield Input(placeholder="Ask, !app or $command", id="prompt-input")
        yield StatusBar(id="status-bar")

    def on_mount(self) -> None:
        self.query_one("#prompt-input", Input).focus()
        self._consume_events()
        self._start_session()

    @work(exclusive=True, group="startup", name="start-session")
    async def _start_session(self) -> None:
        result = await self.context.start()
        if not result.success:
            self.notify(result.error or "Failed to start", severity="error")

    @work(group="events", name="presentation-events")
    async def _consume_events(self) -> None:
        sb = self.query_one("#status-bar", StatusBar)
        async for event in self.context.bus.consume():
            if isinstance(event, StatusChanged):
                sb.session_status = event.status.value
                sb.error = event.error or ""
                sb.session_id = self.context.session.session_id or ""
            elif isinstance(event, ConnectionChanged):
                sb.connection = event.status.value
            elif isinstance(event, (MessagesChanged, PartUpdated, SessionReset)):
                self.refresh_conversation()

    def refresh_conversation(self) -> None:
        session = self.context.session
        self.query_one("#conversation", ConversationView).show_messages(
            session.messages, session.is_external_message,
        )

    def on_input_changed(self, event: Input.Changed) -> None:
        kind = parse_input(event.value).kind
        event.input.border_title = INPUT_LABELS.get(kind) if kind != InputKind.NONE else None

    def on_input_submitted(self, event: Input.Submitted) -> None:
        text = event.value
        event.input.clear()
        self._submit(text)

    @work(group="submit", name="submit")
    async def _submit(self, text: str) -> None:
        result = await self.context.session.send_message(text)
        self._report(result)

    @work(group="control", name="abort")
    async def abort_session(self) -> None:
        self._report(await self.context.session.abort())

    @work(exclusive=True, group="control", name="reset")
    async def reset_session(self) -> None:
        result = await self.context.session.reset()
        if result.success:
            self.notify("Session reset")
        self._report(result)

    def _report(self, result: ShellResult) -> None:
        if result.success:
            if result.type in ("app", "shell"):
                self.notify(f"Launched {result.response}")
            return
        logger.info("Operation failed: %s", result.error)
        self.notify(result.error or "Operation failed", severity="error")
