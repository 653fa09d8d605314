"""DeskShell TUI: Textual application class."""

from __future__ import annotations

from textual.app import App

from deskshell.engine.config import ShellConfig
from deskshell.engine.context import ShellContext
from deskshell.tui.screens.main import MainScreen


class DeskShellApp(App):
    """Terminal chat shell bound to one canonical remote session."""

    TITLE = "DeskShell"
    SUB_TITLE = "Agent Session"

    BINDINGS = [
        ("ctrl+q", "quit", "Quit"),
        ("escape", "abort", "Abort"),
        ("ctrl+r", "reset_session", "Reset"),
    ]

    def __init__(
        self,
        config: ShellConfig | None = None,
        context: ShellContext | None = None,
    ) -> None:
        super().__init__()
        self.context = context or ShellContext(config)

    def on_mount(self) -> None:
        self.push_screen(MainScreen(self.context))

    def action_abort(self) -> None:
        if isinstance(self.screen, MainScreen):
            self.screen.abort_session()

    def action_reset_session(self) -> None:
        if isinstance(self.screen, MainScreen):
            self.screen.reset_session()

    async def on_unmount(self) -> None:
        await self.context.close()
