"""Status bar: bottom bar showing session and connection state."""

from __future__ import annotations

from rich.text import Text
from textual.reactive import reactive
from textual.widget import Widget

SESSION_COLORS: dict[str, str] = {
    "loading": "yellow",
    "ready": "green",
    "busy": "yellow bold",
    "error": "red bold",
}

CONNECTION_COLORS: dict[str, str] = {
    "connected": "green",
    "reconnecting": "yellow",
    "disconnected": "red",
}


class StatusBar(Widget):
    """Single-line status bar with session status and stream state."""

    DEFAULT_CSS = """
    StatusBar {
        height: 1;
        dock: bottom;
        background: $panel;
    }
    """

    session_status: reactive[str] = reactive("loading")
    connection: reactive[str] = reactive("disconnected")
    session_id: reactive[str] = reactive("")
    error: reactive[str] = reactive("")

    def render(self) -> Text:
        bar = Text()
        bar.append(" session ", style="dim")
        bar.append(
            self.session_status,
            style=SESSION_COLORS.get(self.session_status, "white"),
        )
        if self.session_id:
            bar.append(f" ({self.session_id})", style="dim")
        bar.append("  │  ", style="dim")
        bar.append("● ", style=CONNECTION_COLORS.get(self.connection, "white"))
        bar.append(self.connection)
        if self.error:
            bar.append("  │  ", style="dim")
            bar.append(self.error, style="red")
        return bar
