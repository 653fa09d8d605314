"""Conversation view: plain-text rendering of the ordered message list."""

from __future__ import annotations

from collections.abc import Callable

from rich.text import Text
from textual.widgets import RichLog

from deskshell.shared.models.message import Message, MessageRole, TextPart, ToolPart

TOOL_STATUS_ICONS: dict[str, str] = {
    "pending": "○",
    "running": "◔",
    "completed": "✔",
    "error": "✘",
}


def format_message(message: Message, external: bool = False) -> Text:
    """Render one message as a block of rich Text."""
    out = Text()
    if message.role == MessageRole.USER:
        label, style = ("External", "magenta bold") if external else ("You", "cyan bold")
    else:
        label, style = "Agent", "green bold"
    out.append(f"{label}: ", style=style)
    if message.local:
        out.append("(sending) ", style="dim")

    first = True
    for part in message.parts:
        if isinstance(part, TextPart):
            if not first:
                out.append("\n")
            out.append(part.text)
        elif isinstance(part, ToolPart):
            status = part.state.status.value if part.state.status else "pending"
            icon = TOOL_STATUS_ICONS.get(status, "?")
            title = f" {part.state.title}" if part.state.title else ""
            out.append("\n" if not first else "")
            out.append(f"  {icon} {part.tool}{title}", style="dim")
        first = False
    return out


class ConversationView(RichLog):
    """Scrolling log re-rendered from the state machine's message list."""

    def __init__(self, **kwargs) -> None:
        super().__init__(
            auto_scroll=True,
            wrap=True,
            markup=False,
            highlight=False,
            max_lines=5000,
            **kwargs,
        )

    def show_messages(
        self,
        messages: list[Message],
        is_external: Callable[[str], bool] | None = None,
    ) -> None:
        self.clear()
        for message in messages:
            external = bool(is_external and is_external(message.id))
            self.write(format_message(message, external=external))
