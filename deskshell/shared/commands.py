"""Input classification for the prompt bar.

- ``!app``  -> launch a local application
- ``$cmd``  -> run a shell command in a terminal
- text      -> send to the agent as a prompt
- empty     -> nothing
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class InputKind(str, Enum):
    PROMPT = "prompt"
    APP = "app"
    SHELL = "shell"
    NONE = "none"


@dataclass
class ParsedInput:
    """A classified line of user input."""

    kind: InputKind
    value: str
    raw: str


def parse_input(text: str) -> ParsedInput:
    """Classify *text*. Only ``InputKind.PROMPT`` reaches the agent."""
    stripped = text.strip()
    if not stripped:
        return ParsedInput(kind=InputKind.NONE, value="", raw=text)
    if stripped.startswith("!"):
        return ParsedInput(
            kind=InputKind.APP, value=stripped[1:].strip().lower(), raw=text,
        )
    if stripped.startswith("$"):
        return ParsedInput(kind=InputKind.SHELL, value=stripped[1:].strip(), raw=text)
    return ParsedInput(kind=InputKind.PROMPT, value=stripped, raw=text)


INPUT_LABELS: dict[InputKind, str] = {
    InputKind.APP: "Launch App",
    InputKind.SHELL: "Shell Command",
    InputKind.PROMPT: "AI Prompt",
}
