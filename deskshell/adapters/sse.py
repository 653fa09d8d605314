"""Incremental decoder for server-sent event framing.

Feed it one line at a time (with or without the trailing newline);
it returns a complete ``SSEFrame`` whenever a blank line dispatches
the accumulated fields. Comment lines (``: keepalive``) and ``retry``
hints are ignored; reconnect timing belongs to ReconnectPolicy.
"""
from __future__ import annotations

from dataclasses import dataclass


@dataclass
class SSEFrame:
    event: str = "message"
    data: str = ""
    id: str | None = None


class SSEDecoder:
    """Line-oriented SSE parser following the EventSource field rules."""

    def __init__(self) -> None:
        self._event = ""
        self._data: list[str] = []
        self._id: str | None = None

    def feed(self, line: str) -> SSEFrame | None:
        line = line.rstrip("\r\n")
        if not line:
            return self._dispatch()
        if line.startswith(":"):
            return None

        name, sep, value = line.partition(":")
        if sep and value.startswith(" "):
            value = value[1:]

        if name == "event":
            self._event = value
        elif name == "data":
            self._data.append(value)
        elif name == "id":
            if "\0" not in value:
                self._id = value
        return None

    def _dispatch(self) -> SSEFrame | None:
        if not self._data:
            self._event = ""
            self._id = None
            return None
        frame = SSEFrame(
            event=self._event or "message",
            data="\n".join(self._data),
            id=self._id,
        )
        self._event = ""
        self._data = []
        self._id = None
        return frame
