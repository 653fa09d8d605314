"""Remote session model: the server-side conversation handle."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class RemoteSession:
    """A conversation object held by the remote agent server."""

    id: str
    title: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteSession:
        session_id = data.get("id")
        if not isinstance(session_id, str) or not session_id:
            raise ValueError("session has no id")
        title = data.get("title")
        return cls(id=session_id, title=title if isinstance(title, str) else "")
