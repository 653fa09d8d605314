"""Core data models for the synchronization core.

All state enums and boundary result types. Single source of truth
to avoid circular imports.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from deskshell.shared.models.message import Message
from deskshell.shared.models.session import RemoteSession


class SessionStatus(str, Enum):
    """Client-facing session states. See lifecycle.py for transition rules."""
    LOADING = "loading"
    READY = "ready"
    BUSY = "busy"
    ERROR = "error"


class ConnectionStatus(str, Enum):
    """Live event stream states."""
    DISCONNECTED = "disconnected"
    RECONNECTING = "reconnecting"
    CONNECTED = "connected"


class ContextState(str, Enum):
    """Lifecycle of an owned ShellContext."""
    INIT = "init"
    ACTIVE = "active"
    TORN_DOWN = "torn_down"


@dataclass
class ShellResult:
    """Structured outcome of a boundary operation.

    Failures are reported here instead of raised, so the presentation
    layer never has to catch transport exceptions.
    """
    success: bool
    error: str | None = None
    type: str | None = None
    session: RemoteSession | None = None
    messages: list[Message] = field(default_factory=list)
    prompt: str | None = None
    response: Any = None

    @classmethod
    def failure(cls, error: str, **kwargs: Any) -> ShellResult:
        return cls(success=False, error=error, **kwargs)
