"""Session & event synchronization core for the desktop shell."""
from .models import (
    ConnectionStatus,
    ContextState,
    SessionStatus,
    ShellResult,
)
from .config import ShellConfig
from .errors import (
    MalformedEvent,
    RemoteConnectionError,
    RemoteRequestError,
    RemoteUnavailable,
    ShellError,
    StreamDropped,
    SubmissionFailed,
    TransportError,
)

__all__ = [
    "ConnectionStatus",
    "ContextState",
    "SessionStatus",
    "ShellResult",
    "ShellConfig",
    "MalformedEvent",
    "RemoteConnectionError",
    "RemoteRequestError",
    "RemoteUnavailable",
    "ShellError",
    "StreamDropped",
    "SubmissionFailed",
    "TransportError",
]
