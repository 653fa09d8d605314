"""Exception hierarchy for the session & event synchronization core.

Specific exceptions for each failure mode. Operations exposed to the
presentation layer catch these and convert them to ``ShellResult``
failures; nothing here is meant to escape to the UI.
"""
from __future__ import annotations


class ShellError(Exception):
    """Base exception for all deskshell errors."""


class TransportError(ShellError):
    """A call to the remote HTTP API failed."""


class RemoteRequestError(TransportError):
    """The remote API answered with a non-2xx status."""
    def __init__(self, method: str, path: str, status: int, reason: str = ""):
        self.method = method
        self.path = path
        self.status = status
        self.reason = reason
        super().__init__(
            f"Remote API error: {method} {path} -> {status} {reason}".rstrip()
        )


class RemoteConnectionError(TransportError):
    """The remote API could not be reached at all."""
    def __init__(self, method: str, path: str, reason: str):
        self.method = method
        self.path = path
        self.reason = reason
        super().__init__(f"Remote API unreachable: {method} {path}: {reason}")


class RemoteUnavailable(ShellError):
    """Health, list or create calls failed; the session cannot be established."""


class SubmissionFailed(ShellError):
    """Posting a prompt to the canonical session failed."""
    def __init__(self, session_id: str, reason: str):
        self.session_id = session_id
        self.reason = reason
        super().__init__(reason)


class StreamDropped(ShellError):
    """The live event stream failed or was closed by the server."""


class MalformedEvent(ShellError):
    """An event frame could not be decoded as a JSON object."""
    def __init__(self, payload: str, reason: str):
        self.payload = payload
        self.reason = reason
        preview = payload if len(payload) <= 80 else payload[:77] + "..."
        super().__init__(f"Malformed event ({reason}): {preview!r}")
