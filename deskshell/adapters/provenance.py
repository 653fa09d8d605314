"""Local-vs-external attribution of user messages.

Submission marks an expectation right before its network call; the
event stream consumes it when the next user ``message.created``
arrives. Two modes:

* one-shot (default): a single unqueued flag. A second local
  submission or an external injection arriving before the first echo
  can be misattributed.
* correlated: each submission gets its own client message id, sent
  to the server as ``messageID`` and matched exactly against the echo.
"""
from __future__ import annotations

import logging
import uuid

logger = logging.getLogger(__name__)


def _gen_token() -> str:
    return f"msg_{uuid.uuid4().hex}"


class ProvenanceTracker:
    """Classifies inbound user messages as local or external."""

    def __init__(self, correlate: bool = False) -> None:
        self._correlate = correlate
        self._expecting = False
        self._pending: set[str] = set()

    @property
    def correlate(self) -> bool:
        return self._correlate

    @property
    def expecting(self) -> bool:
        return self._expecting or bool(self._pending)

    def expect(self) -> str | None:
        """Mark the next echo as local.

        Returns the correlation token to send with the request, or None
        in one-shot mode.
        """
        if not self._correlate:
            self._expecting = True
            return None
        token = _gen_token()
        self._pending.add(token)
        return token

    def classify(self, message_id: str) -> bool:
        """Consume the expectation for *message_id*; return True if external."""
        if self._correlate:
            if message_id in self._pending:
                self._pending.discard(message_id)
                return False
            return True
        was_set = self._expecting
        self._expecting = False
        return not was_set

    def clear(self) -> None:
        self._expecting = False
        self._pending.clear()
