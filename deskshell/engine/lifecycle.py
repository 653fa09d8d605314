"""State machines for the session, the event stream and the owned context.

Defines valid transitions and enforces them. Invalid transitions
raise ValueError rather than silently proceeding; callers driven by
server events use ``can_transition`` to skip impossible moves.

Session status:

    LOADING ──┬──> READY <──> BUSY
              │      │
              └──> ERROR ──> LOADING  (retry)
                     │
                     └──> READY      (reset)

Connection status:

    DISCONNECTED ──> RECONNECTING ──> CONNECTED
          ^               │    ^          │
          └───────────────┘    └──────────┤  (resubscribe)
          ^                               │
          └───────────────────────────────┘  (stream error / close)

Context:

    INIT ──> ACTIVE ──> TORN_DOWN
      └─────────────────────^
"""
from __future__ import annotations

from enum import Enum
from typing import TypeVar

from .models import ConnectionStatus, ContextState, SessionStatus

S = TypeVar("S", bound=Enum)

SESSION_TRANSITIONS: dict[SessionStatus, set[SessionStatus]] = {
    SessionStatus.LOADING: {
        SessionStatus.READY,
        SessionStatus.ERROR,
    },
    SessionStatus.READY: {
        SessionStatus.BUSY,
    },
    SessionStatus.BUSY: {
        SessionStatus.READY,
    },
    SessionStatus.ERROR: {
        SessionStatus.LOADING,
        SessionStatus.READY,
    },
}

CONNECTION_TRANSITIONS: dict[ConnectionStatus, set[ConnectionStatus]] = {
    ConnectionStatus.DISCONNECTED: {
        ConnectionStatus.RECONNECTING,
    },
    ConnectionStatus.RECONNECTING: {
        ConnectionStatus.CONNECTED,
        ConnectionStatus.DISCONNECTED,
    },
    ConnectionStatus.CONNECTED: {
        ConnectionStatus.DISCONNECTED,
        ConnectionStatus.RECONNECTING,
    },
}

CONTEXT_TRANSITIONS: dict[ContextState, set[ContextState]] = {
    ContextState.INIT: {
        ContextState.ACTIVE,
        ContextState.TORN_DOWN,
    },
    ContextState.ACTIVE: {
        ContextState.TORN_DOWN,
    },
    ContextState.TORN_DOWN: set(),
}


def _table_for(state: Enum) -> dict:
    if isinstance(state, SessionStatus):
        return SESSION_TRANSITIONS
    if isinstance(state, ConnectionStatus):
        return CONNECTION_TRANSITIONS
    if isinstance(state, ContextState):
        return CONTEXT_TRANSITIONS
    raise TypeError(f"No transition table for {type(state).__name__}")


def can_transition(current: S, target: S) -> bool:
    """Return True if *current* may move to *target*."""
    return target in _table_for(current).get(current, set())


def validate_transition(current: S, target: S) -> None:
    """Validate a state transition. Raises ValueError if invalid."""
    if not can_transition(current, target):
        allowed = _table_for(current).get(current, set())
        allowed_str = ", ".join(s.value for s in allowed) or "none (terminal)"
        raise ValueError(
            f"Invalid state transition: {current.value} -> {target.value}. "
            f"Allowed from {current.value}: {allowed_str}"
        )
