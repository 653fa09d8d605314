"""Event types crossing the core.

Server events are parsed from the JSON ``data`` of each SSE frame into
typed dataclasses keyed by their ``type`` discriminator. Presentation
events are what the state machine publishes on the EventBus for the
UI to consume.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from deskshell.engine.errors import MalformedEvent
from deskshell.engine.models import ConnectionStatus, SessionStatus


# ── Server events ──


@dataclass
class ServerEvent:
    """Base event from the remote event stream."""
    event_type: str = ""
    properties: dict[str, Any] = field(default_factory=dict)


@dataclass
class SessionStatusChanged(ServerEvent):
    """``properties.status`` is ``"busy"|"idle"`` or ``{"type": ...}``."""
    event_type: str = "session.status"
    status: str = ""


@dataclass
class SessionIdle(ServerEvent):
    event_type: str = "session.idle"


@dataclass
class MessageCreated(ServerEvent):
    event_type: str = "message.created"
    message_id: str = ""
    role: str = ""
    # Filled in by the event stream for user messages
    is_external: bool = False


@dataclass
class MessagePartUpdated(ServerEvent):
    event_type: str = "message.part.updated"
    message_id: str = ""
    part: dict[str, Any] = field(default_factory=dict)

    @property
    def part_kind(self) -> str:
        kind = self.part.get("type")
        return kind if isinstance(kind, str) else ""


def _status_type(raw: Any) -> str:
    if isinstance(raw, dict):
        raw = raw.get("type")
    return raw if isinstance(raw, str) else ""


def dict_to_event(data: dict[str, Any]) -> ServerEvent:
    """Convert a decoded event payload to a typed event dataclass."""
    event_type = data.get("type")
    if not isinstance(event_type, str):
        event_type = ""
    props = data.get("properties")
    if not isinstance(props, dict):
        props = {}

    if event_type == "session.status":
        return SessionStatusChanged(
            properties=props, status=_status_type(props.get("status")),
        )
    if event_type == "session.idle":
        return SessionIdle(properties=props)
    if event_type == "message.created":
        info = props.get("info")
        if not isinstance(info, dict):
            info = {}
        return MessageCreated(
            properties=props,
            message_id=str(info.get("id") or ""),
            role=str(info.get("role") or ""),
        )
    if event_type == "message.part.updated":
        part = props.get("part")
        if not isinstance(part, dict):
            part = {}
        return MessagePartUpdated(
            properties=props,
            message_id=str(part.get("messageID") or ""),
            part=part,
        )
    return ServerEvent(event_type=event_type, properties=props)


def parse_event(payload: str) -> ServerEvent:
    """Decode one SSE ``data`` payload. Raises MalformedEvent on bad input."""
    try:
        data = json.loads(payload)
    except ValueError as exc:
        raise MalformedEvent(payload, "invalid JSON") from exc
    if not isinstance(data, dict):
        raise MalformedEvent(payload, "not a JSON object")
    return dict_to_event(data)


# ── Presentation events ──


@dataclass
class PresentationEvent:
    """Base event published by the state machine for the UI."""
    event_type: str = ""


@dataclass
class StatusChanged(PresentationEvent):
    event_type: str = "status_changed"
    status: SessionStatus = SessionStatus.LOADING
    error: str | None = None


@dataclass
class ConnectionChanged(PresentationEvent):
    event_type: str = "connection_changed"
    status: ConnectionStatus = ConnectionStatus.DISCONNECTED


@dataclass
class MessagesChanged(PresentationEvent):
    event_type: str = "messages_changed"
    count: int = 0


@dataclass
class PartUpdated(PresentationEvent):
    """A streaming part was merged into ``message_id``."""
    event_type: str = "part_updated"
    message_id: str = ""


@dataclass
class SessionReset(PresentationEvent):
    event_type: str = "session_reset"
    session_id: str | None = None
