"""Message and part models, plus parsing from the remote wire format."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, ClassVar, Union
import uuid

LOCAL_ID_PREFIX = "local-"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def gen_local_id() -> str:
    return f"{LOCAL_ID_PREFIX}{uuid.uuid4().hex[:12]}"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class ToolStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass
class TextPart:
    kind: ClassVar[str] = "text"

    text: str
    id: str | None = None


@dataclass
class ToolState:
    status: ToolStatus | None = None
    input: Any = None
    output: str | None = None
    title: str | None = None


@dataclass
class ToolPart:
    kind: ClassVar[str] = "tool"

    tool: str
    id: str | None = None
    state: ToolState = field(default_factory=ToolState)


Part = Union[TextPart, ToolPart]

CONTENT_PART_KINDS = frozenset({TextPart.kind, ToolPart.kind})


@dataclass
class Message:
    id: str
    role: MessageRole
    created_at: datetime = field(default_factory=_utcnow)
    parts: list[Part] = field(default_factory=list)
    # True for an optimistic echo that the server has not confirmed yet
    local: bool = False

    @property
    def text(self) -> str:
        return "\n".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def tool_parts(self) -> list[ToolPart]:
        return [p for p in self.parts if isinstance(p, ToolPart)]

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        """Build a Message from ``{"info": {...}, "parts": [...]}`` or a flat dict.

        Parts of non-content kinds (step markers, snapshots, ...) are dropped.
        Raises ValueError if the id or role is missing or unknown.
        """
        info = data.get("info")
        if not isinstance(info, dict):
            info = data
        message_id = info.get("id")
        if not isinstance(message_id, str) or not message_id:
            raise ValueError("message has no id")
        role = MessageRole(info.get("role"))

        time_info = info.get("time")
        created_raw = (
            time_info.get("created") if isinstance(time_info, dict) else None
        ) or info.get("createdAt")

        raw_parts = data.get("parts")
        if not isinstance(raw_parts, list):
            raw_parts = []
        parts: list[Part] = []
        for raw_part in raw_parts:
            if isinstance(raw_part, dict):
                part = parse_part(raw_part)
                if part is not None:
                    parts.append(part)

        return cls(
            id=message_id,
            role=role,
            created_at=parse_timestamp(created_raw),
            parts=parts,
        )


def parse_timestamp(value: Any) -> datetime:
    """Parse epoch milliseconds or an ISO-8601 string; fall back to now."""
    if isinstance(value, bool):
        return _utcnow()
    if isinstance(value, (int, float)):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError, ValueError):
            return _utcnow()
    if isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return _utcnow()
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed
    return _utcnow()


def _parse_tool_status(value: Any) -> ToolStatus | None:
    try:
        return ToolStatus(value)
    except ValueError:
        return None


def parse_part(data: dict[str, Any]) -> Part | None:
    """Convert a wire part to a TextPart/ToolPart, or None for other kinds."""
    kind = data.get("type")
    if kind == TextPart.kind:
        text = data.get("text")
        return TextPart(text=text if isinstance(text, str) else "", id=data.get("id"))
    if kind == ToolPart.kind:
        raw_state = data.get("state")
        if not isinstance(raw_state, dict):
            raw_state = {}
        output = raw_state.get("output", data.get("output"))
        state = ToolState(
            status=_parse_tool_status(raw_state.get("status")),
            input=raw_state.get("input", data.get("input")),
            output=None if output is None else str(output),
            title=raw_state.get("title"),
        )
        return ToolPart(
            tool=str(data.get("tool") or data.get("name") or ""),
            id=data.get("id"),
            state=state,
        )
    return None
