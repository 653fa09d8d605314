"""Client-side projection of the conversation.

Folds full snapshots and streaming part updates into one ordered
list of messages, unique by id. Messages keep their arrival position
for their whole life; parts are merged in place so tool status moves
from pending to completed without reordering anything.

Merge rules for ``apply_part_update``:

* TextPart  – a single slot per message: replaces the existing text
  part, or is appended if the message has none.
* ToolPart  – keyed by tool-call id: replaces the part with the same
  id, or is appended. Tool parts are never removed.

Both rules are idempotent.
"""
from __future__ import annotations

import dataclasses
import logging

from deskshell.shared.models.message import (
    Message,
    MessageRole,
    Part,
    TextPart,
    ToolPart,
)

logger = logging.getLogger(__name__)


class MessageReconciler:
    """Authoritative ordered message list for the presentation layer."""

    def __init__(self) -> None:
        self._messages: list[Message] = []
        self._index: dict[str, int] = {}

    @property
    def messages(self) -> list[Message]:
        return list(self._messages)

    def __len__(self) -> int:
        return len(self._messages)

    def get(self, message_id: str) -> Message | None:
        idx = self._index.get(message_id)
        return self._messages[idx] if idx is not None else None

    def _reindex(self) -> None:
        self._index = {m.id: i for i, m in enumerate(self._messages)}

    def load_snapshot(self, messages: list[Message]) -> None:
        """Replace the whole list with the server's view.

        Duplicate ids in the snapshot keep their first position and
        their latest content.
        """
        ordered: list[Message] = []
        positions: dict[str, int] = {}
        for message in messages:
            pos = positions.get(message.id)
            if pos is None:
                positions[message.id] = len(ordered)
                ordered.append(message)
            else:
                ordered[pos] = message
        self._messages = ordered
        self._index = positions
        logger.debug("Loaded snapshot with %d messages", len(ordered))

    def append(self, message: Message) -> None:
        """Append a message (e.g. an optimistic echo) unless its id is known."""
        if message.id in self._index:
            return
        self._index[message.id] = len(self._messages)
        self._messages.append(message)

    def remove(self, message_id: str) -> bool:
        """Drop one message by id. Returns False if it was not present."""
        if message_id not in self._index:
            return False
        self._messages = [m for m in self._messages if m.id != message_id]
        self._reindex()
        return True

    def clear(self) -> None:
        self._messages = []
        self._index = {}

    def apply_part_update(self, part: Part, message_id: str) -> Message:
        """Merge *part* into *message_id*, synthesizing an assistant message if new."""
        idx = self._index.get(message_id)
        if idx is None:
            message = Message(
                id=message_id, role=MessageRole.ASSISTANT, parts=[part],
            )
            self._index[message_id] = len(self._messages)
            self._messages.append(message)
            return message

        current = self._messages[idx]
        merged = dataclasses.replace(current, parts=_merge_part(current.parts, part))
        self._messages[idx] = merged
        return merged


def _merge_part(parts: list[Part], part: Part) -> list[Part]:
    updated = list(parts)
    if isinstance(part, TextPart):
        for i, existing in enumerate(updated):
            if isinstance(existing, TextPart):
                updated[i] = part
                return updated
    elif isinstance(part, ToolPart):
        for i, existing in enumerate(updated):
            if isinstance(existing, ToolPart) and existing.id == part.id:
                updated[i] = part
                return updated
    updated.append(part)
    return updated
