"""Tests for MessageReconciler snapshot loading and part merging."""

from __future__ import annotations

from deskshell.engine.reconciler import MessageReconciler
from deskshell.shared.models.message import (
    Message,
    MessageRole,
    TextPart,
    ToolPart,
    ToolState,
    ToolStatus,
)


def _msg(message_id: str, role: MessageRole = MessageRole.USER, text: str = "") -> Message:
    return Message(id=message_id, role=role, parts=[TextPart(text=text)])


class TestLoadSnapshot:
    def test_replaces_existing_list(self):
        rec = MessageReconciler()
        rec.load_snapshot([_msg("a"), _msg("b")])
        rec.load_snapshot([_msg("c")])
        assert [m.id for m in rec.messages] == ["c"]

    def test_duplicate_ids_keep_first_position_latest_content(self):
        rec = MessageReconciler()
        rec.load_snapshot([_msg("a", text="old"), _msg("b"), _msg("a", text="new")])
        assert [m.id for m in rec.messages] == ["a", "b"]
        assert rec.get("a").text == "new"

    def test_messages_returns_copy(self):
        rec = MessageReconciler()
        rec.load_snapshot([_msg("a")])
        rec.messages.append(_msg("z"))
        assert len(rec) == 1


class TestApplyPartUpdate:
    def test_unknown_message_synthesizes_assistant(self):
        rec = MessageReconciler()
        rec.load_snapshot([_msg("u1")])
        rec.apply_part_update(TextPart(text="Hel"), "m1")

        assert [m.id for m in rec.messages] == ["u1", "m1"]
        m1 = rec.get("m1")
        assert m1.role == MessageRole.ASSISTANT
        assert m1.text == "Hel"

    def test_text_update_replaces_first_text_part(self):
        rec = MessageReconciler()
        rec.apply_part_update(TextPart(text="Hel"), "m1")
        rec.apply_part_update(TextPart(text="Hello"), "m1")

        m1 = rec.get("m1")
        assert len(m1.parts) == 1
        assert m1.text == "Hello"

    def test_same_text_update_twice_is_idempotent(self):
        rec = MessageReconciler()
        rec.apply_part_update(TextPart(text="Hello"), "m1")
        first = rec.messages
        rec.apply_part_update(TextPart(text="Hello"), "m1")
        assert rec.messages == first

    def test_tool_part_replaced_by_id(self):
        rec = MessageReconciler()
        pending = ToolPart(tool="bash", id="t1", state=ToolState(status=ToolStatus.PENDING))
        done = ToolPart(
            tool="bash", id="t1",
            state=ToolState(status=ToolStatus.COMPLETED, output="ok"),
        )
        rec.apply_part_update(TextPart(text="running it"), "m1")
        rec.apply_part_update(pending, "m1")
        rec.apply_part_update(done, "m1")

        parts = rec.get("m1").parts
        assert len(parts) == 2
        assert isinstance(parts[1], ToolPart)
        assert parts[1].state.status == ToolStatus.COMPLETED
        assert parts[1].state.output == "ok"

    def test_distinct_tool_ids_append(self):
        rec = MessageReconciler()
        rec.apply_part_update(ToolPart(tool="read", id="t1"), "m1")
        rec.apply_part_update(ToolPart(tool="edit", id="t2"), "m1")
        assert [p.id for p in rec.get("m1").tool_parts] == ["t1", "t2"]

    def test_update_does_not_reorder(self):
        rec = MessageReconciler()
        rec.load_snapshot([_msg("a"), _msg("b", MessageRole.ASSISTANT), _msg("c")])
        rec.apply_part_update(TextPart(text="changed"), "b")
        assert [m.id for m in rec.messages] == ["a", "b", "c"]
        assert rec.get("b").text == "changed"

    def test_merge_does_not_mutate_previous_message(self):
        rec = MessageReconciler()
        rec.apply_part_update(TextPart(text="one"), "m1")
        before = rec.get("m1")
        rec.apply_part_update(TextPart(text="two"), "m1")
        assert before.text == "one"


class TestAppendRemove:
    def test_append_skips_known_id(self):
        rec = MessageReconciler()
        rec.append(_msg("a", text="first"))
        rec.append(_msg("a", text="second"))
        assert len(rec) == 1
        assert rec.get("a").text == "first"

    def test_remove_reindexes(self):
        rec = MessageReconciler()
        rec.load_snapshot([_msg("a"), _msg("b"), _msg("c")])
        assert rec.remove("b") is True
        assert rec.remove("b") is False
        rec.apply_part_update(TextPart(text="x"), "c")
        assert [m.id for m in rec.messages] == ["a", "c"]
        assert rec.get("c").text == "x"

    def test_clear(self):
        rec = MessageReconciler()
        rec.load_snapshot([_msg("a")])
        rec.clear()
        assert rec.messages == []
        assert rec.get("a") is None
