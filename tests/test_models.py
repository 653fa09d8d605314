"""Tests for message and part parsing from server payloads."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from deskshell.shared.models.message import Message, MessageRole, parse_timestamp


class TestMessageFromDict:
    def test_scalar_parts_become_empty(self):
        message = Message.from_dict({"info": {"id": "m1", "role": "user"}, "parts": 5})
        assert message.id == "m1"
        assert message.role == MessageRole.USER
        assert message.parts == []

    def test_missing_parts_become_empty(self):
        message = Message.from_dict({"info": {"id": "m1", "role": "assistant"}})
        assert message.parts == []

    def test_non_dict_part_entries_skipped(self):
        message = Message.from_dict({
            "info": {"id": "m1", "role": "assistant"},
            "parts": ["junk", {"type": "text", "id": "p1", "text": "hi"}],
        })
        assert len(message.parts) == 1

    def test_missing_id_raises(self):
        with pytest.raises(ValueError):
            Message.from_dict({"info": {"role": "user"}, "parts": []})


class TestParseTimestamp:
    def test_epoch_milliseconds(self):
        assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)

    def test_out_of_range_epoch_falls_back_to_now(self):
        before = datetime.now(timezone.utc)
        assert parse_timestamp(10**20) >= before

    def test_naive_iso_string_is_utc(self):
        parsed = parse_timestamp("2024-05-01T12:00:00")
        assert parsed.tzinfo == timezone.utc

    def test_garbage_falls_back_to_now(self):
        before = datetime.now(timezone.utc)
        assert parse_timestamp("not a date") >= before
