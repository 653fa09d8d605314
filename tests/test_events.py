"""Tests for server event parsing."""

from __future__ import annotations

import json

import pytest

from deskshell.adapters.events import (
    MessageCreated,
    MessagePartUpdated,
    ServerEvent,
    SessionIdle,
    SessionStatusChanged,
    dict_to_event,
    parse_event,
)
from deskshell.engine.errors import MalformedEvent


class TestParseEvent:
    def test_invalid_json_raises(self):
        with pytest.raises(MalformedEvent):
            parse_event("{not json")

    def test_non_object_raises(self):
        with pytest.raises(MalformedEvent):
            parse_event("[1, 2]")

    def test_unknown_type_is_generic(self):
        event = parse_event(json.dumps({"type": "file.edited", "properties": {"x": 1}}))
        assert type(event) is ServerEvent
        assert event.event_type == "file.edited"
        assert event.properties == {"x": 1}


class TestDictToEvent:
    def test_session_status_object_form(self):
        event = dict_to_event(
            {"type": "session.status", "properties": {"status": {"type": "busy"}}}
        )
        assert isinstance(event, SessionStatusChanged)
        assert event.status == "busy"

    def test_session_status_string_form(self):
        event = dict_to_event({"type": "session.status", "properties": {"status": "idle"}})
        assert event.status == "idle"

    def test_session_idle(self):
        assert isinstance(dict_to_event({"type": "session.idle"}), SessionIdle)

    def test_message_created(self):
        event = dict_to_event({
            "type": "message.created",
            "properties": {"info": {"id": "m1", "role": "user"}},
        })
        assert isinstance(event, MessageCreated)
        assert event.message_id == "m1"
        assert event.role == "user"
        assert event.is_external is False

    def test_part_updated(self):
        event = dict_to_event({
            "type": "message.part.updated",
            "properties": {"part": {"messageID": "m1", "type": "text", "text": "hi"}},
        })
        assert isinstance(event, MessagePartUpdated)
        assert event.message_id == "m1"
        assert event.part_kind == "text"

    def test_missing_properties_tolerated(self):
        event = dict_to_event({"type": "message.part.updated", "properties": None})
        assert event.message_id == ""
        assert event.part_kind == ""
