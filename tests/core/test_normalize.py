"""Tests for record normalization."""

from __future__ import annotations

import pytest
from hypothesis import given
from hypothesis import strategies as st

from agentlog.models import MessageEvent, MetaEvent, MetaKind, ToolCallEvent, ToolResultEvent
from agentlog.normalize import normalize, normalize_many, parse_content

DATA_URL = "data:image/png;base64,AAAA"


def _clock() -> int:
    return 42


class TestMessages:
    def test_iso_timestamp_user_message(self):
        event = normalize({"ts": "2025-01-01T00:00:00Z", "message": {"role": "user", "content": ["Hi"]}})
        assert isinstance(event, MessageEvent)
        assert event.type == "user"
        assert event.text == "Hi"
        assert event.ts == 1735689600000

    def test_epoch_seconds_scaled_to_ms(self):
        event = normalize({"ts": 1735689600, "message": {"role": "assistant", "content": ["Hello"]}})
        assert event == MessageEvent(type="assistant", ts=1735689600000, text="Hello")

    def test_top_level_role_and_content(self):
        event = normalize({"time": 1735689600000, "role": "SYSTEM", "content": "boot"})
        assert event == MessageEvent(type="system", ts=1735689600000, text="boot")

    def test_message_role_wins_over_top_level(self):
        event = normalize({"role": "user", "message": {"role": "assistant", "content": "x"}, "ts": 5})
        assert event.type == "assistant"

    def test_empty_message_role_does_not_fall_back(self):
        assert normalize({"role": "user", "message": {"role": "", "content": "x"}, "ts": 5}) is None

    def test_null_message_role_falls_back(self):
        event = normalize({"role": "user", "message": {"role": None, "content": "x"}, "ts": 5})
        assert event.type == "user"

    def test_content_falls_back_to_top_level(self):
        event = normalize({"message": {"role": "user"}, "content": "top", "ts": 5})
        assert event.text == "top"

    @pytest.mark.parametrize("role", ["tool", "developer", "", None, 3])
    def test_unknown_role_dropped(self, role):
        assert normalize({"role": role, "content": "x"}) is None

    @pytest.mark.parametrize("content", [None, "", [], [{"type": "image", "url": "https://x.test/a.png"}]])
    def test_empty_text_dropped(self, content):
        assert normalize({"role": "user", "content": content}) is None

    def test_missing_timestamp_uses_clock(self):
        assert normalize({"role": "user", "content": "x"}, now=_clock).ts == 42

    def test_unparsable_timestamp_uses_clock(self):
        assert normalize({"ts": "not a date", "role": "user", "content": "x"}, now=_clock).ts == 42

    def test_timestamp_key_precedence(self):
        event = normalize({"ts": None, "time": 1, "timestamp": 2, "role": "user", "content": "x"})
        assert event.ts == 1000

    @given(st.text(min_size=1))
    def test_non_empty_content_always_yields_message(self, text):
        event = normalize({"role": "user", "content": text}, now=_clock)
        assert isinstance(event, MessageEvent)
        assert event.text == text


class TestParseContent:
    def test_list_items_joined_with_blank_line(self):
        text, attachments = parse_content(
            [
                "plain",
                {"type": "output_text", "text": "typed"},
                {"type": "INPUT_TEXT", "content": "from content"},
                {"foo": 1},
                {"note": "x", "text": "loose text"},
            ]
        )
        assert text == 'plain\n\ntyped\n\nfrom content\n\n{"foo":1}\n\nloose text'
        assert attachments == []

    def test_text_item_without_text_serialized(self):
        text, _ = parse_content([{"type": "text", "value": 1}])
        assert text == '{"type":"text","value":1}'

    def test_remote_image_dropped_inline_image_kept(self):
        text, attachments = parse_content(
            [
                {"type": "input_image", "url": "https://evil.example/x.png"},
                {"type": "image_url", "image_url": {"url": DATA_URL}, "alt": "chart"},
                {"type": "text", "text": "see chart"},
            ]
        )
        assert text == "see chart"
        assert len(attachments) == 1
        assert attachments[0].url == DATA_URL
        assert attachments[0].alt == "chart"

    def test_object_content_serialized(self):
        assert parse_content({"a": 1}) == ('{"a":1}', [])

    def test_scalar_items_skipped(self):
        assert parse_content(["a", 1, None, "b"]) == ("a\n\nb", [])


def test_message_with_attachment():
    event = normalize(
        {
            "role": "user",
            "content": [{"type": "text", "text": "look"}, {"type": "image", "url": DATA_URL}],
        }
    )
    assert event.text == "look"
    assert [a.url for a in event.attachments] == [DATA_URL]


class TestToolRecords:
    def test_function_call(self):
        event = normalize({"function_call": {"name": "fn", "arguments": {"a": 1}}, "ts": 1})
        assert isinstance(event, ToolCallEvent)
        assert event.name == "fn"
        assert event.args == {"a": 1}
        assert event.ts == 1000

    def test_function_call_output(self):
        event = normalize({"function_call_output": {"name": "fn", "output": {"ok": True}}, "ts": 2})
        assert isinstance(event, ToolResultEvent)
        assert event.name == "fn"
        assert event.output == {"ok": True}

    def test_tool_output_without_output_keeps_sub_record(self):
        event = normalize({"tool_output": {"name": "fn", "stdout": "x"}, "ts": 2})
        assert event.output == {"name": "fn", "stdout": "x"}

    def test_function_call_without_arguments(self):
        assert normalize({"function_call": {"name": "fn"}, "ts": 1}).args == {}


class TestDiscriminator:
    def test_state_marker(self):
        event = normalize({"record_type": "STATE", "ts": 1})
        assert event == MetaEvent(ts=1000, kind=MetaKind.INFO, summary="state")

    def test_discriminated_tool_call_beats_message_fields(self):
        event = normalize(
            {"type": "tool_call", "name": "ls", "args": {"path": "/"}, "role": "user", "content": "hi", "ts": 1}
        )
        assert isinstance(event, ToolCallEvent)
        assert event.args == {"path": "/"}

    def test_discriminated_tool_result_falls_back_to_record(self):
        record = {"type": "tool_result", "name": "ls", "ts": 1}
        event = normalize(record)
        assert isinstance(event, ToolResultEvent)
        assert event.output == record

    def test_discriminated_result_uses_result_key(self):
        assert normalize({"type": "function_call_output", "result": [1, 2], "ts": 1}).output == [1, 2]

    def test_record_type_wins_over_type(self):
        event = normalize({"record_type": "state", "type": "tool_call", "ts": 1})
        assert isinstance(event, MetaEvent)

    def test_reasoning_with_summary(self):
        event = normalize({"type": "reasoning", "summary": "plan", "ts": 1})
        assert event.kind is MetaKind.REASONING_SUMMARY
        assert event.summary == "plan"

    def test_reasoning_with_blank_summary_dropped(self):
        assert normalize({"type": "reasoning", "summary": "  ", "ts": 1}) is None

    def test_unknown_discriminator_falls_through_to_message(self):
        event = normalize({"type": "message", "role": "assistant", "content": "hey", "ts": 1})
        assert isinstance(event, MessageEvent)


class TestReasoning:
    def test_summary_surfaced_content_never(self):
        event = normalize({"reasoning": {"summary": "decision", "content": "secret"}, "ts": 3})
        assert event == MetaEvent(ts=3000, kind=MetaKind.REASONING_SUMMARY, summary="decision")
        assert "secret" not in event.model_dump_json()

    def test_reasoning_beats_message(self):
        event = normalize({"reasoning": {"summary": "why"}, "role": "assistant", "content": "answer", "ts": 1})
        assert isinstance(event, MetaEvent)

    def test_reasoning_without_summary_falls_through(self):
        event = normalize({"reasoning": {"content": "secret"}, "role": "assistant", "content": "answer", "ts": 1})
        assert isinstance(event, MessageEvent)
        assert "secret" not in event.model_dump_json()


@pytest.mark.parametrize("record", [None, 1, "text", [1, 2], True, {}, {"unrelated": 1}])
def test_unrecognized_values_dropped(record):
    assert normalize(record) is None


def test_normalize_many_skips_unrecognized():
    records = [{"role": "user", "content": "a"}, {"x": 1}, "junk", {"role": "assistant", "content": "b"}]
    assert [e.text for e in normalize_many(records, now=_clock)] == ["a", "b"]
