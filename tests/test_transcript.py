"""
Tests for transcript parsing - malformed input must never raise.
"""

import json

import pytest

from lag_analysis.models import AgentHandoffItem, FunctionCallItem, FunctionCallOutputItem, MessageItem
from lag_analysis.transcript import EmptyTranscript, ParsedTranscript, parse_transcript


class TestMalformedInput:
    """Anything unusable collapses to an empty transcript."""

    @pytest.mark.parametrize("raw,reason", [
        (None, "empty"),
        ("", "empty"),
        ("   ", "empty"),
        ("{not json", "invalid_json"),
        ("[1, 2, 3]", "not_an_object"),
        ("42", "not_an_object"),
        ("{}", "missing_items"),
        ('{"items": null}', "missing_items"),
        ('{"items": []}', "missing_items"),
        ('{"items": "nope"}', "items_not_a_list"),
    ])
    def test_degrades_to_empty(self, raw, reason):
        result = parse_transcript(raw)
        assert isinstance(result, EmptyTranscript)
        assert result.reason == reason
        assert result.items == []
        assert result.is_empty
        assert result.raw_item_count == 0

    def test_bytes_input(self):
        raw = json.dumps({"items": [{"id": "a", "type": "message", "role": "user"}]}).encode()
        result = parse_transcript(raw)
        assert isinstance(result, ParsedTranscript)
        assert len(result.items) == 1

    def test_invalid_utf8_bytes(self):
        assert isinstance(parse_transcript(b"\xff\xfe{"), EmptyTranscript)

    def test_deeply_nested_json(self):
        raw = "[" * 100000 + "]" * 100000
        assert isinstance(parse_transcript(raw), EmptyTranscript)


class TestItemParsing:
    """Typed turn items."""

    def test_all_item_kinds(self):
        raw = json.dumps({"items": [
            {"id": "1", "type": "message", "role": "user", "content": ["hi"],
             "metrics": {"transcription_delay": 0.4, "end_of_turn_delay": 0.6}},
            {"id": "2", "type": "function_call", "name": "lookup", "arguments": "{}"},
            {"id": "3", "type": "function_call_output", "name": "lookup", "output": "ok"},
            {"id": "4", "type": "agent_handoff", "new_agent_id": "coach"},
            {"id": "5", "type": "message", "role": "assistant", "content": "plain string",
             "metrics": {"llm_node_ttft": 0.9, "tts_node_ttfb": 0.2, "e2e_latency": 1.8}},
        ]})
        result = parse_transcript(raw)

        assert isinstance(result, ParsedTranscript)
        kinds = [type(item) for item in result.items]
        assert kinds == [MessageItem, FunctionCallItem, FunctionCallOutputItem, AgentHandoffItem, MessageItem]
        assert result.items[0].metrics.transcription_delay == 0.4
        assert result.items[4].content == ["plain string"]
        assert result.items[4].metrics.e2e_latency == 1.8
        assert result.items[3].new_agent_id == "coach"

    def test_dict_input_accepted(self):
        result = parse_transcript({"items": [{"id": "x", "type": "agent_handoff"}]})
        assert isinstance(result.items[0], AgentHandoffItem)

    def test_bad_items_skipped_individually(self):
        raw = json.dumps({"items": [
            {"id": "1", "type": "message", "role": "user"},
            {"id": "2", "type": "something_new"},
            {"id": "3", "type": "message"},
            "not an item",
            {"id": "5", "type": "message", "role": "assistant"},
        ]})
        result = parse_transcript(raw)

        assert [item.id for item in result.items] == ["1", "5"]
        assert result.raw_item_count == 5

    def test_non_numeric_metrics_become_missing(self):
        raw = json.dumps({"items": [
            {"id": "1", "type": "message", "role": "assistant",
             "metrics": {"e2e_latency": "slow", "llm_node_ttft": "1.25", "tts_node_ttfb": True,
                         "unknown_metric": 3}},
        ]})
        metrics = parse_transcript(raw).items[0].metrics

        assert metrics.e2e_latency is None
        assert metrics.llm_node_ttft == 1.25
        assert metrics.tts_node_ttfb is None

    def test_numeric_ids_stringified(self):
        result = parse_transcript({"items": [{"id": 17, "type": "message", "role": "user"}]})
        assert result.items[0].id == "17"

    def test_malformed_display_fields_coerced(self):
        result = parse_transcript({"items": [
            {"id": "1", "type": "message", "role": "assistant", "interrupted": None,
             "transcript_confidence": "n/a", "metrics": "garbage"},
            {"id": "2", "type": "message", "role": "user", "interrupted": 1, "transcript_confidence": "0.82"},
        ]})
        first, second = result.items

        assert first.interrupted is False
        assert first.transcript_confidence is None
        assert first.metrics is None
        assert second.interrupted is True
        assert second.transcript_confidence == 0.82
