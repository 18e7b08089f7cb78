"""Tests for recovering JSON from model output."""

import pytest

from persona_review.services.errors import ParseError
from persona_review.services.response_parser import parse_response, repair_json


class TestParseResponse:
    @pytest.mark.parametrize(
        "raw",
        [
            '{"a":1}',
            '```json\n{"a":1}\n```',
            'noise {"a":1} trailing',
            '  \n{"a": 1}\n  ',
            '```JSON\n{"a":1}\n```',
            'Here you go:\n```\n{"a":1}\n```\nHope that helps.',
        ],
    )
    def test_recovers_object(self, raw):
        assert parse_response(raw) == {"a": 1}

    def test_plain_text_fails(self):
        with pytest.raises(ParseError) as exc_info:
            parse_response("not json at all")

        assert exc_info.value.raw == "not json at all"

    @pytest.mark.parametrize("raw", [None, "", "   \n"])
    def test_empty_fails(self, raw):
        with pytest.raises(ParseError):
            parse_response(raw)

    def test_direct_parse_accepts_any_json_value(self):
        """Shape is checked later, by the normalizer."""
        assert parse_response("[1, 2]") == [1, 2]

    def test_json_fence_preferred_over_other_fences(self):
        raw = '```python\nprint("hi")\n```\n```json\n{"b": 2}\n```'
        assert parse_response(raw) == {"b": 2}

    def test_greedy_span_covers_nested_objects(self):
        raw = 'Result: {"scores": {"clarity": 7}, "comments": []} -- end'
        assert parse_response(raw) == {"scores": {"clarity": 7}, "comments": []}

    def test_repairs_smart_quotes(self):
        raw = "{“global_feedback”: “Good”}"
        assert parse_response(raw) == {"global_feedback": "Good"}

    def test_repairs_trailing_commas(self):
        raw = '```json\n{"comments": [{"quote": "abc", "comment": "x"},],}\n```'
        assert parse_response(raw) == {"comments": [{"quote": "abc", "comment": "x"}]}

    def test_unclosed_fence_falls_through_to_span(self):
        raw = '```json\n{"a": 1}'
        assert parse_response(raw) == {"a": 1}

    def test_deterministic(self):
        raw = 'noise {"a": [1, 2, 3]} more'
        assert parse_response(raw) == parse_response(raw)


class TestRepairJson:
    def test_leaves_valid_json_alone(self):
        assert repair_json('{"a": [1, 2]}') == '{"a": [1, 2]}'

    def test_straightens_single_quotes_too(self):
        assert repair_json("‘x’") == "'x'"

    def test_removes_comma_before_bracket(self):
        assert repair_json("[1, 2 ,\n]") == "[1, 2 ]"
