"""Tests for tolerant JSON parsing of generated text."""

from modeldoc.llm.parsing import parse_json, top_level_spans


class TestParseJson:
    """Tests for parse_json."""

    def test_strict(self):
        outcome = parse_json('{"a": 1}', default={})

        assert outcome.value == {"a": 1}
        assert outcome.strategy == "strict"
        assert not outcome.used_default

    def test_fenced(self):
        outcome = parse_json('```json\n{"a": 1}\n```', default={})

        assert outcome.value == {"a": 1}
        assert outcome.strategy == "unfenced"

    def test_fenced_block_inside_prose(self):
        text = 'Here is the result:\n```\n{"a": [1, 2]}\n```\nLet me know.'

        assert parse_json(text, default={}).value == {"a": [1, 2]}

    def test_last_bracketed_object_wins(self):
        text = 'Draft {"a": 1} and final answer {"a": 2}.'

        outcome = parse_json(text, default={})

        assert outcome.value == {"a": 2}
        assert outcome.strategy == "bracketed"

    def test_brackets_inside_strings_ignored(self):
        text = 'Result: {"note": "uses } and ] chars", "ok": true} trailing'

        assert parse_json(text, default={}).value == {"note": "uses } and ] chars", "ok": True}

    def test_expected_type_enforced(self):
        outcome = parse_json("[1, 2, 3]", default={}, expected=dict)

        assert outcome.used_default
        assert outcome.value == {}

    def test_list_allowed_when_expected(self):
        assert parse_json("[1, 2]", default=[]).value == [1, 2]

    def test_unusable_text_returns_default(self):
        for text in ["", "   ", "no json here", "{broken", None]:
            outcome = parse_json(text, default={"fallback": True})
            assert outcome.used_default
            assert outcome.value == {"fallback": True}


class TestTopLevelSpans:
    def test_spans_in_order(self):
        assert top_level_spans('x {"a": {"b": 1}} y [1] z') == ['{"a": {"b": 1}}', "[1]"]

    def test_unbalanced_span_dropped(self):
        assert top_level_spans('{"a": 1') == []
