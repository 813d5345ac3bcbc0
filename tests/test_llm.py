"""Tests for structured-output parsing."""

import pytest
from kidbook.errors import MalformedResponseError
from kidbook.llm import parse_structured, strip_json_fences
from kidbook.models import BookPage, TrendInsight


class TestStripJsonFences:
    def test_bare_json_unchanged(self):
        assert strip_json_fences('{"a": 1}') == '{"a": 1}'

    def test_fenced_block(self):
        assert strip_json_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_preamble_removed(self):
        text = 'Here is the result:\n[{"a": 1}]\nHope this helps.'
        assert strip_json_fences(text) == '[{"a": 1}]'

    def test_earliest_delimiter_wins(self):
        assert strip_json_fences('[{"a": 1}, {"b": 2}]') == '[{"a": 1}, {"b": 2}]'


class TestParseStructured:
    def test_model(self):
        trend = parse_structured(
            '{"topic": "Sharing", "title": "Mine!", "reason": "Popular"}',
            TrendInsight,
            label="trend",
        )
        assert trend == TrendInsight(topic="Sharing", title="Mine!", reason="Popular")

    def test_list_of_models_by_alias(self):
        pages = parse_structured(
            '[{"pageNumber": 1, "text": "Hi", "imagePrompt": "A wave"}]',
            list[BookPage],
            label="story",
        )
        assert pages[0].page_number == 1
        assert pages[0].image_prompt == "A wave"

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty(self, text):
        with pytest.raises(MalformedResponseError, match="Empty response"):
            parse_structured(text, TrendInsight, label="trend")

    def test_not_json(self):
        with pytest.raises(MalformedResponseError, match="not valid JSON"):
            parse_structured("no json here", TrendInsight, label="trend")

    def test_wrong_shape(self):
        with pytest.raises(MalformedResponseError, match="expected shape"):
            parse_structured('{"topic": "Sharing"}', TrendInsight, label="trend")

    def test_page_number_must_be_positive(self):
        with pytest.raises(MalformedResponseError):
            parse_structured(
                '[{"pageNumber": 0, "text": "Hi", "imagePrompt": "A wave"}]',
                list[BookPage],
                label="story",
            )
