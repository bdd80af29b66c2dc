"""Tests for response parsing, fence stripping, and structured decode fallbacks."""

import json

import pytest

from journal.models import FALLBACK_INSIGHTS, FALLBACK_MOOD, FALLBACK_SUMMARY, FALLBACK_TITLE
from llm import ParseError
from llm.parsing import (
    parse_chat_completion,
    parse_generate_content,
    parse_journal_output,
    parse_memory_output,
    strip_code_fence,
)

JOURNAL = {
    "title": "Quiet Tuesday",
    "summary": "A calm day.",
    "mood": "☕️",
    "content": "I woke up early.\\nThen I read.",
    "insights": "Rest matters.",
}


class TestPayloadExtraction:
    def test_chat_completion(self):
        body = json.dumps({"choices": [{"message": {"role": "assistant", "content": "hi"}}]})
        assert parse_chat_completion(body) == "hi"

    def test_generate_content(self):
        body = json.dumps({"candidates": [{"content": {"parts": [{"text": "hey"}]}}]})
        assert parse_generate_content(body) == "hey"

    @pytest.mark.parametrize(
        "body",
        ['{"choices": []}', '{"choices": [{"message": {}}]}', "{}", "not json"],
    )
    def test_chat_completion_missing_field(self, body):
        with pytest.raises(ParseError):
            parse_chat_completion(body)

    @pytest.mark.parametrize(
        "body",
        ['{"candidates": []}', '{"candidates": [{"content": {"parts": []}}]}', "{}"],
    )
    def test_generate_content_missing_field(self, body):
        with pytest.raises(ParseError):
            parse_generate_content(body)


class TestStripCodeFence:
    def test_plain_text_trimmed(self):
        assert strip_code_fence('  {"a": 1}\n') == '{"a": 1}'

    def test_fenced_with_language_tag(self):
        assert strip_code_fence('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_fenced_without_tag(self):
        assert strip_code_fence('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_unterminated_fence(self):
        assert strip_code_fence('```json\n{"a": 1}') == '{"a": 1}'


class TestParseJournalOutput:
    def test_fenced_and_unfenced_equivalent(self):
        raw = json.dumps(JOURNAL)
        plain = parse_journal_output(raw)
        fenced = parse_journal_output(f"```json\n{raw}\n```")
        assert plain == fenced
        assert plain.title == "Quiet Tuesday"

    def test_content_sanitized(self):
        output = parse_journal_output(json.dumps(JOURNAL))
        assert output.content == "I woke up early.\nThen I read."
        assert output.raw_json == json.dumps(JOURNAL)

    def test_fallback_never_raises(self):
        output = parse_journal_output("Dear diary, today was long.")
        assert output.title == FALLBACK_TITLE
        assert output.summary == FALLBACK_SUMMARY
        assert output.mood == FALLBACK_MOOD
        assert output.insights == FALLBACK_INSIGHTS
        assert output.content == "Dear diary, today was long."

    def test_missing_field_falls_back(self):
        partial = {k: v for k, v in JOURNAL.items() if k != "mood"}
        output = parse_journal_output(json.dumps(partial))
        assert output.title == FALLBACK_TITLE


class TestParseMemoryOutput:
    def test_decodes_all_lists(self):
        raw = json.dumps(
            {
                "semantic": [{"key": "user_name", "value": "Hans", "confidence": 0.9}],
                "episodic": [{"event": "Moved house", "date": "2026-02-05", "emotion": "Tired"}],
                "procedural": [{"pattern": "Late night writing", "preference": "Short entries"}],
            }
        )
        result = parse_memory_output(f"```json\n{raw}\n```")
        assert result.semantic[0].key == "user_name"
        assert result.episodic[0].context is None
        assert result.procedural[0].trigger is None

    def test_missing_lists_default_empty(self):
        result = parse_memory_output('{"semantic": []}')
        assert result.is_empty()

    def test_garbage_yields_empty(self):
        assert parse_memory_output("I could not find anything.").is_empty()

    def test_confidence_clamped(self):
        result = parse_memory_output(
            '{"semantic": [{"key": "k", "value": "v", "confidence": 1.7}]}'
        )
        assert result.semantic[0].confidence == 1.0
