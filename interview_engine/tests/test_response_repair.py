"""Tests for interview_engine.core.response_repair module.

Tests the repair pipeline on the defects completion services actually
produce: markdown fences, prose around the JSON, trailing commas, raw
newlines in strings, bare keys, and responses cut off mid-document.
"""

import json

import pytest

from interview_engine.core.errors import ChunkParseError
from interview_engine.core.response_repair import (
    collapse_string_whitespace,
    quote_unquoted_keys,
    recover_truncated,
    remove_trailing_commas,
    repair_and_parse,
    strip_code_fences,
)


# =============================================================================
# Individual repair steps
# =============================================================================


class TestStripCodeFences:
    """Tests for strip_code_fences()."""

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_bare_fence(self):
        assert strip_code_fences('```\n[1, 2]\n```') == "[1, 2]"

    def test_prose_around_object(self):
        text = 'Here is the result:\n{"a": {"b": 2}}\nLet me know if you need more.'
        assert strip_code_fences(text) == '{"a": {"b": 2}}'

    def test_brackets_inside_strings_ignored(self):
        text = 'Sure: {"a": "} not the end"} trailing'
        assert strip_code_fences(text) == '{"a": "} not the end"}'

    def test_unclosed_value_kept_to_end(self):
        assert strip_code_fences('text {"a": [1, 2') == '{"a": [1, 2'

    def test_no_json_left_untouched(self):
        assert strip_code_fences("no json here") == "no json here"


class TestRemoveTrailingCommas:
    """Tests for remove_trailing_commas()."""

    def test_object_and_array(self):
        assert remove_trailing_commas('{"a": [1, 2,], }') == '{"a": [1, 2] }'

    def test_commas_inside_strings_kept(self):
        assert remove_trailing_commas('{"a": "x,}"}') == '{"a": "x,}"}'


class TestCollapseStringWhitespace:
    """Tests for collapse_string_whitespace()."""

    def test_raw_newline_becomes_space(self):
        repaired = collapse_string_whitespace('{"text": "line one\nline two"}')
        assert json.loads(repaired) == {"text": "line one line two"}

    def test_control_run_becomes_single_space(self):
        repaired = collapse_string_whitespace('{"text": "a\r\n\t\x0bb"}')
        assert json.loads(repaired) == {"text": "a b"}

    def test_vertical_tab_keeps_words_apart(self):
        repaired = collapse_string_whitespace('{"text": "a\x0bb"}')
        assert json.loads(repaired) == {"text": "a b"}

    def test_escaped_newline_untouched(self):
        text = '{"text": "a\\nb"}'
        assert collapse_string_whitespace(text) == text

    def test_tab_becomes_space(self):
        repaired = collapse_string_whitespace('{"text": "a\tb"}')
        assert json.loads(repaired) == {"text": "a b"}

    def test_structure_whitespace_untouched(self):
        text = '{\n  "a": 1\n}'
        assert collapse_string_whitespace(text) == text


class TestQuoteUnquotedKeys:
    """Tests for quote_unquoted_keys()."""

    def test_bare_keys_quoted(self):
        assert json.loads(quote_unquoted_keys('{entity_id: "s1", item_ids: ["q1"]}')) == {
            "entity_id": "s1", "item_ids": ["q1"],
        }

    def test_values_and_strings_untouched(self):
        text = '{"note": "key: value", "flag": true}'
        assert quote_unquoted_keys(text) == text


# =============================================================================
# Truncation recovery
# =============================================================================


class TestRecoverTruncated:
    """Tests for recover_truncated()."""

    def test_closes_open_brackets_after_complete_entry(self):
        text = '{"assignments": [{"entity_id": "s1", "item_ids": ["q1", "q2"]}, '
        assert json.loads(recover_truncated(text)) == {
            "assignments": [{"entity_id": "s1", "item_ids": ["q1", "q2"]}],
        }

    def test_dangling_key_removed(self):
        text = '{"text": "done", "carry_forward":'
        assert json.loads(recover_truncated(text)) == {"text": "done"}

    def test_cut_inside_string_raises(self):
        with pytest.raises(ChunkParseError, match="unterminated string"):
            recover_truncated('{"text": "half a sent')

    def test_trailing_number_is_ambiguous(self):
        with pytest.raises(ChunkParseError, match="may be incomplete"):
            recover_truncated('{"counts": [1, 2, 3')

    def test_mismatched_brackets_raise(self):
        with pytest.raises(ChunkParseError, match="mismatched"):
            recover_truncated('{"a": [1, 2}')

    def test_nothing_to_keep_raises(self):
        with pytest.raises(ChunkParseError):
            recover_truncated("{")


# =============================================================================
# repair_and_parse
# =============================================================================


class TestRepairAndParse:
    """Tests for the full pipeline."""

    def test_valid_json_needs_no_repair(self):
        outcome = repair_and_parse('{"a": 1}')
        assert outcome.data == {"a": 1}
        assert outcome.repairs_applied == []
        assert not outcome.repaired

    def test_trailing_comma_in_assignments(self):
        outcome = repair_and_parse('{"assignments":[{"id":"q1"},]}')
        assert outcome.data == {"assignments": [{"id": "q1"}]}
        assert outcome.repairs_applied == ["remove_trailing_commas"]

    def test_fenced_response(self):
        outcome = repair_and_parse('```json\n{"text": "hi", "carry_forward": ""}\n```')
        assert outcome.data == {"text": "hi", "carry_forward": ""}
        assert outcome.repairs_applied == ["strip_code_fences"]

    def test_repairs_are_cumulative(self):
        raw = '```json\n{entity_id: "s1", item_ids: ["q1",],}\n```'
        outcome = repair_and_parse(raw)
        assert outcome.data == {"entity_id": "s1", "item_ids": ["q1"]}
        assert outcome.repairs_applied == [
            "strip_code_fences", "remove_trailing_commas", "quote_unquoted_keys",
        ]

    def test_truncated_response_keeps_complete_entries(self):
        raw = (
            '{"assignments": [{"entity_id": "s1", "item_ids": ["q1", "q2"]}, '
            '{"entity_id": "s2", "item_ids": ["q3"'
        )
        outcome = repair_and_parse(raw)
        assert outcome.data == {
            "assignments": [
                {"entity_id": "s1", "item_ids": ["q1", "q2"]},
                {"entity_id": "s2", "item_ids": ["q3"]},
            ]
        }
        assert outcome.repairs_applied[-1] == "recover_truncated"

    def test_truncated_inside_value_drops_partial_entry_field(self):
        raw = '{"assignments": [{"entity_id": "s1", "item_ids": ["q1"]}, {"entity_id": "s2", "item_ids": ["q3'
        outcome = repair_and_parse(raw)
        assert outcome.data["assignments"][0] == {"entity_id": "s1", "item_ids": ["q1"]}
        assert outcome.data["assignments"][1] == {"entity_id": "s2"}

    def test_empty_response(self):
        with pytest.raises(ChunkParseError, match="Empty"):
            repair_and_parse("   ")

    def test_unrecoverable_keeps_raw_text(self):
        raw = "I am sorry, I cannot help with that."
        with pytest.raises(ChunkParseError) as exc_info:
            repair_and_parse(raw)
        assert exc_info.value.raw_text == raw
