"""Tests for the pattern-based patch engine."""

import pytest

from artifact_vault.core.exceptions import (
    InvalidArgumentError,
    NoValidPairingError,
    PatchError,
    PatternNotFoundError,
)
from artifact_vault.patching import engine
from artifact_vault.patching.models import (
    DeleteEdit,
    EditKind,
    InsertAfterEdit,
    InsertBeforeEdit,
    ReplaceEdit,
    parse_edits,
)


class TestBuildFlexiblePattern:
    """Tests for whitespace-insensitive pattern compilation."""

    def test_any_whitespace_run_matches(self) -> None:
        """Tokens match across spaces, tabs and newlines."""
        regex = engine.build_flexible_pattern("def  foo():")
        assert regex.search("def foo():")
        assert regex.search("def\n\tfoo():")

    def test_tokens_are_literal(self) -> None:
        """Regex metacharacters in patterns are escaped."""
        regex = engine.build_flexible_pattern("a.b(")
        assert regex.search("a.b(")
        assert not regex.search("axb(")

    def test_whitespace_only_pattern_rejected(self) -> None:
        """A pattern with no tokens is invalid."""
        with pytest.raises(InvalidArgumentError):
            engine.build_flexible_pattern("  \n ")


class TestFindAll:
    """Tests for the shared matcher."""

    def test_offsets_refer_to_original_content(self) -> None:
        """Matches report start/end offsets into the content."""
        content = "START one END middle START two END"
        matches = engine.find_all(content, "START")

        assert [(m.start_offset, m.end_offset) for m in matches] == [(0, 5), (21, 26)]
        assert all(m.text == "START" for m in matches)

    def test_no_match(self) -> None:
        """Missing patterns yield an empty list."""
        assert engine.find_all("hello world", "absent") == []

    def test_multiline_match_text(self) -> None:
        """A match may span lines when the pattern spans tokens."""
        matches = engine.find_all("if x:\n    return y", "x: return")
        assert len(matches) == 1
        assert matches[0].text == "x:\n    return"


class TestPairStartEnd:
    """Tests for start/end pairing."""

    def test_pairs_do_not_span_blocks(self) -> None:
        """Each start pairs with its nearest following end."""
        content = "START one END middle START two END"
        starts = engine.find_all(content, "START")
        ends = engine.find_all(content, "END")

        pairs = engine.pair_start_end(starts, ends, "START", "END")

        spans = [content[s.start_offset : e.end_offset] for s, e in pairs]
        assert spans == ["START one END", "START two END"]

    def test_identical_patterns_pair_with_self(self) -> None:
        """Identical start and end patterns select each match alone."""
        starts = engine.find_all("A X B X", "X")
        pairs = engine.pair_start_end(starts, starts, "X", "X")

        assert len(pairs) == 2
        assert all(s is e for s, e in pairs)

    def test_end_before_start_is_skipped(self) -> None:
        """Ends that begin before the start's end are never used."""
        content = "END first START second"
        pairs = engine.pair_start_end(
            engine.find_all(content, "START"),
            engine.find_all(content, "END"),
            "START",
            "END",
        )
        assert pairs == []

    def test_each_end_used_once(self) -> None:
        """Two starts before one end yield a single pair."""
        content = "S a S b E"
        pairs = engine.pair_start_end(
            engine.find_all(content, "S"),
            engine.find_all(content, "E"),
            "S",
            "E",
        )
        assert len(pairs) == 1
        assert pairs[0][0].start_offset == 0


class TestApply:
    """Tests for applying edit lists."""

    def test_multiple_edits_apply_independently(self) -> None:
        """Earlier splices do not shift later ones."""
        edits = [
            {"edit_type": "replace", "start_pattern": "X", "end_pattern": "X", "new_content": "1"},
            {"edit_type": "replace", "start_pattern": "Y", "end_pattern": "Y", "new_content": "2"},
        ]
        assert engine.apply("A X B Y C", edits) == "A 1 B 2 C"

    def test_replace_is_whitespace_insensitive(self) -> None:
        """Patterns match despite different indentation."""
        content = "def  foo():\n    return 1\n"
        edits = [
            {
                "edit_type": "replace",
                "start_pattern": "def foo():",
                "end_pattern": "return 1",
                "new_content": "def foo():\n    return 2",
            }
        ]
        assert engine.apply(content, edits) == "def foo():\n    return 2\n"

    def test_replace_every_pair(self) -> None:
        """Replace applies to every start/end pair."""
        content = "START one END middle START two END"
        edits = [
            {"edit_type": "replace", "start_pattern": "START", "end_pattern": "END", "new_content": "-"}
        ]
        assert engine.apply(content, edits) == "- middle -"

    def test_delete(self) -> None:
        """Delete removes the span including both patterns."""
        edits = [{"edit_type": "delete", "start_pattern": "START", "end_pattern": "END"}]
        assert engine.apply("keep START drop END keep", edits) == "keep  keep"

    def test_insert_before(self) -> None:
        """insert_before splices at the start of each match."""
        edits = [{"edit_type": "insert_before", "start_pattern": "b", "new_content": "X "}]
        assert engine.apply("a b c", edits) == "a X b c"

    def test_insert_after_every_match(self) -> None:
        """insert_after splices after every match."""
        edits = [{"edit_type": "insert_after", "start_pattern": "x = 1", "new_content": ";"}]
        assert engine.apply("x = 1\nx = 1", edits) == "x = 1;\nx = 1;"

    def test_edits_resolve_against_original(self) -> None:
        """Later edits match the original text, not earlier edits' output."""
        edits = [
            {"edit_type": "replace", "start_pattern": "X", "end_pattern": "X", "new_content": "Y"},
            {"edit_type": "insert_before", "start_pattern": "Y", "new_content": "!"},
        ]
        assert engine.apply("X Y", edits) == "Y !Y"

    def test_none_new_content_deletes(self) -> None:
        """A replace with no new content removes the span."""
        edits = [
            {"edit_type": "replace", "start_pattern": "a", "end_pattern": "b", "new_content": None}
        ]
        assert engine.apply("[a b]", edits) == "[]"

    def test_typed_edits_accepted(self) -> None:
        """Model instances work the same as raw dictionaries."""
        edits = [
            ReplaceEdit(start_pattern="X", end_pattern="X", new_content="1"),
            InsertAfterEdit(start_pattern="C", new_content="!"),
        ]
        assert engine.apply("A X C", edits) == "A 1 C!"


class TestApplyFailures:
    """Tests for all-or-nothing failure behavior."""

    def test_missing_start_pattern(self) -> None:
        """Missing start pattern raises with the start role."""
        edits = [{"edit_type": "insert_after", "start_pattern": "absent", "new_content": "x"}]
        with pytest.raises(PatternNotFoundError) as exc_info:
            engine.apply("content", edits)

        assert exc_info.value.role == "start"
        assert exc_info.value.message.startswith('start_pattern not found: "absent')

    def test_missing_end_pattern(self) -> None:
        """Missing end pattern raises with the end role."""
        edits = [{"edit_type": "delete", "start_pattern": "content", "end_pattern": "absent"}]
        with pytest.raises(PatternNotFoundError) as exc_info:
            engine.apply("content", edits)
        assert exc_info.value.role == "end"

    def test_no_valid_pairing(self) -> None:
        """Ends only before starts raise NoValidPairingError."""
        edits = [{"edit_type": "delete", "start_pattern": "START", "end_pattern": "END"}]
        with pytest.raises(NoValidPairingError):
            engine.apply("END x START", edits)

    def test_one_bad_edit_fails_whole_list(self) -> None:
        """A valid edit is not applied when another edit fails."""
        edits = [
            {"edit_type": "insert_after", "start_pattern": "a", "new_content": "1"},
            {"edit_type": "insert_after", "start_pattern": "zzz", "new_content": "2"},
        ]
        with pytest.raises(PatchError):
            engine.apply("a b", edits)

    def test_pattern_preview_truncated(self) -> None:
        """Long patterns are shortened in the error message."""
        error = PatternNotFoundError("x" * 80)
        assert error.message == f'start_pattern not found: "{"x" * 50}..."'


class TestParseEdits:
    """Tests for edit request validation."""

    def test_empty_list_rejected(self) -> None:
        """An empty edit list is invalid."""
        with pytest.raises(InvalidArgumentError):
            parse_edits([])

    def test_non_list_rejected(self) -> None:
        """A single edit object is not an edit list."""
        with pytest.raises(InvalidArgumentError):
            parse_edits({"edit_type": "delete", "start_pattern": "a", "end_pattern": "b"})

    def test_unknown_edit_type(self) -> None:
        """Unknown edit types are invalid."""
        with pytest.raises(InvalidArgumentError):
            parse_edits([{"edit_type": "move", "start_pattern": "a"}])

    def test_replace_requires_end_pattern(self) -> None:
        """replace without end_pattern is invalid."""
        with pytest.raises(InvalidArgumentError):
            parse_edits([{"edit_type": "replace", "start_pattern": "a", "new_content": "b"}])

    def test_whitespace_start_pattern_rejected(self) -> None:
        """Whitespace-only patterns are invalid."""
        with pytest.raises(InvalidArgumentError):
            parse_edits([{"edit_type": "insert_before", "start_pattern": "   "}])

    def test_dispatch_on_edit_type(self) -> None:
        """Each edit_type maps to its model."""
        parsed = parse_edits(
            [
                {"edit_type": "replace", "start_pattern": "a", "end_pattern": "b"},
                {"edit_type": "delete", "start_pattern": "a", "end_pattern": "b"},
                {"edit_type": "insert_before", "start_pattern": "a"},
                {"edit_type": EditKind.INSERT_AFTER, "start_pattern": "a"},
            ]
        )
        assert [type(e) for e in parsed] == [
            ReplaceEdit,
            DeleteEdit,
            InsertBeforeEdit,
            InsertAfterEdit,
        ]
        assert parsed[3].kind is EditKind.INSERT_AFTER
