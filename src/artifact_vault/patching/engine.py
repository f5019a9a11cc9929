"""
Pattern-based patch engine.

Applies structural edits to text without line numbers or byte offsets.
Patterns are matched with whitespace-insensitive regular expressions, every
edit is resolved against the original snapshot, and the resolved edits are
spliced back-to-front so earlier splices never shift later offsets.
"""

import re
from typing import Any

from artifact_vault.core.exceptions import (
    InvalidArgumentError,
    NoValidPairingError,
    PatternNotFoundError,
)

from .models import (
    DeleteEdit,
    EditKind,
    EditRequest,
    Match,
    ReplaceEdit,
    ResolvedEdit,
    parse_edits,
)


def build_flexible_pattern(pattern: str) -> re.Pattern[str]:
    """
    Compile a pattern whose tokens may be separated by any whitespace run.

    ``"def  foo"`` matches ``"def foo"``, ``"def\\n\\tfoo"`` and so on.

    Raises:
        InvalidArgumentError: If the pattern has no non-whitespace token
    """
    tokens = [re.escape(token) for token in pattern.split()]
    if not tokens:
        raise InvalidArgumentError(
            "Pattern must contain at least one non-whitespace character",
            argument="pattern",
        )
    return re.compile(r"\s+".join(tokens))


def trim_whitespace_around_match(text: str, start: int, end: int) -> tuple[int, int]:
    """Shrink [start, end) so it begins and ends on non-whitespace."""
    while start < end and text[start].isspace():
        start += 1
    while end > start and text[end - 1].isspace():
        end -= 1
    return start, end


def find_all(content: str, pattern: str) -> list[Match]:
    """
    Find every non-overlapping match of ``pattern`` in ``content``.

    Offsets refer to the unmodified content. Matches that are empty after
    trimming are discarded.
    """
    regex = build_flexible_pattern(pattern)
    matches: list[Match] = []
    pos = 0

    while pos <= len(content):
        found = regex.search(content, pos)
        if found is None:
            break

        start, end = trim_whitespace_around_match(content, found.start(), found.end())
        if start < end:
            matches.append(Match(start, end, content[start:end]))

        # zero-width guard
        pos = found.end() if found.end() > found.start() else found.start() + 1

    return matches


def pair_start_end(
    start_matches: list[Match],
    end_matches: list[Match],
    start_pattern: str,
    end_pattern: str,
) -> list[tuple[Match, Match]]:
    """
    Pair start matches with end matches to delimit spans.

    Identical patterns pair each match with itself. Otherwise each start
    match, in order, takes the nearest unused end match that begins at or
    after the start match's end.
    """
    if start_pattern == end_pattern:
        return [(match, match) for match in start_matches]

    pairs: list[tuple[Match, Match]] = []
    used: set[int] = set()

    for start_match in start_matches:
        candidate_index = None
        for i, end_match in enumerate(end_matches):
            if i in used or end_match.start_offset < start_match.end_offset:
                continue
            if (
                candidate_index is None
                or end_match.start_offset < end_matches[candidate_index].start_offset
            ):
                candidate_index = i

        if candidate_index is not None:
            pairs.append((start_match, end_matches[candidate_index]))
            used.add(candidate_index)

    return pairs


def resolve_edit(content: str, edit: EditRequest) -> list[ResolvedEdit]:
    """
    Resolve one edit request into concrete offset records.

    Raises:
        PatternNotFoundError: If start or end pattern matches nothing
        NoValidPairingError: If no start match can be paired
    """
    start_matches = find_all(content, edit.start_pattern)
    if not start_matches:
        raise PatternNotFoundError(edit.start_pattern, role="start")

    if isinstance(edit, (ReplaceEdit, DeleteEdit)):
        end_matches = find_all(content, edit.end_pattern)
        if not end_matches:
            raise PatternNotFoundError(edit.end_pattern, role="end")

        pairs = pair_start_end(
            start_matches, end_matches, edit.start_pattern, edit.end_pattern
        )
        if not pairs:
            raise NoValidPairingError(edit.start_pattern, edit.end_pattern)

        new_content = edit.new_content if isinstance(edit, ReplaceEdit) else ""
        return [
            ResolvedEdit(edit.kind, start.start_offset, end.end_offset, new_content)
            for start, end in pairs
        ]

    return [
        ResolvedEdit(edit.kind, match.start_offset, match.end_offset, edit.new_content)
        for match in start_matches
    ]


def resolve_edits(content: str, edits: Any) -> list[ResolvedEdit]:
    """Validate and resolve every edit against the same original content."""
    resolved: list[ResolvedEdit] = []
    for edit in parse_edits(edits):
        resolved.extend(resolve_edit(content, edit))
    return resolved


def apply(content: str, edits: Any) -> str:
    """
    Apply a list of edit requests to ``content`` and return the new text.

    Either every edit is applied or an exception is raised and nothing is.

    Args:
        content: Original text
        edits: Edit requests (typed models or raw dictionaries)

    Returns:
        The patched text

    Raises:
        InvalidArgumentError: If ``edits`` is empty or malformed
        PatternNotFoundError: If a required pattern matches nothing
        NoValidPairingError: If a replace/delete cannot pair its patterns
    """
    resolved = resolve_edits(content, edits)
    resolved.sort(key=lambda r: r.start_offset, reverse=True)

    updated = content
    for record in resolved:
        if record.kind in (EditKind.REPLACE, EditKind.DELETE):
            updated = (
                updated[: record.start_offset]
                + record.new_content
                + updated[record.end_offset :]
            )
        elif record.kind is EditKind.INSERT_BEFORE:
            updated = (
                updated[: record.start_offset]
                + record.new_content
                + updated[record.start_offset :]
            )
        else:
            updated = (
                updated[: record.end_offset]
                + record.new_content
                + updated[record.end_offset :]
            )

    return updated
