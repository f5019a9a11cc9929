"""
Artifact Vault Patching Module.

Pure text transforms: whitespace-insensitive pattern matching and
structural edits (replace, delete, insert_before, insert_after).
"""

from .models import (
    DeleteEdit,
    EditKind,
    EditRequest,
    InsertAfterEdit,
    InsertBeforeEdit,
    Match,
    ReplaceEdit,
    ResolvedEdit,
    parse_edits,
)
from .engine import (
    apply,
    build_flexible_pattern,
    find_all,
    pair_start_end,
    resolve_edits,
    trim_whitespace_around_match,
)

__all__ = [
    # Models
    "EditKind",
    "EditRequest",
    "ReplaceEdit",
    "DeleteEdit",
    "InsertBeforeEdit",
    "InsertAfterEdit",
    "Match",
    "ResolvedEdit",
    "parse_edits",
    # Engine
    "apply",
    "build_flexible_pattern",
    "find_all",
    "pair_start_end",
    "resolve_edits",
    "trim_whitespace_around_match",
]
