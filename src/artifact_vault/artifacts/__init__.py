"""
Artifact Vault Artifacts Module.

Provides versioned artifact storage, the thread-scoped secondary index,
per-artifact locking and the tool-call adapter used by the orchestrator.
"""

from .models import (
    ArtifactRecord,
    ArtifactRef,
    ArtifactSummary,
    ContentEncoding,
    LineRange,
    PatchResult,
    ReadRange,
    ReadResult,
    SearchMatch,
    SearchResult,
    VersionRecord,
)
from .locks import LockRegistry
from .index import ArtifactIndex
from .storage import ArtifactStore, build_versioned_filename, sanitize_filename
from .tools import TOOL_DEFINITIONS, ArtifactToolbox, ToolResult

__all__ = [
    # Models
    "ArtifactRecord",
    "VersionRecord",
    "ArtifactRef",
    "ArtifactSummary",
    "PatchResult",
    "ReadResult",
    "ReadRange",
    "ContentEncoding",
    "LineRange",
    "SearchMatch",
    "SearchResult",
    # Storage
    "ArtifactIndex",
    "ArtifactStore",
    "LockRegistry",
    "sanitize_filename",
    "build_versioned_filename",
    # Tools
    "ArtifactToolbox",
    "ToolResult",
    "TOOL_DEFINITIONS",
]
