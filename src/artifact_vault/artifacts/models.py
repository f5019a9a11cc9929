"""
Pydantic models for artifact storage and retrieval.

Defines the persisted artifact record, its embedded versions, and the
result shapes returned by store operations.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class ReadRange(Enum):
    """Which part of a text artifact to read."""

    ALL = "all"
    TOP = "top"
    BOTTOM = "bottom"


class ContentEncoding(Enum):
    """Encoding of content returned by reads."""

    UTF8 = "utf-8"
    BASE64 = "base64"


class VersionRecord(BaseModel):
    """One immutable snapshot of an artifact's content."""

    version: int = Field(ge=1, description="1-based version number")
    storage_name: str = Field(description="Blob filename inside the artifact container")
    created_at: str = Field(description="ISO timestamp of creation")
    metadata: dict[str, Any] = Field(
        default_factory=dict, description="Free-form version metadata"
    )

    @property
    def description(self) -> str:
        value = self.metadata.get("description")
        return value if isinstance(value, str) else ""


class ArtifactRecord(BaseModel):
    """Persisted metadata of an artifact and its version history."""

    artifact_id: str = Field(description="Unique UUID for the artifact")
    display_filename: str = Field(description="Sanitized basename, fixed at creation")
    thread_id: str | None = Field(default=None, description="Owning thread, if any")
    current_version: int = Field(ge=1, description="Latest version number")
    versions: list[VersionRecord] = Field(description="Append-only version history")
    created_at: str = Field(description="ISO timestamp of creation")
    updated_at: str = Field(description="ISO timestamp of last version")

    @property
    def latest(self) -> VersionRecord:
        return self.versions[-1]

    def get_version(self, version: int | None = None) -> VersionRecord | None:
        """Return the requested version, or the latest when None."""
        if version is None:
            return self.versions[-1] if self.versions else None
        for record in self.versions:
            if record.version == version:
                return record
        return None

    def to_summary(self) -> "ArtifactSummary":
        """Convert to summary for listing."""
        return ArtifactSummary(
            artifact_id=self.artifact_id,
            display_filename=self.display_filename,
            thread_id=self.thread_id,
            current_version=self.current_version,
            version_count=len(self.versions),
            description=self.latest.description,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ArtifactSummary(BaseModel):
    """Listing entry for an artifact."""

    artifact_id: str
    display_filename: str
    thread_id: str | None = None
    current_version: int
    version_count: int
    description: str = ""
    created_at: str
    updated_at: str


class ArtifactRef(BaseModel):
    """Reference to a specific artifact version returned by mutations."""

    artifact_id: str = Field(description="Artifact ID")
    version: int = Field(description="Version written by the operation")
    storage_name: str = Field(description="Blob filename of the version")
    display_filename: str = Field(description="Artifact display filename")
    thread_id: str | None = Field(default=None, description="Owning thread")

    @property
    def path(self) -> str:
        return f"/api/artifacts/{self.artifact_id}/v{self.version}"


class PatchResult(ArtifactRef):
    """Reference to a patched version with edit statistics."""

    edits_applied: int = Field(description="Number of edit requests applied")
    original_lines: int
    new_lines: int

    @property
    def lines_diff(self) -> int:
        return self.new_lines - self.original_lines


class ReadResult(BaseModel):
    """Content of one artifact version."""

    artifact_id: str
    filename: str
    version: int
    encoding: ContentEncoding
    content: str
    range: ReadRange = ReadRange.ALL
    total_lines: int | None = None
    returned_lines: int | None = None
    is_truncated: bool = False
    metadata: dict[str, Any] = Field(default_factory=dict)


class LineRange(BaseModel):
    """1-based inclusive line numbers of a search hit and its context."""

    start: int
    end: int
    match_start: int
    match_end: int


class SearchMatch(BaseModel):
    """One search hit with surrounding context lines."""

    match_index: int = Field(description="1-based position among all matches")
    line_range: LineRange
    matched_text: str
    context_text: str

    @property
    def context_info(self) -> str:
        r = self.line_range
        return f"Lines {r.start}-{r.end} (match at {r.match_start}-{r.match_end})"


class SearchResult(BaseModel):
    """Result of searching one artifact version."""

    artifact_id: str
    filename: str
    version: int
    pattern: str
    total_matches: int
    matches: list[SearchMatch] = Field(default_factory=list)

    @property
    def returned_matches(self) -> int:
        return len(self.matches)

    @property
    def has_more_matches(self) -> bool:
        return self.total_matches > len(self.matches)
