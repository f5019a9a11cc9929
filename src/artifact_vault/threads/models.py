"""
Thread records and derived-state results.

Threads are owned by the conversation layer; only ``system_prompt`` and
``artifact_ids`` are written by the composer. Unknown fields written by
other components are preserved on round-trip.
"""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

from artifact_vault.artifacts.models import ArtifactSummary


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


class Thread(BaseModel):
    """A conversation record whose system prompt is partly derived."""

    model_config = ConfigDict(extra="allow")

    id: str
    title: str = "New Thread"
    system_prompt_user: str = ""
    system_prompt: str = ""
    artifact_ids: list[str] = Field(default_factory=list)
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)

    def to_summary(self) -> "ThreadSummary":
        """Convert to summary for listing."""
        return ThreadSummary(
            id=self.id,
            title=self.title,
            created_at=self.created_at,
            updated_at=self.updated_at,
            artifact_ids=list(self.artifact_ids),
        )


class ThreadSummary(BaseModel):
    """Denormalized listing entry for a thread."""

    model_config = ConfigDict(extra="allow")

    id: str
    title: str = "New Thread"
    created_at: str = Field(default_factory=_now)
    updated_at: str = Field(default_factory=_now)
    artifact_ids: list[str] = Field(default_factory=list)


class ThreadSummaryList(BaseModel):
    """Root document of the thread summary file."""

    threads: list[ThreadSummary] = Field(default_factory=list)


class InventoryEntry(BaseModel):
    """One artifact as listed in a thread's system prompt."""

    id: str
    name: str
    description: str = ""

    @classmethod
    def from_summary(cls, summary: ArtifactSummary) -> "InventoryEntry":
        return cls(
            id=summary.artifact_id,
            name=summary.display_filename,
            description=summary.description,
        )


class RefreshResult(BaseModel):
    """Outcome of recomputing a thread's derived state."""

    thread: Thread | None = None
    artifacts: list[ArtifactSummary] = Field(default_factory=list)
    changed: bool = False
