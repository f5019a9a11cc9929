"""Tests for CSV export."""

import csv
from pathlib import Path

from artifact_vault.artifacts.models import ArtifactSummary
from artifact_vault.export import (
    ARTIFACT_COLUMNS,
    THREAD_COLUMNS,
    export_artifacts_csv,
    export_threads_csv,
)
from artifact_vault.threads.models import ThreadSummary


def _read(path: Path) -> tuple[list[str], list[dict]]:
    with open(path, newline="", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        return list(reader.fieldnames or []), list(reader)


class TestExportThreads:
    """Tests for thread CSV export."""

    def test_columns_and_rows(self, temp_dir: Path) -> None:
        summaries = [
            ThreadSummary(
                id="t1",
                title='Plans, "draft"',
                artifact_ids=["a1", "a2"],
                created_at="2024-01-01T00:00:00+00:00",
                updated_at="2024-01-02T00:00:00+00:00",
                user_id="u7",
            ),
            ThreadSummary(id="t2"),
        ]

        count = export_threads_csv(summaries, temp_dir / "threads.csv")

        header, rows = _read(temp_dir / "threads.csv")
        assert count == 2
        assert header == THREAD_COLUMNS
        assert rows[0] == {
            "thread_id": "t1",
            "user_id": "u7",
            "title": 'Plans, "draft"',
            "artifact_count": "2",
            "created_at": "2024-01-01T00:00:00+00:00",
            "updated_at": "2024-01-02T00:00:00+00:00",
        }
        assert rows[1]["user_id"] == ""

    def test_empty_listing_writes_header(self, temp_dir: Path) -> None:
        assert export_threads_csv([], temp_dir / "nested" / "threads.csv") == 0
        header, rows = _read(temp_dir / "nested" / "threads.csv")
        assert header == THREAD_COLUMNS
        assert rows == []


class TestExportArtifacts:
    """Tests for artifact CSV export."""

    def test_unbound_artifact(self, temp_dir: Path) -> None:
        summary = ArtifactSummary(
            artifact_id="a1",
            display_filename="notes\nv2.md",
            current_version=3,
            version_count=3,
            created_at="2024-01-01T00:00:00+00:00",
            updated_at="2024-01-03T00:00:00+00:00",
        )

        export_artifacts_csv([summary], temp_dir / "artifacts.csv")

        header, rows = _read(temp_dir / "artifacts.csv")
        assert header == ARTIFACT_COLUMNS
        assert rows[0]["filename"] == "notes\nv2.md"
        assert rows[0]["thread_id"] == ""
        assert rows[0]["version_count"] == "3"
