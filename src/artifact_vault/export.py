"""
CSV export of thread and artifact listings.

Writes one row per thread or artifact for backup and spreadsheet review.
"""

import csv
import logging
from pathlib import Path
from typing import Iterable

from artifact_vault.artifacts.models import ArtifactSummary
from artifact_vault.threads.models import ThreadSummary

logger = logging.getLogger(__name__)

THREAD_COLUMNS = [
    "thread_id",
    "user_id",
    "title",
    "artifact_count",
    "created_at",
    "updated_at",
]

ARTIFACT_COLUMNS = [
    "artifact_id",
    "filename",
    "thread_id",
    "version_count",
    "created_at",
    "updated_at",
]


def _write_rows(output_path: Path | str, columns: list[str], rows: Iterable[dict]) -> int:
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    written = 0
    with open(output_path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=columns, extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow(row)
            written += 1

    logger.info(f"Exported {written} row(s) to {output_path}")
    return written


def export_threads_csv(summaries: Iterable[ThreadSummary], output_path: Path | str) -> int:
    """
    Export thread summaries to CSV.

    Args:
        summaries: Threads to export
        output_path: Destination file path

    Returns:
        Number of rows written
    """
    rows = (
        {
            "thread_id": summary.id,
            "user_id": (summary.model_extra or {}).get("user_id") or "",
            "title": summary.title,
            "artifact_count": len(summary.artifact_ids),
            "created_at": summary.created_at,
            "updated_at": summary.updated_at,
        }
        for summary in summaries
    )
    return _write_rows(output_path, THREAD_COLUMNS, rows)


def export_artifacts_csv(summaries: Iterable[ArtifactSummary], output_path: Path | str) -> int:
    """
    Export artifact summaries to CSV.

    Args:
        summaries: Artifacts to export
        output_path: Destination file path

    Returns:
        Number of rows written
    """
    rows = (
        {
            "artifact_id": summary.artifact_id,
            "filename": summary.display_filename,
            "thread_id": summary.thread_id or "",
            "version_count": summary.version_count,
            "created_at": summary.created_at,
            "updated_at": summary.updated_at,
        }
        for summary in summaries
    )
    return _write_rows(output_path, ARTIFACT_COLUMNS, rows)
