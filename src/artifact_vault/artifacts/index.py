"""
Secondary index of artifacts by owning thread.

A SQLite table mirrors the listing fields of every artifact's metadata so
thread inventories do not require scanning every artifact container. The
store upserts rows inside the same transaction that brackets its metadata
write.
"""

import logging
import sqlite3
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator

from artifact_vault.core.exceptions import StorageFailureError

from .models import ArtifactRecord, ArtifactSummary

logger = logging.getLogger(__name__)

_COLUMNS = (
    "artifact_id, thread_id, display_filename, description, current_version, "
    "version_count, created_at, updated_at"
)


class ArtifactIndex:
    """
    SQLite-backed index: thread_id -> artifact summaries.

    The database file is created on first write. Until then every listing
    is empty.
    """

    def __init__(self, index_path: Path):
        """
        Initialize the index.

        Args:
            index_path: Path to the SQLite database file
        """
        self._index_path = index_path
        self._local = threading.local()
        self._schema_lock = threading.Lock()
        self._schema_ready = False

    def exists(self) -> bool:
        return self._index_path.exists()

    def _get_connection(self) -> sqlite3.Connection:
        """Get thread-local SQLite connection."""
        if getattr(self._local, "conn", None) is None:
            self._index_path.parent.mkdir(parents=True, exist_ok=True)
            conn = sqlite3.connect(
                str(self._index_path),
                timeout=30,
                check_same_thread=False,
            )
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA journal_mode = WAL")
            conn.execute("PRAGMA synchronous = NORMAL")
            self._local.conn = conn
        self._ensure_schema(self._local.conn)
        return self._local.conn

    def _ensure_schema(self, conn: sqlite3.Connection) -> None:
        """Initialize the index schema once per process."""
        with self._schema_lock:
            if self._schema_ready:
                return
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS artifact_index (
                    artifact_id TEXT PRIMARY KEY,
                    thread_id TEXT,
                    display_filename TEXT NOT NULL,
                    description TEXT NOT NULL DEFAULT '',
                    current_version INTEGER NOT NULL,
                    version_count INTEGER NOT NULL,
                    created_at TEXT NOT NULL,
                    updated_at TEXT NOT NULL,
                    seq INTEGER NOT NULL
                )
                """
            )
            conn.execute(
                "CREATE INDEX IF NOT EXISTS idx_thread_id ON artifact_index(thread_id)"
            )
            conn.commit()
            self._schema_ready = True

    @contextmanager
    def transaction(self) -> Iterator[sqlite3.Connection]:
        """
        Open a write transaction.

        Commits when the block succeeds and rolls back when it raises, so
        the caller can write its own files inside the block.
        """
        try:
            conn = self._get_connection()
        except sqlite3.Error as e:
            raise StorageFailureError(
                "Failed to open artifact index", operation="index_open", cause=e
            ) from e

        try:
            with conn:
                yield conn
        except sqlite3.Error as e:
            raise StorageFailureError(
                "Artifact index write failed", operation="index_write", cause=e
            ) from e

    def upsert(self, conn: sqlite3.Connection, record: ArtifactRecord) -> None:
        """Insert or refresh the row for an artifact."""
        summary = record.to_summary()
        conn.execute(
            f"""
            INSERT INTO artifact_index ({_COLUMNS}, seq)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?,
                    (SELECT COALESCE(MAX(seq), 0) + 1 FROM artifact_index))
            ON CONFLICT(artifact_id) DO UPDATE SET
                thread_id = excluded.thread_id,
                display_filename = excluded.display_filename,
                description = excluded.description,
                current_version = excluded.current_version,
                version_count = excluded.version_count,
                updated_at = excluded.updated_at,
                seq = excluded.seq
            """,
            (
                summary.artifact_id,
                summary.thread_id,
                summary.display_filename,
                summary.description,
                summary.current_version,
                summary.version_count,
                summary.created_at,
                summary.updated_at,
            ),
        )

    def remove(self, conn: sqlite3.Connection, artifact_id: str) -> None:
        """Delete the row for an artifact."""
        conn.execute("DELETE FROM artifact_index WHERE artifact_id = ?", (artifact_id,))

    def _query(self, sql: str, params: tuple = ()) -> list[sqlite3.Row]:
        if not self.exists():
            return []
        try:
            return self._get_connection().execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageFailureError(
                "Artifact index query failed", operation="index_query", cause=e
            ) from e

    def list_for_thread(self, thread_id: str) -> list[ArtifactSummary]:
        """List a thread's artifacts, most recently updated first."""
        rows = self._query(
            f"""
            SELECT {_COLUMNS} FROM artifact_index
            WHERE thread_id = ?
            ORDER BY updated_at DESC, seq DESC
            """,
            (thread_id,),
        )
        return [ArtifactSummary(**dict(row)) for row in rows]

    def list_all(self) -> list[ArtifactSummary]:
        """List every indexed artifact, most recently updated first."""
        rows = self._query(
            f"SELECT {_COLUMNS} FROM artifact_index ORDER BY updated_at DESC, seq DESC"
        )
        return [ArtifactSummary(**dict(row)) for row in rows]

    def rebuild(self, records: Iterable[ArtifactRecord]) -> int:
        """
        Replace the index contents with the given records.

        Returns:
            Number of rows written
        """
        ordered = sorted(records, key=lambda r: r.updated_at)
        with self.transaction() as conn:
            conn.execute("DELETE FROM artifact_index")
            for record in ordered:
                self.upsert(conn, record)
        logger.info(f"Rebuilt artifact index with {len(ordered)} entries")
        return len(ordered)

    def close(self) -> None:
        """Close the calling thread's connection."""
        conn = getattr(self._local, "conn", None)
        if conn is not None:
            conn.close()
            self._local.conn = None
