"""
Artifact version store.

Persists immutable content versions under a stable artifact identity:
- {artifacts_dir}/{artifact_id}/metadata.json
- {artifacts_dir}/{artifact_id}/{stem}_v{version}{suffix}
- {artifacts_dir}/.index.db (secondary index by thread)

Every mutation holds the artifact's lock across its read-modify-write and
notifies the thread composer once the new state is committed.
"""

import base64
import logging
import os
import shutil
import uuid
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any, Callable, Iterator

from pydantic import ValidationError

from artifact_vault.config import (
    DEFAULT_ARTIFACT_BASENAME,
    DEFAULT_CONTEXT_AFTER,
    DEFAULT_CONTEXT_BEFORE,
    DEFAULT_MAX_MATCHES,
    INVALID_FILENAME_CHARS,
)
from artifact_vault.core.exceptions import (
    InvalidArgumentError,
    NotFoundError,
    PatchError,
    StorageFailureError,
)
from artifact_vault.patching import engine
from artifact_vault.patching.models import parse_edits

from .index import ArtifactIndex
from .locks import LockRegistry
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

if TYPE_CHECKING:
    from artifact_vault.threads.composer import ThreadComposer

logger = logging.getLogger(__name__)


def sanitize_filename(filename: Any, default: str = DEFAULT_ARTIFACT_BASENAME) -> str:
    """
    Reduce a caller-supplied filename to a safe basename.

    Directory components are dropped and reserved characters replaced
    with ``_``. Unusable input falls back to ``default``.
    """
    if not isinstance(filename, str):
        return default
    trimmed = filename.strip()
    if not trimmed:
        return default

    base = trimmed.rstrip("/").rsplit("/", 1)[-1]
    sanitized = INVALID_FILENAME_CHARS.sub("_", base)
    if sanitized in ("", ".", ".."):
        return default
    return sanitized


def build_versioned_filename(
    filename: str, version: int, default: str = DEFAULT_ARTIFACT_BASENAME
) -> str:
    """Build the blob name for a version, e.g. ``notes_v3.md``."""
    parsed = PurePosixPath(filename)
    stem = parsed.stem or default
    return f"{stem}_v{version}{parsed.suffix}"


def _coerce_count(value: Any, argument: str, minimum: int) -> int:
    """
    Validate a line or match count.

    Tool calls often send numbers as strings, so integral strings and
    floats are accepted; anything else raises InvalidArgumentError.
    """
    count: int | None = None
    if isinstance(value, bool):
        count = None
    elif isinstance(value, int):
        count = value
    elif isinstance(value, float) and value.is_integer():
        count = int(value)
    elif isinstance(value, str):
        try:
            count = int(value.strip())
        except ValueError:
            count = None

    if count is None or count < minimum:
        qualifier = "a positive" if minimum > 0 else "a non-negative"
        raise InvalidArgumentError(
            f"{argument} must be {qualifier} integer", argument=argument
        )
    return count


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class ArtifactStore:
    """
    Versioned artifact store.

    Operations: create, append, read, search, patch, delete.
    Artifacts in different containers never block each other; mutations
    of one artifact serialize on its lock.
    """

    METADATA_FILE = "metadata.json"

    def __init__(
        self,
        artifacts_dir: Path,
        *,
        index: ArtifactIndex | None = None,
        locks: LockRegistry | None = None,
        composer: "ThreadComposer | None" = None,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
        default_basename: str = DEFAULT_ARTIFACT_BASENAME,
    ):
        """
        Initialize artifact store.

        Args:
            artifacts_dir: Base directory for artifact containers
            index: Secondary index (default: {artifacts_dir}/.index.db)
            locks: Per-artifact lock registry (default: private registry)
            composer: Thread composer notified after every mutation
            clock: Source of timestamps (default: UTC now)
            id_factory: Source of artifact IDs (default: uuid4)
            default_basename: Fallback for unusable filenames
        """
        self._artifacts_dir = artifacts_dir
        self._index = index or ArtifactIndex(artifacts_dir / ".index.db")
        self._locks = locks or LockRegistry()
        self._composer = composer
        self._clock = clock or _utc_now
        self._id_factory = id_factory or _new_id
        self._default_basename = default_basename

        self._artifacts_dir.mkdir(parents=True, exist_ok=True)
        if not self._index.exists() and self._has_containers():
            logger.warning(f"Artifact index missing under {artifacts_dir}, rebuilding")
            self.reindex()

    def _has_containers(self) -> bool:
        return any(
            entry.is_dir() and not entry.name.startswith(".")
            for entry in self._artifacts_dir.iterdir()
        )

    # ------------------------------------------------------------------
    # Persistence helpers
    # ------------------------------------------------------------------

    def _artifact_dir(self, artifact_id: str) -> Path:
        """Get the container directory for an artifact."""
        if (
            not isinstance(artifact_id, str)
            or not artifact_id
            or artifact_id in (".", "..")
            or "/" in artifact_id
            or "\\" in artifact_id
            or artifact_id.startswith(".")
        ):
            raise NotFoundError(
                "Artifact not found", entity_type="artifact", entity_id=str(artifact_id)
            )
        return self._artifacts_dir / artifact_id

    def _timestamp(self) -> str:
        return self._clock().isoformat()

    def _load_record(self, artifact_id: str) -> ArtifactRecord:
        """Load an artifact's metadata record from disk."""
        metadata_path = self._artifact_dir(artifact_id) / self.METADATA_FILE
        try:
            raw = metadata_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            raise NotFoundError(
                "Artifact not found", entity_type="artifact", entity_id=artifact_id
            ) from None
        except OSError as e:
            raise StorageFailureError(
                "Failed to read artifact metadata", operation="read_metadata", cause=e
            ) from e

        try:
            return ArtifactRecord.model_validate_json(raw)
        except ValidationError as e:
            raise StorageFailureError(
                f"Corrupt metadata for artifact {artifact_id}",
                operation="read_metadata",
                cause=e,
            ) from e

    def _save_record(self, record: ArtifactRecord) -> None:
        """Persist metadata atomically using write-replace pattern."""
        artifact_dir = self._artifact_dir(record.artifact_id)
        metadata_path = artifact_dir / self.METADATA_FILE
        temp_path = artifact_dir / f"{self.METADATA_FILE}.tmp"

        try:
            temp_path.write_text(record.model_dump_json(indent=2), encoding="utf-8")
            os.replace(temp_path, metadata_path)
        except Exception:
            temp_path.unlink(missing_ok=True)
            raise

    def _commit(self, record: ArtifactRecord, blob_path: Path) -> None:
        """
        Write metadata and index row for a freshly written blob.

        On failure the blob is removed and the previous metadata restored,
        leaving the artifact exactly as it was.
        """
        metadata_path = self._artifact_dir(record.artifact_id) / self.METADATA_FILE
        previous = metadata_path.read_bytes() if metadata_path.exists() else None

        try:
            with self._index.transaction() as conn:
                self._index.upsert(conn, record)
                self._save_record(record)
        except (OSError, StorageFailureError) as e:
            blob_path.unlink(missing_ok=True)
            if previous is not None:
                metadata_path.write_bytes(previous)
            else:
                metadata_path.unlink(missing_ok=True)
            if isinstance(e, StorageFailureError):
                raise
            raise StorageFailureError(
                "Failed to write artifact metadata", operation="write_metadata", cause=e
            ) from e

    def _write_blob(self, path: Path, data: bytes) -> None:
        try:
            path.write_bytes(data)
        except OSError as e:
            path.unlink(missing_ok=True)
            raise StorageFailureError(
                "Failed to write artifact content", operation="write_content", cause=e
            ) from e

    def _read_blob(self, record: ArtifactRecord, version: VersionRecord) -> bytes:
        blob_path = self._artifact_dir(record.artifact_id) / version.storage_name
        try:
            return blob_path.read_bytes()
        except OSError as e:
            raise StorageFailureError(
                f"Content of version {version.version} is unreadable",
                operation="read_content",
                cause=e,
            ) from e

    def _read_text(self, record: ArtifactRecord, version: VersionRecord) -> str:
        data = self._read_blob(record, version)
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as e:
            raise InvalidArgumentError(
                "Artifact content is not valid UTF-8 text; read it with base64 encoding",
                argument="encoding",
            ) from e

    def _resolve_version(
        self, record: ArtifactRecord, version: int | None
    ) -> VersionRecord:
        if version is not None:
            version = _coerce_count(version, "version", minimum=0)
        version_record = record.get_version(version)
        if version_record is None:
            message = (
                f"Artifact version {version} not found"
                if version is not None
                else "No versions found for artifact"
            )
            raise NotFoundError(
                message, entity_type="artifact_version", entity_id=record.artifact_id
            )
        return version_record

    @staticmethod
    def _to_bytes(content: str | bytes) -> bytes:
        if isinstance(content, str):
            return content.encode("utf-8")
        if isinstance(content, (bytes, bytearray)):
            return bytes(content)
        raise InvalidArgumentError(
            "content must be text or bytes", argument="content"
        )

    def _notify(self, thread_id: str | None) -> None:
        if self._composer is not None and thread_id:
            self._composer.update_after_artifact_change(thread_id)

    def _ref(self, record: ArtifactRecord) -> ArtifactRef:
        return ArtifactRef(
            artifact_id=record.artifact_id,
            version=record.current_version,
            storage_name=record.latest.storage_name,
            display_filename=record.display_filename,
            thread_id=record.thread_id,
        )

    def _append_locked(
        self, record: ArtifactRecord, data: bytes, metadata: dict[str, Any]
    ) -> ArtifactRef:
        """Append a version. Caller must hold the artifact lock."""
        new_version = record.current_version + 1
        timestamp = self._timestamp()
        storage_name = build_versioned_filename(
            record.display_filename, new_version, self._default_basename
        )
        blob_path = self._artifact_dir(record.artifact_id) / storage_name
        self._write_blob(blob_path, data)

        record.versions.append(
            VersionRecord(
                version=new_version,
                storage_name=storage_name,
                created_at=timestamp,
                metadata=metadata,
            )
        )
        record.current_version = new_version
        record.updated_at = timestamp

        self._commit(record, blob_path)
        return self._ref(record)

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def create(
        self,
        display_filename: str,
        content: str | bytes,
        metadata: dict[str, Any] | None = None,
        thread_id: str | None = None,
    ) -> ArtifactRef:
        """
        Create an artifact with its first version.

        Args:
            display_filename: Requested filename (sanitized to a basename)
            content: Version 1 content
            metadata: Version metadata (description, ...)
            thread_id: Owning thread, fixed for the artifact's lifetime

        Returns:
            ArtifactRef for version 1
        """
        data = self._to_bytes(content)
        artifact_id = self._id_factory()
        timestamp = self._timestamp()
        safe_filename = sanitize_filename(display_filename, self._default_basename)
        storage_name = build_versioned_filename(safe_filename, 1, self._default_basename)

        with self._locks.hold(artifact_id):
            artifact_dir = self._artifact_dir(artifact_id)
            try:
                artifact_dir.mkdir(parents=True, exist_ok=False)
            except OSError as e:
                raise StorageFailureError(
                    "Failed to create artifact container",
                    operation="create",
                    cause=e,
                ) from e

            blob_path = artifact_dir / storage_name
            record = ArtifactRecord(
                artifact_id=artifact_id,
                display_filename=safe_filename,
                thread_id=thread_id or None,
                current_version=1,
                versions=[
                    VersionRecord(
                        version=1,
                        storage_name=storage_name,
                        created_at=timestamp,
                        metadata=metadata or {},
                    )
                ],
                created_at=timestamp,
                updated_at=timestamp,
            )
            try:
                self._write_blob(blob_path, data)
                self._commit(record, blob_path)
            except StorageFailureError:
                shutil.rmtree(artifact_dir, ignore_errors=True)
                raise

        logger.info(f"Created artifact {artifact_id} ({safe_filename})")
        self._notify(record.thread_id)
        return self._ref(record)

    def append(
        self,
        artifact_id: str,
        content: str | bytes,
        metadata: dict[str, Any] | None = None,
    ) -> ArtifactRef:
        """
        Append a new version to an existing artifact.

        The new version number is always derived from the stored
        ``current_version``.

        Raises:
            NotFoundError: If the artifact does not exist
        """
        data = self._to_bytes(content)
        with self._locks.hold(artifact_id):
            record = self._load_record(artifact_id)
            ref = self._append_locked(record, data, metadata or {})

        logger.info(f"Appended version {ref.version} to artifact {artifact_id}")
        self._notify(record.thread_id)
        return ref

    def read(
        self,
        artifact_id: str,
        version: int | None = None,
        encoding: ContentEncoding | str = ContentEncoding.UTF8,
        range: ReadRange | str = ReadRange.ALL,
        line_count: int | None = None,
    ) -> ReadResult:
        """
        Read one version of an artifact.

        Args:
            artifact_id: Artifact to read
            version: Version number (default: latest)
            encoding: "utf-8" for text or "base64" for binary content
            range: "all", "top" or "bottom"
            line_count: Lines to return for "top"/"bottom"

        Returns:
            ReadResult with the content and truncation info

        Raises:
            NotFoundError: If the artifact or version does not exist
            InvalidArgumentError: If range/line_count are inconsistent
        """
        try:
            encoding = ContentEncoding(encoding)
            range = ReadRange(range)
        except ValueError as e:
            raise InvalidArgumentError(str(e), argument="encoding/range") from e

        if range is not ReadRange.ALL and line_count is None:
            raise InvalidArgumentError(
                f'line_count is required when range is "{range.value}"',
                argument="line_count",
            )
        if line_count is not None:
            line_count = _coerce_count(line_count, "line_count", minimum=1)

        record = self._load_record(artifact_id)
        version_record = self._resolve_version(record, version)

        result = ReadResult(
            artifact_id=artifact_id,
            filename=record.display_filename,
            version=version_record.version,
            encoding=encoding,
            content="",
            range=range,
            metadata=version_record.metadata,
        )

        if encoding is ContentEncoding.BASE64:
            if range is not ReadRange.ALL:
                logger.warning("range option is ignored for base64 encoding")
            result.content = base64.b64encode(
                self._read_blob(record, version_record)
            ).decode("ascii")
            return result

        text = self._read_text(record, version_record)
        lines = text.split("\n")
        result.total_lines = len(lines)

        if range is ReadRange.ALL:
            result.content = text
            result.returned_lines = len(lines)
        else:
            if range is ReadRange.TOP:
                selected = lines[:line_count]
            else:
                selected = lines[max(0, len(lines) - line_count) :]
            result.content = "\n".join(selected)
            result.returned_lines = len(selected)
            result.is_truncated = len(lines) > line_count

        return result

    def search(
        self,
        artifact_id: str,
        pattern: str,
        version: int | None = None,
        context_before: int = DEFAULT_CONTEXT_BEFORE,
        context_after: int = DEFAULT_CONTEXT_AFTER,
        max_matches: int = DEFAULT_MAX_MATCHES,
    ) -> SearchResult:
        """
        Search one version of an artifact with the patch engine's matcher.

        Returns at most ``max_matches`` hits, each with line numbers and
        ``context_before``/``context_after`` surrounding lines.
        """
        if not isinstance(pattern, str) or not pattern.strip():
            raise InvalidArgumentError(
                "search_pattern must be a non-empty string", argument="pattern"
            )
        context_before = _coerce_count(context_before, "context_before", minimum=0)
        context_after = _coerce_count(context_after, "context_after", minimum=0)
        max_matches = _coerce_count(max_matches, "max_matches", minimum=1)

        record = self._load_record(artifact_id)
        version_record = self._resolve_version(record, version)
        content = self._read_text(record, version_record)

        matches = engine.find_all(content, pattern)
        lines = content.split("\n")
        results: list[SearchMatch] = []

        for i, match in enumerate(matches[:max_matches]):
            match_start_line = content.count("\n", 0, match.start_offset)
            match_end_line = match_start_line + match.text.count("\n")
            start_line = max(0, match_start_line - context_before)
            end_line = min(len(lines) - 1, match_end_line + context_after)

            results.append(
                SearchMatch(
                    match_index=i + 1,
                    line_range=LineRange(
                        start=start_line + 1,
                        end=end_line + 1,
                        match_start=match_start_line + 1,
                        match_end=match_end_line + 1,
                    ),
                    matched_text=match.text,
                    context_text="\n".join(lines[start_line : end_line + 1]),
                )
            )

        logger.debug(
            f"Search in {artifact_id} (v{version_record.version}) found {len(matches)} match(es)"
        )
        return SearchResult(
            artifact_id=artifact_id,
            filename=record.display_filename,
            version=version_record.version,
            pattern=pattern,
            total_matches=len(matches),
            matches=results,
        )

    def patch(self, artifact_id: str, edits: Any) -> PatchResult:
        """
        Apply structural edits to the latest version, writing a new one.

        Nothing is written unless every edit resolves.

        Raises:
            NotFoundError: If the artifact does not exist
            InvalidArgumentError: If the edit list is empty or malformed
            PatternNotFoundError: If a required pattern matches nothing
            NoValidPairingError: If a replace/delete cannot pair its patterns
        """
        with self._locks.hold(artifact_id):
            record = self._load_record(artifact_id)
            parsed = parse_edits(edits)
            original = self._read_text(record, record.latest)

            try:
                patched = engine.apply(original, parsed)
            except PatchError as e:
                logger.warning(f"Patch rejected for artifact {artifact_id}: {e}")
                raise

            metadata = {
                "description": f"Patched with {len(parsed)} edit(s)",
                "patch_summary": ", ".join(edit.edit_type for edit in parsed),
            }
            ref = self._append_locked(record, patched.encode("utf-8"), metadata)

        logger.info(f"Patched artifact {artifact_id} with {len(parsed)} edit(s) -> v{ref.version}")
        self._notify(record.thread_id)
        return PatchResult(
            **ref.model_dump(),
            edits_applied=len(parsed),
            original_lines=len(original.split("\n")),
            new_lines=len(patched.split("\n")),
        )

    def delete(self, artifact_id: str) -> ArtifactSummary:
        """
        Permanently delete an artifact and all of its versions.

        Returns:
            Summary of the deleted artifact

        Raises:
            NotFoundError: If the artifact does not exist
        """
        with self._locks.hold(artifact_id):
            record = self._load_record(artifact_id)
            artifact_dir = self._artifact_dir(artifact_id)
            try:
                with self._index.transaction() as conn:
                    self._index.remove(conn, artifact_id)
                    shutil.rmtree(artifact_dir)
            except OSError as e:
                raise StorageFailureError(
                    "Failed to delete artifact container", operation="delete", cause=e
                ) from e
        self._locks.discard(artifact_id)

        logger.info(f"Deleted artifact {artifact_id}")
        self._notify(record.thread_id)
        return record.to_summary()

    # ------------------------------------------------------------------
    # Listing and maintenance
    # ------------------------------------------------------------------

    def get_record(self, artifact_id: str) -> ArtifactRecord:
        """Return the full metadata record of an artifact."""
        return self._load_record(artifact_id)

    def list_artifacts(self, thread_id: str) -> list[ArtifactSummary]:
        """List a thread's artifacts, most recently updated first."""
        return self._index.list_for_thread(thread_id)

    def list_all_artifacts(self) -> list[ArtifactSummary]:
        """List every artifact, most recently updated first."""
        return self._index.list_all()

    def iter_records(self) -> Iterator[ArtifactRecord]:
        """Scan every artifact container, skipping unreadable ones."""
        for entry in sorted(self._artifacts_dir.iterdir()):
            if not entry.is_dir() or entry.name.startswith("."):
                continue
            try:
                yield self._load_record(entry.name)
            except (NotFoundError, StorageFailureError) as e:
                logger.warning(f"Skipping artifact container {entry.name}: {e}")

    def reindex(self) -> int:
        """Rebuild the secondary index from the artifact containers."""
        return self._index.rebuild(self.iter_records())

    def get_storage_stats(self) -> dict[str, Any]:
        """Get statistics about artifact storage."""
        artifact_count = 0
        version_count = 0
        total_size = 0

        for record in self.iter_records():
            artifact_count += 1
            version_count += len(record.versions)
            artifact_dir = self._artifact_dir(record.artifact_id)
            total_size += sum(
                f.stat().st_size for f in artifact_dir.iterdir() if f.is_file()
            )

        return {
            "artifact_count": artifact_count,
            "version_count": version_count,
            "total_size_bytes": total_size,
            "storage_path": str(self._artifacts_dir),
        }
