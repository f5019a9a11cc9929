"""
Thread repository - JSON thread records and the summary list.

Manages {threads_dir}/ with:
- thread_{id}.json (one record per thread)
- threads.json (denormalized summaries used for listings)
"""

import logging
import os
import threading
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable

from pydantic import ValidationError

from artifact_vault.config import DEFAULT_SYSTEM_PROMPT
from artifact_vault.core.exceptions import (
    AlreadyExistsError,
    NotFoundError,
    StorageFailureError,
)

from .models import Thread, ThreadSummary, ThreadSummaryList
from .prompt import compose_system_prompt, strip_inventory_block

logger = logging.getLogger(__name__)


class ThreadRepository:
    """File-backed reader/writer for thread records."""

    SUMMARY_FILE = "threads.json"

    def __init__(
        self,
        threads_dir: Path,
        *,
        default_system_prompt: str = DEFAULT_SYSTEM_PROMPT,
        clock: Callable[[], datetime] | None = None,
        id_factory: Callable[[], str] | None = None,
    ):
        """Initialize repository with its storage directory."""
        self._threads_dir = threads_dir
        self._default_system_prompt = default_system_prompt
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._id_factory = id_factory or (lambda: str(uuid.uuid4()))
        self._summary_lock = threading.Lock()
        self._threads_dir.mkdir(parents=True, exist_ok=True)

    @property
    def default_system_prompt(self) -> str:
        return self._default_system_prompt

    def now(self) -> str:
        return self._clock().isoformat()

    def _thread_path(self, thread_id: str) -> Path:
        """Get file path for a thread record."""
        if not thread_id or "/" in thread_id or "\\" in thread_id:
            raise NotFoundError(
                "Thread not found", entity_type="thread", entity_id=str(thread_id)
            )
        return self._threads_dir / f"thread_{thread_id}.json"

    def _write_atomic(self, path: Path, text: str) -> None:
        """Write a file atomically using write-replace pattern."""
        temp_path = path.with_name(f"{path.name}.tmp")
        try:
            temp_path.write_text(text, encoding="utf-8")
            os.replace(temp_path, path)
        except OSError as e:
            temp_path.unlink(missing_ok=True)
            raise StorageFailureError(
                f"Failed to write {path.name}", operation="write_thread", cause=e
            ) from e

    def ensure_defaults(self, thread: Thread) -> Thread:
        """Fill in the user prompt for records written before it existed."""
        if not thread.system_prompt_user:
            legacy = strip_inventory_block(thread.system_prompt).strip()
            thread.system_prompt_user = legacy or self._default_system_prompt
        return thread

    def read_thread(self, thread_id: str) -> Thread | None:
        """Load a thread record, or None if it does not exist."""
        path = self._thread_path(thread_id)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageFailureError(
                "Failed to read thread", operation="read_thread", cause=e
            ) from e

        try:
            return self.ensure_defaults(Thread.model_validate_json(raw))
        except ValidationError as e:
            raise StorageFailureError(
                f"Corrupt thread record {thread_id}", operation="read_thread", cause=e
            ) from e

    def get_thread(self, thread_id: str) -> Thread:
        """
        Load a thread record.

        Raises:
            NotFoundError: If the thread does not exist
        """
        thread = self.read_thread(thread_id)
        if thread is None:
            raise NotFoundError(
                "Thread not found", entity_type="thread", entity_id=thread_id
            )
        return thread

    def write_thread(self, thread: Thread) -> None:
        """Persist a thread record."""
        self.ensure_defaults(thread)
        self._write_atomic(self._thread_path(thread.id), thread.model_dump_json(indent=2))

    def read_summaries(self) -> ThreadSummaryList:
        """Load the summary list (empty if the file does not exist yet)."""
        path = self._threads_dir / self.SUMMARY_FILE
        if not path.exists():
            return ThreadSummaryList()
        try:
            return ThreadSummaryList.model_validate_json(path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as e:
            raise StorageFailureError(
                "Failed to read thread summaries", operation="read_summaries", cause=e
            ) from e

    def _write_summaries(self, summaries: ThreadSummaryList) -> None:
        self._write_atomic(
            self._threads_dir / self.SUMMARY_FILE, summaries.model_dump_json(indent=2)
        )

    def list_summaries(self) -> list[ThreadSummary]:
        return self.read_summaries().threads

    def update_summary_metadata(self, thread: Thread) -> bool:
        """
        Copy ``updated_at`` and ``artifact_ids`` into the thread's summary.

        Returns:
            True if a summary entry was found and rewritten
        """
        with self._summary_lock:
            summaries = self.read_summaries()
            found = False
            for summary in summaries.threads:
                if summary.id == thread.id:
                    summary.updated_at = thread.updated_at
                    summary.artifact_ids = list(thread.artifact_ids)
                    found = True
            if found:
                self._write_summaries(summaries)
            return found

    def create_thread(
        self,
        title: str | None = None,
        system_prompt_user: str | None = None,
        thread_id: str | None = None,
        **extra,
    ) -> Thread:
        """
        Create a thread with an empty artifact inventory.

        Raises:
            AlreadyExistsError: If ``thread_id`` is given and already used
        """
        if thread_id and self.read_thread(thread_id) is not None:
            raise AlreadyExistsError(
                "Thread ID already exists", entity_type="thread", entity_id=thread_id
            )

        timestamp = self.now()
        user_prompt = (system_prompt_user or "").strip() or self._default_system_prompt
        thread = Thread(
            id=thread_id or self._id_factory(),
            title=title or "New Thread",
            system_prompt_user=user_prompt,
            system_prompt=compose_system_prompt(
                user_prompt, [], self._default_system_prompt
            ),
            artifact_ids=[],
            created_at=timestamp,
            updated_at=timestamp,
            **extra,
        )

        with self._summary_lock:
            summaries = self.read_summaries()
            summaries.threads.append(thread.to_summary())
            self._write_summaries(summaries)
        self.write_thread(thread)

        logger.info(f"Created thread {thread.id}")
        return thread

    def delete_thread(self, thread_id: str) -> bool:
        """
        Delete a thread record and its summary.

        Returns:
            True if a record or summary existed
        """
        with self._summary_lock:
            summaries = self.read_summaries()
            remaining = [s for s in summaries.threads if s.id != thread_id]
            removed = len(remaining) != len(summaries.threads)
            if removed:
                self._write_summaries(ThreadSummaryList(threads=remaining))

        path = self._thread_path(thread_id)
        try:
            path.unlink()
            removed = True
        except FileNotFoundError:
            pass
        except OSError as e:
            raise StorageFailureError(
                "Failed to delete thread", operation="delete_thread", cause=e
            ) from e

        if removed:
            logger.info(f"Deleted thread {thread_id}")
        return removed

    def thread_exists(self, thread_id: str) -> bool:
        return self._thread_path(thread_id).exists()

