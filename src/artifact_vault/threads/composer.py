"""
Thread derived-state composer.

Keeps each thread's ``artifact_ids`` and composed ``system_prompt`` in step
with the artifacts bound to it. A thread is persisted only when one of the
two derived fields actually changed.
"""

import logging

from artifact_vault.artifacts.index import ArtifactIndex
from artifact_vault.artifacts.locks import LockRegistry
from artifact_vault.artifacts.models import ArtifactSummary

from .models import InventoryEntry, RefreshResult, Thread
from .prompt import compose_system_prompt
from .repository import ThreadRepository

logger = logging.getLogger(__name__)


class ThreadComposer:
    """
    Recomputes thread inventories after artifact mutations.

    Refreshes of the same thread serialize on a per-thread lock.
    """

    def __init__(
        self,
        threads: ThreadRepository,
        index: ArtifactIndex,
        *,
        locks: LockRegistry | None = None,
    ):
        """
        Initialize composer.

        Args:
            threads: Reader/writer for thread records
            index: Source of per-thread artifact listings
            locks: Per-thread lock registry (default: private registry)
        """
        self._threads = threads
        self._index = index
        self._locks = locks or LockRegistry()

    def compose(self, user_prompt: str | None, artifacts: list[ArtifactSummary]) -> str:
        """Compose a system prompt from instructions and artifact summaries."""
        return compose_system_prompt(
            user_prompt,
            [InventoryEntry.from_summary(a) for a in artifacts],
            self._threads.default_system_prompt,
        )

    def refresh(self, thread: Thread | None, persist: bool = True) -> RefreshResult:
        """
        Recompute a thread's artifact inventory and system prompt.

        Args:
            thread: Thread to refresh (updated in place)
            persist: Write the thread and its summary if anything changed

        Returns:
            RefreshResult with the thread, its artifacts and a changed flag
        """
        if thread is None:
            return RefreshResult()

        with self._locks.hold(thread.id):
            self._threads.ensure_defaults(thread)
            artifacts = self._index.list_for_thread(thread.id)
            artifact_ids = [a.artifact_id for a in artifacts]
            effective_prompt = self.compose(thread.system_prompt_user, artifacts)

            changed = False
            if thread.artifact_ids != artifact_ids:
                thread.artifact_ids = artifact_ids
                changed = True
            if thread.system_prompt != effective_prompt:
                thread.system_prompt = effective_prompt
                changed = True

            if changed and persist:
                thread.updated_at = self._threads.now()
                self._threads.write_thread(thread)
                self._threads.update_summary_metadata(thread)
                logger.info(
                    f"Refreshed thread {thread.id} ({len(artifact_ids)} artifact(s))"
                )
            elif not changed:
                logger.debug(f"Thread {thread.id} derived state unchanged")

        return RefreshResult(thread=thread, artifacts=artifacts, changed=changed)

    def refresh_thread(self, thread_id: str, persist: bool = True) -> RefreshResult:
        """
        Load and refresh a thread by ID.

        Raises:
            NotFoundError: If the thread does not exist
        """
        with self._locks.hold(thread_id):
            thread = self._threads.get_thread(thread_id)
            return self.refresh(thread, persist=persist)

    def update_after_artifact_change(self, thread_id: str | None) -> RefreshResult | None:
        """
        Refresh the owning thread of a mutated artifact.

        Threads are created and deleted elsewhere, so a missing thread is
        skipped rather than treated as an error.
        """
        if not thread_id:
            return None

        with self._locks.hold(thread_id):
            thread = self._threads.read_thread(thread_id)
            if thread is None:
                logger.debug(f"Skipping refresh for missing thread {thread_id}")
                self._locks.discard(thread_id)
                return None
            return self.refresh(thread, persist=True)

    def forget_thread(self, thread_id: str) -> None:
        """Drop the refresh lock of a deleted thread."""
        self._locks.discard(thread_id)

    def set_user_prompt(self, thread_id: str, prompt: str | None) -> RefreshResult:
        """
        Replace a thread's user instructions and recompose its prompt.

        Raises:
            NotFoundError: If the thread does not exist
        """
        with self._locks.hold(thread_id):
            thread = self._threads.get_thread(thread_id)
            thread.system_prompt_user = (
                (prompt or "").strip() or self._threads.default_system_prompt
            )
            return self.refresh(thread, persist=True)
