"""
Per-key exclusive locks.

Mutations that read ``current_version`` and write ``current_version + 1``
must not interleave for the same artifact. Different keys never contend.
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class LockRegistry:
    """Hands out one lock per key, created on first use."""

    def __init__(self) -> None:
        self._locks: dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()  # For _locks dict access

    def _get_lock(self, key: str) -> threading.RLock:
        """Get or create the lock for a key."""
        with self._registry_lock:
            if key not in self._locks:
                self._locks[key] = threading.RLock()
            return self._locks[key]

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        """Hold the exclusive lock for ``key`` for the duration of the block."""
        lock = self._get_lock(key)
        with lock:
            yield

    def discard(self, key: str) -> None:
        """
        Forget the lock for a key whose entity no longer exists.

        A caller still waiting on the old lock proceeds on it and finds
        the entity gone.
        """
        with self._registry_lock:
            self._locks.pop(key, None)

    def __len__(self) -> int:
        with self._registry_lock:
            return len(self._locks)
