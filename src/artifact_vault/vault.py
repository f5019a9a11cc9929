"""
Component wiring.

Builds the index, thread repository, composer and store from settings so
the store notifies the composer of every mutation.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from artifact_vault.artifacts.index import ArtifactIndex
from artifact_vault.artifacts.locks import LockRegistry
from artifact_vault.artifacts.storage import ArtifactStore
from artifact_vault.config import Settings
from artifact_vault.threads.composer import ThreadComposer
from artifact_vault.threads.repository import ThreadRepository


@dataclass
class Vault:
    """The wired components of one data directory."""

    settings: Settings
    index: ArtifactIndex
    threads: ThreadRepository
    composer: ThreadComposer
    store: ArtifactStore

    def close(self) -> None:
        self.index.close()


def open_vault(
    settings: Settings | None = None,
    *,
    clock: Callable[[], datetime] | None = None,
    id_factory: Callable[[], str] | None = None,
) -> Vault:
    """
    Open the vault rooted at ``settings.data_dir``.

    Args:
        settings: Runtime settings (default: loaded from environment)
        clock: Timestamp source shared by store and thread repository
        id_factory: ID source shared by store and thread repository

    Returns:
        Vault with isolated lock registries
    """
    settings = settings or Settings.from_env()

    index = ArtifactIndex(settings.index_path)
    threads = ThreadRepository(
        settings.threads_dir,
        default_system_prompt=settings.default_system_prompt,
        clock=clock,
        id_factory=id_factory,
    )
    composer = ThreadComposer(threads, index, locks=LockRegistry())
    store = ArtifactStore(
        settings.artifacts_dir,
        index=index,
        locks=LockRegistry(),
        composer=composer,
        clock=clock,
        id_factory=id_factory,
        default_basename=settings.default_artifact_basename,
    )
    return Vault(
        settings=settings,
        index=index,
        threads=threads,
        composer=composer,
        store=store,
    )
