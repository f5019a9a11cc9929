"""Pytest configuration and fixtures."""

import itertools
import os
import tempfile
from pathlib import Path
from typing import Callable, Generator

import pytest

from artifact_vault.artifacts.storage import ArtifactStore
from artifact_vault.config import Settings
from artifact_vault.threads.composer import ThreadComposer
from artifact_vault.threads.repository import ThreadRepository
from artifact_vault.vault import Vault, open_vault

# Keep test runs quiet and independent of the caller's environment
os.environ.setdefault("AV_LOG_LEVEL", "WARNING")


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Provide a temporary directory that is cleaned up after the test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings(temp_dir: Path) -> Settings:
    """Provide settings rooted in the temporary directory."""
    return Settings(data_dir=temp_dir / "data")


@pytest.fixture
def id_factory() -> Callable[[], str]:
    """Provide short, predictable IDs: a1, a2, ..."""
    counter = itertools.count(1)
    return lambda: f"a{next(counter)}"


@pytest.fixture
def vault(settings: Settings, id_factory: Callable[[], str]) -> Generator[Vault, None, None]:
    """Provide a fully wired vault with a temporary data directory."""
    opened = open_vault(settings, id_factory=id_factory)
    yield opened
    opened.close()


@pytest.fixture
def store(vault: Vault) -> ArtifactStore:
    """Provide the vault's artifact store."""
    return vault.store


@pytest.fixture
def threads(vault: Vault) -> ThreadRepository:
    """Provide the vault's thread repository."""
    return vault.threads


@pytest.fixture
def composer(vault: Vault) -> ThreadComposer:
    """Provide the vault's thread composer."""
    return vault.composer
