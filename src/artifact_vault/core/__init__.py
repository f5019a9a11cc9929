"""
Artifact Vault Core Module.

Provides the exception hierarchy shared by every component.
"""

__all__ = [
    "ArtifactVaultError",
    "NotFoundError",
    "AlreadyExistsError",
    "InvalidArgumentError",
    "PatchError",
    "PatternNotFoundError",
    "NoValidPairingError",
    "StorageFailureError",
    "ConfigurationError",
    "format_exception",
]

from artifact_vault.core.exceptions import (
    AlreadyExistsError,
    ArtifactVaultError,
    ConfigurationError,
    InvalidArgumentError,
    NoValidPairingError,
    NotFoundError,
    PatchError,
    PatternNotFoundError,
    StorageFailureError,
    format_exception,
)
