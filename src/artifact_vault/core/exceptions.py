"""
Artifact Vault Exception Hierarchy.

Defines all custom exceptions raised by the artifact store, the patch
engine and the thread composer.
"""

from typing import Any


class ArtifactVaultError(Exception):
    """
    Base exception for all Artifact Vault errors.

    All custom exceptions inherit from this class, allowing
    generic catch blocks and consistent error handling.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None):
        """
        Initialize an ArtifactVaultError.

        Args:
            message: Human-readable error message
            details: Optional structured data for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        """Return string representation with details."""
        base = self.message
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{base} ({details_str})"
        return base

    def to_dict(self) -> dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "details": self.details,
        }


class NotFoundError(ArtifactVaultError):
    """Raised when an artifact, artifact version or thread does not exist."""

    def __init__(
        self,
        message: str = "Entity not found",
        *,
        entity_type: str | None = None,
        entity_id: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if entity_type:
            details["entity_type"] = entity_type
        if entity_id:
            details["entity_id"] = entity_id

        super().__init__(message, details=details)
        self.entity_type = entity_type
        self.entity_id = entity_id


class AlreadyExistsError(ArtifactVaultError):
    """Raised when creating a record whose caller-supplied ID is taken."""

    def __init__(
        self,
        message: str = "Entity already exists",
        *,
        entity_type: str | None = None,
        entity_id: str | None = None,
    ):
        details: dict[str, Any] = {}
        if entity_type:
            details["entity_type"] = entity_type
        if entity_id:
            details["entity_id"] = entity_id

        super().__init__(message, details=details)
        self.entity_type = entity_type
        self.entity_id = entity_id


class InvalidArgumentError(ArtifactVaultError):
    """
    Raised when a caller supplies a malformed request.

    Covers:
    - Malformed or empty edit lists
    - Missing required patterns
    - Non-positive line counts or search bounds
    - Text operations on content that is not valid UTF-8
    """

    def __init__(
        self,
        message: str,
        *,
        argument: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if argument:
            details["argument"] = argument

        super().__init__(message, details=details)
        self.argument = argument


class PatchError(ArtifactVaultError):
    """
    Errors while resolving edit requests against content.

    A patch error always means no edit was applied.
    """


class PatternNotFoundError(PatchError):
    """Raised when a required start or end pattern matches nothing."""

    PREVIEW_LENGTH = 50

    def __init__(self, pattern: str, *, role: str = "start"):
        """
        Initialize a PatternNotFoundError.

        Args:
            pattern: The pattern that produced no matches
            role: Which pattern of the edit failed ("start" or "end")
        """
        preview = pattern[: self.PREVIEW_LENGTH]
        super().__init__(
            f'{role}_pattern not found: "{preview}..."',
            details={"role": role},
        )
        self.pattern = pattern
        self.role = role


class NoValidPairingError(PatchError):
    """Raised when no start match can be paired with a later end match."""

    def __init__(self, start_pattern: str, end_pattern: str):
        super().__init__("No valid start-end pairs found")
        self.start_pattern = start_pattern
        self.end_pattern = end_pattern


class StorageFailureError(ArtifactVaultError):
    """
    Raised when the persistence layer fails.

    The underlying exception is attached as ``__cause__`` by the
    raising site and summarised in ``details``.
    """

    def __init__(
        self,
        message: str,
        *,
        operation: str | None = None,
        cause: BaseException | None = None,
    ):
        details: dict[str, Any] = {}
        if operation:
            details["operation"] = operation
        if cause is not None:
            details["cause"] = f"{cause.__class__.__name__}: {cause}"

        super().__init__(message, details=details)
        self.operation = operation
        self.cause = cause


class ConfigurationError(ArtifactVaultError):
    """
    Errors in configuration loading or validation.

    Raised when an environment variable holds an unusable value.
    """

    def __init__(
        self,
        message: str,
        *,
        env_var: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        if env_var:
            details["env_var"] = env_var

        super().__init__(message, details=details)
        self.env_var = env_var


def format_exception(error: Exception) -> str:
    """
    Format an exception for user-friendly display.

    Args:
        error: The exception to format

    Returns:
        Formatted error message string
    """
    if isinstance(error, ArtifactVaultError):
        return str(error)
    return f"{error.__class__.__name__}: {error}"
