"""
Configuration for Artifact Vault.

Settings are read from AV_* environment variables. The prompt markers are
fixed because downstream consumers search for them literally.
"""

import logging
import os
import re
from pathlib import Path

from pydantic import BaseModel, Field

from artifact_vault.core.exceptions import ConfigurationError

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."
DEFAULT_ARTIFACT_BASENAME = "artifact"

AUTO_PROMPT_MARKER_START = "-----\n[auto] thread_artifact_inventory\n"
AUTO_PROMPT_MARKER_END = "-----"

INVALID_FILENAME_CHARS = re.compile(r'[\\/:*?"<>|]')

DEFAULT_CONTEXT_BEFORE = 2
DEFAULT_CONTEXT_AFTER = 2
DEFAULT_MAX_MATCHES = 10

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class Settings(BaseModel):
    """
    Runtime settings.

    Environment variables:
    - AV_DATA_DIR: Root directory for artifacts and threads
    - AV_DEFAULT_SYSTEM_PROMPT: Prompt used when a thread has none
    - AV_DEFAULT_ARTIFACT_BASENAME: Fallback for unusable filenames
    - AV_LOG_LEVEL: Logging level name (DEBUG, INFO, ...)
    """

    data_dir: Path = Field(default=Path("var/artifact_vault"))
    default_system_prompt: str = DEFAULT_SYSTEM_PROMPT
    default_artifact_basename: str = DEFAULT_ARTIFACT_BASENAME
    log_level: str = "INFO"

    @property
    def artifacts_dir(self) -> Path:
        return self.data_dir / "artifacts"

    @property
    def threads_dir(self) -> Path:
        return self.data_dir / "threads"

    @property
    def index_path(self) -> Path:
        return self.artifacts_dir / ".index.db"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from the environment."""
        log_level = os.getenv("AV_LOG_LEVEL", "INFO").upper()
        if not isinstance(logging.getLevelName(log_level), int):
            raise ConfigurationError(
                f"Unknown log level: {log_level}",
                env_var="AV_LOG_LEVEL",
            )

        return cls(
            data_dir=Path(os.getenv("AV_DATA_DIR", "var/artifact_vault")),
            default_system_prompt=os.getenv(
                "AV_DEFAULT_SYSTEM_PROMPT", DEFAULT_SYSTEM_PROMPT
            ),
            default_artifact_basename=os.getenv(
                "AV_DEFAULT_ARTIFACT_BASENAME", DEFAULT_ARTIFACT_BASENAME
            ),
            log_level=log_level,
        )


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with the project format."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
