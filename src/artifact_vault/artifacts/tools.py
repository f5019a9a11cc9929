"""
Tool-call adapter for the conversation orchestrator.

Maps model tool calls (create_artifact, replace_artifact, read_artifact,
patch_artifact, search_in_artifact) onto store operations and converts
domain errors into structured failure results.
"""

import logging
from typing import Any, Callable

from pydantic import BaseModel, Field

from artifact_vault.config import (
    DEFAULT_CONTEXT_AFTER,
    DEFAULT_CONTEXT_BEFORE,
    DEFAULT_MAX_MATCHES,
)
from artifact_vault.core.exceptions import ArtifactVaultError, InvalidArgumentError

from .models import ContentEncoding, ReadRange
from .storage import ArtifactStore

logger = logging.getLogger(__name__)


_EDIT_ITEM_SCHEMA = {
    "type": "object",
    "properties": {
        "edit_type": {
            "type": "string",
            "enum": ["replace", "delete", "insert_before", "insert_after"],
            "description": "Type of edit operation",
        },
        "start_pattern": {
            "type": "string",
            "description": "Pattern to match the start position (whitespace normalized)",
        },
        "end_pattern": {
            "type": "string",
            "description": "Pattern to match the end position (required for replace/delete)",
        },
        "new_content": {
            "type": "string",
            "description": "New content to insert or replace with",
        },
    },
    "required": ["edit_type", "start_pattern"],
}

TOOL_DEFINITIONS: list[dict[str, Any]] = [
    {
        "type": "function",
        "name": "create_artifact",
        "description": "Create a new artifact (file) with the given filename and content.",
        "parameters": {
            "type": "object",
            "properties": {
                "filename": {"type": "string", "description": "Name of the file to create"},
                "content": {"type": "string", "description": "Complete content of the artifact"},
                "description": {"type": "string", "description": "What the artifact contains"},
            },
            "required": ["filename", "content"],
        },
    },
    {
        "type": "function",
        "name": "replace_artifact",
        "description": "Replace the whole content of an existing artifact with a new version.",
        "parameters": {
            "type": "object",
            "properties": {
                "artifact_id": {"type": "string", "description": "ID of the artifact to edit"},
                "content": {"type": "string", "description": "New complete content"},
                "description": {"type": "string", "description": "Updated description"},
            },
            "required": ["artifact_id", "content"],
        },
    },
    {
        "type": "function",
        "name": "read_artifact",
        "description": "Read an artifact, optionally only its first or last lines.",
        "parameters": {
            "type": "object",
            "properties": {
                "artifact_id": {"type": "string", "description": "ID of the artifact to read"},
                "version": {"type": "integer", "description": "Version to read (default: latest)"},
                "encoding": {"type": "string", "enum": ["utf-8", "base64"]},
                "range": {"type": "string", "enum": ["all", "top", "bottom"]},
                "line_count": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Lines to read when range is 'top' or 'bottom'",
                },
            },
            "required": ["artifact_id"],
        },
    },
    {
        "type": "function",
        "name": "patch_artifact",
        "description": (
            "Edit parts of an artifact using whitespace-insensitive pattern matching. "
            "If start_pattern matches several locations, the edit applies to all of them."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "artifact_id": {"type": "string", "description": "ID of the artifact to edit"},
                "edits": {"type": "array", "items": _EDIT_ITEM_SCHEMA},
            },
            "required": ["artifact_id", "edits"],
        },
    },
    {
        "type": "function",
        "name": "search_in_artifact",
        "description": "Search an artifact for a whitespace-insensitive pattern with context lines.",
        "parameters": {
            "type": "object",
            "properties": {
                "artifact_id": {"type": "string"},
                "version": {"type": "integer"},
                "search_pattern": {"type": "string"},
                "context_before": {"type": "integer", "default": DEFAULT_CONTEXT_BEFORE, "minimum": 0},
                "context_after": {"type": "integer", "default": DEFAULT_CONTEXT_AFTER, "minimum": 0},
                "max_matches": {"type": "integer", "default": DEFAULT_MAX_MATCHES, "minimum": 1},
            },
            "required": ["artifact_id", "search_pattern"],
        },
    },
]


class ToolResult(BaseModel):
    """Result of one tool call."""

    success: bool = Field(description="Whether the call succeeded")
    message: str | None = Field(default=None, description="Human-readable summary")
    error: str | None = Field(default=None, description="Error message if failed")
    error_type: str | None = Field(default=None, description="Exception class if failed")
    data: dict[str, Any] = Field(default_factory=dict, description="Operation payload")


def _require(arguments: dict[str, Any], name: str) -> Any:
    if arguments.get(name) is None:
        raise InvalidArgumentError(f"{name} is required", argument=name)
    return arguments[name]


class ArtifactToolbox:
    """Executes artifact tool calls on behalf of one thread."""

    def __init__(self, store: ArtifactStore, thread_id: str | None = None):
        """
        Initialize toolbox.

        Args:
            store: Artifact store to operate on
            thread_id: Thread that owns artifacts created through this toolbox
        """
        self._store = store
        self._thread_id = thread_id
        self._handlers: dict[str, Callable[[dict[str, Any]], ToolResult]] = {
            "create_artifact": self._create,
            "replace_artifact": self._replace,
            "read_artifact": self._read,
            "patch_artifact": self._patch,
            "search_in_artifact": self._search,
        }

    @property
    def tool_names(self) -> list[str]:
        return list(self._handlers)

    def execute(self, name: str, arguments: dict[str, Any] | None) -> ToolResult:
        """
        Run a tool call.

        Domain errors become ``success=False`` results; anything else
        propagates.
        """
        handler = self._handlers.get(name)
        try:
            if handler is None:
                raise InvalidArgumentError(f"Unknown tool: {name}", argument="name")
            return handler(arguments or {})
        except ArtifactVaultError as e:
            logger.warning(f"Tool {name} failed: {e}")
            return ToolResult(
                success=False,
                error=e.message,
                error_type=e.__class__.__name__,
            )

    def _create(self, arguments: dict[str, Any]) -> ToolResult:
        content = _require(arguments, "content")
        ref = self._store.create(
            _require(arguments, "filename"),
            content,
            metadata={"description": arguments.get("description") or ""},
            thread_id=self._thread_id,
        )
        return ToolResult(
            success=True,
            message=f"Successfully created artifact: {ref.display_filename}",
            data={
                "artifact_id": ref.artifact_id,
                "filename": ref.display_filename,
                "storage_filename": ref.storage_name,
                "version": ref.version,
                "path": ref.path,
            },
        )

    def _replace(self, arguments: dict[str, Any]) -> ToolResult:
        ref = self._store.append(
            _require(arguments, "artifact_id"),
            _require(arguments, "content"),
            metadata={"description": arguments.get("description") or ""},
        )
        return ToolResult(
            success=True,
            message=f"Successfully updated artifact to version {ref.version}",
            data={
                "artifact_id": ref.artifact_id,
                "filename": ref.display_filename,
                "storage_filename": ref.storage_name,
                "version": ref.version,
                "path": ref.path,
            },
        )

    def _read(self, arguments: dict[str, Any]) -> ToolResult:
        result = self._store.read(
            _require(arguments, "artifact_id"),
            version=arguments.get("version"),
            encoding=arguments.get("encoding") or ContentEncoding.UTF8,
            range=arguments.get("range") or ReadRange.ALL,
            line_count=arguments.get("line_count"),
        )
        suffix = ""
        if result.range is not ReadRange.ALL and result.total_lines is not None:
            suffix = f" - {result.range.value} {result.returned_lines} of {result.total_lines} lines"
        return ToolResult(
            success=True,
            message=f"Successfully read artifact {result.filename} (v{result.version}){suffix}",
            data=result.model_dump(mode="json"),
        )

    def _patch(self, arguments: dict[str, Any]) -> ToolResult:
        result = self._store.patch(
            _require(arguments, "artifact_id"), _require(arguments, "edits")
        )
        return ToolResult(
            success=True,
            message=(
                f"Successfully patched artifact with {result.edits_applied} edit(s). "
                f"New version: {result.version}"
            ),
            data={
                "artifact_id": result.artifact_id,
                "filename": result.display_filename,
                "version": result.version,
                "edits_applied": result.edits_applied,
                "stats": {
                    "original_lines": result.original_lines,
                    "new_lines": result.new_lines,
                    "lines_diff": result.lines_diff,
                },
            },
        )

    def _search(self, arguments: dict[str, Any]) -> ToolResult:
        context_before = arguments.get("context_before")
        context_after = arguments.get("context_after")
        max_matches = arguments.get("max_matches")
        result = self._store.search(
            _require(arguments, "artifact_id"),
            _require(arguments, "search_pattern"),
            version=arguments.get("version"),
            context_before=DEFAULT_CONTEXT_BEFORE if context_before is None else context_before,
            context_after=DEFAULT_CONTEXT_AFTER if context_after is None else context_after,
            max_matches=DEFAULT_MAX_MATCHES if max_matches is None else max_matches,
        )

        message = f"Found {result.total_matches} match(es) for pattern in {result.filename}"
        if result.has_more_matches:
            message += f" (showing first {result.returned_matches})"

        data = result.model_dump(mode="json")
        data["returned_matches"] = result.returned_matches
        data["has_more_matches"] = result.has_more_matches
        for match_data, match in zip(data["matches"], result.matches):
            match_data["context_info"] = match.context_info
        return ToolResult(success=True, message=message, data=data)
