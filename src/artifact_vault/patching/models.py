"""
Pydantic models for pattern-based patch requests.

Edit payloads arrive as loosely-typed dictionaries from tool calls and are
validated here into a tagged union keyed by ``edit_type`` before they reach
the engine.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, ValidationError, field_validator

from artifact_vault.core.exceptions import InvalidArgumentError


class EditKind(Enum):
    """Kinds of structural edits."""

    REPLACE = "replace"
    DELETE = "delete"
    INSERT_BEFORE = "insert_before"
    INSERT_AFTER = "insert_after"


def _require_tokens(v: str) -> str:
    if not v or not v.strip():
        raise ValueError("Pattern must contain at least one non-whitespace character")
    return v


class _EditBase(BaseModel):
    start_pattern: str = Field(description="Pattern locating the start of the edit")

    @field_validator("start_pattern")
    @classmethod
    def validate_start_pattern(cls, v: str) -> str:
        return _require_tokens(v)

    @property
    def kind(self) -> EditKind:
        return EditKind(self.edit_type)


class ReplaceEdit(_EditBase):
    """Replace the span from start_pattern through end_pattern."""

    edit_type: Literal["replace"] = "replace"
    end_pattern: str = Field(description="Pattern locating the end of the span")
    new_content: str = Field(default="", description="Replacement text")

    @field_validator("end_pattern")
    @classmethod
    def validate_end_pattern(cls, v: str) -> str:
        return _require_tokens(v)

    @field_validator("new_content", mode="before")
    @classmethod
    def default_new_content(cls, v):
        return "" if v is None else v


class DeleteEdit(_EditBase):
    """Delete the span from start_pattern through end_pattern."""

    edit_type: Literal["delete"] = "delete"
    end_pattern: str = Field(description="Pattern locating the end of the span")

    @field_validator("end_pattern")
    @classmethod
    def validate_end_pattern(cls, v: str) -> str:
        return _require_tokens(v)


class InsertBeforeEdit(_EditBase):
    """Insert new_content immediately before each start_pattern match."""

    edit_type: Literal["insert_before"] = "insert_before"
    new_content: str = Field(default="", description="Text to insert")

    @field_validator("new_content", mode="before")
    @classmethod
    def default_new_content(cls, v):
        return "" if v is None else v


class InsertAfterEdit(_EditBase):
    """Insert new_content immediately after each start_pattern match."""

    edit_type: Literal["insert_after"] = "insert_after"
    new_content: str = Field(default="", description="Text to insert")

    @field_validator("new_content", mode="before")
    @classmethod
    def default_new_content(cls, v):
        return "" if v is None else v


EditRequest = Annotated[
    Union[ReplaceEdit, DeleteEdit, InsertBeforeEdit, InsertAfterEdit],
    Field(discriminator="edit_type"),
]

_edit_list_adapter = TypeAdapter(list[EditRequest])


def parse_edits(edits: Any) -> list[EditRequest]:
    """
    Validate raw edit payloads into typed edit requests.

    Already-typed requests pass through unchanged.

    Raises:
        InvalidArgumentError: If the list is empty or any edit is malformed
    """
    if not isinstance(edits, (list, tuple)) or not edits:
        raise InvalidArgumentError(
            "edits must be a non-empty array",
            argument="edits",
        )

    payload = [
        edit.model_dump() if isinstance(edit, BaseModel) else _normalize_kind(edit)
        for edit in edits
    ]
    try:
        return _edit_list_adapter.validate_python(payload)
    except ValidationError as e:
        raise InvalidArgumentError(
            f"Invalid edit request: {e.errors()[0].get('msg', 'validation failed')}",
            argument="edits",
            details={"errors": len(e.errors())},
        ) from e


def _normalize_kind(edit: Any) -> Any:
    if isinstance(edit, dict) and isinstance(edit.get("edit_type"), EditKind):
        return {**edit, "edit_type": edit["edit_type"].value}
    return edit


@dataclass(frozen=True)
class Match:
    """A whitespace-trimmed pattern match against the original content."""

    start_offset: int
    end_offset: int
    text: str


@dataclass(frozen=True)
class ResolvedEdit:
    """An edit resolved to concrete offsets against the original content."""

    kind: EditKind
    start_offset: int
    end_offset: int
    new_content: str
