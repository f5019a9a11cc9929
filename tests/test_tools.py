"""Tests for the artifact tool-call adapter."""

import pytest

from artifact_vault.artifacts import TOOL_DEFINITIONS, ArtifactStore, ArtifactToolbox
from artifact_vault.threads.repository import ThreadRepository


@pytest.fixture
def toolbox(store: ArtifactStore) -> ArtifactToolbox:
    """Provide a toolbox bound to thread t1."""
    return ArtifactToolbox(store, thread_id="t1")


@pytest.fixture
def created_id(toolbox: ArtifactToolbox) -> str:
    """Create a three-line artifact through the toolbox and return its ID."""
    result = toolbox.execute(
        "create_artifact",
        {"filename": "plan.md", "content": "one\ntwo\nthree", "description": "The plan"},
    )
    assert result.success
    return result.data["artifact_id"]


class TestToolDefinitions:
    """Tests for the published tool schemas."""

    def test_every_definition_has_handler(self, toolbox: ArtifactToolbox) -> None:
        names = [definition["name"] for definition in TOOL_DEFINITIONS]
        assert names == toolbox.tool_names

    def test_required_arguments(self) -> None:
        by_name = {d["name"]: d["parameters"]["required"] for d in TOOL_DEFINITIONS}
        assert by_name["patch_artifact"] == ["artifact_id", "edits"]
        assert by_name["search_in_artifact"] == ["artifact_id", "search_pattern"]


class TestToolExecution:
    """Tests for successful tool calls."""

    def test_create_artifact(self, toolbox: ArtifactToolbox, store: ArtifactStore) -> None:
        result = toolbox.execute("create_artifact", {"filename": "plan.md", "content": "x"})

        assert result.success
        assert result.message == "Successfully created artifact: plan.md"
        assert result.data["version"] == 1
        assert result.data["storage_filename"] == "plan_v1.md"
        assert store.get_record(result.data["artifact_id"]).thread_id == "t1"

    def test_create_binds_to_thread(
        self, toolbox: ArtifactToolbox, threads: ThreadRepository
    ) -> None:
        threads.create_thread(thread_id="t1")
        result = toolbox.execute("create_artifact", {"filename": "a.txt", "content": "x"})

        assert threads.get_thread("t1").artifact_ids == [result.data["artifact_id"]]

    def test_replace_artifact(self, toolbox: ArtifactToolbox, created_id: str) -> None:
        result = toolbox.execute(
            "replace_artifact",
            {"artifact_id": created_id, "content": "new", "description": "Rewritten"},
        )

        assert result.success
        assert result.message == "Successfully updated artifact to version 2"
        assert result.data["version"] == 2

    def test_read_artifact(self, toolbox: ArtifactToolbox, created_id: str) -> None:
        result = toolbox.execute("read_artifact", {"artifact_id": created_id})

        assert result.success
        assert result.message == "Successfully read artifact plan.md (v1)"
        assert result.data["content"] == "one\ntwo\nthree"

    def test_read_artifact_range(self, toolbox: ArtifactToolbox, created_id: str) -> None:
        result = toolbox.execute(
            "read_artifact", {"artifact_id": created_id, "range": "top", "line_count": 1}
        )

        assert result.message == "Successfully read artifact plan.md (v1) - top 1 of 3 lines"
        assert result.data["content"] == "one"
        assert result.data["is_truncated"] is True

    def test_patch_artifact(self, toolbox: ArtifactToolbox, created_id: str) -> None:
        result = toolbox.execute(
            "patch_artifact",
            {
                "artifact_id": created_id,
                "edits": [
                    {"edit_type": "replace", "start_pattern": "two", "end_pattern": "two", "new_content": "2"}
                ],
            },
        )

        assert result.success
        assert result.message == "Successfully patched artifact with 1 edit(s). New version: 2"
        assert result.data["stats"] == {"original_lines": 3, "new_lines": 3, "lines_diff": 0}

    def test_search_in_artifact(self, toolbox: ArtifactToolbox, created_id: str) -> None:
        result = toolbox.execute(
            "search_in_artifact",
            {"artifact_id": created_id, "search_pattern": "t", "max_matches": 1},
        )

        assert result.success
        assert result.message == "Found 2 match(es) for pattern in plan.md (showing first 1)"
        assert result.data["has_more_matches"] is True
        assert result.data["matches"][0]["context_info"] == "Lines 1-3 (match at 2-2)"


class TestToolFailures:
    """Tests for domain errors surfaced as failed results."""

    def test_unknown_tool(self, toolbox: ArtifactToolbox) -> None:
        result = toolbox.execute("launch_rocket", {})

        assert not result.success
        assert result.error_type == "InvalidArgumentError"
        assert result.error == "Unknown tool: launch_rocket"

    def test_missing_argument(self, toolbox: ArtifactToolbox) -> None:
        result = toolbox.execute("create_artifact", {"filename": "a.txt"})

        assert not result.success
        assert result.error == "content is required"

    def test_unknown_artifact(self, toolbox: ArtifactToolbox) -> None:
        result = toolbox.execute("read_artifact", {"artifact_id": "missing"})

        assert not result.success
        assert result.error_type == "NotFoundError"

    def test_patch_pattern_not_found(
        self, toolbox: ArtifactToolbox, created_id: str, store: ArtifactStore
    ) -> None:
        result = toolbox.execute(
            "patch_artifact",
            {
                "artifact_id": created_id,
                "edits": [{"edit_type": "insert_after", "start_pattern": "four", "new_content": "!"}],
            },
        )

        assert not result.success
        assert result.error_type == "PatternNotFoundError"
        assert result.error.startswith('start_pattern not found: "four')
        assert store.get_record(created_id).current_version == 1

    def test_invalid_line_count(self, toolbox: ArtifactToolbox, created_id: str) -> None:
        result = toolbox.execute(
            "read_artifact", {"artifact_id": created_id, "range": "bottom", "line_count": 0}
        )
        assert not result.success
        assert result.error_type == "InvalidArgumentError"

    def test_string_line_count(self, toolbox: ArtifactToolbox, created_id: str) -> None:
        result = toolbox.execute(
            "read_artifact", {"artifact_id": created_id, "range": "top", "line_count": "2"}
        )
        assert result.success
        assert result.data["content"] == "one\ntwo"

    def test_fractional_line_count(self, toolbox: ArtifactToolbox, created_id: str) -> None:
        result = toolbox.execute(
            "read_artifact", {"artifact_id": created_id, "range": "top", "line_count": 2.5}
        )
        assert not result.success
        assert result.error == "line_count must be a positive integer"

    def test_non_integer_search_count(self, toolbox: ArtifactToolbox, created_id: str) -> None:
        result = toolbox.execute(
            "search_in_artifact",
            {"artifact_id": created_id, "search_pattern": "t", "context_before": "lots"},
        )
        assert not result.success
        assert result.error_type == "InvalidArgumentError"
