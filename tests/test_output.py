"""Tests for planmode.output — plan document, responses and persistence."""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from planmode.output.renderer import (
    SAVE_FAILED_NOTICE,
    format_timestamp,
    render_clarifying_response,
    render_completion_response,
    render_plan_document,
)
from planmode.output.writer import PlanDocumentWriter
from planmode.schemas.session import (
    PlanClarification,
    PlanSession,
    PlanStatus,
    PlanToolExecution,
)
from planmode.tools.workspace import WorkspaceResolver

# ── Factories ──────────────────────────────────────────────────────


def _make_session(**overrides) -> PlanSession:
    defaults = {
        "id": "0123456789abcdef",
        "created_at": datetime(2025, 3, 4, 5, 6, 7, 890000, tzinfo=UTC),
        "task": "add unit tests for parser.go",
        "task_history": ["add unit tests for parser.go"],
        "status": PlanStatus.COMPLETED,
        "clarifications": [
            PlanClarification(question="Which framework?", answer="testing package"),
        ],
        "plan_markdown": "Plan: look\n#E1 = ListFiles[.]\n#E2 = DeleteFile[tmp]",
        "tool_executions": [
            PlanToolExecution(id="#E1", tool="ListFiles", argument=".", output="./parser.go"),
            PlanToolExecution(
                id="#E2", tool="DeleteFile", argument="tmp",
                error="Unsupported tool: DeleteFile",
            ),
        ],
        "solver_summary": "## Summary\nWrite table-driven tests.",
        "plan_file_path": "/ws/.planmode/plans/plan.md",
    }
    defaults.update(overrides)
    return PlanSession(**defaults)


# ── Plan document ─────────────────────────────────────────────────


class TestRenderPlanDocument:
    def test_full_document(self):
        assert render_plan_document(_make_session()) == "\n".join([
            "# Plan for add unit tests for parser.go",
            "",
            "Generated: 2025-03-04T05:06:07.890Z",
            "",
            "## Clarifications",
            "1. Which framework?",
            "   - testing package",
            "",
            "## Plan",
            "```text",
            "Plan: look",
            "#E1 = ListFiles[.]",
            "#E2 = DeleteFile[tmp]",
            "```",
            "",
            "## Tool Observations",
            "- #E1 ListFiles[.]",
            "  - ./parser.go",
            "- #E2 DeleteFile[tmp]",
            "  - ERROR: Unsupported tool: DeleteFile",
            "",
            "## Final Summary",
            "## Summary",
            "Write table-driven tests.",
        ])

    def test_placeholders_when_empty(self):
        session = _make_session(
            status=PlanStatus.ORCHESTRATING,
            clarifications=[],
            plan_markdown=None,
            tool_executions=[],
            solver_summary=None,
        )
        document = render_plan_document(session)
        assert "- None provided" in document
        assert "(planner did not return a plan)" in document
        assert "- No tools executed" in document
        assert document.endswith("## Final Summary\nSummary pending")

    def test_idempotent(self):
        session = _make_session()
        assert render_plan_document(session) == render_plan_document(session)

    def test_timestamp_format(self):
        assert format_timestamp(_make_session()) == "2025-03-04T05:06:07.890Z"


# ── Completion response ───────────────────────────────────────────


class TestRenderCompletionResponse:
    def test_full_response(self):
        response = render_completion_response(_make_session())
        assert response.startswith(
            "## Plan ready\nPlan saved to `/ws/.planmode/plans/plan.md`.\n\n"
            "### Clarifications\n1. **Which framework?**\n   - testing package"
        )
        assert "### Planner Draft\n\n```text\nPlan: look\n" in response
        assert "### Tool Observations\n- #E1 ListFiles[.]\n  ./parser.go" in response
        assert "- #E2 DeleteFile[tmp]\n  ERROR: Unsupported tool: DeleteFile" in response
        assert response.endswith("### Solver Summary\n## Summary\nWrite table-driven tests.")

    def test_in_memory_storage_line(self):
        response = render_completion_response(_make_session(plan_file_path=None))
        assert "Plan saved in memory (workspace folder not detected)." in response

    def test_save_failed_storage_line(self):
        response = render_completion_response(
            _make_session(plan_file_path=None), save_failed=True,
        )
        assert SAVE_FAILED_NOTICE in response
        assert "workspace folder not detected" not in response

    def test_empty_sections(self):
        response = render_completion_response(_make_session(
            clarifications=[], plan_markdown=None, tool_executions=[], solver_summary=None,
        ))
        assert "### Clarifications\n(none)" in response
        assert "Planner Draft" not in response
        assert "No tools were executed." in response
        assert "Solver Summary" not in response

    def test_observations_truncated(self):
        execution = PlanToolExecution(id="#E1", tool="ReadFile", argument="a", output="z" * 2500)
        response = render_completion_response(_make_session(tool_executions=[execution]))
        assert "z" * 2000 + "\n... (truncated 500 characters)" in response
        assert "z" * 2001 not in response

    def test_idempotent(self):
        session = _make_session()
        assert render_completion_response(session) == render_completion_response(session)


# ── Clarifying response ───────────────────────────────────────────


class TestRenderClarifyingResponse:
    def test_question_only(self):
        response = render_clarifying_response("Which file should be tested?", [])
        assert response == (
            "### Clarifying Question\nWhich file should be tested?\n\n"
            "Please reply with the requested details so the planner can continue."
        )

    def test_with_history(self):
        history = [PlanClarification(question="Language?", answer="Go")]
        response = render_clarifying_response("Which file?", history)
        assert "Current clarifications:\n1. **Language?**\n   - Go" in response


# ── Writer ────────────────────────────────────────────────────────


class TestPlanDocumentWriter:
    def test_writes_under_plans_dir(self, tmp_path: Path):
        writer = PlanDocumentWriter(WorkspaceResolver(tmp_path))
        session = _make_session()
        location = writer.persist(session, "# doc")

        expected = tmp_path / ".planmode" / "plans" / "plan-20250304-050607-01234567.md"
        assert location == str(expected)
        assert expected.read_text(encoding="utf-8") == "# doc"

    def test_custom_plans_dir(self, tmp_path: Path):
        writer = PlanDocumentWriter(WorkspaceResolver(tmp_path), plans_dir="docs/plans")
        location = writer.persist(_make_session(), "x")
        assert Path(location).parent == tmp_path / "docs" / "plans"

    def test_no_workspace_returns_none(self):
        writer = PlanDocumentWriter(WorkspaceResolver(None))
        assert writer.plan_path(_make_session()) is None
        assert writer.persist(_make_session(), "x") is None

    def test_write_failure_propagates(self, tmp_path: Path):
        (tmp_path / "blocked").write_text("not a dir", encoding="utf-8")
        writer = PlanDocumentWriter(WorkspaceResolver(tmp_path), plans_dir="blocked")
        with pytest.raises(OSError):
            writer.persist(_make_session(), "x")
