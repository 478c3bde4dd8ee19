"""Markdown renderers for plan sessions.

Three renderings are built from a session: the persisted plan document,
the completion message shown to the user, and the clarifying-question
message. All are pure functions of the session, so re-rendering an
unchanged session yields byte-identical text.
"""

from __future__ import annotations

from datetime import UTC

from planmode.schemas.session import PlanClarification, PlanSession, PlanToolExecution
from planmode.tools.executors import truncate_output

FAILURE_NOTICE = (
    "Plan Mode failed to generate a plan. Check logs for additional details."
)
SAVE_FAILED_NOTICE = "Plan saved in memory (could not write the plan file to the workspace)."


def format_timestamp(session: PlanSession) -> str:
    """ISO-8601 UTC timestamp of session creation, millisecond precision."""
    created = session.created_at.astimezone(UTC)
    return created.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _format_clarification_history(clarifications: list[PlanClarification]) -> str:
    return "\n".join(
        f"{index}. **{entry.question}**\n   - {entry.answer}"
        for index, entry in enumerate(clarifications, start=1)
    )


def render_clarifying_response(
    question: str,
    clarifications: list[PlanClarification],
) -> str:
    """Message asking the user a clarifying question."""
    history = _format_clarification_history(clarifications)
    history_block = f"\n\nCurrent clarifications:\n{history}" if history else ""
    return (
        f"### Clarifying Question\n{question}{history_block}\n\n"
        "Please reply with the requested details so the planner can continue."
    )


def render_plan_document(session: PlanSession) -> str:
    """Markdown plan document persisted to the workspace."""
    lines: list[str] = [
        f"# Plan for {session.task}",
        "",
        f"Generated: {format_timestamp(session)}",
        "",
        "## Clarifications",
    ]
    if not session.clarifications:
        lines.append("- None provided")
    for index, clarification in enumerate(session.clarifications, start=1):
        lines.append(f"{index}. {clarification.question}")
        lines.append(f"   - {clarification.answer}")
    lines.append("")

    lines.extend([
        "## Plan",
        "```text",
        session.plan_markdown or "(planner did not return a plan)",
        "```",
        "",
        "## Tool Observations",
    ])
    if not session.tool_executions:
        lines.append("- No tools executed")
    for execution in session.tool_executions:
        lines.append(f"- {execution.id} {execution.tool}[{execution.argument}]")
        lines.append(
            f"  - ERROR: {execution.error}" if execution.error
            else f"  - {execution.output}"
        )
    lines.append("")

    lines.append("## Final Summary")
    lines.append(session.solver_summary or "Summary pending")

    return "\n".join(lines)


def _format_tool_observations(executions: list[PlanToolExecution]) -> str:
    if not executions:
        return "No tools were executed."

    entries = []
    for execution in executions:
        body = (
            f"ERROR: {execution.error}" if execution.error
            else truncate_output(execution.output)
        )
        entries.append(f"- {execution.id} {execution.tool}[{execution.argument}]\n  {body}")
    return "\n".join(entries)


def render_completion_response(session: PlanSession, *, save_failed: bool = False) -> str:
    """Message shown to the user once a session completes.

    ``save_failed`` marks a workspace write that raised, as opposed to no
    workspace being available.
    """
    clarifications = _format_clarification_history(session.clarifications) or "(none)"

    plan_block = (
        f"\n\n### Planner Draft\n\n```text\n{session.plan_markdown}\n```"
        if session.plan_markdown else ""
    )
    tool_block = (
        f"\n\n### Tool Observations\n{_format_tool_observations(session.tool_executions)}"
    )
    solver_block = (
        f"\n\n### Solver Summary\n{session.solver_summary}"
        if session.solver_summary else ""
    )
    if session.plan_file_path:
        storage_line = f"Plan saved to `{session.plan_file_path}`."
    elif save_failed:
        storage_line = SAVE_FAILED_NOTICE
    else:
        storage_line = "Plan saved in memory (workspace folder not detected)."

    return (
        f"## Plan ready\n{storage_line}\n\n### Clarifications\n{clarifications}"
        f"{plan_block}{tool_block}{solver_block}"
    )
