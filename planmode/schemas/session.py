"""Plan session schemas.

Defines the PlanSession record that carries one task through the
orchestrate -> plan -> execute -> solve lifecycle, the per-step
PlanToolExecution record, and the transient OrchestratorDecision.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import StrEnum

from pydantic import BaseModel, Field, model_validator

from planmode.schemas.messages import ChatMessage


class PlanStatus(StrEnum):
    """Lifecycle states of a plan session."""

    ORCHESTRATING = "orchestrating"
    AWAITING_CLARIFICATIONS = "awaiting_clarifications"
    PLANNING = "planning"
    EXECUTING_TOOLS = "executing_tools"
    SOLVING = "solving"
    COMPLETED = "completed"


class OrchestratorAction(StrEnum):
    """Decisions the orchestrator stage can make."""

    CLARIFY = "clarify"
    PROCEED = "proceed"


class PlanClarification(BaseModel):
    """One answered clarifying question."""

    question: str = Field(description="Question asked by the orchestrator")
    answer: str = Field(description="Answer supplied by the user")


class PlanToolExecution(BaseModel):
    """Result of running one #E step from the plan."""

    id: str = Field(description="Step reference token, e.g. '#E1'")
    tool: str = Field(description="Tool name as written in the plan")
    argument: str = Field(description="Argument after #E reference substitution")
    output: str = Field(default="", description="Tool output (empty on error)")
    error: str | None = Field(default=None, description="Failure description, if any")


class OrchestratorDecision(BaseModel):
    """Parsed orchestrator output for a single orchestration pass."""

    action: OrchestratorAction = Field(description="clarify or proceed")
    question: str | None = Field(default=None, description="Clarifying question (clarify only)")
    summary: str | None = Field(default=None, description="One-line task summary (proceed)")
    reasoning: str | None = Field(default=None, description="Why the decision was made")


class PlanSession(BaseModel):
    """One task's end-to-end plan-mode lifecycle.

    ``task_history``, ``clarifications`` and ``orchestrator_messages`` only
    ever grow. ``pending_clarification`` is set exactly while the session
    is awaiting a clarification answer.
    """

    id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Unique session identifier (UUID v4)",
    )
    created_at: datetime = Field(
        default_factory=lambda: datetime.now(UTC),
        description="When the session was created",
    )
    task: str = Field(description="Original task text")
    task_history: list[str] = Field(
        default_factory=list, description="All task inputs, original first",
    )
    status: PlanStatus = Field(
        default=PlanStatus.ORCHESTRATING, description="Current lifecycle state",
    )
    clarifications: list[PlanClarification] = Field(
        default_factory=list, description="Answered clarifying questions",
    )
    pending_clarification: str | None = Field(
        default=None, description="Question awaiting an answer",
    )
    plan_markdown: str | None = Field(default=None, description="Planner output")
    tool_executions: list[PlanToolExecution] = Field(
        default_factory=list, description="Results of the latest tool pass",
    )
    solver_summary: str | None = Field(default=None, description="Final synthesized answer")
    plan_file_path: str | None = Field(
        default=None, description="Where the plan document was persisted",
    )
    orchestrator_messages: list[ChatMessage] = Field(
        default_factory=list, description="Transcript fed to the orchestrator stage",
    )

    @model_validator(mode="after")
    def _check_pending_clarification(self) -> PlanSession:
        awaiting = self.status == PlanStatus.AWAITING_CLARIFICATIONS
        if awaiting != (self.pending_clarification is not None):
            raise ValueError(
                "pending_clarification must be set iff status is "
                "awaiting_clarifications"
            )
        return self

    @property
    def additional_inputs(self) -> list[str]:
        """Task refinements submitted after the original task."""
        return self.task_history[1:]

    def snapshot(self) -> PlanSession:
        """Deep copy safe to hand to observers."""
        return self.model_copy(deep=True)
