"""Plan-mode engine: orchestrate -> plan -> execute tools -> solve.

Each call to ``submit()`` advances the current plan session as far as it
can go in one turn. The orchestrator stage either asks a clarifying
question (pausing the session until the next submit) or lets the session
run through planning, sequential tool execution and solving to
completion. A session snapshot is published after every transition and
after every tool step.

Model stages run one at a time and are drained fully before the next
starts. Cancelling the turn's CancellationToken aborts the in-flight
stage and leaves the session where it was; any other stage failure is
logged and reported with a single generic notice.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from enum import StrEnum
from pathlib import Path

from pydantic import BaseModel, Field

from planmode.cancellation import CancellationToken, StageCancelledError
from planmode.decision import parse_orchestrator_decision
from planmode.events import SessionEventEmitter
from planmode.output.renderer import (
    FAILURE_NOTICE,
    render_clarifying_response,
    render_completion_response,
    render_plan_document,
)
from planmode.output.writer import DocumentSink, PlanDocumentWriter
from planmode.prompts import render_prompt
from planmode.providers.base import ModelProvider
from planmode.providers.litellm_provider import LiteLLMProvider
from planmode.providers.registry import load_models, load_plan_config, select_model
from planmode.schemas.messages import ChatMessage, MessageRole, StageOutput
from planmode.schemas.pipeline import ModelConfig, PlanConfig
from planmode.schemas.session import (
    OrchestratorAction,
    PlanSession,
    PlanStatus,
    PlanToolExecution,
)
from planmode.schemas.streaming import StreamChunk
from planmode.state import accept_task, request_clarification, transition
from planmode.tools.executors import SEARCH_MAX_RESULTS
from planmode.tools.runner import execute_plan_tools
from planmode.tools.workspace import WorkspaceResolver

logger = logging.getLogger(__name__)

# Minimum step budget per stage
_ORCHESTRATOR_STEPS = 4
_PLANNER_STEPS = 8
_SOLVER_STEPS = 6

ReasoningCallback = Callable[[str, int], object]
# Receives (stage_number, chunk) for every streamed chunk
StreamCallback = Callable[[int, StreamChunk], object]


class TurnOutcome(StrEnum):
    """How a single submit() call ended."""

    CLARIFICATION = "clarification"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PlanTurnResult(BaseModel):
    """Result of advancing the session by one submitted input."""

    outcome: TurnOutcome = Field(description="How the turn ended")
    session_id: str = Field(description="Session the input was applied to")
    response: str = Field(default="", description="Text to show the user (empty when cancelled)")
    cost: float = Field(default=0.0, ge=0.0, description="Model cost in USD spent on this turn")


class PlanModeEngine:
    """Drives one plan session at a time on behalf of a single driver.

    Callers must not run two submit() calls concurrently; the engine does
    no locking of its own.
    """

    def __init__(
        self,
        provider: ModelProvider,
        workspace: WorkspaceResolver,
        *,
        plan_config: PlanConfig | None = None,
        emitter: SessionEventEmitter | None = None,
        document_sink: DocumentSink | None = None,
        on_reasoning: ReasoningCallback | None = None,
        on_stream: StreamCallback | None = None,
    ) -> None:
        self._provider = provider
        self._workspace = workspace
        self._config = plan_config or PlanConfig()
        self._emitter = emitter or SessionEventEmitter()
        self._sink = document_sink or PlanDocumentWriter(workspace, self._config.plans_dir)
        self._on_reasoning = on_reasoning
        self._on_stream = on_stream
        self._turn_cost = 0.0
        self._session: PlanSession | None = None
        self._chat_history: list[ChatMessage] = []
        self._last_response = ""

    @property
    def session(self) -> PlanSession | None:
        """The current (possibly completed) session."""
        return self._session

    @property
    def provider(self) -> ModelProvider:
        """Model provider every stage runs on."""
        return self._provider

    @property
    def emitter(self) -> SessionEventEmitter:
        """Emitter session updates are published on."""
        return self._emitter

    @property
    def chat_history(self) -> list[ChatMessage]:
        """User-visible transcript of inputs and responses."""
        return list(self._chat_history)

    @property
    def last_response(self) -> str:
        """The most recent clarifying or completion response."""
        return self._last_response

    async def submit(
        self,
        task: str,
        cancel_token: CancellationToken | None = None,
    ) -> PlanTurnResult:
        """Apply one user input and advance the session as far as possible."""
        text = task.strip()
        self._chat_history.append(ChatMessage(role=MessageRole.USER, content=text))

        session = accept_task(self._session, text)
        self._session = session
        self._publish(session)
        self._turn_cost = 0.0

        try:
            result = await self._advance(session, cancel_token)
        except StageCancelledError:
            logger.info("Plan mode aborted for task: %s", text)
            result = PlanTurnResult(outcome=TurnOutcome.CANCELLED, session_id=session.id)
        except asyncio.CancelledError:
            logger.info("Plan mode task cancelled for task: %s", text)
            raise
        except Exception:
            logger.exception("Plan mode failed for task: %s", text)
            result = PlanTurnResult(
                outcome=TurnOutcome.FAILED,
                session_id=session.id,
                response=FAILURE_NOTICE,
            )
        result.cost = self._turn_cost
        return result

    async def _advance(
        self,
        session: PlanSession,
        cancel_token: CancellationToken | None,
    ) -> PlanTurnResult:
        orchestrator = await self._run_stage(
            "orchestrator",
            [m.to_dict() for m in session.orchestrator_messages],
            _ORCHESTRATOR_STEPS,
            1,
            cancel_token,
        )
        decision = parse_orchestrator_decision(orchestrator.text)

        if decision.action == OrchestratorAction.CLARIFY and decision.question:
            request_clarification(session, decision.question)
            self._publish(session)
            response = render_clarifying_response(decision.question, session.clarifications)
            self._respond(response)
            return PlanTurnResult(
                outcome=TurnOutcome.CLARIFICATION,
                session_id=session.id,
                response=response,
            )

        transition(session, PlanStatus.PLANNING)
        self._publish(session)

        planner = await self._run_stage(
            "planner", _build_planner_messages(session), _PLANNER_STEPS, 2, cancel_token,
        )
        session.plan_markdown = planner.text
        self._publish(session)

        transition(session, PlanStatus.EXECUTING_TOOLS)
        session.tool_executions = []
        self._publish(session)

        session.tool_executions = await execute_plan_tools(
            session.plan_markdown, self._workspace, self._tool_step_callback(session),
        )
        self._publish(session)

        transition(session, PlanStatus.SOLVING)
        self._publish(session)

        solver = await self._run_stage(
            "solver", _build_solver_messages(session), _SOLVER_STEPS, 3, cancel_token,
        )
        session.solver_summary = solver.text

        document = render_plan_document(session)
        save_failed = False
        try:
            session.plan_file_path = self._sink.persist(session, document)
        except OSError:
            logger.warning(
                "Could not persist plan for session %s", session.id[:8], exc_info=True,
            )
            save_failed = True

        transition(session, PlanStatus.COMPLETED)
        self._publish(session)

        response = render_completion_response(session, save_failed=save_failed)
        self._respond(response)
        logger.info("Plan mode response complete for session %s", session.id[:8])
        return PlanTurnResult(
            outcome=TurnOutcome.COMPLETED,
            session_id=session.id,
            response=response,
        )

    async def _run_stage(
        self,
        template: str,
        messages: list[dict[str, str]],
        min_steps: int,
        stage_number: int,
        cancel_token: CancellationToken | None,
    ) -> StageOutput:
        system_prompt = render_prompt(template, system_prompt=self._config.system_prompt)
        output = await self._provider.run(
            system_prompt,
            messages,
            self._config.step_budget(min_steps),
            cancel_token,
            timeout=self._config.timeout,
            on_chunk=self._stream_callback(stage_number),
        )
        usage = output.token_usage
        if usage is not None:
            self._turn_cost += usage.cost
            logger.info(
                "Stage %d (%s) on %s: %d prompt + %d completion tokens, $%.4f",
                stage_number, template, self._provider.display_name,
                usage.prompt_tokens, usage.completion_tokens, usage.cost,
            )
        if output.reasoning_text and self._on_reasoning is not None:
            self._on_reasoning(output.reasoning_text, stage_number)
        return output

    def _stream_callback(self, stage_number: int):
        if self._on_stream is None:
            return None
        on_stream = self._on_stream

        def on_chunk(chunk: StreamChunk) -> object:
            return on_stream(stage_number, chunk)

        return on_chunk

    def _tool_step_callback(self, session: PlanSession):
        def on_step(executions: list[PlanToolExecution]) -> None:
            session.tool_executions = executions
            self._publish(session)

        return on_step

    def _publish(self, session: PlanSession) -> None:
        self._emitter.publish(session)

    def _respond(self, response: str) -> None:
        self._last_response = response
        self._chat_history.append(ChatMessage(role=MessageRole.ASSISTANT, content=response))


def _format_additional_inputs(session: PlanSession) -> str:
    return "\n".join(
        f"Update {index}: {entry}"
        for index, entry in enumerate(session.additional_inputs, start=1)
    )


def _format_clarifications(session: PlanSession) -> str:
    return "\n".join(
        f"{index}. {c.question}\nAnswer: {c.answer}"
        for index, c in enumerate(session.clarifications, start=1)
    )


def _build_planner_messages(session: PlanSession) -> list[dict[str, str]]:
    """Single user message carrying everything the planner needs."""
    additional = _format_additional_inputs(session)
    clarifications = _format_clarifications(session)
    sections = [
        f"Primary task:\n{session.task}",
        f"Additional user input:\n{additional}" if additional else "",
        f"Clarifications answered:\n{clarifications}" if clarifications else "",
        render_prompt("tools", max_results=SEARCH_MAX_RESULTS),
        "Follow the required Plan/#E alternating format and keep tools strictly read-only.",
    ]
    return [{"role": "user", "content": "\n\n".join(s for s in sections if s)}]


def _build_solver_messages(session: PlanSession) -> list[dict[str, str]]:
    """Single user message with task, clarifications, plan and observations."""
    additional = _format_additional_inputs(session)
    clarifications = _format_clarifications(session)
    observations = "\n\n".join(
        f"{e.id} {e.tool}[{e.argument}] => "
        f"{f'ERROR: {e.error}' if e.error else e.output}"
        for e in session.tool_executions
    )
    sections = [
        f"Primary task:\n{session.task}",
        f"Additional user input:\n{additional}" if additional else "",
        f"Clarifications:\n{clarifications}" if clarifications
        else "Clarifications: none provided.",
        f"Plan:\n{session.plan_markdown}" if session.plan_markdown
        else "Plan: not available.",
        f"Tool observations:\n{observations}" if observations
        else "Tool observations: none executed.",
    ]
    return [{"role": "user", "content": "\n\n".join(s for s in sections if s)}]


def create_engine(
    workspace_root: str | Path | None,
    *,
    model_override: str | None = None,
    registry: dict[str, ModelConfig] | None = None,
    plan_config: PlanConfig | None = None,
    emitter: SessionEventEmitter | None = None,
    on_reasoning: ReasoningCallback | None = None,
    on_stream: StreamCallback | None = None,
) -> PlanModeEngine:
    """Build an engine backed by LiteLLM from the TOML configuration.

    Raises:
        FileNotFoundError: If a config file is missing.
        RuntimeError: If no usable model is found in the registry.
    """
    registry = registry if registry is not None else load_models()
    plan_config = plan_config or load_plan_config()
    model_key = select_model(registry, plan_config, model_override)
    provider = LiteLLMProvider(registry[model_key], plan_config)
    return PlanModeEngine(
        provider,
        WorkspaceResolver(workspace_root),
        plan_config=plan_config,
        emitter=emitter,
        on_reasoning=on_reasoning,
        on_stream=on_stream,
    )
