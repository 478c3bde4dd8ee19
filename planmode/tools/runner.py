"""Sequential execution of the tool steps in a plan.

Each recognized step is resolved against the outputs of earlier steps,
run through its executor, recorded as a PlanToolExecution and reported
to ``on_step`` before the next step starts. A failing step never stops
the pass.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable

from planmode.plan_parser import parse_plan, resolve_references
from planmode.schemas.session import PlanToolExecution
from planmode.tools.executors import ToolResult, list_files, read_file, search_text
from planmode.tools.workspace import WorkspaceResolver

logger = logging.getLogger(__name__)

ToolExecutor = Callable[[WorkspaceResolver, str], ToolResult]

# Recognized tool names, matched case-insensitively
TOOL_EXECUTORS: dict[str, ToolExecutor] = {
    "listfiles": list_files,
    "readfile": read_file,
    "searchtext": search_text,
}

StepCallback = Callable[[list[PlanToolExecution]], Awaitable[None] | None]


async def execute_plan_tools(
    plan_markdown: str | None,
    workspace: WorkspaceResolver,
    on_step: StepCallback | None = None,
) -> list[PlanToolExecution]:
    """Run every step in ``plan_markdown`` in order and return the records.

    ``on_step`` receives the executions recorded so far after each step.
    The #E resolution table lives only for the duration of this call.
    """
    executions: list[PlanToolExecution] = []
    outputs: dict[str, str] = {}

    for step in parse_plan(plan_markdown or ""):
        argument = resolve_references(step.raw_argument, outputs).strip()
        execution = PlanToolExecution(id=step.id, tool=step.tool, argument=argument)

        executor = TOOL_EXECUTORS.get(step.tool.lower())
        if executor is None:
            execution.error = f"Unsupported tool: {step.tool}"
        else:
            try:
                result = await asyncio.to_thread(executor, workspace, argument)
            except Exception as e:
                logger.debug("Tool %s failed for %s", step.tool, step.id, exc_info=True)
                result = ToolResult(error=str(e) or type(e).__name__)
            if result.error is not None:
                execution.error = result.error
            else:
                execution.output = result.output
                outputs[step.number] = result.output

        executions.append(execution)
        if on_step is not None:
            callback_result = on_step(list(executions))
            if asyncio.iscoroutine(callback_result):
                await callback_result

    return executions
