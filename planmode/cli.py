"""planmode CLI — Typer + Rich terminal driver.

Commands: run, models, config.
``run`` drives one plan session interactively: it prints every status
change and tool step, asks clarifying questions on the terminal, and
renders the final plan as Markdown. Ctrl-C cancels the stage in flight.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.status import Status
from rich.table import Table
from rich.text import Text

from planmode import __version__
from planmode.cancellation import CancellationToken
from planmode.engine import PlanModeEngine, TurnOutcome, create_engine
from planmode.events import SessionUpdate
from planmode.keys import has_key_for, load_keys_env
from planmode.providers.registry import load_models, load_plan_config
from planmode.schemas.session import PlanStatus
from planmode.schemas.streaming import StreamChunk

console = Console()
err_console = Console(stderr=True)

app = typer.Typer(
    name="planmode",
    help="Clarify, plan, inspect and solve coding tasks with read-only tools.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

# Status labels shown while a session advances
_STATUS_LABELS: dict[PlanStatus, str] = {
    PlanStatus.ORCHESTRATING: "Orchestrating",
    PlanStatus.AWAITING_CLARIFICATIONS: "Awaiting clarification",
    PlanStatus.PLANNING: "Planning",
    PlanStatus.EXECUTING_TOOLS: "Executing tools",
    PlanStatus.SOLVING: "Solving",
    PlanStatus.COMPLETED: "Completed",
}


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"planmode {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v",
        help="Show debug logging on stderr.",
    ),
) -> None:
    """planmode — orchestrated planning with sandboxed read-only tools."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
    )
    load_keys_env()


# ── Helpers ──────────────────────────────────────────────────────

def _load_registry():
    """Load the model registry, exit on error."""
    try:
        return load_models()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading model registry:[/red] {e}")
        raise typer.Exit(1) from None


def _load_plan_config():
    """Load plan defaults, exit on error."""
    try:
        return load_plan_config()
    except (FileNotFoundError, ValueError) as e:
        console.print(f"[red]Error loading plan config:[/red] {e}")
        raise typer.Exit(1) from None


class _ProgressPrinter:
    """Session listener that prints status changes and tool steps."""

    def __init__(self) -> None:
        self._last: tuple[str, PlanStatus] | None = None
        self._steps_seen = 0

    def __call__(self, update: SessionUpdate) -> None:
        session = update.session
        key = (session.id, session.status)
        if key != self._last:
            if self._last is None or self._last[0] != session.id:
                self._steps_seen = 0
            self._last = key
            console.print(f"[bold blue]▸[/bold blue] {_STATUS_LABELS[session.status]}")

        if session.status == PlanStatus.EXECUTING_TOOLS:
            for execution in session.tool_executions[self._steps_seen:]:
                mark = "[red]✗[/red]" if execution.error else "[green]✓[/green]"
                step = escape(f"{execution.id} {execution.tool}[{execution.argument}]")
                console.print(f"  {mark} {step}", highlight=False)
            self._steps_seen = len(session.tool_executions)


class _StreamTicker:
    """Stream callback showing a spinner with the running token count per stage."""

    def __init__(self) -> None:
        self._status: Status | None = None

    def __call__(self, stage_number: int, chunk: StreamChunk) -> None:
        if chunk.is_complete:
            self.stop()
            return
        label = f"[dim]Stage {stage_number} streaming \u00b7 {chunk.token_count} tokens[/dim]"
        if self._status is None:
            self._status = console.status(label)
            self._status.start()
        else:
            self._status.update(label)

    def stop(self) -> None:
        if self._status is not None:
            self._status.stop()
            self._status = None


def _print_reasoning(text: str, stage_number: int) -> None:
    console.print(Panel(
        Text(text),
        title=f"[dim]Reasoning (stage {stage_number})[/dim]",
        border_style="dim",
    ))


async def _submit_with_interrupt(engine: PlanModeEngine, text: str):
    """Submit ``text``, cancelling the in-flight stage on SIGINT."""
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, token.cancel)
        installed = True
    except (NotImplementedError, RuntimeError):
        installed = False

    try:
        return await engine.submit(text, token)
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


async def _drive(
    engine: PlanModeEngine, task: str, ticker: _StreamTicker | None = None,
) -> int:
    """Run the clarify/answer loop until the session completes."""
    engine.emitter.add_listener(_ProgressPrinter())
    text = task
    total_cost = 0.0
    try:
        while True:
            try:
                result = await _submit_with_interrupt(engine, text)
            finally:
                if ticker is not None:
                    ticker.stop()
            await engine.emitter.drain()
            total_cost += result.cost

            if result.outcome == TurnOutcome.CANCELLED:
                console.print("[dim]Stage cancelled.[/dim]")
                return 130
            if result.outcome == TurnOutcome.FAILED:
                console.print(f"[red]Error:[/red] {result.response}")
                return 1

            console.print(Markdown(result.response))
            if result.outcome == TurnOutcome.COMPLETED:
                console.print(f"[dim]Model cost: ${total_cost:.4f}[/dim]")
                return 0

            text = await asyncio.to_thread(typer.prompt, "Answer")
    finally:
        await engine.emitter.close()


# ── Commands ─────────────────────────────────────────────────────


@app.command()
def run(
    task: str = typer.Argument(..., help="Task to plan"),
    workspace: Path = typer.Option(
        Path("."), "--workspace", "-w",
        help="Workspace root the read-only tools are confined to",
    ),
    no_workspace: bool = typer.Option(
        False, "--no-workspace",
        help="Run without a workspace (tools report no workspace root)",
    ),
    model: str = typer.Option(
        None, "--model", "-m",
        help="Override the configured model key",
    ),
    show_reasoning: bool = typer.Option(
        False, "--reasoning",
        help="Print reasoning text streamed by reasoning models",
    ),
) -> None:
    """Plan a task: clarify, plan, inspect the workspace and solve."""
    if not task.strip():
        console.print("[red]Error:[/red] Task cannot be empty.")
        raise typer.Exit(1) from None

    registry = _load_registry()
    plan_config = _load_plan_config()

    ticker = _StreamTicker()
    try:
        engine = create_engine(
            None if no_workspace else workspace,
            model_override=model,
            registry=registry,
            plan_config=plan_config,
            on_reasoning=_print_reasoning if show_reasoning else None,
            on_stream=ticker,
        )
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    provider = engine.provider
    console.print(f"[dim]Model: {provider.display_name} ({provider.provider_id})[/dim]")
    if show_reasoning and not provider.supports_reasoning:
        console.print(
            f"[yellow]Warning:[/yellow] {provider.display_name} does not stream reasoning; "
            "--reasoning has no effect."
        )

    exit_code = asyncio.run(_drive(engine, task.strip(), ticker))
    if exit_code:
        raise typer.Exit(exit_code)


@app.command()
def models() -> None:
    """List models in the registry."""
    registry = _load_registry()

    table = Table(title="Model Registry")
    table.add_column("Key", style="bold")
    table.add_column("Model")
    table.add_column("Provider")
    table.add_column("Reasoning", justify="center")
    table.add_column("Key Set", justify="center")
    table.add_column("$/1M in", justify="right")
    table.add_column("$/1M out", justify="right")

    for key, config in registry.items():
        table.add_row(
            key,
            config.display_name,
            config.provider,
            "✓" if config.supports_reasoning else "",
            "[green]✓[/green]" if has_key_for(config) else "[red]✗[/red]",
            f"{config.cost_input:.2f}",
            f"{config.cost_output:.2f}",
        )

    console.print(table)


@app.command()
def config() -> None:
    """Show the plan-mode configuration."""
    plan_config = _load_plan_config()

    table = Table(title="Plan Mode Configuration", show_header=False)
    table.add_column("Setting", style="bold")
    table.add_column("Value")
    for name, value in plan_config.model_dump().items():
        table.add_row(name, repr(value) if isinstance(value, str) else str(value))

    console.print(table)
