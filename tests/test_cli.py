"""Tests for the planmode CLI via CliRunner."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from typer.testing import CliRunner

from planmode import __version__
from planmode.cli import _StreamTicker, app
from planmode.engine import PlanModeEngine
from planmode.providers.base import ModelProvider
from planmode.schemas.messages import StageOutput
from planmode.schemas.pipeline import ModelConfig
from planmode.schemas.streaming import StreamChunk
from planmode.tools.workspace import WorkspaceResolver

# NO_COLOR=1 prevents Rich from injecting ANSI codes inside option names,
# which breaks substring matching in CI (headless, no TTY).
# COLUMNS=200 prevents wrapping that could split a flag across lines.
runner = CliRunner(env={"NO_COLOR": "1", "COLUMNS": "200"})

_PROCEED = '{"action":"proceed","summary":"Add tests"}'
_CLARIFY = '{"action":"clarify","question":"Which file should be tested?"}'
_PLAN = "Plan: look around.\n#E1 = ListFiles[.]\n#E2 = DeleteFile[parser.go]"
_SUMMARY = "## Summary\nWrite parser_test.go."


class ScriptedProvider(ModelProvider):
    """Returns one scripted answer per stage."""

    def __init__(self, outputs: list) -> None:
        super().__init__(ModelConfig(
            provider="fake",
            model="fake/model",
            display_name="Fake Model",
            api_key_env="FAKE_API_KEY",
            context_window=8000,
            cost_input=0.0,
            cost_output=0.0,
        ))
        self._outputs = list(outputs)

    async def complete_streaming(self, messages, system, **kwargs):
        item = self._outputs.pop(0)
        if isinstance(item, Exception):
            raise item
        return StageOutput(text=item)


@pytest.fixture()
def workspace(tmp_path: Path) -> Path:
    (tmp_path / "parser.go").write_text("package main\n", encoding="utf-8")
    return tmp_path


def _patch_engine(outputs: list, workspace: Path):
    def factory(workspace_root, **kwargs):
        return PlanModeEngine(
            ScriptedProvider(outputs),
            WorkspaceResolver(workspace_root),
            on_stream=kwargs.get("on_stream"),
        )

    return patch("planmode.cli.create_engine", side_effect=factory)


class TestGlobalOptions:
    def test_version(self):
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"planmode {__version__}" in result.output

    def test_help_lists_commands(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        for command in ("run", "models", "config"):
            assert command in result.output

    def test_run_help(self):
        result = runner.invoke(app, ["run", "--help"])
        assert "--workspace" in result.output
        assert "--no-workspace" in result.output
        assert "--reasoning" in result.output


class TestModelsCommand:
    def test_lists_registry(self):
        result = runner.invoke(app, ["models"])
        assert result.exit_code == 0
        assert "Model Registry" in result.output
        assert "claude-sonnet" in result.output
        assert "grok-3" in result.output

    def test_registry_error_exits(self):
        with patch("planmode.cli.load_models", side_effect=ValueError("broken toml")):
            result = runner.invoke(app, ["models"])
        assert result.exit_code == 1
        assert "Error loading model registry" in result.output


class TestConfigCommand:
    def test_shows_plan_config(self):
        result = runner.invoke(app, ["config"])
        assert result.exit_code == 0
        assert "Plan Mode Configuration" in result.output
        assert "plans_dir" in result.output
        assert "'claude-sonnet'" in result.output


class TestRunCommand:
    def test_completes_plan(self, workspace):
        with _patch_engine([_PROCEED, _PLAN, _SUMMARY], workspace):
            result = runner.invoke(app, ["run", "add tests", "-w", str(workspace)])

        assert result.exit_code == 0, result.output
        assert "Planning" in result.output
        assert "#E1 ListFiles[.]" in result.output
        assert "#E2 DeleteFile[parser.go]" in result.output
        assert "Plan ready" in result.output
        assert list((workspace / ".planmode" / "plans").glob("plan-*.md"))
        assert (workspace / "parser.go").exists()

    def test_clarification_prompts_for_answer(self, workspace):
        outputs = [_CLARIFY, _PROCEED, _PLAN, _SUMMARY]
        with _patch_engine(outputs, workspace):
            result = runner.invoke(
                app, ["run", "add tests", "-w", str(workspace)], input="parser.go\n",
            )

        assert result.exit_code == 0, result.output
        assert "Which file should be tested?" in result.output
        assert "Answer" in result.output
        assert "Plan ready" in result.output

    def test_no_workspace(self, workspace):
        with _patch_engine([_PROCEED, _PLAN, _SUMMARY], workspace) as factory:
            result = runner.invoke(app, ["run", "add tests", "--no-workspace"])

        assert result.exit_code == 0, result.output
        assert factory.call_args.args[0] is None
        assert "Plan saved in memory" in result.output

    def test_model_failure_exits_nonzero(self, workspace):
        with _patch_engine([RuntimeError("upstream down")], workspace):
            result = runner.invoke(app, ["run", "add tests", "-w", str(workspace)])

        assert result.exit_code == 1
        assert "Plan Mode failed to generate a plan" in result.output

    def test_empty_task_rejected(self):
        result = runner.invoke(app, ["run", "   "])
        assert result.exit_code == 1
        assert "Task cannot be empty" in result.output

    def test_unknown_model_rejected(self, workspace):
        result = runner.invoke(app, ["run", "add tests", "-m", "no-such-model"])
        assert result.exit_code == 1
        assert "not found in registry" in result.output

    def test_prints_model_and_cost(self, workspace):
        with _patch_engine([_PROCEED, _PLAN, _SUMMARY], workspace):
            result = runner.invoke(app, ["run", "add tests", "-w", str(workspace)])

        assert result.exit_code == 0, result.output
        assert "Model: Fake Model (fake)" in result.output
        assert "Model cost: $0.0000" in result.output
        assert "does not stream reasoning" not in result.output

    def test_reasoning_flag_warns_for_non_reasoning_model(self, workspace):
        with _patch_engine([_PROCEED, _PLAN, _SUMMARY], workspace) as factory:
            result = runner.invoke(
                app, ["run", "add tests", "-w", str(workspace), "--reasoning"],
            )

        assert result.exit_code == 0, result.output
        assert "Fake Model does not stream reasoning" in result.output
        assert factory.call_args.kwargs["on_reasoning"] is not None

    def test_stream_ticker_passed_to_engine(self, workspace):
        with _patch_engine([_PROCEED, _PLAN, _SUMMARY], workspace) as factory:
            runner.invoke(app, ["run", "add tests", "-w", str(workspace)])

        assert isinstance(factory.call_args.kwargs["on_stream"], _StreamTicker)


class TestStreamTicker:
    def test_status_tracks_tokens_and_stops_on_complete(self):
        with patch("planmode.cli.console") as console:
            status = MagicMock()
            console.status.return_value = status
            ticker = _StreamTicker()

            ticker(2, StreamChunk(delta="a", accumulated="a", token_count=1))
            ticker(2, StreamChunk(delta="b", accumulated="ab", token_count=2))
            ticker(2, StreamChunk(accumulated="ab", token_count=2, is_complete=True))

        console.status.assert_called_once()
        assert "Stage 2 streaming" in console.status.call_args.args[0]
        status.start.assert_called_once()
        assert "2 tokens" in status.update.call_args.args[0]
        status.stop.assert_called_once()

    def test_stop_without_stream_is_noop(self):
        with patch("planmode.cli.console") as console:
            _StreamTicker().stop()
        console.status.assert_not_called()
