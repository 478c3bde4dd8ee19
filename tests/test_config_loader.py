"""Tests for planmode.providers.registry — TOML config loading and model selection."""

from pathlib import Path

import pytest

from planmode.providers.registry import load_models, load_plan_config, select_model
from planmode.schemas.pipeline import ModelConfig, PlanConfig

# Path to the real config files shipped with the package
_CONFIG_DIR = Path(__file__).parent.parent / "planmode" / "config"


class TestLoadModels:
    def test_loads_real_config(self):
        registry = load_models(_CONFIG_DIR / "models.toml")
        for key in ("claude-sonnet", "claude-haiku", "gpt-4o", "o3-mini", "gemini-flash", "grok-3"):
            assert key in registry, f"Missing model: {key}"

    def test_default_path(self):
        assert load_models().keys() == load_models(_CONFIG_DIR / "models.toml").keys()

    def test_model_config_types(self):
        for key, model in load_models(_CONFIG_DIR / "models.toml").items():
            assert isinstance(model, ModelConfig), f"{key} is not ModelConfig"
            assert model.api_key_env != ""
            assert model.context_window > 0

    def test_reasoning_flags(self):
        registry = load_models(_CONFIG_DIR / "models.toml")
        assert registry["claude-sonnet"].supports_reasoning
        assert not registry["gpt-4o"].supports_reasoning
        assert registry["o3-mini"].is_openai_reasoning
        assert not registry["claude-sonnet"].is_openai_reasoning

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Model registry not found"):
            load_models(tmp_path / "nope.toml")

    def test_missing_models_section_raises(self, tmp_path):
        path = tmp_path / "models.toml"
        path.write_text('[other]\nkey = "value"\n')
        with pytest.raises(ValueError, match=r"No \[models\] section"):
            load_models(path)

    def test_custom_registry(self, tmp_path):
        path = tmp_path / "models.toml"
        path.write_text(
            "[models.local]\n"
            'provider = "ollama"\n'
            'model = "ollama/llama3"\n'
            'display_name = "Llama 3"\n'
            'api_key_env = "OLLAMA_KEY"\n'
            "context_window = 8192\n"
            "cost_input = 0.0\n"
            "cost_output = 0.0\n"
        )
        registry = load_models(path)
        assert registry["local"].api_base == ""
        assert registry["local"].supports_reasoning is False


class TestLoadPlanConfig:
    def test_loads_real_defaults(self):
        config = load_plan_config(_CONFIG_DIR / "defaults.toml")
        assert config.model == "claude-sonnet"
        assert config.max_steps == 0
        assert config.plans_dir == ".planmode/plans"

    def test_missing_section_uses_defaults(self, tmp_path):
        path = tmp_path / "defaults.toml"
        path.write_text("# empty\n")
        assert load_plan_config(path) == PlanConfig()

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Plan config not found"):
            load_plan_config(tmp_path / "nope.toml")

    def test_step_budget(self):
        assert PlanConfig().step_budget(8) == 8
        assert PlanConfig(max_steps=12).step_budget(8) == 12
        assert PlanConfig(max_steps=3).step_budget(8) == 8


class TestSelectModel:
    @pytest.fixture()
    def registry(self):
        return load_models(_CONFIG_DIR / "models.toml")

    def test_override_wins(self, registry):
        assert select_model(registry, PlanConfig(model="claude-sonnet"), "grok-3") == "grok-3"

    def test_configured_default(self, registry):
        assert select_model(registry, PlanConfig(model="gpt-4o")) == "gpt-4o"

    def test_first_reasoning_model_when_unset(self, registry):
        assert select_model(registry, PlanConfig()) == "claude-sonnet"

    def test_unknown_key_raises(self, registry):
        with pytest.raises(RuntimeError, match="Available:"):
            select_model(registry, PlanConfig(), "missing")

    def test_empty_registry_raises(self):
        with pytest.raises(RuntimeError, match="No models available"):
            select_model({}, PlanConfig())
