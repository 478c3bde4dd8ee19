"""Model registry and plan-mode configuration schemas.

Defines the models loaded from the TOML config files: one ModelConfig
per registry entry and a single PlanConfig holding plan-mode defaults.
"""

from __future__ import annotations

from pydantic import BaseModel, Field

# Substrings identifying OpenAI reasoning models (o-series, gpt-5)
_OPENAI_REASONING_MARKERS = ("o1", "o3", "o4", "gpt-5")


class ModelConfig(BaseModel):
    """Configuration for a single LLM model in the registry.

    Loaded from models.toml. Each entry provides the LiteLLM routing
    information, capability flags, and cost data.
    """

    provider: str = Field(description="Provider identifier (e.g. 'anthropic', 'openai', 'xai')")
    model: str = Field(description="LiteLLM model identifier (e.g. 'anthropic/claude-sonnet-4-5')")
    display_name: str = Field(description="Human-friendly model name for CLI output")
    api_key_env: str = Field(description="Environment variable name holding the API key")
    api_base: str = Field(default="", description="Custom API base URL (empty = provider default)")
    context_window: int = Field(gt=0, description="Maximum context window size in tokens")
    supports_reasoning: bool = Field(
        default=False, description="Whether the model streams reasoning text"
    )
    cost_input: float = Field(ge=0.0, description="Cost per 1M input tokens in USD")
    cost_output: float = Field(ge=0.0, description="Cost per 1M output tokens in USD")

    @property
    def is_openai_reasoning(self) -> bool:
        """Whether this is an OpenAI o-series or gpt-5 model."""
        name = self.model.lower()
        return any(marker in name for marker in _OPENAI_REASONING_MARKERS)


class PlanConfig(BaseModel):
    """Plan-mode defaults loaded from the [plan] section of defaults.toml."""

    model: str = Field(default="", description="Registry key of the model used for every stage")
    system_prompt: str = Field(
        default="", description="Base system prompt prepended to each stage prompt"
    )
    max_steps: int = Field(
        default=0, ge=0, description="Step budget override (0 = per-stage default)"
    )
    temperature: float = Field(default=0.2, ge=0.0, le=2.0, description="Sampling temperature")
    max_tokens: int = Field(
        default=0, ge=0, description="Max output tokens (0 = provider default)"
    )
    reasoning_effort: str = Field(
        default="medium", description="Reasoning effort for OpenAI reasoning models"
    )
    timeout: int = Field(default=120, gt=0, description="Per-stage model timeout in seconds")
    plans_dir: str = Field(
        default=".planmode/plans",
        description="Directory (relative to the workspace root) for plan documents",
    )

    def step_budget(self, floor: int) -> int:
        """Step budget for a stage whose minimum budget is ``floor``."""
        return max(floor, self.max_steps or floor)
