"""Model registry and TOML configuration loader.

Loads model definitions from models.toml and plan-mode defaults from
defaults.toml, and picks the model that plan mode should run on.
"""

from __future__ import annotations

import tomllib
from pathlib import Path

from planmode.schemas.pipeline import ModelConfig, PlanConfig

# Default config directory relative to the planmode package
_CONFIG_DIR = Path(__file__).parent.parent / "config"


def load_models(config_path: Path | None = None) -> dict[str, ModelConfig]:
    """Load the model registry from a TOML file.

    Args:
        config_path: Path to models.toml. Defaults to planmode/config/models.toml.

    Returns:
        Dictionary mapping model keys to ModelConfig instances.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ValueError: If the TOML structure is invalid.
    """
    path = config_path or _CONFIG_DIR / "models.toml"
    if not path.exists():
        raise FileNotFoundError(f"Model registry not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    models_section = raw.get("models")
    if not models_section or not isinstance(models_section, dict):
        raise ValueError(f"No [models] section found in {path}")

    registry: dict[str, ModelConfig] = {}
    for key, entry in models_section.items():
        if not isinstance(entry, dict):
            continue
        registry[key] = ModelConfig(**entry)

    return registry


def load_plan_config(config_path: Path | None = None) -> PlanConfig:
    """Load plan-mode defaults from a TOML file.

    Args:
        config_path: Path to defaults.toml. Defaults to planmode/config/defaults.toml.

    Returns:
        PlanConfig with values from the [plan] section.

    Raises:
        FileNotFoundError: If the config file does not exist.
    """
    path = config_path or _CONFIG_DIR / "defaults.toml"
    if not path.exists():
        raise FileNotFoundError(f"Plan config not found: {path}")

    with open(path, "rb") as f:
        raw = tomllib.load(f)

    return PlanConfig(**raw.get("plan", {}))


def select_model(
    registry: dict[str, ModelConfig],
    plan_config: PlanConfig,
    model_override: str | None = None,
) -> str:
    """Pick the registry key plan mode runs on.

    An explicit override wins, then the configured default. Falls back
    to the first reasoning-capable model, then the first entry.

    Raises:
        RuntimeError: If the registry is empty or the requested key is unknown.
    """
    if not registry:
        raise RuntimeError("No models available in registry")

    requested = model_override or plan_config.model
    if requested:
        if requested not in registry:
            raise RuntimeError(
                f"Model '{requested}' not found in registry. "
                f"Available: {', '.join(sorted(registry))}"
            )
        return requested

    for key, config in registry.items():
        if config.supports_reasoning:
            return key
    return next(iter(registry))
