"""planmode provider layer.

The provider layer is the only way models are called by the engine.
All LLM interactions go through LiteLLMProvider via the ModelProvider interface.
"""

from planmode.providers.base import ModelProvider
from planmode.providers.litellm_provider import LiteLLMProvider
from planmode.providers.registry import load_models, load_plan_config, select_model

__all__ = [
    "LiteLLMProvider",
    "ModelProvider",
    "load_models",
    "load_plan_config",
    "select_model",
]
