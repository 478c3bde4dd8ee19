"""planmode schema definitions.

All Pydantic v2 models used across the engine, providers and renderers.
"""

from planmode.schemas.messages import (
    ChatMessage,
    MessageRole,
    StageOutput,
    TokenUsage,
)
from planmode.schemas.pipeline import ModelConfig, PlanConfig
from planmode.schemas.session import (
    OrchestratorAction,
    OrchestratorDecision,
    PlanClarification,
    PlanSession,
    PlanStatus,
    PlanToolExecution,
)
from planmode.schemas.streaming import StreamChunk

__all__ = [
    "ChatMessage",
    "MessageRole",
    "ModelConfig",
    "OrchestratorAction",
    "OrchestratorDecision",
    "PlanClarification",
    "PlanConfig",
    "PlanSession",
    "PlanStatus",
    "PlanToolExecution",
    "StageOutput",
    "StreamChunk",
    "TokenUsage",
]
