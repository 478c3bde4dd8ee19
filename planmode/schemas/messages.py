"""Message schemas for model stage calls.

Defines the OpenAI-format chat message, token accounting, and the
StageOutput returned by the model adapter for one plan-mode stage.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class MessageRole(StrEnum):
    """Roles used in chat transcripts."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """A single message in an OpenAI-format transcript."""

    role: MessageRole = Field(description="Who produced this message")
    content: str = Field(description="Message text")

    def to_dict(self) -> dict[str, str]:
        """Render as the plain dict LiteLLM expects."""
        return {"role": self.role.value, "content": self.content}


class TokenUsage(BaseModel):
    """Token consumption and cost tracking for a single model call."""

    prompt_tokens: int = Field(ge=0, description="Number of input tokens consumed")
    completion_tokens: int = Field(ge=0, description="Number of output tokens generated")
    cost: float = Field(ge=0.0, description="Estimated cost in USD for this call")


class StageOutput(BaseModel):
    """Fully drained output of one model stage."""

    text: str = Field(description="Accumulated answer text, stripped")
    reasoning_text: str = Field(
        default="", description="Accumulated reasoning text, if the model streamed any"
    )
    token_usage: TokenUsage | None = Field(
        default=None, description="Token consumption and cost for this stage"
    )
    model: str = Field(default="", description="Model identifier that produced this output")
