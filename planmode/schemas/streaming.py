"""Streaming schemas for real-time token delivery.

Defines the StreamChunk model passed to on_chunk callbacks while a
stage is streaming.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class StreamChunk(BaseModel):
    """A single chunk of streaming output from a model."""

    delta: str = Field(default="", description="New answer text in this chunk")
    reasoning_delta: str = Field(default="", description="New reasoning text in this chunk")
    accumulated: str = Field(description="Full answer text accumulated so far")
    token_count: int = Field(ge=0, description="Running output token count")
    is_complete: bool = Field(
        default=False, description="True on final chunk"
    )
