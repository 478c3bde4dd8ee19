"""Abstract base class for all model providers.

Defines the ModelProvider interface that every LLM adapter must implement.
The plan engine interacts exclusively through run() — it never calls
provider SDKs directly.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from abc import ABC, abstractmethod

from planmode.cancellation import CancellationToken, StageCancelledError
from planmode.schemas.messages import StageOutput
from planmode.schemas.pipeline import ModelConfig

logger = logging.getLogger(__name__)


class ModelProvider(ABC):
    """Abstract interface for any LLM that can run a plan-mode stage.

    Initialized from a ModelConfig loaded from the TOML registry. Exposes
    identity, capabilities, cost info, and a single async
    complete_streaming() method that all providers must implement.
    """

    def __init__(self, config: ModelConfig) -> None:
        self._config = config

    # ── Identity ──────────────────────────────────────────────

    @property
    def provider_id(self) -> str:
        """Provider identifier (e.g. 'anthropic', 'openai', 'xai')."""
        return self._config.provider

    @property
    def model_id(self) -> str:
        """LiteLLM model identifier used for routing."""
        return self._config.model

    @property
    def display_name(self) -> str:
        """Human-friendly model name for CLI output."""
        return self._config.display_name

    @property
    def supports_reasoning(self) -> bool:
        """Whether the model streams reasoning text."""
        return self._config.supports_reasoning

    @property
    def config(self) -> ModelConfig:
        """The full ModelConfig backing this provider."""
        return self._config

    # ── Core interface ────────────────────────────────────────

    @abstractmethod
    async def complete_streaming(
        self,
        messages: list[dict[str, str]],
        system: str,
        *,
        timeout: int = 120,
        cancel_token: CancellationToken | None = None,
        on_chunk: object | None = None,
    ) -> StageOutput:
        """Stream a completion to the end and return the drained output.

        Args:
            messages: Conversation messages in OpenAI format
                      (list of {"role": ..., "content": ...} dicts).
            system: System prompt for this call.
            timeout: Timeout in seconds for the model call.
            cancel_token: Checked between chunks; when cancelled the
                          stream is abandoned.
            on_chunk: Optional callback invoked with each StreamChunk.

        Returns:
            A StageOutput with the full answer and reasoning text.

        Raises:
            StageCancelledError: If cancel_token fires mid-stream.
            TimeoutError: If the model call exceeds the timeout.
            RuntimeError: If the model call fails after all retries.
        """

    async def run(
        self,
        system_prompt: str,
        messages: list[dict[str, str]],
        step_budget: int,
        cancel_token: CancellationToken | None = None,
        *,
        timeout: int = 120,
        on_chunk: object | None = None,
    ) -> StageOutput:
        """Run one plan-mode stage, racing the stream against cancellation.

        The stream is drained to completion before returning. If the token
        is cancelled first, the stream task is cancelled and
        StageCancelledError is raised.
        """
        logger.debug(
            "Running stage on %s (step budget %d)", self.display_name, step_budget,
        )
        if cancel_token is None:
            return await self.complete_streaming(
                messages, system_prompt, timeout=timeout, on_chunk=on_chunk,
            )

        cancel_token.raise_if_cancelled()

        stream_task = asyncio.ensure_future(
            self.complete_streaming(
                messages,
                system_prompt,
                timeout=timeout,
                cancel_token=cancel_token,
                on_chunk=on_chunk,
            )
        )
        cancel_task = asyncio.ensure_future(cancel_token.wait())
        try:
            done, _ = await asyncio.wait(
                {stream_task, cancel_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if stream_task in done:
                return stream_task.result()
            raise StageCancelledError(f"Stage on {self.display_name} cancelled")
        finally:
            for task in (stream_task, cancel_task):
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

    def calculate_cost(self, prompt_tokens: int, completion_tokens: int) -> float:
        """Calculate the USD cost for a given token count."""
        input_cost = (prompt_tokens / 1_000_000) * self._config.cost_input
        output_cost = (completion_tokens / 1_000_000) * self._config.cost_output
        return input_cost + output_cost
