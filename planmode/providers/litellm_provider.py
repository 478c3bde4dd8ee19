"""Universal LiteLLM adapter implementing the ModelProvider interface.

Routes streaming completion requests to any LLM provider via LiteLLM's
unified API. Accumulates answer and reasoning deltas, tracks tokens and
cost, and retries transient failures with exponential backoff.
"""

from __future__ import annotations

import asyncio
import logging
import os

import litellm

# Suppress LiteLLM's "Give Feedback / Get Help" and "Provider List" banners
litellm.suppress_debug_info = True

from planmode.cancellation import CancellationToken
from planmode.providers.base import ModelProvider
from planmode.schemas.messages import StageOutput, TokenUsage
from planmode.schemas.pipeline import ModelConfig, PlanConfig
from planmode.schemas.streaming import StreamChunk

logger = logging.getLogger(__name__)

# Max retries for transient failures
_MAX_RETRIES = 3
_BASE_BACKOFF = 1.0  # seconds


def _short_error_reason(error: Exception) -> str:
    """Extract a short, user-friendly reason from a LiteLLM error."""
    error_str = str(error).lower()
    if "rate" in error_str or "429" in error_str:
        return "rate limit"
    if "overloaded" in error_str or "529" in error_str:
        return "overloaded"
    if "timeout" in error_str or isinstance(error, TimeoutError):
        return "timeout"
    if "503" in error_str or "unavailable" in error_str:
        return "service unavailable"
    if "500" in error_str or "internal" in error_str:
        return "server error"
    if "connection" in error_str:
        return "connection error"
    return str(error)[:80]


class LiteLLMProvider(ModelProvider):
    """Universal LLM adapter powered by LiteLLM.

    Routes calls to any provider (Anthropic, OpenAI, Google, xAI, etc.)
    through litellm.acompletion(stream=True). Sampling settings come from
    the PlanConfig: reasoning models get reasoning_effort and
    max_completion_tokens, all others get temperature and max_tokens.
    """

    def __init__(self, config: ModelConfig, plan_config: PlanConfig | None = None) -> None:
        super().__init__(config)
        self._plan_config = plan_config or PlanConfig()
        self._api_key = os.environ.get(config.api_key_env, "")

    async def complete_streaming(
        self,
        messages: list[dict[str, str]],
        system: str,
        *,
        timeout: int = 120,
        cancel_token: CancellationToken | None = None,
        on_chunk: object | None = None,
    ) -> StageOutput:
        """Stream a completion via LiteLLM and return the drained output.

        Answer deltas and reasoning deltas are accumulated separately.
        The cancel token is checked before each chunk is consumed.
        """
        full_messages = [{"role": "system", "content": system}, *messages]
        kwargs = self._build_completion_kwargs(full_messages, timeout)
        kwargs["stream"] = True

        accumulated = ""
        reasoning = ""
        token_count = 0
        chunk = None

        response = await self._call_streaming_with_retry(kwargs)

        async for chunk in response:
            if cancel_token is not None:
                cancel_token.raise_if_cancelled()

            delta = ""
            reasoning_delta = ""
            if chunk.choices and chunk.choices[0].delta:
                choice_delta = chunk.choices[0].delta
                delta = choice_delta.content or ""
                reasoning_delta = getattr(choice_delta, "reasoning_content", None) or ""

            if not delta and not reasoning_delta:
                continue

            accumulated += delta
            reasoning += reasoning_delta
            token_count += 1  # approximate, 1 chunk ~= 1 token

            if on_chunk is not None:
                result = on_chunk(StreamChunk(
                    delta=delta,
                    reasoning_delta=reasoning_delta,
                    accumulated=accumulated,
                    token_count=token_count,
                ))
                if asyncio.iscoroutine(result):
                    await result

        if on_chunk is not None:
            result = on_chunk(StreamChunk(
                accumulated=accumulated,
                token_count=token_count,
                is_complete=True,
            ))
            if asyncio.iscoroutine(result):
                await result

        # Streaming doesn't always give exact counts; prefer the last
        # chunk's usage block when present.
        prompt_tokens = 0
        completion_tokens = token_count
        usage = getattr(chunk, "usage", None) if chunk else None
        if usage:
            prompt_tokens = getattr(usage, "prompt_tokens", 0) or 0
            completion_tokens = getattr(usage, "completion_tokens", 0) or token_count

        return StageOutput(
            text=accumulated.strip(),
            reasoning_text=reasoning.strip(),
            token_usage=TokenUsage(
                prompt_tokens=prompt_tokens,
                completion_tokens=completion_tokens,
                cost=self.calculate_cost(prompt_tokens, completion_tokens),
            ),
            model=self._config.model,
        )

    def _build_completion_kwargs(
        self,
        messages: list[dict[str, str]],
        timeout: int,
    ) -> dict:
        """Build the kwargs dict for litellm.acompletion."""
        kwargs: dict = {
            "model": self._config.model,
            "messages": messages,
            "timeout": float(timeout),
        }

        if self._api_key:
            kwargs["api_key"] = self._api_key

        if self._config.api_base:
            kwargs["api_base"] = self._config.api_base

        plan = self._plan_config
        if self._config.is_openai_reasoning:
            kwargs["reasoning_effort"] = plan.reasoning_effort
            if plan.max_tokens > 0:
                kwargs["max_completion_tokens"] = plan.max_tokens
        else:
            kwargs["temperature"] = plan.temperature
            if plan.max_tokens > 0:
                kwargs["max_tokens"] = plan.max_tokens

        return kwargs

    async def _call_streaming_with_retry(self, kwargs: dict):
        """Call litellm.acompletion with stream=True and retry on failure.

        Retries on transient errors (rate limits, server errors, timeouts).
        Non-retryable errors (auth, invalid request) are raised immediately.

        Raises:
            TimeoutError: If all retries time out.
            RuntimeError: If all retries fail with non-timeout errors.
        """
        last_error: Exception | None = None

        for attempt in range(_MAX_RETRIES):
            try:
                return await litellm.acompletion(**kwargs)
            except TimeoutError:
                last_error = TimeoutError(
                    f"Streaming call timed out after {kwargs.get('timeout')}s "
                    f"(attempt {attempt + 1}/{_MAX_RETRIES})"
                )
            except litellm.AuthenticationError:
                raise RuntimeError(
                    f"Authentication failed for {self._config.model}. "
                    f"Check that {self._config.api_key_env} is set correctly."
                ) from None
            except litellm.BadRequestError as e:
                raise RuntimeError(
                    f"Bad request to {self._config.model}: {e}"
                ) from e
            except (
                litellm.RateLimitError,
                litellm.ServiceUnavailableError,
                litellm.InternalServerError,
                litellm.APIConnectionError,
            ) as e:
                last_error = e

            if attempt < _MAX_RETRIES - 1:
                backoff = _BASE_BACKOFF * (2**attempt)
                logger.warning(
                    "Streaming retry %d/%d for %s (%s, backoff: %.1fs)",
                    attempt + 1, _MAX_RETRIES, self._config.display_name,
                    _short_error_reason(last_error), backoff,
                )
                await asyncio.sleep(backoff)

        if isinstance(last_error, TimeoutError):
            raise last_error
        raise RuntimeError(
            f"Streaming call to {self._config.model} failed after "
            f"{_MAX_RETRIES} retries: {last_error}"
        ) from last_error
