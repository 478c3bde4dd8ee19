"""Cooperative cancellation for in-flight plan stages.

A CancellationToken is created by the driver for each advance and
threaded through the engine into the model adapter. Cancelling it aborts
the current model stream at the next chunk boundary (or immediately if
the adapter is waiting on the stream).
"""

from __future__ import annotations

import asyncio


class StageCancelledError(Exception):
    """Raised when a stage is aborted through its CancellationToken."""


class CancellationToken:
    """Cancellation signal shared between a driver and the engine."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation of the in-flight stage."""
        self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise StageCancelledError if cancellation was requested."""
        if self._event.is_set():
            raise StageCancelledError("Stage cancelled")

    async def wait(self) -> None:
        """Block until cancellation is requested."""
        await self._event.wait()
