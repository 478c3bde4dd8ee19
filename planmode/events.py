"""Session update emitter for plan-mode observers.

The engine publishes a snapshot of the session after every stage
transition and every tool step. Snapshots are queued and delivered to
listeners by a single background dispatcher, so listeners see updates in
publish order and a slow listener never blocks the engine.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import time
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel, Field

from planmode.schemas.session import PlanSession

logger = logging.getLogger(__name__)


class SessionUpdate(BaseModel):
    """A single published session snapshot."""

    sequence: int = Field(ge=0, description="Monotonic publish counter")
    timestamp: float = Field(
        default_factory=time.time,
        description="Unix timestamp when the update was published",
    )
    session: PlanSession = Field(description="Deep copy of the session at publish time")


# Type alias for update listener callbacks
UpdateListener = Callable[[SessionUpdate], Any]


class SessionEventEmitter:
    """Queues session snapshots and dispatches them to listeners.

    Listeners can be sync or async callables. ``publish()`` never waits on
    listeners; call ``drain()`` to wait until everything queued so far has
    been delivered.
    """

    def __init__(self) -> None:
        self._listeners: list[UpdateListener] = []
        self._history: list[SessionUpdate] = []
        self._queue: asyncio.Queue[SessionUpdate] | None = None
        self._dispatcher: asyncio.Task | None = None
        self._sequence = 0

    @property
    def history(self) -> list[SessionUpdate]:
        """All updates published so far."""
        return list(self._history)

    def add_listener(self, listener: UpdateListener) -> None:
        """Register a listener to receive session updates."""
        self._listeners.append(listener)

    def remove_listener(self, listener: UpdateListener) -> None:
        """Remove a previously registered listener."""
        self._listeners = [ln for ln in self._listeners if ln is not listener]

    def publish(self, session: PlanSession) -> SessionUpdate:
        """Snapshot ``session`` and queue it for delivery."""
        update = SessionUpdate(sequence=self._sequence, session=session.snapshot())
        self._sequence += 1
        self._history.append(update)

        if self._listeners:
            self._ensure_dispatcher()
            self._queue.put_nowait(update)
        return update

    async def drain(self) -> None:
        """Wait until all queued updates have been delivered."""
        if self._queue is not None:
            await self._queue.join()

    async def close(self) -> None:
        """Deliver pending updates, then stop the dispatcher."""
        await self.drain()
        if self._dispatcher is not None:
            self._dispatcher.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._dispatcher
            self._dispatcher = None
            self._queue = None

    def _ensure_dispatcher(self) -> None:
        if self._queue is None:
            self._queue = asyncio.Queue()
        if self._dispatcher is None or self._dispatcher.done():
            self._dispatcher = asyncio.get_running_loop().create_task(self._dispatch())

    async def _dispatch(self) -> None:
        assert self._queue is not None
        while True:
            update = await self._queue.get()
            try:
                for listener in list(self._listeners):
                    try:
                        result = listener(update)
                        if asyncio.iscoroutine(result):
                            await result
                    except Exception:
                        logger.exception(
                            "Session listener error for update %d", update.sequence,
                        )
            finally:
                self._queue.task_done()
