"""Plan session state machine.

Legal transitions are listed explicitly in ``_TRANSITIONS``; every status
change goes through ``transition()`` so an illegal jump fails loudly
instead of silently corrupting a session.

    orchestrating -> awaiting_clarifications | planning
    awaiting_clarifications -> orchestrating
    planning -> executing_tools -> solving -> completed
"""

from __future__ import annotations

import logging

from planmode.schemas.messages import ChatMessage, MessageRole
from planmode.schemas.session import PlanClarification, PlanSession, PlanStatus

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[PlanStatus, frozenset[PlanStatus]] = {
    PlanStatus.ORCHESTRATING: frozenset({
        PlanStatus.AWAITING_CLARIFICATIONS,
        PlanStatus.PLANNING,
    }),
    PlanStatus.AWAITING_CLARIFICATIONS: frozenset({PlanStatus.ORCHESTRATING}),
    PlanStatus.PLANNING: frozenset({PlanStatus.EXECUTING_TOOLS}),
    PlanStatus.EXECUTING_TOOLS: frozenset({PlanStatus.SOLVING}),
    PlanStatus.SOLVING: frozenset({PlanStatus.COMPLETED}),
    PlanStatus.COMPLETED: frozenset(),
}

# States in which a new task input is folded into the current session
_REENTRANT_STATES = frozenset({
    PlanStatus.ORCHESTRATING,
    PlanStatus.AWAITING_CLARIFICATIONS,
})


class InvalidTransitionError(ValueError):
    """Raised when a session is moved along an edge the state machine lacks."""

    def __init__(self, source: PlanStatus, target: PlanStatus) -> None:
        super().__init__(f"Illegal plan session transition: {source} -> {target}")
        self.source = source
        self.target = target


def can_transition(source: PlanStatus, target: PlanStatus) -> bool:
    """Whether ``source -> target`` is a legal edge."""
    return target in _TRANSITIONS[source]


def transition(session: PlanSession, target: PlanStatus) -> None:
    """Move ``session`` to ``target`` or raise InvalidTransitionError.

    Use request_clarification() / answer_clarification() for the edges
    into and out of awaiting_clarifications, which also maintain
    ``pending_clarification``.
    """
    if not can_transition(session.status, target):
        raise InvalidTransitionError(session.status, target)
    logger.debug("Session %s: %s -> %s", session.id[:8], session.status, target)
    session.status = target


def start_session(task: str) -> PlanSession:
    """Create a fresh session seeded with ``task``."""
    session = PlanSession(task=task, task_history=[task])
    logger.info("Started plan session %s", session.id[:8])
    return session


def request_clarification(session: PlanSession, question: str) -> None:
    """Pause ``session`` on ``question`` until the user answers it."""
    transition(session, PlanStatus.AWAITING_CLARIFICATIONS)
    session.pending_clarification = question
    session.orchestrator_messages.append(
        ChatMessage(role=MessageRole.ASSISTANT, content=question)
    )


def answer_clarification(session: PlanSession, answer: str) -> None:
    """Record ``answer`` for the pending question and resume orchestration."""
    if session.pending_clarification is None:
        raise InvalidTransitionError(session.status, PlanStatus.ORCHESTRATING)
    transition(session, PlanStatus.ORCHESTRATING)
    session.clarifications.append(
        PlanClarification(question=session.pending_clarification, answer=answer)
    )
    session.pending_clarification = None


def accept_task(current: PlanSession | None, task: str) -> PlanSession:
    """Fold a submitted task into ``current`` or start a new session.

    While orchestrating, the task refines the same session. While awaiting
    clarification, it is consumed as the answer. In every other state
    (including no session and completed) a new session is started. The
    task is always appended to the orchestrator transcript.
    """
    if current is None or current.status not in _REENTRANT_STATES:
        session = start_session(task)
    elif current.pending_clarification is not None:
        session = current
        answer_clarification(session, task)
    else:
        session = current
        session.task_history.append(task)

    session.orchestrator_messages.append(
        ChatMessage(role=MessageRole.USER, content=task)
    )
    return session
