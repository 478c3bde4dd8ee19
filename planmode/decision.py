"""Orchestrator decision parsing.

The orchestrator stage is asked to answer with a JSON object choosing
between ``clarify`` and ``proceed``. Models often wrap JSON in code fences
or ignore the format entirely, so anything that does not decode into a
well-formed decision falls back to ``proceed`` with the cleaned text as the
summary. The plan never stalls on unparsable orchestrator output.
"""

from __future__ import annotations

import json
import logging
import re

from planmode.schemas.session import OrchestratorAction, OrchestratorDecision

logger = logging.getLogger(__name__)

_JSON_FENCE_RE = re.compile(r"```json", re.IGNORECASE)


def sanitize_json(text: str) -> str:
    """Strip code-fence markers and surrounding whitespace."""
    return _JSON_FENCE_RE.sub("", text).replace("```", "").strip()


def _optional_str(value: object) -> str | None:
    return value if isinstance(value, str) else None


def parse_orchestrator_decision(raw: str) -> OrchestratorDecision:
    """Parse orchestrator output into a clarify/proceed decision."""
    cleaned = sanitize_json(raw)
    try:
        parsed = json.loads(cleaned)
    except json.JSONDecodeError as e:
        logger.warning(
            "Unable to parse orchestrator decision, falling back to proceed. "
            "Raw output: %s Error: %s",
            cleaned, e,
        )
        return OrchestratorDecision(action=OrchestratorAction.PROCEED, summary=cleaned)

    if isinstance(parsed, dict):
        action = parsed.get("action")
        question = parsed.get("question")
        if action == OrchestratorAction.CLARIFY and isinstance(question, str):
            return OrchestratorDecision(
                action=OrchestratorAction.CLARIFY,
                question=question.strip(),
                reasoning=_optional_str(parsed.get("reasoning")),
            )
        if action == OrchestratorAction.PROCEED:
            summary = _optional_str(parsed.get("summary"))
            return OrchestratorDecision(
                action=OrchestratorAction.PROCEED,
                summary=summary.strip() if summary is not None else None,
                reasoning=_optional_str(parsed.get("reasoning")),
            )

    logger.warning(
        "Malformed orchestrator decision, falling back to proceed. Raw output: %s",
        cleaned,
    )
    return OrchestratorDecision(action=OrchestratorAction.PROCEED, summary=cleaned)
