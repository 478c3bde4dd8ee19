"""ReWOO plan grammar parsing and #E reference resolution.

The planner emits alternating ``Plan:`` reasoning lines and step lines of
the form ``#E<n> = <ToolName>[<argument>]``. Only step lines are
recognized; everything else is ignored. Steps are returned in the order
they appear, regardless of their numeric ids.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from dataclasses import dataclass

# One step per line; the argument runs to the last ']' on the line
STEP_LINE_RE = re.compile(r"^#E(\d+)\s*=\s*([A-Za-z0-9_]+)\[(.*)\]\s*$", re.MULTILINE)

# A reference to an earlier step's output inside an argument
_REFERENCE_RE = re.compile(r"#E(\d+)")


@dataclass(frozen=True)
class PlanStep:
    """One recognized step line."""

    number: str
    tool: str
    raw_argument: str

    @property
    def id(self) -> str:
        """The step's reference token, e.g. '#E2'."""
        return f"#E{self.number}"


def parse_plan(plan_text: str) -> list[PlanStep]:
    """Return every step line in ``plan_text`` in textual order."""
    return [
        PlanStep(number=m.group(1), tool=m.group(2).strip(), raw_argument=m.group(3))
        for m in STEP_LINE_RE.finditer(plan_text or "")
    ]


def resolve_references(argument: str, outputs: Mapping[str, str]) -> str:
    """Substitute ``#E<k>`` tokens with the output of step ``k``.

    ``outputs`` maps step numbers (as strings) to the output of steps that
    already ran successfully in this pass. Tokens for any other step are
    left untouched.
    """
    return _REFERENCE_RE.sub(
        lambda m: outputs.get(m.group(1), m.group(0)),
        argument,
    )
