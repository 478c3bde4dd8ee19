"""Plan document persistence.

Writes rendered plan documents under the workspace root:

    <workspace>/<plans_dir>/plan-<YYYYmmdd-HHMMSS>-<session_id[:8]>.md
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from planmode.schemas.session import PlanSession
from planmode.tools.workspace import WorkspaceResolver

logger = logging.getLogger(__name__)


class DocumentSink(Protocol):
    """Anything that can persist a plan document for a session."""

    def persist(self, session: PlanSession, document: str) -> str | None: ...


class PlanDocumentWriter:
    """Persists plan documents inside the workspace root.

    ``persist()`` returns None when no workspace root is available. Write
    failures propagate as OSError.
    """

    def __init__(self, workspace: WorkspaceResolver, plans_dir: str = ".planmode/plans") -> None:
        self._workspace = workspace
        self._plans_dir = plans_dir

    def plan_path(self, session: PlanSession) -> Path | None:
        """Where the document for ``session`` would be written."""
        root = self._workspace.root
        if root is None:
            return None
        stamp = session.created_at.strftime("%Y%m%d-%H%M%S")
        return root / self._plans_dir / f"plan-{stamp}-{session.id[:8]}.md"

    def persist(self, session: PlanSession, document: str) -> str | None:
        path = self.plan_path(session)
        if path is None:
            return None

        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(document, encoding="utf-8")
        logger.info("Saved plan document %s", path)
        return str(path)
