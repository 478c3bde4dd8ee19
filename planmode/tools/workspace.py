"""Workspace path resolution for the read-only plan tools.

Every tool path goes through a WorkspaceResolver, which maps relative or
absolute paths onto a single designated root and refuses anything that
would escape it.
"""

from __future__ import annotations

import logging
from pathlib import Path

logger = logging.getLogger(__name__)


class WorkspaceResolver:
    """Confines tool paths to one workspace root.

    ``resolve()`` returns None (never raises) when no root is configured
    or the requested path resolves outside the root.
    """

    def __init__(self, root: str | Path | None) -> None:
        self._root = Path(root).resolve() if root else None

    @property
    def root(self) -> Path | None:
        """The absolute workspace root, or None if unavailable."""
        return self._root

    def contains(self, path: Path) -> bool:
        """Whether the already-resolved ``path`` is the root or under it."""
        if self._root is None:
            return False
        return path == self._root or self._root in path.parents

    def resolve(self, path: str) -> Path | None:
        """Map ``path`` to an absolute path inside the workspace root."""
        if self._root is None:
            return None

        candidate = Path(path.strip() or ".")
        if not candidate.is_absolute():
            candidate = self._root / candidate
        try:
            resolved = candidate.resolve()
        except (OSError, RuntimeError, ValueError):
            return None

        if not self.contains(resolved):
            logger.debug("Rejected path outside workspace: %s", path)
            return None
        return resolved
