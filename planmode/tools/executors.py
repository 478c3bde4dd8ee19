"""Read-only tool executors available to the planner.

ListFiles, ReadFile and SearchText operate inside the workspace root
through a WorkspaceResolver. They never write, and they never raise:
every failure comes back as a ToolResult with ``error`` set.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass
from pathlib import Path

from planmode.tools.workspace import WorkspaceResolver

logger = logging.getLogger(__name__)

# Character cap for ReadFile / SearchText output and observation rendering
MAX_TOOL_OUTPUT = 2000

# SearchText traversal bounds
SEARCH_MAX_FILES = 120
SEARCH_MAX_RESULTS = 40
SEARCH_MAX_FILE_BYTES = 200_000

# Directory names SearchText never descends into
_SKIP_DIRECTORIES: frozenset[str] = frozenset({
    ".git",
    "node_modules",
    ".turbo",
    ".next",
    "dist",
    "build",
})

_LINE_SPLIT_RE = re.compile(r"\r?\n")

EMPTY_DIRECTORY = "(empty directory)"
NO_SEARCH_RESULTS = "No results from SearchText."


@dataclass(frozen=True)
class ToolResult:
    """Outcome of one tool invocation."""

    output: str = ""
    error: str | None = None


def truncate_output(value: str) -> str:
    """Cap ``value`` at MAX_TOOL_OUTPUT characters with a truncation notice."""
    if len(value) <= MAX_TOOL_OUTPUT:
        return value
    return (
        f"{value[:MAX_TOOL_OUTPUT]}\n"
        f"... (truncated {len(value) - MAX_TOOL_OUTPUT} characters)"
    )


def _relative_to_root(path: Path, root: Path) -> str:
    try:
        return path.relative_to(root).as_posix()
    except ValueError:
        return path.name


def list_files(workspace: WorkspaceResolver, argument: str) -> ToolResult:
    """List the immediate entries of a workspace directory, sorted by name."""
    if workspace.root is None:
        return ToolResult(error="Workspace folder is not available for ListFiles.")
    resolved = workspace.resolve(argument or ".")
    if resolved is None:
        return ToolResult(error="ListFiles error: path is outside the workspace.")

    try:
        entries = sorted(resolved.iterdir(), key=lambda p: p.name)
        if not entries:
            return ToolResult(output=EMPTY_DIRECTORY)

        base = _relative_to_root(resolved, workspace.root or resolved)
        lines = [
            f"{base}/{entry.name}{'/' if entry.is_dir() else ''}"
            for entry in entries
        ]
    except OSError as e:
        return ToolResult(error=f"ListFiles error: {e}")

    return ToolResult(output="\n".join(lines))


def read_file(workspace: WorkspaceResolver, argument: str) -> ToolResult:
    """Read a workspace file, truncated to MAX_TOOL_OUTPUT characters."""
    resolved = workspace.resolve(argument) if argument else None
    if resolved is None:
        return ToolResult(error="Unable to resolve path for ReadFile.")

    try:
        if resolved.is_dir():
            return ToolResult(error="ReadFile error: target is a directory.")
        data = resolved.read_text(encoding="utf-8", errors="replace")
    except OSError as e:
        return ToolResult(error=f"ReadFile error: {e}")

    return ToolResult(output=truncate_output(data))


def _compile_pattern(pattern: str) -> re.Pattern[str] | None:
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error:
        logger.debug("Invalid SearchText regex %r, using substring match", pattern)
        return None


def _resolve_children(workspace: WorkspaceResolver, children: list[Path]) -> list[Path]:
    resolved_children = []
    for child in children:
        if child.name in _SKIP_DIRECTORIES:
            continue
        try:
            resolved = child.resolve()
        except (OSError, RuntimeError):
            continue
        if not workspace.contains(resolved):
            logger.debug("SearchText skipped link outside workspace: %s", child)
            continue
        resolved_children.append(resolved)
    return resolved_children


def search_text(workspace: WorkspaceResolver, argument: str) -> ToolResult:
    """Search workspace files for ``pattern | path``, breadth-first.

    The pattern is a case-insensitive regex, falling back to a plain
    case-insensitive substring when it does not compile. Scans at most
    SEARCH_MAX_FILES files and reports at most SEARCH_MAX_RESULTS lines;
    files over SEARCH_MAX_FILE_BYTES are skipped unread.
    """
    pattern, _, raw_path = argument.partition("|")
    pattern = pattern.strip()
    raw_path = raw_path.strip()
    if not pattern:
        return ToolResult(error="SearchText requires a pattern argument.")

    start = workspace.resolve(raw_path or ".")
    if start is None:
        return ToolResult(error="Unable to resolve search path inside the workspace.")

    root = workspace.root or start
    regex = _compile_pattern(pattern)
    needle = pattern.lower()

    results: list[str] = []
    # Entries are resolved paths, so symlinks are followed only within the root
    queue: deque[Path] = deque([start])
    visited: set[Path] = set()
    scanned_files = 0

    while queue and scanned_files < SEARCH_MAX_FILES and len(results) < SEARCH_MAX_RESULTS:
        current = queue.popleft()
        if current in visited:
            continue
        visited.add(current)

        try:
            stat = current.stat()
            is_dir = current.is_dir()
        except OSError:
            continue

        if is_dir:
            try:
                children = sorted(current.iterdir(), key=lambda p: p.name)
            except OSError:
                continue
            queue.extend(_resolve_children(workspace, children))
            continue

        if not current.is_file() or stat.st_size > SEARCH_MAX_FILE_BYTES:
            continue

        scanned_files += 1
        try:
            content = current.read_text(encoding="utf-8", errors="replace")
        except OSError:
            continue

        relative = _relative_to_root(current, root)
        for index, line in enumerate(_LINE_SPLIT_RE.split(content), start=1):
            if len(results) >= SEARCH_MAX_RESULTS:
                break
            matched = regex.search(line) is not None if regex else needle in line.lower()
            if matched:
                results.append(f"{relative}:{index}: {line.strip()}")

    if not results:
        return ToolResult(output=NO_SEARCH_RESULTS)

    return ToolResult(output=truncate_output("\n".join(results)))
