"""Read-only workspace tools used by the plan runner."""

from planmode.tools.executors import (
    MAX_TOOL_OUTPUT,
    ToolResult,
    list_files,
    read_file,
    search_text,
    truncate_output,
)
from planmode.tools.runner import TOOL_EXECUTORS, execute_plan_tools
from planmode.tools.workspace import WorkspaceResolver

__all__ = [
    "MAX_TOOL_OUTPUT",
    "TOOL_EXECUTORS",
    "ToolResult",
    "WorkspaceResolver",
    "execute_plan_tools",
    "list_files",
    "read_file",
    "search_text",
    "truncate_output",
]
