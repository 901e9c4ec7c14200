"""Tool definitions and registry for codeloop."""

from .registry import DIFF_SEPARATOR, Tool, ToolRegistry, ToolResult, split_result, with_diff
from .file_tools import EditFileTool, ReadFileTool, WriteFileTool, resolve_path
from .shell_tools import BashTool
from .search_tools import FindFilesTool, GrepTool


def default_registry(readonly: bool = False) -> ToolRegistry:
    """The session tool set; read-only sessions drop write, edit and bash."""
    registry = ToolRegistry([
        ReadFileTool(),
        GrepTool(),
        FindFilesTool(),
        WriteFileTool(),
        EditFileTool(),
        BashTool(),
    ])
    return registry.readonly() if readonly else registry


__all__ = [
    "DIFF_SEPARATOR",
    "Tool",
    "ToolRegistry",
    "ToolResult",
    "split_result",
    "with_diff",
    "resolve_path",
    "ReadFileTool",
    "WriteFileTool",
    "EditFileTool",
    "BashTool",
    "GrepTool",
    "FindFilesTool",
    "default_registry",
]
