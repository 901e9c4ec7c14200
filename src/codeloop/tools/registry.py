"""Tool contract and the per-session tool registry."""

import time
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel

from ..errors import ToolError, ToolLookupError
from ..logger import get_logger

_log = get_logger("tools")

# Everything after this token in a tool result is display-only.
DIFF_SEPARATOR = "@@DIFF@@"


class ToolResult(BaseModel):
    """Result of a tool execution."""

    success: bool
    output: str = ""
    error: Optional[str] = None

    def to_message(self) -> str:
        """Convert result to the text appended as the tool message."""
        if self.success:
            return self.output
        return f"Error: {self.error}"


def split_result(text: str) -> Tuple[str, Optional[str]]:
    """Split a raw tool result into (model text, diff display)."""
    if DIFF_SEPARATOR not in text:
        return text, None
    model_text, diff = text.split(DIFF_SEPARATOR, 1)
    return model_text, diff


def with_diff(model_text: str, diff_display: str) -> str:
    return f"{model_text}{DIFF_SEPARATOR}{diff_display}"


class Tool:
    """A capability the model can call by name.

    Subclasses set ``name``, ``description`` and ``parameters`` (a JSON
    schema object) and implement ``execute``. Tools that change the
    workspace set ``mutating = True`` and are left out of read-only sessions.
    """

    name: str = ""
    description: str = ""
    parameters: Dict[str, Any] = {"type": "object", "properties": {}, "required": []}
    mutating: bool = False

    async def execute(self, args: Dict[str, Any], cwd: str) -> str:
        """Run the tool.

        Raises:
            ToolExecutionError: on I/O or subprocess failure.
        """
        raise NotImplementedError

    def to_openai_schema(self) -> Dict[str, Any]:
        """Convert tool to OpenAI-compatible function schema."""
        return {
            "type": "function",
            "function": {
                "name": self.name,
                "description": self.description,
                "parameters": self.parameters,
            },
        }

    async def run(self, args: Dict[str, Any], cwd: str) -> ToolResult:
        """Execute and fold failures into a ToolResult instead of raising."""
        started = time.perf_counter()
        try:
            output = await self.execute(args, cwd)
        except ToolError as e:
            _log.warning("tool %s failed: %s", self.name, e)
            return ToolResult(success=False, error=str(e))
        except Exception as e:
            _log.warning("tool %s raised %s: %s", self.name, type(e).__name__, e)
            return ToolResult(success=False, error=f"{type(e).__name__}: {e}")
        _log.info("tool %s ok in %.2fs (%d chars)", self.name, time.perf_counter() - started, len(output))
        return ToolResult(success=True, output=output)


class ToolRegistry:
    """Ordered mapping from tool name to implementation."""

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: Dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        self._tools[tool.name] = tool

    def get(self, name: str) -> Optional[Tool]:
        """Get a tool by name."""
        return self._tools.get(name)

    def require(self, name: str) -> Tool:
        tool = self._tools.get(name)
        if tool is None:
            raise ToolLookupError(name)
        return tool

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)

    def names(self) -> List[str]:
        return list(self._tools)

    def list_tools(self) -> List[Tool]:
        """List all registered tools."""
        return list(self._tools.values())

    def readonly(self) -> "ToolRegistry":
        """A copy without the tools that modify the workspace."""
        return ToolRegistry(t for t in self._tools.values() if not t.mutating)

    def to_openai_schema(self) -> List[Dict[str, Any]]:
        """Get all tools in OpenAI-compatible schema."""
        return [tool.to_openai_schema() for tool in self._tools.values()]
