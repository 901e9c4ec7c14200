"""Exceptions raised by the agent core."""

from typing import Optional


class CodeloopError(Exception):
    """Base exception for codeloop."""

    pass


class ConfigurationError(CodeloopError):
    """Missing or inconsistent configuration (no model, unknown provider, ...)."""

    pass


class TransportError(CodeloopError):
    """The model endpoint answered with a non-success status or could not be reached."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class StreamParseError(CodeloopError):
    """A single event-stream chunk could not be decoded."""

    pass


class ToolError(CodeloopError):
    """Base class for tool related failures."""

    pass


class ToolLookupError(ToolError):
    """The model asked for a tool that is not available in this session."""

    def __init__(self, tool_name: str):
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class ToolArgumentError(ToolError):
    """Tool arguments are not a valid JSON object."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Invalid arguments for {tool_name}: {message}")
        self.tool_name = tool_name


class ToolExecutionError(ToolError):
    """I/O or subprocess failure inside a tool."""

    pass
