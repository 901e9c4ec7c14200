"""Terminal coding agent for OpenAI-compatible chat endpoints."""

__version__ = "0.2.0"

from .agent import AgentLoop, LoopState
from .config import Config, ModelConfig
from .diff import DiffKind, DiffLine, compute_diff, render_diff
from .errors import (
    CodeloopError,
    ConfigurationError,
    StreamParseError,
    ToolArgumentError,
    ToolExecutionError,
    ToolLookupError,
    TransportError,
)
from .history import ConversationHistory, Message
from .stream_decoder import StreamDecoder
from .streaming_client import StreamingClient
from .tag_filter import TagFilter
from .tool_calls import ToolCall, ToolCallAccumulator
from .tools import ToolRegistry, default_registry

__all__ = [
    "AgentLoop",
    "LoopState",
    "Config",
    "ModelConfig",
    "DiffKind",
    "DiffLine",
    "compute_diff",
    "render_diff",
    "CodeloopError",
    "ConfigurationError",
    "StreamParseError",
    "ToolArgumentError",
    "ToolExecutionError",
    "ToolLookupError",
    "TransportError",
    "ConversationHistory",
    "Message",
    "StreamDecoder",
    "StreamingClient",
    "TagFilter",
    "ToolCall",
    "ToolCallAccumulator",
    "ToolRegistry",
    "default_registry",
]
