"""The agent loop: model request, stream decoding, tool execution, repeat."""

import json
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, List, Optional

from .errors import ToolArgumentError, ToolError
from .history import ConversationHistory, Message
from .logger import get_logger, truncate
from .stream_decoder import DecodedTurn, StreamDecoder
from .tool_calls import ToolCall
from .tools.registry import ToolRegistry, split_result

_log = get_logger("agent")

MAX_RESULT_CHARS = 50_000
TRUNCATION_NOTE = "\n[Output truncated at 50KB]"

SYSTEM_PROMPT = """You are codeloop, a helpful AI coding assistant. You help users with software engineering tasks including writing code, debugging, refactoring, and explaining code.

You have access to tools for reading, writing, and editing files, running bash commands, searching files with grep, and finding files by pattern.

Always use tools to interact with the filesystem. Read files before editing them. Be concise in your responses. Focus on solving the user's problem efficiently.

When working on code:
- Read relevant files first to understand the codebase
- Make targeted, minimal changes
- Explain what you're doing briefly
- Use bash for running tests, git commands, builds, etc."""

READONLY_NOTE = """

This session is read-only: you can read and search files but cannot modify them or run commands."""


class LoopState(Enum):
    AWAITING_MODEL = "awaiting_model"
    EXECUTING_TOOLS = "executing_tools"
    DONE = "done"


def parse_arguments(call: ToolCall) -> Dict[str, Any]:
    """Decode a call's argument JSON; it must be an object."""
    try:
        args = json.loads(call.arguments or "{}")
    except json.JSONDecodeError as e:
        raise ToolArgumentError(call.name, f"arguments are not valid JSON ({e.msg} at position {e.pos})")
    if not isinstance(args, dict):
        raise ToolArgumentError(call.name, f"expected a JSON object, got {type(args).__name__}")
    return args


def truncate_result(text: str, limit: int = MAX_RESULT_CHARS) -> str:
    if len(text) <= limit:
        return text
    return text[:limit] + TRUNCATION_NOTE


class AgentLoop:
    """Drives one conversation with a tool-calling model.

    The loop owns the conversation history. Messages produced during a turn
    are kept in a pending list and committed together once the model answers
    without tool calls, so an interrupted or failed turn leaves the history
    exactly as it was.

    ``client`` needs ``build_payload(messages, tools)`` and an async
    ``stream_lines(payload)``; ``StreamingClient`` provides both.
    """

    def __init__(
        self,
        client,
        registry: ToolRegistry,
        cwd: str,
        system_prompt: str = SYSTEM_PROMPT,
        on_text: Optional[Callable[[str], None]] = None,
        on_request: Optional[Callable[[], None]] = None,
        on_tool_start: Optional[Callable[[ToolCall], None]] = None,
        on_tool_result: Optional[Callable[[ToolCall, str, Optional[str]], None]] = None,
        planner: Optional[Callable[[str], Awaitable[str]]] = None,
        max_result_chars: int = MAX_RESULT_CHARS,
    ):
        self.client = client
        self.registry = registry
        self.cwd = cwd
        self.system_prompt = system_prompt
        self.on_text = on_text
        self.on_request = on_request
        self.on_tool_start = on_tool_start
        self.on_tool_result = on_tool_result
        self.planner = planner
        self.max_result_chars = max_result_chars
        self.history = ConversationHistory()
        self.state = LoopState.DONE

    def reset(self) -> None:
        """Forget the conversation."""
        self.history.clear()
        self.state = LoopState.DONE

    def _request_messages(self, pending: List[Message]) -> List[Message]:
        return [Message.system(self.system_prompt), *self.history, *pending]

    async def _request_turn(self, pending: List[Message]) -> DecodedTurn:
        payload = self.client.build_payload(
            self._request_messages(pending), self.registry.to_openai_schema(),
        )
        if self.on_request:
            self.on_request()
        decoder = StreamDecoder(on_text=self.on_text)
        return await decoder.aconsume(self.client.stream_lines(payload))

    async def run_turn(self, user_input: str) -> str:
        """Run one user turn to completion and return the final assistant text.

        Raises:
            TransportError: the model endpoint failed; nothing is committed.
        """
        if self.planner is not None:
            user_input = await self.planner(user_input)

        pending: List[Message] = [Message.user(user_input)]
        iteration = 0
        self.state = LoopState.AWAITING_MODEL
        try:
            while True:
                iteration += 1
                turn = await self._request_turn(pending)
                pending.append(Message.assistant(turn.content, turn.tool_calls))

                if not turn.has_tool_calls:
                    self.history.extend(pending)
                    self.state = LoopState.DONE
                    _log.info(
                        "turn done after %d model call(s), %d message(s) committed",
                        iteration, len(pending),
                    )
                    return turn.content

                self.state = LoopState.EXECUTING_TOOLS
                for call in turn.tool_calls:
                    result = await self.execute_tool_call(call)
                    pending.append(Message.tool(call.id, result))
                self.state = LoopState.AWAITING_MODEL
        except BaseException:
            _log.info("turn abandoned at %s; %d pending message(s) dropped", self.state.value, len(pending))
            self.state = LoopState.DONE
            raise

    async def execute_tool_call(self, call: ToolCall) -> str:
        """Run one tool call and return the text sent back to the model.

        Lookup and argument failures become ``Error: ...`` results instead of
        raising, so the model sees them and can correct itself.
        """
        if self.on_tool_start:
            self.on_tool_start(call)

        diff: Optional[str] = None
        try:
            args = parse_arguments(call)
            tool = self.registry.require(call.name)
        except ToolError as e:
            _log.warning("tool call %s rejected: %s (args=%s)", call.id, e, truncate(call.arguments))
            text = f"Error: {e}"
        else:
            _log.info("executing %s id=%s args=%s", call.name, call.id, truncate(call.arguments))
            result = await tool.run(args, self.cwd)
            text, diff = split_result(result.to_message())

        text = truncate_result(text, self.max_result_chars)
        if self.on_tool_result:
            self.on_tool_result(call, text, diff)
        return text
