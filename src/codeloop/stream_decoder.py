"""Decoder for OpenAI-compatible ``chat/completions`` event streams.

The response body is a sequence of lines::

    data: {"choices":[{"delta":{"content":"Hel"}}]}
    data: {"choices":[{"delta":{"tool_calls":[{"index":0,"function":{"arguments":"{\\"pa"}}]}}]}
    data: [DONE]

Each payload becomes zero or more StreamEvents. The decoder feeds content
through a TagFilter for live display and tool-call fragments through a
ToolCallAccumulator, then hands back the finished assistant turn.
"""

import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterable, Callable, Dict, Iterable, Iterator, List, Optional, Union

from .errors import StreamParseError
from .logger import get_logger, truncate
from .tag_filter import TagFilter
from .tool_calls import ToolCall, ToolCallAccumulator

_log = get_logger("stream")

EVENT_MARKER = "data:"
DONE_SENTINEL = "[DONE]"


@dataclass(frozen=True)
class ContentDelta:
    text: str


@dataclass(frozen=True)
class ToolCallDelta:
    index: int
    id: Optional[str] = None
    name: Optional[str] = None
    arguments: str = ""


@dataclass(frozen=True)
class Done:
    pass


StreamEvent = Union[ContentDelta, ToolCallDelta, Done]


@dataclass
class DecodedTurn:
    """Everything the model produced in one streamed response."""
    content: str = ""
    tool_calls: List[ToolCall] = field(default_factory=list)
    finish_reason: Optional[str] = None
    usage: Dict[str, Any] = field(default_factory=dict)
    skipped_chunks: int = 0

    @property
    def has_tool_calls(self) -> bool:
        return bool(self.tool_calls)


def extract_payload(line: str) -> Optional[str]:
    """Return the payload of an event line, or None for anything else."""
    line = line.strip()
    if not line.startswith(EVENT_MARKER):
        return None
    return line[len(EVENT_MARKER):].strip()


def _content_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Some providers emit content parts instead of a plain string.
        parts = []
        for part in content:
            if isinstance(part, dict) and isinstance(part.get("text"), str):
                parts.append(part["text"])
        return "".join(parts)
    return ""


def parse_chunk(data: Dict[str, Any]) -> List[StreamEvent]:
    """Turn one decoded payload into stream events.

    Raises:
        StreamParseError: the payload does not have the expected shape.
    """
    if not isinstance(data, dict):
        raise StreamParseError(f"payload is not an object: {type(data).__name__}")
    choices = data.get("choices") or []
    if not isinstance(choices, list):
        raise StreamParseError("'choices' is not a list")
    if not choices:
        return []

    choice = choices[0]
    if not isinstance(choice, dict):
        raise StreamParseError("choice is not an object")
    delta = choice.get("delta") or {}
    if not isinstance(delta, dict):
        raise StreamParseError("'delta' is not an object")

    events: List[StreamEvent] = []
    text = _content_text(delta.get("content"))
    if text:
        events.append(ContentDelta(text))

    tool_calls = delta.get("tool_calls") or []
    if not isinstance(tool_calls, list):
        raise StreamParseError("'tool_calls' is not a list")
    for tc in tool_calls:
        if not isinstance(tc, dict):
            raise StreamParseError("tool call delta is not an object")
        fn = tc.get("function") or {}
        if not isinstance(fn, dict):
            raise StreamParseError("'function' is not an object")
        try:
            index = int(tc.get("index", 0) or 0)
        except (TypeError, ValueError, OverflowError):
            raise StreamParseError(f"bad tool call index: {tc.get('index')!r}")
        call_id = tc.get("id")
        name = fn.get("name")
        if call_id is not None and not isinstance(call_id, str):
            raise StreamParseError(f"tool call id is not a string: {call_id!r}")
        if name is not None and not isinstance(name, str):
            raise StreamParseError(f"tool name is not a string: {name!r}")
        arguments = fn.get("arguments")
        events.append(ToolCallDelta(
            index=index,
            id=call_id or None,
            name=name or None,
            arguments=arguments if isinstance(arguments, str) else "",
        ))
    return events


class StreamDecoder:
    """Stateful consumer of one streamed model response.

    Args:
        on_text: called with display-safe text as soon as it is known.
        tag_filter: filter used for the live display (``<think>`` by default).
    """

    def __init__(
        self,
        on_text: Optional[Callable[[str], None]] = None,
        tag_filter: Optional[TagFilter] = None,
    ):
        self.on_text = on_text
        self.tag_filter = tag_filter or TagFilter()
        self.accumulator = ToolCallAccumulator()
        self._content: List[str] = []
        self._finish_reason: Optional[str] = None
        self._usage: Dict[str, Any] = {}
        self._skipped = 0
        self._done = False

    # ── Line level ───────────────────────────────────────────

    def decode_line(self, line: str) -> List[StreamEvent]:
        """Events for a single raw line. Malformed payloads yield nothing."""
        if self._done:
            return []
        payload = extract_payload(line)
        if payload is None:
            return []
        if payload == DONE_SENTINEL:
            self._done = True
            return [Done()]
        try:
            data = json.loads(payload)
            events = parse_chunk(data)
        except (json.JSONDecodeError, StreamParseError) as e:
            self._skipped += 1
            _log.debug("skipping malformed chunk (%s): %s", e, truncate(payload))
            return []
        self._note_metadata(data)
        return events

    def decode(self, lines: Iterable[str]) -> Iterator[StreamEvent]:
        """Events for a whole stream, always ending with exactly one Done."""
        for line in lines:
            yield from self.decode_line(line)
            if self._done:
                return
        self._done = True
        yield Done()

    def _note_metadata(self, data: Dict[str, Any]) -> None:
        usage = data.get("usage")
        if isinstance(usage, dict):
            self._usage = usage
        choices = data.get("choices") or []
        if choices and isinstance(choices[0], dict) and choices[0].get("finish_reason"):
            self._finish_reason = choices[0]["finish_reason"]

    # ── Event level ──────────────────────────────────────────

    def handle(self, event: StreamEvent) -> None:
        if isinstance(event, ContentDelta):
            self._content.append(event.text)
            self._emit(self.tag_filter.feed(event.text))
        elif isinstance(event, ToolCallDelta):
            self.accumulator.add(event.index, event.id, event.name, event.arguments)
        elif isinstance(event, Done):
            self._emit(self.tag_filter.finish())

    def _emit(self, text: str) -> None:
        if text and self.on_text:
            self.on_text(text)

    def result(self) -> DecodedTurn:
        turn = DecodedTurn(
            content="".join(self._content),
            tool_calls=self.accumulator.finalize(),
            finish_reason=self._finish_reason,
            usage=self._usage,
            skipped_chunks=self._skipped,
        )
        _log.info(
            "stream complete: finish=%s content_len=%d tool_calls=%d skipped=%d usage=%s",
            turn.finish_reason, len(turn.content), len(turn.tool_calls),
            turn.skipped_chunks, turn.usage,
        )
        return turn

    # ── Whole-stream drivers ─────────────────────────────────

    def consume(self, lines: Iterable[str]) -> DecodedTurn:
        for event in self.decode(lines):
            self.handle(event)
        return self.result()

    async def aconsume(self, lines: AsyncIterable[str]) -> DecodedTurn:
        """Async twin of ``consume`` for a network line stream.

        Stops reading as soon as the sentinel arrives and closes the source
        so the underlying HTTP response is released.
        """
        try:
            async for line in lines:
                for event in self.decode_line(line):
                    self.handle(event)
                if self._done:
                    break
        finally:
            aclose = getattr(lines, "aclose", None)
            if aclose is not None:
                await aclose()
        if not self._done:
            self._done = True
            self.handle(Done())
        return self.result()
