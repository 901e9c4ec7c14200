"""Tests for event-stream decoding."""

import asyncio
import json
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import pytest

from codeloop.errors import StreamParseError
from codeloop.stream_decoder import (
    ContentDelta,
    Done,
    StreamDecoder,
    ToolCallDelta,
    extract_payload,
    parse_chunk,
)
from codeloop.tool_calls import ToolCall


def content_line(text):
    return "data: " + json.dumps({"choices": [{"delta": {"content": text}}]})


def tool_line(index, call_id=None, name=None, arguments=None):
    tc = {"index": index, "function": {}}
    if call_id:
        tc["id"] = call_id
    if name:
        tc["function"]["name"] = name
    if arguments is not None:
        tc["function"]["arguments"] = arguments
    return "data: " + json.dumps({"choices": [{"delta": {"tool_calls": [tc]}}]})


def test_extract_payload():
    assert extract_payload("data: {}") == "{}"
    assert extract_payload("data:[DONE]") == "[DONE]"
    assert extract_payload("") is None
    assert extract_payload(": keep-alive") is None
    assert extract_payload("event: message") is None


def test_parse_chunk_content_and_tools():
    events = parse_chunk({"choices": [{"delta": {
        "content": "hi",
        "tool_calls": [{"index": 2, "id": "c", "function": {"name": "read", "arguments": "{}"}}],
    }}]})
    assert events == [ContentDelta("hi"), ToolCallDelta(index=2, id="c", name="read", arguments="{}")]


def test_parse_chunk_content_parts():
    events = parse_chunk({"choices": [{"delta": {"content": [{"type": "text", "text": "a"}, {"text": "b"}]}}]})
    assert events == [ContentDelta("ab")]


def test_parse_chunk_empty_choices():
    assert parse_chunk({"choices": []}) == []
    assert parse_chunk({"usage": {"total_tokens": 3}}) == []


def test_parse_chunk_rejects_bad_shapes():
    with pytest.raises(StreamParseError):
        parse_chunk({"choices": "nope"})
    with pytest.raises(StreamParseError):
        parse_chunk({"choices": [{"delta": "text"}]})
    with pytest.raises(StreamParseError):
        parse_chunk({"choices": [{"delta": {"tool_calls": [{"index": "x"}]}}]})
    with pytest.raises(StreamParseError):
        parse_chunk({"choices": [{"delta": {"tool_calls": 5}}]})
    with pytest.raises(StreamParseError):
        parse_chunk({"choices": [{"delta": {"tool_calls": [{"index": 0, "id": 7}]}}]})
    with pytest.raises(StreamParseError):
        parse_chunk({"choices": [{"delta": {"tool_calls": [{"index": 0, "function": {"name": ["read"]}}]}}]})
    with pytest.raises(StreamParseError):
        parse_chunk({"choices": [{"delta": {"tool_calls": [{"index": float("inf")}]}}]})


def test_decode_ends_with_single_done():
    decoder = StreamDecoder()
    events = list(decoder.decode([content_line("a"), "", "data: [DONE]", content_line("ignored")]))
    assert events == [ContentDelta("a"), Done()]


def test_decode_without_sentinel_still_finishes():
    events = list(StreamDecoder().decode([content_line("a")]))
    assert events[-1] == Done()


def test_consume_collects_turn():
    shown = []
    decoder = StreamDecoder(on_text=shown.append)
    turn = decoder.consume([
        content_line("Hello <thi"),
        content_line("nk>hmm</think> there"),
        tool_line(0, "t1", "read"),
        tool_line(0, arguments='{"pa'),
        tool_line(0, arguments='th":"a.txt"}'),
        "data: [DONE]",
    ])
    assert turn.content == "Hello <think>hmm</think> there"
    assert "".join(shown) == "Hello  there"
    assert turn.tool_calls == [ToolCall(id="t1", name="read", arguments='{"path":"a.txt"}')]
    assert turn.has_tool_calls


def test_malformed_chunks_are_skipped():
    decoder = StreamDecoder()
    turn = decoder.consume([
        content_line("one "),
        "data: {not json",
        'data: {"choices": 5}',
        'data: {"choices": [{"delta": {"tool_calls": 5}}]}',
        content_line("two"),
        "data: [DONE]",
    ])
    assert turn.content == "one two"
    assert turn.tool_calls == []
    assert turn.skipped_chunks == 3


def test_metadata_is_recorded():
    lines = [
        content_line("x"),
        "data: " + json.dumps({"choices": [{"delta": {}, "finish_reason": "stop"}],
                               "usage": {"prompt_tokens": 5, "completion_tokens": 1}}),
        "data: [DONE]",
    ]
    turn = StreamDecoder().consume(lines)
    assert turn.finish_reason == "stop"
    assert turn.usage["prompt_tokens"] == 5


def test_aconsume_stops_at_sentinel_and_closes_source():
    state = {"closed": False, "read_after_done": False}

    async def source():
        try:
            yield content_line("hi")
            yield "data: [DONE]"
            state["read_after_done"] = True
            yield content_line("late")
        finally:
            state["closed"] = True

    turn = asyncio.run(StreamDecoder().aconsume(source()))
    assert turn.content == "hi"
    assert state["closed"]
    assert not state["read_after_done"]


def test_aconsume_flushes_partial_marker_at_end():
    shown = []

    async def source():
        yield content_line("end <th")

    asyncio.run(StreamDecoder(on_text=shown.append).aconsume(source()))
    assert "".join(shown) == "end <th"
