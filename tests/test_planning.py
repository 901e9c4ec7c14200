"""Tests for the planning pass."""

import asyncio
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from codeloop.errors import TransportError
from codeloop.planning import (
    PLAN_MARKER,
    Planner,
    augment_with_plan,
    format_plan_display,
    generate_plan,
    should_skip_planning,
)


class FakeClient:
    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, messages, temperature=None, max_tokens=None):
        self.calls.append((messages, temperature, max_tokens))
        if self.error:
            raise self.error
        return self.reply


TASK = "Add a retry decorator to the http client and cover it with tests"


def test_skip_rules():
    assert should_skip_planning("")
    assert should_skip_planning("hi")
    assert should_skip_planning("/help me please now")
    assert should_skip_planning("fix bug")
    assert should_skip_planning("hello there, can you refactor this module")
    assert should_skip_planning("what is the purpose of this repository")
    assert should_skip_planning("explain the config loader")
    assert should_skip_planning(f"{PLAN_MARKER} already planned task text")
    assert not should_skip_planning(TASK)
    assert not should_skip_planning("explain and then rewrite the config loader so it supports yaml files")


def test_augment_with_plan():
    assert augment_with_plan("do it", "1. step") == f"{PLAN_MARKER}\n\nPLAN:\n1. step\n\nTASK:\ndo it"


def test_format_plan_display():
    assert format_plan_display(None) == "No plan generated"
    assert format_plan_display("  \n ") == "No plan generated"
    out = format_plan_display("**Plan:** go\n\n1. a\n")
    assert "Plan:" in out
    assert "  **Plan:** go\n  1. a\n" in out


def test_generate_plan_strips_think():
    client = FakeClient(reply="<think>hmm</think>\n1. do a\n2. do b\n")
    plan = asyncio.run(generate_plan(client, TASK))
    assert plan == "1. do a\n2. do b"
    messages, temperature, max_tokens = client.calls[0]
    assert messages[0].role == "system"
    assert messages[1].content == f"Task: {TASK}"
    assert temperature == 0.3 and max_tokens == 1000


def test_generate_plan_skips_and_failures():
    client = FakeClient(reply="1. x")
    assert asyncio.run(generate_plan(client, "hi")) is None
    assert client.calls == []
    assert asyncio.run(generate_plan(FakeClient(error=TransportError("down")), TASK)) is None
    assert asyncio.run(generate_plan(FakeClient(reply="<think>only</think>"), TASK)) is None


def test_planner_callable():
    shown = []
    planner = Planner(FakeClient(reply="1. step"), on_plan=shown.append)
    out = asyncio.run(planner(TASK))
    assert out.startswith(PLAN_MARKER)
    assert out.endswith(TASK)
    assert shown == ["1. step"]
    assert asyncio.run(planner("thanks")) == "thanks"
