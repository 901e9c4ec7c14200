"""Tests for terminal helpers: tool display strings, spinner and CLI wiring."""

import io
import sys
import time
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from codeloop.cli import SLASH_COMMANDS, SlashCommandCompleter, build_parser
from codeloop.display import bash_preview, result_size, spinner_label, tool_arg_summary
from codeloop.spinner import CLEAR_LINE, Spinner


def test_tool_arg_summary():
    assert tool_arg_summary("read", {"path": "a.py"}) == "a.py"
    assert tool_arg_summary("grep", {"pattern": "foo"}) == "'foo'"
    assert tool_arg_summary("find", {"pattern": "*.py"}) == "*.py"
    long_cmd = "echo " + "x" * 100
    summary = tool_arg_summary("bash", {"command": long_cmd})
    assert len(summary) == 80 and summary.endswith("...")
    assert tool_arg_summary("other", {"a": 1}) == ""


def test_spinner_labels():
    assert spinner_label("read", {"path": "a.py"}) == "Reading a.py"
    assert spinner_label("write", {}) == "Writing file"
    assert spinner_label("edit", {"path": "b"}) == "Editing b"
    assert spinner_label("bash", {"command": "x" * 50}) == "Running " + "x" * 37 + "..."
    assert spinner_label("grep", {"pattern": "p"}) == "Searching 'p'"
    assert spinner_label("find", {}) == "Finding files"
    assert spinner_label("mystery", {}) == "Executing mystery"


def test_bash_preview():
    assert bash_preview("") == "[dim](empty)[/dim]"
    assert bash_preview("\n\n") == "[dim](empty)[/dim]"
    short = bash_preview("one\ntwo\n")
    assert short == "[dim]  one[/dim]\n[dim]  two[/dim]"
    many = bash_preview("\n".join(str(i) for i in range(10)))
    assert many.count("\n") == 4
    assert "… (10 lines total)" in many
    wide = bash_preview("y" * 200)
    assert "y" * 120 + "…" in wide


def test_bash_preview_escapes_markup():
    assert "\\[red]" in bash_preview("[red]not a tag")


def test_result_size():
    assert result_size("abcd") == "[dim](4 chars)[/dim]"


def test_spinner_clears_its_line():
    stream = io.StringIO()
    spinner = Spinner("Working", stream=stream, interval=0.01, enabled=True)
    with spinner:
        time.sleep(0.05)
        assert spinner.running
    assert not spinner.running
    out = stream.getvalue()
    assert "Working..." in out
    assert out.endswith(CLEAR_LINE)


def test_spinner_clears_on_error():
    stream = io.StringIO()
    try:
        with Spinner("Busy", stream=stream, interval=0.01, enabled=True):
            time.sleep(0.03)
            raise ValueError("boom")
    except ValueError:
        pass
    assert stream.getvalue().endswith(CLEAR_LINE)


def test_spinner_disabled_writes_nothing():
    stream = io.StringIO()
    spinner = Spinner(stream=stream, enabled=False)
    spinner.start()
    spinner.stop()
    spinner.stop()
    assert stream.getvalue() == ""


def test_parser_options():
    args = build_parser().parse_args(["-m", "qwen", "-P", "ollama", "-r", "-p", "hello", "--no-planning"])
    assert args.model == "qwen"
    assert args.provider == "ollama"
    assert args.readonly and args.no_planning
    assert args.print == "hello"
    assert args.cwd == "."


def test_slash_completer():
    from prompt_toolkit.document import Document

    completer = SlashCommandCompleter()
    words = [c.text for c in completer.get_completions(Document("/c"), None)]
    assert words == ["/clear"]
    all_words = [c.text for c in completer.get_completions(Document("/"), None)]
    assert all_words == list(SLASH_COMMANDS)
    assert list(completer.get_completions(Document("hello"), None)) == []
