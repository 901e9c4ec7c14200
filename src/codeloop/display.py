"""Terminal rendering of tool activity (rich markup strings)."""

from typing import Any, Dict

from rich.markup import escape

PREVIEW_MAX_LINES = 4
PREVIEW_MAX_LINE_LEN = 120


def _shorten(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[: limit - 3] + "..."


def tool_header(name: str) -> str:
    return f"[yellow]\\[{escape(name)}][/yellow]"


def tool_arg_summary(name: str, args: Dict[str, Any]) -> str:
    """The one argument worth showing next to the tool name."""
    if name in ("read", "write", "edit"):
        return str(args.get("path", ""))
    if name == "bash":
        return _shorten(str(args.get("command", "")), 80)
    if name == "grep":
        return f"'{args['pattern']}'" if "pattern" in args else ""
    if name == "find":
        return str(args.get("pattern", ""))
    return ""


def spinner_label(name: str, args: Dict[str, Any]) -> str:
    if name == "read":
        return f"Reading {args.get('path', 'file')}"
    if name == "write":
        return f"Writing {args.get('path', 'file')}"
    if name == "edit":
        return f"Editing {args.get('path', 'file')}"
    if name == "bash":
        return f"Running {_shorten(str(args.get('command', 'command')), 40)}"
    if name == "grep":
        return f"Searching '{args.get('pattern', '')}'"
    if name == "find":
        return f"Finding {args.get('pattern', 'files')}"
    return f"Executing {name}"


def bash_preview(result: str) -> str:
    """First few lines of command output, dimmed."""
    lines = result.split("\n")
    while lines and not lines[-1].strip():
        lines.pop()
    if not lines:
        return "[dim](empty)[/dim]"

    out = []
    for line in lines[:PREVIEW_MAX_LINES]:
        if len(line) > PREVIEW_MAX_LINE_LEN:
            line = line[:PREVIEW_MAX_LINE_LEN] + "…"
        out.append(f"[dim]  {escape(line)}[/dim]")
    if len(lines) > PREVIEW_MAX_LINES:
        out.append(f"[dim]  … ({len(lines)} lines total)[/dim]")
    return "\n".join(out)


def result_size(result: str) -> str:
    return f"[dim]({len(result)} chars)[/dim]"
