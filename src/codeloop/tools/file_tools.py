"""File tools: read, write and edit."""

import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import aiofiles

from ..diff import render_diff, render_new_file
from ..errors import ToolArgumentError, ToolExecutionError
from .registry import Tool, with_diff

DEFAULT_MAX_LINES = 2000


def resolve_path(file_path: str, cwd: str) -> Path:
    """Expand ``~`` and resolve relative paths against the session directory."""
    p = Path(os.path.expanduser(file_path))
    return p if p.is_absolute() else Path(cwd) / p


def require_arg(tool: str, args: Dict[str, Any], key: str) -> Any:
    value = args.get(key)
    if value is None:
        raise ToolArgumentError(tool, f"missing required argument '{key}'")
    return value


def int_arg(tool: str, args: Dict[str, Any], key: str, default: int) -> int:
    value = args.get(key)
    if value is None:
        return default
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ToolArgumentError(tool, f"'{key}' must be an integer")


async def read_text(path: Path) -> str:
    try:
        async with aiofiles.open(path, "r", encoding="utf-8", errors="replace") as f:
            return await f.read()
    except OSError as e:
        raise ToolExecutionError(f"Cannot read {path}: {e.strerror or e}")


async def write_text(path: Path, content: str) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        async with aiofiles.open(path, "w", encoding="utf-8") as f:
            await f.write(content)
    except OSError as e:
        raise ToolExecutionError(f"Cannot write {path}: {e.strerror or e}")


class ReadFileTool(Tool):
    name = "read"
    description = (
        "Read the contents of a file. Supports text files. "
        "Use offset and limit for large files."
    )
    parameters = {
        "type": "object",
        "required": ["path"],
        "properties": {
            "path": {"type": "string", "description": "File path (relative or absolute)"},
            "offset": {"type": "integer", "description": "Line number to start from (1-indexed)"},
            "limit": {"type": "integer", "description": "Maximum number of lines to read"},
        },
    }

    async def execute(self, args: Dict[str, Any], cwd: str) -> str:
        path = resolve_path(str(require_arg(self.name, args, "path")), cwd)
        offset = int_arg(self.name, args, "offset", 1)
        limit = int_arg(self.name, args, "limit", DEFAULT_MAX_LINES)

        if not path.exists():
            raise ToolExecutionError(f"File not found: {path}")
        if path.is_dir():
            raise ToolExecutionError(f"Path is a directory, not a file: {path}")

        lines = (await read_text(path)).splitlines()
        start = max(0, offset - 1)
        end = min(len(lines), start + max(0, limit))

        if start >= len(lines):
            raise ToolExecutionError(f"Offset {offset} exceeds file length ({len(lines)} lines)")

        out = [f"{i + 1}\t{lines[i]}\n" for i in range(start, end)]
        if end < len(lines):
            out.append(f"\n[Truncated: showing lines {start + 1}-{end} of {len(lines)} total]")
        return "".join(out)


class WriteFileTool(Tool):
    name = "write"
    description = (
        "Write content to a file. Creates the file if it doesn't exist, "
        "overwrites if it does. Auto-creates parent directories."
    )
    parameters = {
        "type": "object",
        "required": ["path", "content"],
        "properties": {
            "path": {"type": "string", "description": "File path (relative or absolute)"},
            "content": {"type": "string", "description": "Content to write"},
        },
    }
    mutating = True

    async def execute(self, args: Dict[str, Any], cwd: str) -> str:
        raw_path = str(require_arg(self.name, args, "path"))
        content = str(require_arg(self.name, args, "content"))
        path = resolve_path(raw_path, cwd)

        old_content = await read_text(path) if path.is_file() else None
        await write_text(path, content)

        size = len(content.encode("utf-8"))
        if old_content is not None:
            diff = render_diff(old_content, content, 1)
        else:
            diff = render_new_file(content)
        return with_diff(f"Wrote {size} bytes to {path}", diff)


def _find_loose_match(content: str, old_text: str) -> List[Tuple[int, int]]:
    """Character spans of line blocks equal to ``old_text`` ignoring trailing whitespace."""
    content_lines = content.split("\n")
    wanted = [line.rstrip() for line in old_text.split("\n")]
    if wanted and wanted[-1] == "" and len(wanted) > 1:
        wanted = wanted[:-1]

    offsets = []
    pos = 0
    for line in content_lines:
        offsets.append(pos)
        pos += len(line) + 1

    spans = []
    k = len(wanted)
    for i in range(len(content_lines) - k + 1):
        if all(content_lines[i + j].rstrip() == wanted[j] for j in range(k)):
            start = offsets[i]
            end = offsets[i + k - 1] + len(content_lines[i + k - 1])
            spans.append((start, end))
    return spans


class EditFileTool(Tool):
    name = "edit"
    description = (
        "Edit a file by replacing an exact text match with new text. "
        "The oldText must match exactly (including whitespace and indentation)."
    )
    parameters = {
        "type": "object",
        "required": ["path", "oldText", "newText"],
        "properties": {
            "path": {"type": "string", "description": "File path (relative or absolute)"},
            "oldText": {"type": "string", "description": "Exact text to find and replace"},
            "newText": {"type": "string", "description": "Replacement text"},
        },
    }
    mutating = True

    async def execute(self, args: Dict[str, Any], cwd: str) -> str:
        path = resolve_path(str(require_arg(self.name, args, "path")), cwd)
        old_text = str(require_arg(self.name, args, "oldText"))
        new_text = str(require_arg(self.name, args, "newText"))

        if not old_text:
            raise ToolArgumentError(self.name, "oldText must not be empty")
        if not path.is_file():
            raise ToolExecutionError(f"File not found: {path}")

        content = await read_text(path)
        start: Optional[int] = content.find(old_text)
        if start != -1:
            if content.find(old_text, start + 1) != -1:
                raise ToolExecutionError(
                    f"Multiple matches found for oldText in {path}. "
                    "Provide more context to make the match unique."
                )
            end = start + len(old_text)
        else:
            spans = _find_loose_match(content, old_text)
            if not spans:
                raise ToolExecutionError(
                    f"Could not find the specified text in {path}. Make sure oldText matches exactly."
                )
            if len(spans) > 1:
                raise ToolExecutionError(
                    f"Multiple matches found for oldText in {path}. "
                    "Provide more context to make the match unique."
                )
            start, end = spans[0]

        actual_old = content[start:end]
        await write_text(path, content[:start] + new_text + content[end:])

        line_no = content.count("\n", 0, start) + 1
        diff = render_diff(actual_old, new_text, line_no)
        return with_diff(f"Edited {path} (change at line {line_no})", diff)
