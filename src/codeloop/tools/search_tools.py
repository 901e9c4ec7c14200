"""Search tools: regex search over file contents and glob search over names."""

import os
import re
from fnmatch import fnmatch
from pathlib import Path, PurePosixPath
from typing import Any, Dict, Iterator, List

from ..errors import ToolExecutionError
from .file_tools import int_arg, require_arg, resolve_path
from .registry import Tool

DEFAULT_MATCH_LIMIT = 100
DEFAULT_FIND_LIMIT = 1000
MAX_LINE_LENGTH = 500
MAX_DEPTH = 10


def _walk_files(root: Path, max_depth: int = MAX_DEPTH, include_hidden: bool = False) -> Iterator[Path]:
    """Yield files under ``root`` in a stable order, skipping hidden directories."""
    base_depth = len(root.parts)
    for dirpath, dirs, files in os.walk(root):
        depth = len(Path(dirpath).parts) - base_depth
        if not include_hidden:
            dirs[:] = [d for d in dirs if not d.startswith(".")]
        if depth >= max_depth:
            dirs[:] = []
        dirs.sort()
        for file_name in sorted(files):
            if not include_hidden and file_name.startswith("."):
                continue
            yield Path(dirpath) / file_name


def _display_path(path: Path, cwd: str) -> str:
    try:
        return str(path.relative_to(cwd))
    except ValueError:
        return str(path)


class GrepTool(Tool):
    name = "grep"
    description = (
        "Search file contents using a regex pattern. "
        "Returns matching lines with file paths and line numbers."
    )
    parameters = {
        "type": "object",
        "required": ["pattern"],
        "properties": {
            "pattern": {"type": "string", "description": "Regex or literal search pattern"},
            "path": {"type": "string", "description": "Directory or file to search (default: cwd)"},
            "glob": {"type": "string", "description": "Filter by glob pattern (e.g. \"*.ts\")"},
            "ignoreCase": {"type": "boolean", "description": "Case-insensitive search"},
            "context": {"type": "integer", "description": "Lines of context around matches"},
            "limit": {"type": "integer", "description": "Max matches to return (default: 100)"},
        },
    }

    async def execute(self, args: Dict[str, Any], cwd: str) -> str:
        pattern = str(require_arg(self.name, args, "pattern"))
        root = resolve_path(str(args.get("path") or "."), cwd)
        glob = args.get("glob")
        context = max(0, int_arg(self.name, args, "context", 0))
        limit = int_arg(self.name, args, "limit", DEFAULT_MATCH_LIMIT)
        flags = re.IGNORECASE if args.get("ignoreCase") else 0

        try:
            regex = re.compile(pattern, flags)
        except re.error as e:
            raise ToolExecutionError(f"Invalid regex '{pattern}': {e}")

        if root.is_file():
            candidates: Iterator[Path] = iter([root])
        elif root.is_dir():
            candidates = _walk_files(root)
        else:
            raise ToolExecutionError(f"Path not found: {root}")

        out: List[str] = []
        matches = 0
        for file_path in candidates:
            if glob and not fnmatch(file_path.name, glob):
                continue
            try:
                with open(file_path, "r", encoding="utf-8", errors="replace") as f:
                    lines = f.read().splitlines()
            except (PermissionError, OSError):
                continue

            shown = set()
            display = _display_path(file_path, cwd)
            for i, line in enumerate(lines):
                if not regex.search(line):
                    continue
                for j in range(max(0, i - context), min(len(lines), i + context + 1)):
                    if j in shown:
                        continue
                    shown.add(j)
                    sep = ":" if j == i else "-"
                    text = lines[j]
                    if len(text) > MAX_LINE_LENGTH:
                        text = text[:MAX_LINE_LENGTH] + " [truncated]"
                    out.append(f"{display}{sep}{j + 1}{sep}{text}")
                matches += 1
                if matches >= limit:
                    break
            if matches >= limit:
                break

        if matches == 0:
            return f"No matches found for pattern: {pattern}"
        result = "\n".join(out) + "\n"
        if matches >= limit:
            result += f"\n[Limit reached: showing first {limit} matches]"
        return result


class FindFilesTool(Tool):
    name = "find"
    description = (
        "Search for files by glob pattern. "
        "Returns matching file paths relative to the search directory."
    )
    parameters = {
        "type": "object",
        "required": ["pattern"],
        "properties": {
            "pattern": {"type": "string", "description": "Glob pattern (e.g. \"*.ts\", \"**/*.json\")"},
            "path": {"type": "string", "description": "Directory to search (default: cwd)"},
            "limit": {"type": "integer", "description": "Max results (default: 1000)"},
        },
    }

    async def execute(self, args: Dict[str, Any], cwd: str) -> str:
        pattern = str(require_arg(self.name, args, "pattern"))
        root = resolve_path(str(args.get("path") or "."), cwd)
        limit = int_arg(self.name, args, "limit", DEFAULT_FIND_LIMIT)

        if not root.is_dir():
            raise ToolExecutionError(f"Directory not found: {root}")

        # "**/x" means "x at any depth", which is what a bare name pattern does.
        while pattern.startswith("**/"):
            pattern = pattern[3:]
        match_path = "/" in pattern

        results: List[str] = []
        for file_path in _walk_files(root):
            rel = PurePosixPath(file_path.relative_to(root).as_posix())
            subject = str(rel) if match_path else rel.name
            if fnmatch(subject, pattern):
                results.append(str(rel))
                if len(results) >= limit:
                    break

        if not results:
            return f"No files found matching pattern: {pattern}"
        out = "\n".join(results) + "\n"
        if len(results) >= limit:
            out += f"\n[Limit reached: showing first {limit} results]"
        return out
