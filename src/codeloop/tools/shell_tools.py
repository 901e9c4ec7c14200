"""Shell command execution tool."""

import asyncio
from typing import Any, Dict, List

from ..errors import ToolExecutionError
from ..logger import get_logger, log_exception, truncate
from .file_tools import int_arg, require_arg
from .registry import Tool

_log = get_logger("shell")

DEFAULT_TIMEOUT_SECONDS = 120
MAX_OUTPUT_LINES = 2000
READ_CHUNK_SIZE = 64 * 1024


class BashTool(Tool):
    name = "bash"
    description = (
        "Execute a bash command in the working directory. "
        "Returns stdout and stderr. Use for running scripts, git, builds, etc."
    )
    parameters = {
        "type": "object",
        "required": ["command"],
        "properties": {
            "command": {"type": "string", "description": "Bash command to execute"},
            "timeout": {"type": "integer", "description": "Timeout in seconds (default: 120)"},
        },
    }
    mutating = True

    async def execute(self, args: Dict[str, Any], cwd: str) -> str:
        command = str(require_arg(self.name, args, "command"))
        timeout = int_arg(self.name, args, "timeout", DEFAULT_TIMEOUT_SECONDS)

        try:
            process = await asyncio.create_subprocess_exec(
                "bash", "-c", command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.STDOUT,
                cwd=cwd,
            )
        except OSError as e:
            raise ToolExecutionError(f"Cannot start bash: {e}")

        lines: List[str] = []
        line_count = 0

        def keep(raw: bytes) -> None:
            nonlocal line_count
            if line_count < MAX_OUTPUT_LINES:
                lines.append(raw.decode("utf-8", errors="replace").rstrip("\r"))
            line_count += 1

        async def pump() -> None:
            # Fixed-size reads, so a single huge line cannot overflow the reader.
            tail = b""
            while True:
                chunk = await process.stdout.read(READ_CHUNK_SIZE)
                if not chunk:
                    break
                *complete, tail = (tail + chunk).split(b"\n")
                for raw in complete:
                    keep(raw)
            if tail:
                keep(tail)

        try:
            await asyncio.wait_for(asyncio.gather(pump(), process.wait()), timeout=timeout)
        except asyncio.TimeoutError:
            await _kill(process)
            _log.warning("command timed out after %ds: %s", timeout, command)
            return _join(lines) + f"\n[Timed out after {timeout} seconds]"
        except asyncio.CancelledError:
            await _kill(process)
            raise
        except Exception as e:
            await _kill(process)
            log_exception(_log, f"reading output failed: {truncate(command)}", e)
            raise

        output = _join(lines)
        if line_count > MAX_OUTPUT_LINES:
            output += f"\n[Truncated: showed first {MAX_OUTPUT_LINES} of {line_count} lines]"
        if process.returncode:
            output += f"\n[Exit code: {process.returncode}]"
        return output


def _join(lines: List[str]) -> str:
    return "".join(line + "\n" for line in lines)


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        try:
            process.kill()
        except ProcessLookupError:
            pass
        await process.wait()
