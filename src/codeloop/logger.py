"""Centralized file logger for codeloop.

Writes an always-on log to .codeloop_output/codeloop.log inside the
workspace so that a failed turn can be reconstructed after the fact
(request sizes, skipped stream chunks, tool timings). Every record carries
the id of the session that wrote it, so interleaved runs in one workspace
can be told apart.

Usage in any module:
    from .logger import get_logger
    log = get_logger("agent")
    log.info("turn finished: %d messages", n)

The log file rotates at 5 MB and keeps the last 5 files.
"""

import logging
import os
import sys
import traceback
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import List, Optional, Union

LOG_DIR_NAME = ".codeloop_output"
LOG_FILE_NAME = "codeloop.log"
MAX_LOG_BYTES = 5 * 1024 * 1024
LOG_BACKUPS = 5

LOG_FORMAT = "%(asctime)s.%(msecs)03d | %(session)s | %(levelname)-5s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_root = logging.getLogger("codeloop")
_root.addHandler(logging.NullHandler())

_installed: List[logging.Handler] = []


class SessionFilter(logging.Filter):
    """Stamps each record with a session id (``-`` when none was given)."""

    def __init__(self, session_id: Optional[str] = None):
        super().__init__()
        self.session_id = session_id or "-"

    def filter(self, record: logging.LogRecord) -> bool:
        record.session = self.session_id
        return True


def init_logging(
    workspace: Union[str, Path],
    session_id: Optional[str] = None,
    level: int = logging.DEBUG,
) -> Path:
    """Send codeloop records to ``<workspace>/.codeloop_output/codeloop.log``.

    Calling it again replaces the handlers installed by the previous call,
    so a session that changes workspace or id never writes to two files.
    Handlers added by a host application are left alone.

    Returns:
        The path of the log file.
    """
    log_dir = Path(workspace) / LOG_DIR_NAME
    log_dir.mkdir(parents=True, exist_ok=True)
    log_path = log_dir / LOG_FILE_NAME

    shutdown_logging()
    _root.setLevel(level)

    session = SessionFilter(session_id)
    fmt = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)

    handler: logging.Handler = RotatingFileHandler(
        str(log_path), maxBytes=MAX_LOG_BYTES, backupCount=LOG_BACKUPS, encoding="utf-8",
    )
    handlers = [handler]
    if os.environ.get("CODELOOP_DEBUG"):
        handlers.append(logging.StreamHandler(sys.stderr))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(fmt)
        handler.addFilter(session)
        _root.addHandler(handler)
        _installed.append(handler)

    _root.info(
        "=== Logging initialised === pid=%d python=%s log=%s",
        os.getpid(), sys.version.split()[0], log_path,
    )
    return log_path


def shutdown_logging() -> None:
    """Detach and close the handlers installed by init_logging()."""
    while _installed:
        handler = _installed.pop()
        _root.removeHandler(handler)
        handler.close()


def get_logger(name: str) -> logging.Logger:
    """Child logger under the 'codeloop' namespace; silent until init_logging()."""
    return logging.getLogger(f"codeloop.{name}")


# ── Convenience helpers ──────────────────────────────────────

def log_exception(logger: logging.Logger, msg: str, exc: BaseException) -> None:
    """Log an exception with full traceback."""
    tb = traceback.format_exception(type(exc), exc, exc.__traceback__)
    logger.error("%s: %s\n%s", msg, exc, "".join(tb))


def truncate(text: str, max_len: int = 200) -> str:
    """Truncate a string for log readability."""
    if not text:
        return "(empty)"
    text = text.replace("\n", "\\n")
    if len(text) <= max_len:
        return text
    return text[:max_len] + f"...[{len(text)} chars]"
