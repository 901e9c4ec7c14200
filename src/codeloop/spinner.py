"""Animated single-line progress indicator shown while the model or a tool is busy.

Renders with \\r + ANSI clear-line on a daemon thread; the only state shared
with the caller is a stop flag.
"""

import random
import sys
import threading
from typing import Optional, TextIO

FRAMES = "⠋⠙⠹⠸⠼⠴⠦⠧⠇⠏"

WORDINGS = (
    "Thinking",
    "Pondering",
    "Reasoning",
    "Analyzing",
    "Processing",
    "Contemplating",
    "Reflecting",
    "Crafting response",
    "Working on it",
    "Figuring it out",
    "Crunching ideas",
    "Brewing thoughts",
)

CLEAR_LINE = "\r\033[K"


class Spinner:
    """Usage:

        with Spinner():
            await something()

    or ``start()`` / ``stop()``; ``stop()`` is idempotent and always clears
    the line it drew.
    """

    def __init__(self, label: Optional[str] = None, stream: Optional[TextIO] = None,
                 interval: float = 0.08, enabled: Optional[bool] = None):
        self.stream = stream or sys.stdout
        self.label = label or random.choice(WORDINGS)
        self.interval = interval
        if enabled is None:
            enabled = hasattr(self.stream, "isatty") and self.stream.isatty()
        self._enabled = enabled
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._lock = threading.Lock()
        self._drawn = False

    @property
    def running(self) -> bool:
        return self._thread is not None

    def start(self) -> "Spinner":
        if not self._enabled or self._thread is not None:
            return self
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="codeloop-spinner", daemon=True)
        self._thread.start()
        return self

    def stop(self) -> None:
        thread = self._thread
        if thread is None:
            return
        self._stop.set()
        thread.join(timeout=0.5)
        self._thread = None
        self._clear()

    def _clear(self) -> None:
        with self._lock:
            if self._drawn:
                self.stream.write(CLEAR_LINE)
                self.stream.flush()
                self._drawn = False

    def _run(self) -> None:
        frame = 0
        while not self._stop.is_set():
            # Blink between bold and dim every third frame.
            style = "\033[1;35m" if (frame // 3) % 2 == 0 else "\033[2;35m"
            line = f"  {style}{FRAMES[frame % len(FRAMES)]} {self.label}...\033[0m"
            with self._lock:
                if self._stop.is_set():
                    break
                self.stream.write(CLEAR_LINE + line)
                self.stream.flush()
                self._drawn = True
            frame += 1
            self._stop.wait(self.interval)

    def __enter__(self) -> "Spinner":
        return self.start()

    def __exit__(self, *exc) -> None:
        self.stop()
