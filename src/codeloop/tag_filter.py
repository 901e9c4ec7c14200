"""Live-display filter that hides ``<think>...</think>`` sections.

Local reasoning models interleave their chain of thought with the answer,
wrapped in a marker pair. The transcript keeps that text verbatim; only the
terminal stream drops it. Deltas arrive as arbitrary fragments, so the
filter works one character at a time and carries its state across calls.
"""

from enum import Enum

THINK_OPEN = "<think>"
THINK_CLOSE = "</think>"


class FilterState(Enum):
    OUTSIDE = "outside"
    MATCHING_OPEN = "matching_open"
    INSIDE = "inside"
    MATCHING_CLOSE = "matching_close"


def _longest_marker_prefix(candidate: str, marker: str) -> str:
    """Longest proper suffix of ``candidate`` that is still a prefix of ``marker``."""
    for start in range(1, len(candidate)):
        if marker.startswith(candidate[start:]):
            return candidate[start:]
    return ""


class TagFilter:
    """Single-pass filter over streamed text.

    ``feed()`` returns the text that became safe to display with this
    fragment; ``finish()`` returns whatever was still buffered at the end of
    the stream (dropped if a suppressed section never closed).
    """

    def __init__(self, open_marker: str = THINK_OPEN, close_marker: str = THINK_CLOSE):
        if not open_marker or not close_marker:
            raise ValueError("markers must be non-empty")
        self.open_marker = open_marker
        self.close_marker = close_marker
        self.state = FilterState.OUTSIDE
        self._pending = ""

    @property
    def suppressing(self) -> bool:
        return self.state in (FilterState.INSIDE, FilterState.MATCHING_CLOSE)

    def feed(self, text: str) -> str:
        out = []
        for c in text:
            self._step(c, out)
        return "".join(out)

    def finish(self) -> str:
        residual = self._pending if self.state is FilterState.MATCHING_OPEN else ""
        self.reset()
        return residual

    def reset(self) -> None:
        self.state = FilterState.OUTSIDE
        self._pending = ""

    def _step(self, c: str, out: list) -> None:
        state = self.state

        if state is FilterState.OUTSIDE:
            if c == self.open_marker[0]:
                self._pending = c
                self._check_open()
            else:
                out.append(c)

        elif state is FilterState.MATCHING_OPEN:
            candidate = self._pending + c
            if self.open_marker.startswith(candidate):
                self._pending = candidate
                self._check_open()
                return
            # Not the marker after all: release everything that can no
            # longer start it, keep the tail that still might.
            keep = _longest_marker_prefix(candidate, self.open_marker)
            out.append(candidate[:len(candidate) - len(keep)])
            self._pending = keep
            self.state = FilterState.MATCHING_OPEN if keep else FilterState.OUTSIDE

        elif state is FilterState.INSIDE:
            if c == self.close_marker[0]:
                self._pending = c
                self._check_close()

        else:  # MATCHING_CLOSE
            candidate = self._pending + c
            if self.close_marker.startswith(candidate):
                self._pending = candidate
                self._check_close()
                return
            keep = _longest_marker_prefix(candidate, self.close_marker)
            self._pending = keep
            self.state = FilterState.MATCHING_CLOSE if keep else FilterState.INSIDE

    def _check_open(self) -> None:
        if self._pending == self.open_marker:
            self._pending = ""
            self.state = FilterState.INSIDE
        else:
            self.state = FilterState.MATCHING_OPEN

    def _check_close(self) -> None:
        if self._pending == self.close_marker:
            self._pending = ""
            self.state = FilterState.OUTSIDE
        else:
            self.state = FilterState.MATCHING_CLOSE


def strip_think(text: str, open_marker: str = THINK_OPEN, close_marker: str = THINK_CLOSE) -> str:
    """Remove suppressed sections from a complete text."""
    f = TagFilter(open_marker, close_marker)
    return f.feed(text) + f.finish()
