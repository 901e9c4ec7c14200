"""Line-level diffs of file mutations for terminal display.

The diff is a longest-common-subsequence walk over whole lines. It is only
ever rendered for the user; the model sees the short textual tool result.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Sequence

RESET = "\033[0m"
DIM = "\033[2m"
RED_BG = "\033[41m\033[37m"
GREEN_BG = "\033[42m\033[30m"

CONTEXT_LINES = 3


class DiffKind(Enum):
    CONTEXT = "context"
    ADDED = "added"
    REMOVED = "removed"


@dataclass(frozen=True)
class DiffLine:
    kind: DiffKind
    line_number: int
    text: str


@dataclass(frozen=True)
class DiffSummary:
    added: int
    removed: int

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)

    def describe(self) -> str:
        """Header line, e.g. ``Added 1 line, removed 2 lines``."""
        return f"Added {_plural(self.added, 'line')}, removed {_plural(self.removed, 'line')}"


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def split_lines(text: str) -> List[str]:
    """Split on ``\\n`` keeping a trailing empty element (``"a\\n"`` -> ``["a", ""]``)."""
    return text.split("\n")


def compute_diff(old_text: str, new_text: str, start_line: int = 1) -> List[DiffLine]:
    """Return the ordered edit script turning ``old_text`` into ``new_text``.

    ``start_line`` is the file line number of the first line of both texts,
    which lets callers diff a fragment that sits in the middle of a file.
    Context and added lines are numbered on the new side, removed lines on
    the old side. When removing and adding score the same, the removal is
    emitted first.
    """
    old_lines = split_lines(old_text)
    new_lines = split_lines(new_text)
    return diff_lines(old_lines, new_lines, start_line)


def diff_lines(old_lines: Sequence[str], new_lines: Sequence[str], start_line: int = 1) -> List[DiffLine]:
    n, m = len(old_lines), len(new_lines)

    # lcs[i][j] = length of the LCS of old_lines[i:] and new_lines[j:]
    lcs = [[0] * (m + 1) for _ in range(n + 1)]
    for i in range(n - 1, -1, -1):
        row, below = lcs[i], lcs[i + 1]
        for j in range(m - 1, -1, -1):
            if old_lines[i] == new_lines[j]:
                row[j] = below[j + 1] + 1
            else:
                row[j] = max(below[j], row[j + 1])

    result: List[DiffLine] = []
    i = j = 0
    old_no = new_no = start_line
    while i < n or j < m:
        if i < n and j < m and old_lines[i] == new_lines[j]:
            result.append(DiffLine(DiffKind.CONTEXT, new_no, old_lines[i]))
            i += 1
            j += 1
            old_no += 1
            new_no += 1
        elif i < n and (j >= m or lcs[i + 1][j] >= lcs[i][j + 1]):
            result.append(DiffLine(DiffKind.REMOVED, old_no, old_lines[i]))
            i += 1
            old_no += 1
        else:
            result.append(DiffLine(DiffKind.ADDED, new_no, new_lines[j]))
            j += 1
            new_no += 1
    return result


def summarize(lines: Sequence[DiffLine]) -> DiffSummary:
    added = sum(1 for dl in lines if dl.kind is DiffKind.ADDED)
    removed = sum(1 for dl in lines if dl.kind is DiffKind.REMOVED)
    return DiffSummary(added=added, removed=removed)


def render_diff(
    old_text: str,
    new_text: str,
    start_line: int = 1,
    context: int = CONTEXT_LINES,
    color: bool = True,
) -> str:
    """Render a summary header plus a context window around the changes.

    Identical texts render as the zero/zero header only.
    """
    lines = compute_diff(old_text, new_text, start_line)
    return render_lines(lines, context=context, color=color)


def render_lines(lines: Sequence[DiffLine], context: int = CONTEXT_LINES, color: bool = True) -> str:
    dim, red, green, reset = (DIM, RED_BG, GREEN_BG, RESET) if color else ("", "", "", "")

    summary = summarize(lines)
    out = [f"{dim}{summary.describe()}{reset}"]

    changed = [idx for idx, dl in enumerate(lines) if dl.kind is not DiffKind.CONTEXT]
    if not changed:
        return "\n".join(out) + "\n"

    first = max(0, changed[0] - context)
    last = min(len(lines) - 1, changed[-1] + context)
    window = lines[first:last + 1]

    width = max(3, len(str(max(dl.line_number for dl in window))))
    for dl in window:
        num = str(dl.line_number).rjust(width)
        if dl.kind is DiffKind.CONTEXT:
            out.append(f"{dim}  {num}  {dl.text}{reset}")
        elif dl.kind is DiffKind.REMOVED:
            out.append(f"{red}  {num} -{dl.text}{reset}")
        else:
            out.append(f"{green}  {num} +{dl.text}{reset}")

    if last < len(lines) - 1:
        out.append(f"{dim}  {' ' * width}  ...{reset}")

    return "\n".join(out) + "\n"


def render_new_file(content: str, color: bool = True) -> str:
    """One-line summary for a file that did not exist before."""
    dim, reset = (DIM, RESET) if color else ("", "")
    line_count = len(split_lines(content))
    size = len(content.encode("utf-8"))
    return f"{dim}{_plural(line_count, 'line')}, {size} bytes{reset}\n"
