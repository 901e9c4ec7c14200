"""Tests for the line diff engine and its renderer."""

import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from codeloop.diff import (
    DiffKind,
    DiffLine,
    compute_diff,
    render_diff,
    render_new_file,
    summarize,
)


def replay(lines, keep):
    return "\n".join(dl.text for dl in lines if dl.kind in keep)


# ── Edit script ─────────────────────────────────────────────────────

def test_single_line_change_at_offset():
    result = compute_diff("a\nb\nc", "a\nx\nc", start_line=10)
    assert result == [
        DiffLine(DiffKind.CONTEXT, 10, "a"),
        DiffLine(DiffKind.REMOVED, 11, "b"),
        DiffLine(DiffKind.ADDED, 11, "x"),
        DiffLine(DiffKind.CONTEXT, 12, "c"),
    ]
    summary = summarize(result)
    assert (summary.added, summary.removed) == (1, 1)
    assert summary.describe().lower() == "added 1 line, removed 1 line"


def test_identical_texts_have_no_changes():
    for text in ["", "one", "a\nb\nc\n", "x\n\n\ny"]:
        result = compute_diff(text, text)
        assert all(dl.kind is DiffKind.CONTEXT for dl in result)
        assert not summarize(result).has_changes


def test_pure_insertion_numbers_new_side():
    result = compute_diff("a\nc", "a\nb\nc")
    assert result == [
        DiffLine(DiffKind.CONTEXT, 1, "a"),
        DiffLine(DiffKind.ADDED, 2, "b"),
        DiffLine(DiffKind.CONTEXT, 3, "c"),
    ]


def test_pure_deletion_numbers_old_side():
    result = compute_diff("a\nb\nc", "a\nc")
    assert result == [
        DiffLine(DiffKind.CONTEXT, 1, "a"),
        DiffLine(DiffKind.REMOVED, 2, "b"),
        DiffLine(DiffKind.CONTEXT, 2, "c"),
    ]


def test_removal_comes_before_addition_on_ties():
    result = compute_diff("old", "new")
    assert [dl.kind for dl in result] == [DiffKind.REMOVED, DiffKind.ADDED]


def test_empty_to_text():
    result = compute_diff("", "a\nb")
    summary = summarize(result)
    # "" is one empty line; it is replaced by two lines.
    assert summary.added == 2
    assert summary.removed == 1


def test_replay_reconstructs_both_sides():
    rng = random.Random(1234)
    alphabet = ["a", "b", "c", "", "d"]
    for _ in range(200):
        old = "\n".join(rng.choice(alphabet) for _ in range(rng.randint(0, 8)))
        new = "\n".join(rng.choice(alphabet) for _ in range(rng.randint(0, 8)))
        result = compute_diff(old, new)
        assert replay(result, {DiffKind.CONTEXT, DiffKind.REMOVED}) == old
        assert replay(result, {DiffKind.CONTEXT, DiffKind.ADDED}) == new


def test_context_count_is_lcs_length():
    result = compute_diff("a\nb\nc\nd", "b\nd\ne")
    assert [dl.text for dl in result if dl.kind is DiffKind.CONTEXT] == ["b", "d"]


# ── Rendering ───────────────────────────────────────────────────────

def test_render_plain_header_and_rows():
    out = render_diff("a\nb\nc", "a\nx\nc", start_line=10, color=False)
    assert out.splitlines() == [
        "Added 1 line, removed 1 line",
        "   10  a",
        "   11 -b",
        "   11 +x",
        "   12  c",
    ]


def test_render_trims_to_context_window():
    old = "\n".join(f"line{i}" for i in range(1, 21))
    new = old.replace("line5", "five")
    out = render_diff(old, new, color=False).splitlines()
    assert out[0] == "Added 1 line, removed 1 line"
    # 3 lines before and after the change, then the ellipsis row
    assert out[1].strip() == "2  line2"
    assert out[-2].strip() == "8  line8"
    assert out[-1].strip() == "..."
    assert not any("line9" in row for row in out)


def test_render_identical_is_header_only():
    assert render_diff("same", "same", color=False) == "Added 0 lines, removed 0 lines\n"


def test_render_line_number_width_grows():
    out = render_diff("a", "b", start_line=12345, color=False).splitlines()
    assert out[1] == "  12345 -a"


def test_render_color_codes():
    out = render_diff("a", "b")
    assert "\033[41m" in out and "\033[42m" in out


def test_render_new_file():
    assert render_new_file("x\ny\n", color=False) == "3 lines, 4 bytes\n"
    assert render_new_file("hi", color=False) == "1 line, 2 bytes\n"
