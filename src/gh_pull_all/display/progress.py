"""Progress bar synthesis for the live status view."""

from __future__ import annotations

import math
from dataclasses import astuple, dataclass
from typing import Mapping

from ..status import RepoStatus
from .formatting import Palette

MAX_BAR_WIDTH = 50
MIN_BAR_WIDTH = 10
BAR_TEXT_RESERVE = 40
FILLED = "█"
EMPTY = "░"


@dataclass(slots=True)
class BarSegments:
    success: int
    failed: int
    skipped: int
    in_progress: int
    pending: int

    @property
    def total(self) -> int:
        return sum(astuple(self))


def bar_width(terminal_width: int) -> int:
    return max(MIN_BAR_WIDTH, min(MAX_BAR_WIDTH, terminal_width - BAR_TEXT_RESERVE))


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def compute_segments(counts: Mapping[RepoStatus, int], total: int, width: int) -> BarSegments:
    """Split ``width`` characters proportionally between status categories.

    Segments never sum past ``width``. A shortfall goes to pending, except
    when every item is done: then it goes to success so the bar is full.
    """

    if total <= 0 or width <= 0:
        return BarSegments(0, 0, 0, 0, max(0, width))

    success = counts.get(RepoStatus.SUCCESS, 0)
    failed = counts.get(RepoStatus.FAILED, 0)
    skipped = counts.get(RepoStatus.SKIPPED, 0) + counts.get(RepoStatus.UNCOMMITTED, 0)
    in_progress = sum(counts.get(status, 0) for status in RepoStatus if status.is_transient)
    done = success + failed + skipped

    widths = [_round_half_up(count / total * width) for count in (success, failed, skipped, in_progress)]
    overflow = sum(widths) - width
    while overflow > 0:
        largest = max(range(len(widths)), key=lambda index: widths[index])
        widths[largest] -= 1
        overflow -= 1

    segments = BarSegments(*widths, pending=width - sum(widths))
    if done >= total and segments.pending > 0:
        segments.success += segments.pending
        segments.pending = 0
    return segments


def render_progress_bar(
    counts: Mapping[RepoStatus, int],
    total: int,
    terminal_width: int,
    palette: Palette,
) -> str:
    if total <= 0:
        return ""

    segments = compute_segments(counts, total, bar_width(terminal_width))
    bar = (
        palette.green + FILLED * segments.success
        + palette.red + FILLED * segments.failed
        + palette.yellow + FILLED * segments.skipped
        + palette.cyan + FILLED * segments.in_progress
        + palette.dim + EMPTY * segments.pending
        + palette.reset
    )

    done = sum(counts.get(status, 0) for status in RepoStatus if status.is_terminal)
    percentage = _round_half_up(done / total * 100)
    text = f"[{bar}] {done}/{total} ({percentage}%)"
    failed = counts.get(RepoStatus.FAILED, 0)
    if failed:
        text += f" {palette.red}{failed} errors{palette.reset}"
    return text


def legend(palette: Palette) -> str:
    return (
        f"{palette.dim}Progress: {palette.green}{FILLED}{palette.dim}=success "
        f"{palette.red}{FILLED}{palette.dim}=failed "
        f"{palette.yellow}{FILLED}{palette.dim}=skipped "
        f"{palette.cyan}{FILLED}{palette.dim}=in progress "
        f"{palette.dim}{EMPTY}=pending{palette.reset}"
    )


__all__ = [
    "BarSegments",
    "bar_width",
    "compute_segments",
    "legend",
    "render_progress_bar",
]
