"""End-of-run error list and categorized summary."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Iterable

from ..status import RepoStatus, RepoTask, TaskStore
from .formatting import Palette
from .renderer import RULE
from .terminal import Terminal


@dataclass(slots=True)
class SummaryCounts:
    cloned: int = 0
    pulled: int = 0
    merged_from_default: int = 0
    up_to_date_with_default: int = 0
    switched_to_default: int = 0
    synced_fork: int = 0
    deleted: int = 0
    uncommitted: int = 0
    skipped: int = 0
    merge_conflicts: int = 0
    failed: int = 0

    def as_dict(self) -> dict[str, int]:
        return {item.name: getattr(self, item.name) for item in fields(self)}


def _classify_success(message: str, counts: SummaryCounts) -> None:
    text = message.lower()
    if "cloned" in text:
        counts.cloned += 1
    elif "upstream" in text:
        counts.synced_fork += 1
    elif "merged" in text and "into" in text:
        counts.merged_from_default += 1
    elif "up to date with" in text:
        counts.up_to_date_with_default += 1
    elif "switched to" in text:
        counts.switched_to_default += 1
    elif "pulled" in text:
        counts.pulled += 1
    elif "deleted" in text:
        counts.deleted += 1
    elif "uncommitted" in text:
        counts.uncommitted += 1


def summarize(tasks: Iterable[RepoTask]) -> SummaryCounts:
    """Count terminal outcomes, splitting successes by what the message says happened."""

    counts = SummaryCounts()
    for task in tasks:
        if task.status is RepoStatus.SUCCESS:
            _classify_success(task.message, counts)
        elif task.status is RepoStatus.FAILED:
            if "Merge conflict" in task.message:
                counts.merge_conflicts += 1
            else:
                counts.failed += 1
        elif task.status is RepoStatus.SKIPPED:
            counts.skipped += 1
        elif task.status is RepoStatus.UNCOMMITTED:
            counts.uncommitted += 1
    return counts


def print_errors(store: TaskStore, terminal: Terminal, palette: Palette) -> None:
    errors = store.errors
    if not errors:
        return

    width, _ = terminal.size()
    terminal.write_line()
    terminal.write_line(f"{palette.red}{palette.bold}❌ Errors:{palette.reset}")
    terminal.write_line(f"{palette.dim}{RULE * min(80, width - 1)}{palette.reset}")
    for error in errors:
        terminal.write_line(
            f"{palette.red}#{error.number:>2} {palette.yellow}{error.item_name}{palette.reset}: {error.message}"
        )


_SUMMARY_LINES = (
    ("cloned", "green", "✅ Cloned"),
    ("pulled", "green", "✅ Pulled"),
    ("merged_from_default", "green", "🔀 Merged from default branch"),
    ("up_to_date_with_default", "green", "✅ Up to date with default"),
    ("switched_to_default", "green", "🔀 Switched to default branch"),
    ("synced_fork", "green", "🍴 Synced fork with upstream"),
    ("deleted", "green", "✅ Deleted"),
    ("uncommitted", "yellow", "🔄 Uncommitted changes"),
    ("skipped", "yellow", "⚠️  Skipped"),
    ("merge_conflicts", "red", "💥 Merge conflicts"),
    ("failed", "red", "❌ Failed"),
)


def print_summary(store: TaskStore, terminal: Terminal, palette: Palette | None = None) -> SummaryCounts:
    """Print the error list, per-category counts and total time; return the counts."""

    palette = palette or Palette()
    counts = summarize(store.snapshot())

    print_errors(store, terminal, palette)

    terminal.write_line()
    terminal.write_line(f"{palette.blue}{palette.bold}📊 Summary:{palette.reset}")
    for attr, colour, label in _SUMMARY_LINES:
        value = getattr(counts, attr)
        if value > 0:
            terminal.write_line(f"{getattr(palette, colour)}{label}: {value}{palette.reset}")

    terminal.write_line(f"{palette.blue}⏱️  Total time: {store.elapsed():.1f}s{palette.reset}")
    terminal.write_line(f"{palette.blue}🎉 Operation completed!{palette.reset}")
    return counts


__all__ = ["SummaryCounts", "print_errors", "print_summary", "summarize"]
