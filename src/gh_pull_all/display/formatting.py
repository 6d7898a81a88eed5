"""Icons, colours and line layout for status lines."""

from __future__ import annotations

import re
import unicodedata
from dataclasses import dataclass

from ..status import RepoStatus, RepoTask

ANSI_PATTERN = re.compile(r"\x1b\[[0-9;]*m")
_ANSI_SPLIT = re.compile(r"(\x1b\[[0-9;]*m)")
RESET = "\x1b[0m"

DURATION_WIDTH = 6
ICON_WIDTH = 2
MIN_MESSAGE_WIDTH = 20
WIDTH_SAFETY_MARGIN = 10
ELLIPSIS = "..."


@dataclass(frozen=True, slots=True)
class Palette:
    green: str = "\x1b[32m"
    yellow: str = "\x1b[33m"
    blue: str = "\x1b[34m"
    red: str = "\x1b[31m"
    cyan: str = "\x1b[36m"
    magenta: str = "\x1b[35m"
    dim: str = "\x1b[2m"
    bold: str = "\x1b[1m"
    reset: str = "\x1b[0m"

    @classmethod
    def plain(cls) -> "Palette":
        return cls(**{name: "" for name in cls.__dataclass_fields__})

    def for_status(self, status: RepoStatus) -> str:
        if status is RepoStatus.PENDING:
            return self.dim
        if status.is_transient:
            return self.cyan
        if status is RepoStatus.SUCCESS:
            return self.green
        if status is RepoStatus.FAILED:
            return self.red
        return self.yellow


STATUS_ICONS = {
    RepoStatus.PENDING: "⏳",
    RepoStatus.CLONING: "📦",
    RepoStatus.PULLING: "📥",
    RepoStatus.CHECKING: "🔍",
    RepoStatus.DELETING: "🗑️ ",
    RepoStatus.SUCCESS: "✅",
    RepoStatus.FAILED: "❌",
    RepoStatus.SKIPPED: "⚠️ ",
    RepoStatus.UNCOMMITTED: "🔄",
}

DEFAULT_MESSAGES = {
    RepoStatus.PENDING: "",
    RepoStatus.SUCCESS: "Successfully pulled",
    RepoStatus.FAILED: "Failed to pull",
    RepoStatus.SKIPPED: "Skipped - not a git repository",
    RepoStatus.UNCOMMITTED: "Has uncommitted changes",
    RepoStatus.CLONING: "Cloning repository...",
    RepoStatus.PULLING: "Pulling updates...",
    RepoStatus.CHECKING: "Checking for uncommitted changes...",
    RepoStatus.DELETING: "Deleting repository...",
}


def truncate_message(message: str, max_length: int) -> str:
    """Cut ``message`` to ``max_length`` characters, ending with an ellipsis."""

    if not message or len(message) <= max_length:
        return message
    if max_length <= len(ELLIPSIS):
        return message[: max(0, max_length)]
    return message[: max_length - len(ELLIPSIS)] + ELLIPSIS


def strip_ansi(text: str) -> str:
    return ANSI_PATTERN.sub("", text)


def char_width(char: str) -> int:
    """Cells one code point takes: 0 for combining marks and joiners, 2 for wide glyphs."""

    if unicodedata.combining(char) or unicodedata.category(char) in ("Mn", "Me", "Cf"):
        return 0
    return 2 if unicodedata.east_asian_width(char) in ("W", "F") else 1


def visible_length(text: str) -> int:
    """Width of ``text`` in terminal cells, colour codes excluded."""

    return sum(char_width(char) for char in strip_ansi(text))


def clip_line(line: str, max_cells: int) -> str:
    """Cut ``line`` to at most ``max_cells`` cells, keeping its colour codes."""

    if visible_length(line) <= max_cells:
        return line
    pieces: list[str] = []
    used = 0
    coloured = False
    full = False
    for piece in _ANSI_SPLIT.split(line):
        if ANSI_PATTERN.fullmatch(piece):
            pieces.append(piece)
            coloured = True
            continue
        for char in piece:
            width = char_width(char)
            if used + width > max_cells:
                full = True
                break
            pieces.append(char)
            used += width
        if full:
            break
    if coloured:
        pieces.append(RESET)
    return "".join(pieces)


def fit_line(line: str, width: int) -> str:
    """Clip and pad to one cell short of ``width`` so the line never wraps."""

    line = clip_line(line, max(0, width - 1))
    return pad_line(line, width)


def pad_line(line: str, width: int) -> str:
    padding = max(0, width - visible_length(line) - 1)
    return line + " " * padding


def message_width(terminal_width: int, name_width: int) -> int:
    """Cells left for the message column on a status line that must not wrap."""

    base = ICON_WIDTH + name_width + 1 + DURATION_WIDTH + 1
    preferred = max(MIN_MESSAGE_WIDTH, terminal_width - base - WIDTH_SAFETY_MARGIN)
    # one cell after the icon, one spare cell at the right edge
    fits = terminal_width - base - 2
    return max(0, min(preferred, fits))


def display_message(task: RepoTask, available: int) -> str:
    """Message column text; failures show their error number and a short form."""

    message = task.message or DEFAULT_MESSAGES[task.status]
    if task.status is RepoStatus.FAILED and task.error_number is not None:
        prefix = f"Error #{task.error_number}: "
        text = prefix + truncate_message(message, available - len(prefix))
        return truncate_message(text, available)
    return truncate_message(message, available)


def format_duration(seconds: float) -> str:
    return f"{seconds:.1f}s".rjust(DURATION_WIDTH)


def format_status_line(
    task: RepoTask,
    *,
    now: float,
    name_width: int,
    terminal_width: int,
    palette: Palette,
) -> str:
    icon = STATUS_ICONS[task.status]
    colour = palette.for_status(task.status)
    duration = format_duration(task.elapsed(now))
    message = display_message(task, message_width(terminal_width, name_width))
    line = (
        f"{colour}{icon} {task.name.ljust(name_width)} "
        f"{palette.dim}{duration}{palette.reset} {message}"
    )
    return fit_line(line, terminal_width)


__all__ = [
    "DEFAULT_MESSAGES",
    "Palette",
    "STATUS_ICONS",
    "char_width",
    "clip_line",
    "display_message",
    "fit_line",
    "format_duration",
    "format_status_line",
    "message_width",
    "pad_line",
    "strip_ansi",
    "truncate_message",
    "visible_length",
]
