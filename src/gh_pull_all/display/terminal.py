"""Terminal output primitives used by the status display.

Only relative cursor movement is used: move up N lines, clear the current
line, write a line. No absolute addressing or scroll regions.
"""

from __future__ import annotations

import os
import shutil
import sys
from typing import Protocol, TextIO

from ..config import is_interactive_output
from .formatting import visible_length

DEFAULT_WIDTH = 80
DEFAULT_HEIGHT = 24

CURSOR_UP = "\x1b[{count}A"
CLEAR_LINE = "\x1b[2K"


class Terminal(Protocol):
    """Minimal output surface the display needs."""

    def write_line(self, text: str = "") -> None:
        ...

    def move_up(self, count: int) -> None:
        ...

    def clear_line(self) -> None:
        ...

    def size(self) -> tuple[int, int]:
        ...

    def is_interactive(self) -> bool:
        ...


class StreamTerminal:
    """Writes to a text stream using ANSI control sequences."""

    def __init__(self, stream: TextIO | None = None) -> None:
        self._stream = stream or sys.stdout

    @property
    def stream(self) -> TextIO:
        return self._stream

    def write_line(self, text: str = "") -> None:
        self._stream.write(text + "\n")
        self._stream.flush()

    def move_up(self, count: int) -> None:
        if count > 0:
            self._stream.write(CURSOR_UP.format(count=count))

    def clear_line(self) -> None:
        self._stream.write(CLEAR_LINE)

    def size(self) -> tuple[int, int]:
        fallback = (DEFAULT_WIDTH, DEFAULT_HEIGHT)
        if self._stream is sys.stdout or self._stream is sys.__stdout__:
            columns, lines = shutil.get_terminal_size(fallback)
        else:
            try:
                columns, lines = os.get_terminal_size(self._stream.fileno())
            except (AttributeError, OSError, ValueError):
                columns, lines = fallback
        return (columns or DEFAULT_WIDTH, lines or DEFAULT_HEIGHT)

    def is_interactive(self) -> bool:
        return is_interactive_output(self._stream)


class RecordingTerminal:
    """Test double that records every primitive and emulates the cursor.

    The emulation mirrors a real terminal: moving up is clamped to the top of
    the visible screen, so a redraw that moves up further than it may leaves
    stale lines behind here just as it would on screen.
    """

    def __init__(self, width: int = DEFAULT_WIDTH, height: int = DEFAULT_HEIGHT, *, interactive: bool = True) -> None:
        self.width = width
        self.height = height
        self.interactive = interactive
        self.ops: list[tuple[str, object]] = []
        self.buffer: list[str] = []
        self.cursor = 0
        self.clamped_moves = 0
        self.wrapped_lines = 0
        self._bottom = 0

    def write_line(self, text: str = "") -> None:
        """Write ``text`` at the cursor; a line wider than the screen wraps onto extra rows."""

        self.ops.append(("line", text))
        rows = max(1, -(-visible_length(text) // self.width))
        if rows > 1:
            self.wrapped_lines += 1
        while len(self.buffer) < self.cursor + rows:
            self.buffer.append("")
        self.buffer[self.cursor] = text
        for row in range(self.cursor + 1, self.cursor + rows):
            self.buffer[row] = ""
        self.cursor += rows
        self._bottom = max(self._bottom, self.cursor)

    def move_up(self, count: int) -> None:
        self.ops.append(("up", count))
        top_visible = max(0, self._bottom - (self.height - 1))
        target = self.cursor - count
        if target < top_visible:
            self.clamped_moves += 1
            target = top_visible
        self.cursor = target

    def clear_line(self) -> None:
        self.ops.append(("clear", None))
        if self.cursor < len(self.buffer):
            self.buffer[self.cursor] = ""

    def size(self) -> tuple[int, int]:
        return (self.width, self.height)

    def is_interactive(self) -> bool:
        return self.interactive

    def resize(self, width: int, height: int) -> None:
        self.width = width
        self.height = height

    @property
    def lines(self) -> list[str]:
        return [str(payload) for op, payload in self.ops if op == "line"]

    @property
    def moves(self) -> list[int]:
        return [int(payload) for op, payload in self.ops if op == "up"]  # type: ignore[call-overload]

    def passes(self) -> list[tuple[int, int]]:
        """Split the recording at each cursor move into (moved_up, lines_written_after)."""

        result: list[tuple[int, int]] = []
        for op, payload in self.ops:
            if op == "up":
                result.append((int(payload), 0))  # type: ignore[call-overload]
            elif op == "line" and result:
                moved, written = result[-1]
                result[-1] = (moved, written + 1)
        return result


__all__ = [
    "CLEAR_LINE",
    "CURSOR_UP",
    "RecordingTerminal",
    "StreamTerminal",
    "Terminal",
]
