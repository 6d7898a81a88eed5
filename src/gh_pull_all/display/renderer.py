"""Live terminal status display.

Two strategies, picked once at construction:

* append-only: one padded line per meaningful status change, no cursor
  control, safe to pipe or redirect;
* windowed: a redraw pass on a fixed tick that commits finished items to
  scrollback and rewrites only a bounded window of active items plus a
  legend and progress bar.

The windowed pass moves the cursor up by exactly the number of lines in the
region it wrote on the previous pass, and that region never exceeds the
terminal height.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
from dataclasses import dataclass, field
from enum import Enum
from typing import AsyncIterator, Callable

from ..status import RepoStatus, RepoTask, TaskStore
from .formatting import Palette, clip_line, format_status_line
from .progress import legend, render_progress_bar
from .terminal import Terminal

logger = logging.getLogger(__name__)

HEADER_LINES = 3
FOOTER_RESERVE = 5
RESERVED_LINES = HEADER_LINES + FOOTER_RESERVE
DEFAULT_REFRESH_INTERVAL = 0.1
RULE = "─"


class RenderMode(str, Enum):
    APPEND = "append"
    WINDOWED = "windowed"


def choose_render_mode(concurrency: int, live_updates: bool, interactive: bool) -> RenderMode:
    if live_updates and interactive and concurrency > 1:
        return RenderMode.WINDOWED
    return RenderMode.APPEND


def window_size(concurrency: int, terminal_height: int) -> int:
    return max(1, min(concurrency, terminal_height - RESERVED_LINES))


@dataclass(slots=True)
class RenderState:
    """Cursor bookkeeping owned by the display; only redraw passes mutate it."""

    width: int
    height: int
    last_rendered_count: int = 0
    header_printed: bool = False
    rendered_once: bool = False
    completed: dict[str, None] = field(default_factory=dict)
    passes: list[tuple[int, int]] = field(default_factory=list)


class StatusDisplay:
    """Render the task store to a terminal."""

    def __init__(
        self,
        store: TaskStore,
        terminal: Terminal,
        *,
        concurrency: int,
        live_updates: bool = True,
        interactive: bool | None = None,
        palette: Palette | None = None,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self._store = store
        self._terminal = terminal
        self._concurrency = concurrency
        self._live_updates = live_updates
        self._interactive = terminal.is_interactive() if interactive is None else interactive
        self._palette = palette or Palette()
        self._clock = clock or store.now
        self.mode = choose_render_mode(concurrency, live_updates, self._interactive)
        width, height = terminal.size()
        self.state = RenderState(width=width, height=height)
        if self.mode is RenderMode.APPEND:
            store.subscribe(self._on_status_change)

    @property
    def palette(self) -> Palette:
        return self._palette

    @property
    def quiet_transitions(self) -> bool:
        """Whether in-progress states are left out of the append-only log."""

        return self._concurrency == 1 or not self._live_updates

    def close(self) -> None:
        self._store.unsubscribe(self._on_status_change)

    # -- append-only -----------------------------------------------------

    def _on_status_change(self, task: RepoTask, old_status: RepoStatus) -> None:
        if task.status is RepoStatus.PENDING or task.status is old_status:
            return
        if task.status.is_transient and self.quiet_transitions:
            return
        self._terminal.write_line(self._format(task))

    # -- windowed --------------------------------------------------------

    def render(self, *, final: bool = False) -> int:
        """Run one redraw pass and return the number of lines left in the redrawn region.

        A ``final`` pass blanks any rows left over from the previous region and
        then moves back up over them, so whatever is printed next follows the
        progress bar directly.
        """

        if self.mode is not RenderMode.WINDOWED:
            return 0

        state = self.state
        terminal = self._terminal
        palette = self._palette

        if not state.header_printed:
            terminal.write_line()
            terminal.write_line(f"{palette.bold}Repository Status{palette.reset}")
            terminal.write_line(f"{palette.dim}{RULE * min(80, state.width - 1)}{palette.reset}")
            state.header_printed = True

        snapshot = self._store.snapshot()
        active: list[RepoTask] = []
        newly_completed: list[RepoTask] = []
        for task in snapshot:
            if task.status.is_active:
                active.append(task)
            elif task.name not in state.completed:
                newly_completed.append(task)
        for task in newly_completed:
            state.completed[task.name] = None

        window = active[: window_size(self._concurrency, state.height)]
        footer = self._footer()
        max_region = max(1, state.height - 1)
        while footer and len(window) + len(footer) > max_region:
            footer.pop(0)

        moved = 0
        if state.rendered_once and state.last_rendered_count > 0:
            moved = min(state.last_rendered_count, max_region)
            terminal.move_up(moved)

        for task in newly_completed:
            terminal.clear_line()
            terminal.write_line(self._format(task))

        region = [self._format(task) for task in window] + footer
        # Blank out whatever is left of the previous region below the new one.
        stale = max(0, moved - len(newly_completed) - len(region))
        region.extend([""] * stale)
        for line in region:
            terminal.clear_line()
            terminal.write_line(line)
        if final and stale:
            terminal.move_up(stale)
            del region[-stale:]

        state.rendered_once = True
        state.last_rendered_count = len(region)
        state.passes.append((moved, len(region)))
        return len(region)

    def _footer(self) -> list[str]:
        palette = self._palette
        width = self.state.width
        lines = ["", legend(palette)]
        bar = render_progress_bar(self._store.counts(), len(self._store), width, palette)
        if bar:
            lines.append(bar)
        return [clip_line(line, width - 1) for line in lines]

    def handle_resize(self) -> None:
        width, height = self._terminal.size()
        self.state.width = width
        self.state.height = height
        logger.debug("Terminal resized to %dx%d", width, height)
        if self.mode is RenderMode.WINDOWED:
            self.render()

    @contextlib.asynccontextmanager
    async def live(self, refresh_interval: float = DEFAULT_REFRESH_INTERVAL) -> AsyncIterator["StatusDisplay"]:
        """Redraw on a fixed tick while the block runs, then draw a final pass."""

        if self.mode is not RenderMode.WINDOWED:
            yield self
            return

        loop = asyncio.get_running_loop()
        resize_hooked = False
        sigwinch = getattr(signal, "SIGWINCH", None)
        if sigwinch is not None:
            try:
                loop.add_signal_handler(sigwinch, self.handle_resize)
                resize_hooked = True
            except (NotImplementedError, RuntimeError, ValueError):
                logger.debug("Resize signal handling unavailable")

        async def ticker() -> None:
            while True:
                self.render()
                await asyncio.sleep(refresh_interval)

        task = asyncio.create_task(ticker())
        try:
            yield self
        finally:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
            if resize_hooked:
                loop.remove_signal_handler(sigwinch)
            self.render(final=True)

    def _format(self, task: RepoTask) -> str:
        return format_status_line(
            task,
            now=self._clock(),
            name_width=self._store.max_name_length,
            terminal_width=self.state.width,
            palette=self._palette,
        )


__all__ = [
    "DEFAULT_REFRESH_INTERVAL",
    "HEADER_LINES",
    "RESERVED_LINES",
    "RenderMode",
    "RenderState",
    "StatusDisplay",
    "choose_render_mode",
    "window_size",
]
