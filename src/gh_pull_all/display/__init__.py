"""Terminal status display, progress bar and summary."""

from .formatting import Palette, truncate_message
from .renderer import RenderMode, StatusDisplay, choose_render_mode
from .summary import SummaryCounts, print_summary, summarize
from .terminal import RecordingTerminal, StreamTerminal, Terminal

__all__ = [
    "Palette",
    "RecordingTerminal",
    "RenderMode",
    "StatusDisplay",
    "StreamTerminal",
    "SummaryCounts",
    "Terminal",
    "choose_render_mode",
    "print_summary",
    "summarize",
    "truncate_message",
]
