from __future__ import annotations

from gh_pull_all.display.formatting import (
    Palette,
    clip_line,
    display_message,
    format_duration,
    format_status_line,
    message_width,
    pad_line,
    truncate_message,
    visible_length,
)
from gh_pull_all.status import RepoStatus, RepoTask

LONG_ERROR = "Error: configuration specifies to merge with ref main but no ref was fetched"


def test_truncate_message_keeps_short_messages() -> None:
    assert truncate_message("Successfully pulled", 20) == "Successfully pulled"
    assert truncate_message("", 5) == ""


def test_truncate_message_hits_exact_width() -> None:
    truncated = truncate_message(LONG_ERROR, 20)

    assert len(truncated) == 20
    assert truncated.endswith("...")
    assert truncated == LONG_ERROR[:17] + "..."


def test_failed_line_shows_error_number_within_width() -> None:
    task = RepoTask(
        name="repo-x",
        status=RepoStatus.FAILED,
        message=LONG_ERROR,
        start_time=0.0,
        end_time=1.0,
        error_number=1,
    )

    text = display_message(task, 20)

    assert text.startswith("Error #1: ")
    assert len(text) == 20
    assert text.endswith("...")


def test_message_width_shrinks_to_fit_narrow_terminals() -> None:
    assert message_width(120, 10) == 120 - (2 + 10 + 1 + 6 + 1) - 10
    assert message_width(60, 30) == 60 - (2 + 30 + 1 + 6 + 1) - 2
    assert message_width(40, 30) == 0


def test_visible_length_counts_terminal_cells() -> None:
    assert visible_length("\x1b[32mok\x1b[0m") == 2
    assert visible_length("✅") == 2
    assert visible_length("⚠️ ") == 2
    assert visible_length("日本") == 4


def test_clip_line_keeps_colour_codes_and_resets() -> None:
    line = "\x1b[32m✅ organization-service\x1b[0m"

    clipped = clip_line(line, 8)

    assert visible_length(clipped) == 8
    assert clipped.startswith("\x1b[32m✅ orga")
    assert clipped.endswith("\x1b[0m")
    assert clip_line("short", 8) == "short"


def test_clip_line_does_not_split_wide_glyphs() -> None:
    assert clip_line("ab日本", 3) == "ab"


def test_pad_line_ignores_ansi_sequences() -> None:
    line = "\x1b[32mok\x1b[0m"

    padded = pad_line(line, 10)

    assert visible_length(padded) == 9


def test_format_duration_is_right_aligned() -> None:
    assert format_duration(1.234) == "  1.2s"
    assert format_duration(123.4) == "123.4s"


def test_status_line_layout_without_colours() -> None:
    task = RepoTask(name="api", status=RepoStatus.SUCCESS, message="Successfully pulled", start_time=10.0, end_time=12.5)

    line = format_status_line(task, now=50.0, name_width=8, terminal_width=80, palette=Palette.plain())

    assert line.startswith("✅ api        2.5s Successfully pulled")
    assert visible_length(line) == 79


def test_pending_line_uses_default_message() -> None:
    task = RepoTask(name="api", status=RepoStatus.CLONING, message="", start_time=0.0)

    line = format_status_line(task, now=3.0, name_width=3, terminal_width=80, palette=Palette.plain())

    assert "Cloning repository..." in line
    assert "  3.0s" in line
