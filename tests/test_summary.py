from __future__ import annotations

from gh_pull_all.display import Palette, RecordingTerminal, print_summary, summarize
from gh_pull_all.status import RepoStatus, RepoTask, TaskStore

LONG_ERROR = "Error: configuration specifies to merge with ref main but no ref was fetched"


def _task(name: str, status: RepoStatus, message: str) -> RepoTask:
    return RepoTask(name=name, status=status, message=message, start_time=0.0, end_time=1.0)


def test_summarize_classifies_outcomes_by_message() -> None:
    tasks = [
        _task("a", RepoStatus.SUCCESS, "Successfully cloned"),
        _task("b", RepoStatus.SUCCESS, "Successfully pulled"),
        _task("c", RepoStatus.SUCCESS, "Successfully pulled main"),
        _task("d", RepoStatus.SUCCESS, "Successfully merged main into feature"),
        _task("e", RepoStatus.SUCCESS, "Already up to date with main"),
        _task("f", RepoStatus.SUCCESS, "Switched to main and pulled"),
        _task("g", RepoStatus.SUCCESS, "Successfully merged upstream/main into main"),
        _task("h", RepoStatus.SUCCESS, "Successfully deleted"),
        _task("i", RepoStatus.UNCOMMITTED, "Has uncommitted changes, skipped"),
        _task("j", RepoStatus.SKIPPED, "Private repo, no token provided"),
        _task("k", RepoStatus.FAILED, "Merge conflict with main: CONFLICT (content)"),
        _task("l", RepoStatus.FAILED, "Error: network unreachable"),
        _task("m", RepoStatus.PENDING, ""),
    ]

    counts = summarize(tasks)

    assert counts.as_dict() == {
        "cloned": 1,
        "pulled": 2,
        "merged_from_default": 1,
        "up_to_date_with_default": 1,
        "switched_to_default": 1,
        "synced_fork": 1,
        "deleted": 1,
        "uncommitted": 1,
        "skipped": 1,
        "merge_conflicts": 1,
        "failed": 1,
    }


def test_print_summary_lists_full_error_messages() -> None:
    store = TaskStore()
    for name in ("alpha", "beta", "gamma"):
        store.add_item(name)
    store.update("beta", RepoStatus.FAILED, LONG_ERROR)
    store.update("alpha", RepoStatus.SUCCESS, "Successfully cloned")
    store.update("gamma", RepoStatus.SKIPPED, "Private repo, no token provided")
    terminal = RecordingTerminal(width=60)

    counts = print_summary(store, terminal, Palette.plain())

    lines = terminal.lines
    assert "❌ Errors:" in lines
    assert f"# 1 beta: {LONG_ERROR}" in lines
    assert "✅ Cloned: 1" in lines
    assert "⚠️  Skipped: 1" in lines
    assert "❌ Failed: 1" in lines
    assert not any(line.startswith("✅ Pulled") for line in lines)
    assert lines[-2].startswith("⏱️  Total time: ")
    assert lines[-1] == "🎉 Operation completed!"
    assert counts.failed == 1


def test_print_summary_without_errors_skips_error_block() -> None:
    store = TaskStore()
    store.add_item("alpha")
    store.update("alpha", RepoStatus.SUCCESS, "Successfully pulled")
    terminal = RecordingTerminal()

    print_summary(store, terminal, Palette.plain())

    assert "❌ Errors:" not in terminal.lines
    assert "📊 Summary:" in terminal.lines
    assert "✅ Pulled: 1" in terminal.lines
