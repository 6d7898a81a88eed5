"""Simulate a multi-repository run to exercise the status display.

No git or network access: every item sleeps for a random time and finishes
with a random outcome. Useful to watch the windowed display with more items
than the terminal has rows, or to compare it with the append-only log.
"""

from __future__ import annotations

import argparse
import asyncio
import random
import sys
from typing import Sequence

from gh_pull_all.config import get_settings, is_interactive_output
from gh_pull_all.display import Palette, StatusDisplay, StreamTerminal, Terminal, print_summary
from gh_pull_all.scheduler import BoundedScheduler
from gh_pull_all.status import ExecutionResult, RepoStatus, StatusReporter, TaskStore

OUTCOMES = (
    (RepoStatus.SUCCESS, "Successfully pulled"),
    (RepoStatus.SUCCESS, "Successfully cloned"),
    (RepoStatus.UNCOMMITTED, "Has uncommitted changes, skipped"),
    (RepoStatus.SKIPPED, "Private repo, no token provided"),
    (RepoStatus.FAILED, "Error: fatal: could not read Username for 'https://github.com': terminal prompts disabled"),
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Simulated gh-pull-all run")
    parser.add_argument("--items", type=int, default=40, help="Number of simulated repositories")
    parser.add_argument("--threads", "-j", type=int, default=8, help="Concurrency limit")
    parser.add_argument("--max-delay", type=float, default=1.5, help="Upper bound of simulated work per step (seconds)")
    parser.add_argument("--failure-rate", type=float, default=0.1, help="Probability that an item fails")
    parser.add_argument("--seed", type=int, default=None, help="Random seed for reproducible runs")
    parser.add_argument(
        "--live-updates",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Use the in-place display when the output is a terminal",
    )
    return parser


def make_operation(rng: random.Random, max_delay: float, failure_rate: float):
    async def simulate(name: str, report: StatusReporter) -> ExecutionResult:
        report(RepoStatus.CHECKING, "Checking status...")
        await asyncio.sleep(rng.uniform(0.05, max_delay) / 3)
        report(RepoStatus.PULLING, "Pulling changes...")
        await asyncio.sleep(rng.uniform(0.05, max_delay))
        if rng.random() < failure_rate:
            status, message = OUTCOMES[-1]
        else:
            status, message = rng.choice(OUTCOMES[:-1])
        report(status, message)
        if status is RepoStatus.FAILED:
            return ExecutionResult.failure("pull", message)
        return ExecutionResult.ok(status.value)

    return simulate


async def simulate_run(args: argparse.Namespace, terminal: Terminal, *, interactive: bool) -> int:
    rng = random.Random(args.seed)
    names = [f"repo-{index:03d}" for index in range(1, args.items + 1)]
    store = TaskStore()
    for name in names:
        store.add_item(name)

    palette = Palette() if interactive else Palette.plain()
    display = StatusDisplay(
        store,
        terminal,
        concurrency=args.threads,
        live_updates=args.live_updates,
        interactive=interactive,
        palette=palette,
    )
    terminal.write_line(f"Display mode: {display.mode.value}, {args.items} items, {args.threads} threads")

    scheduler = BoundedScheduler(store, args.threads, name_of=str)
    try:
        async with display.live(get_settings().refresh_interval):
            results = await scheduler.run(names, make_operation(rng, args.max_delay, args.failure_rate))
    finally:
        display.close()

    print_summary(store, terminal, palette)
    return 0 if all(result.success for result in results) else 1


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.threads < 1:
        parser.error("Thread count must be at least 1")

    terminal = StreamTerminal(sys.stdout)
    try:
        return asyncio.run(simulate_run(args, terminal, interactive=is_interactive_output(sys.stdout)))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
