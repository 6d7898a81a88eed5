"""Command-line entry point for gh-pull-all."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Sequence

from . import __version__
from .config import PullAllSettings, get_settings, is_interactive_output
from .display import Palette, StatusDisplay, StreamTerminal, Terminal, print_summary
from .git import GitRunner, GitRunnerError, RepoOperations, SyncOptions
from .scheduler import BoundedScheduler
from .sources import RepoInfo, RepoSourceError, discover_local_repos, fetch_repos, get_gh_token, load_repo_file
from .status import TaskStore

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_INTERRUPTED = 130

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] %(name)s: %(message)s"


def configure_logging(level: str, log_file: Path | None = None) -> None:
    """Configure root logging; diagnostics go to ``log_file`` when given, else stderr."""

    kwargs: dict[str, object] = {}
    if log_file is not None:
        kwargs["filename"] = str(log_file)
        kwargs["encoding"] = "utf-8"
    logging.basicConfig(
        level=getattr(logging, level, logging.WARNING),
        format=LOG_FORMAT,
        **kwargs,
    )


def build_parser(settings: PullAllSettings) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gh-pull-all",
        description="Sync all repositories from a GitHub organization or user.",
        epilog=(
            "examples:\n"
            "  gh-pull-all --org deep-assistant\n"
            "  gh-pull-all --user konard --ssh --threads 16\n"
            "  gh-pull-all --user konard --delete"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    source = parser.add_argument_group("repository source")
    source.add_argument("--org", "-o", help="GitHub organization name")
    source.add_argument("--user", "-u", help="GitHub username")
    source.add_argument("--repos-file", type=Path, help="YAML file listing repositories to sync")
    source.add_argument(
        "--local",
        action="store_true",
        help="Operate on the git checkouts already present in the target directory",
    )

    parser.add_argument("--token", "-t", default=settings.github_token, help="GitHub personal access token")
    parser.add_argument("--ssh", "-s", action="store_true", help="Use SSH URLs for cloning")
    parser.add_argument("--dir", "-d", type=Path, default=settings.target_dir, help="Target directory for repositories")
    parser.add_argument("--threads", "-j", type=int, default=None, help=f"Number of concurrent operations (default: {settings.threads})")
    parser.add_argument("--single-thread", action="store_true", help="Run operations sequentially")
    parser.add_argument(
        "--live-updates",
        action=argparse.BooleanOptionalAction,
        default=settings.live_updates,
        help="Redraw status lines in place (disable for terminal history preservation)",
    )
    parser.add_argument("--delete", action="store_true", help="Delete all cloned repositories (skips those with uncommitted changes)")
    parser.add_argument("--yes", "-y", action="store_true", help="Do not ask for confirmation before deleting")
    parser.add_argument("--pull-from-default", action="store_true", help="Merge the default branch into the current branch and push")
    parser.add_argument("--switch-to-default", action="store_true", help="Check out the default branch before pulling")
    parser.add_argument(
        "--pull-changes-to-fork",
        action="store_true",
        help="Merge the upstream default branch into forks and push",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def validate_args(parser: argparse.ArgumentParser, args: argparse.Namespace, settings: PullAllSettings) -> None:
    """Reject contradictory options and resolve the effective thread count."""

    if args.org and args.user:
        parser.error("You cannot specify both --org and --user")
    sources = [bool(args.org or args.user), args.repos_file is not None, args.local]
    if not any(sources):
        parser.error("You must specify either --org or --user")
    if sum(sources) > 1:
        parser.error("Specify only one of --org/--user, --repos-file or --local")
    if args.threads is not None and args.threads < 1:
        parser.error("Thread count must be at least 1")
    if args.single_thread and args.threads is not None:
        parser.error("Cannot specify both --single-thread and --threads")
    if args.pull_changes_to_fork and args.pull_from_default:
        parser.error("Cannot specify both --pull-changes-to-fork and --pull-from-default")
    if args.pull_changes_to_fork and args.switch_to_default:
        parser.error("Cannot specify both --pull-changes-to-fork and --switch-to-default")
    if args.pull_from_default and args.switch_to_default:
        parser.error("Cannot specify both --pull-from-default and --switch-to-default")

    args.concurrency = 1 if args.single_thread else (args.threads or settings.threads)


def confirm(question: str) -> bool:
    try:
        answer = input(question)
    except EOFError:
        return False
    return answer.strip().lower() in {"y", "yes"}


def _describe_target(args: argparse.Namespace) -> str:
    if args.org:
        return f"{args.org} organization"
    if args.user:
        return f"{args.user} user"
    if args.repos_file is not None:
        return f"{args.repos_file}"
    return "local"


async def load_repos(args: argparse.Namespace, token: str | None, terminal: Terminal, palette: Palette) -> list[RepoInfo]:
    if args.repos_file is not None:
        return load_repo_file(args.repos_file)
    if args.local:
        return discover_local_repos(args.dir)

    owner, kind = (args.org, "org") if args.org else (args.user, "user")
    repos, origin = await fetch_repos(owner, kind, token, resolve_forks=args.pull_changes_to_fork)
    if origin == "gh CLI":
        terminal.write_line(f"{palette.cyan}📋 Using gh CLI to fetch repositories (includes private repos){palette.reset}")
    else:
        terminal.write_line(f"{palette.cyan}📋 Using GitHub API to fetch repositories{palette.reset}")
    return repos


async def run(
    args: argparse.Namespace,
    settings: PullAllSettings,
    terminal: Terminal,
    *,
    interactive: bool,
    runner: GitRunner | None = None,
) -> int:
    """Sync or delete every repository and print the summary; return the exit code."""

    palette = Palette() if interactive else Palette.plain()
    concurrency = args.concurrency
    mode_label = "thread (sequential)" if concurrency == 1 else "threads (parallel)"
    target_dir = Path(args.dir).expanduser().resolve()
    args.dir = target_dir

    token = args.token
    if not token and not args.local:
        token = await get_gh_token()
        if token:
            terminal.write_line(f"{palette.cyan}🔑 Using GitHub token from gh CLI{palette.reset}")

    target = _describe_target(args)
    if args.delete:
        terminal.write_line(f"{palette.red}🗑️  Starting {target} repository deletion...{palette.reset}")
        terminal.write_line(f"{palette.cyan}📁 Target directory: {target_dir}{palette.reset}")
        terminal.write_line(f"{palette.cyan}⚡ Concurrency: {concurrency} {mode_label}{palette.reset}")
        if not args.yes and not confirm(
            f"⚠️  Are you sure you want to delete all repositories from {target_dir}? (y/N): "
        ):
            terminal.write_line(f"{palette.yellow}✖️  Operation cancelled{palette.reset}")
            return 0
    else:
        terminal.write_line(f"{palette.blue}🚀 Starting {target} repository sync...{palette.reset}")
        terminal.write_line(f"{palette.cyan}📁 Target directory: {target_dir}{palette.reset}")
        terminal.write_line(f"{palette.cyan}🔗 Using {'SSH' if args.ssh else 'HTTPS'} for cloning{palette.reset}")
        if args.pull_from_default:
            terminal.write_line(f"{palette.cyan}🔀 Pull from default branch: enabled{palette.reset}")
        if args.switch_to_default:
            terminal.write_line(f"{palette.cyan}🔀 Switch to default branch: enabled{palette.reset}")
        if args.pull_changes_to_fork:
            terminal.write_line(f"{palette.cyan}🍴 Pull changes to forks: enabled{palette.reset}")
        terminal.write_line(f"{palette.cyan}⚡ Concurrency: {concurrency} {mode_label}{palette.reset}")

    try:
        runner = runner or GitRunner()
        target_dir.mkdir(parents=True, exist_ok=True)
        repos = await load_repos(args, token, terminal, palette)
    except (GitRunnerError, RepoSourceError, OSError) as exc:
        logger.debug("Startup failed", exc_info=True)
        terminal.write_line(f"{palette.red}💥 Script failed: {exc}{palette.reset}")
        return EXIT_FAILURE

    repos.sort(key=lambda repo: repo.name)
    store = TaskStore()
    for repo in repos:
        store.add_item(repo.name)

    options = SyncOptions(
        use_ssh=args.ssh,
        token=token,
        pull_from_default=args.pull_from_default,
        switch_to_default=args.switch_to_default,
        pull_changes_to_fork=args.pull_changes_to_fork,
    )
    operations = RepoOperations(runner, target_dir, options)
    operation = operations.delete if args.delete else operations.process

    display = StatusDisplay(
        store,
        terminal,
        concurrency=concurrency,
        live_updates=args.live_updates,
        interactive=interactive,
        palette=palette,
    )
    scheduler = BoundedScheduler(store, concurrency)
    try:
        async with display.live(settings.refresh_interval):
            results = await scheduler.run(repos, operation)
    finally:
        display.close()

    print_summary(store, terminal, palette)
    logger.info("Processed %d repositories, peak concurrency %d", len(results), scheduler.peak_in_flight)
    return 0 if all(result.success for result in results) else EXIT_FAILURE


def main(argv: Sequence[str] | None = None) -> int:
    """Entry point for the ``gh-pull-all`` console script."""

    settings = get_settings()
    parser = build_parser(settings)
    args = parser.parse_args(argv)
    validate_args(parser, args, settings)
    configure_logging(settings.log_level, settings.log_file)

    terminal = StreamTerminal(sys.stdout)
    interactive = is_interactive_output(sys.stdout, settings)
    try:
        return asyncio.run(run(args, settings, terminal, interactive=interactive))
    except KeyboardInterrupt:
        terminal.write_line()
        terminal.write_line("✖️  Interrupted")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    raise SystemExit(main())
