"""Per-repository clone, pull and delete operations.

Each operation reports progress through a ``StatusReporter`` bound to the
repository and returns an ``ExecutionResult``. Git and filesystem failures
are reported as a ``failed`` status and never raised.
"""

from __future__ import annotations

import asyncio
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path

from ..sources.models import RepoInfo
from ..status import ExecutionResult, RepoStatus, StatusReporter
from .runner import GitCommandError, GitRunner, GitRunnerError

logger = logging.getLogger(__name__)

ALREADY_UP_TO_DATE = "Already up to date"


@dataclass(frozen=True, slots=True)
class SyncOptions:
    use_ssh: bool = False
    token: str | None = None
    pull_from_default: bool = False
    switch_to_default: bool = False
    pull_changes_to_fork: bool = False


class RepoOperations:
    """Git-backed operations for repositories living under ``target_dir``."""

    def __init__(self, runner: GitRunner, target_dir: Path, options: SyncOptions | None = None) -> None:
        self._runner = runner
        self._target_dir = Path(target_dir)
        self._options = options or SyncOptions()

    @property
    def options(self) -> SyncOptions:
        return self._options

    def path_for(self, name: str) -> Path:
        return self._target_dir / name

    async def process(self, repo: RepoInfo, report: StatusReporter) -> ExecutionResult:
        """Pull the repository if it is checked out already, clone it otherwise."""

        exists = self.path_for(repo.name).is_dir()
        if repo.private and not self._options.token and not exists:
            report(RepoStatus.SKIPPED, "Private repo, no token provided")
            return ExecutionResult.ok("skipped")
        if exists:
            return await self.pull(repo, report)
        return await self.clone(repo, report)

    async def clone(self, repo: RepoInfo, report: StatusReporter) -> ExecutionResult:
        path = self.path_for(repo.name)
        try:
            report(RepoStatus.CLONING, "Cloning...")
            url = repo.ssh_url if self._options.use_ssh and repo.ssh_url else repo.clone_url
            await self._runner.clone(url, path)
            report(RepoStatus.CLONING, "Fetching all branches...")
            await self._runner.fetch_all(path)
            report(RepoStatus.SUCCESS, "Successfully cloned")
            return ExecutionResult.ok("cloned")
        except (GitRunnerError, OSError) as exc:
            logger.debug("Clone of %s failed", repo.name, exc_info=True)
            report(RepoStatus.FAILED, f"Error: {exc}")
            return ExecutionResult.failure("clone", str(exc))

    async def pull(self, repo: RepoInfo, report: StatusReporter) -> ExecutionResult:
        path = self.path_for(repo.name)
        options = self._options
        try:
            report(RepoStatus.PULLING, "Checking status...")
            if await self._runner.changed_files(path):
                report(RepoStatus.UNCOMMITTED, "Has uncommitted changes, skipped")
                return ExecutionResult.ok("uncommitted")

            report(RepoStatus.PULLING, "Fetching all branches...")
            await self._runner.fetch_all(path)

            if options.pull_changes_to_fork and repo.fork and repo.parent_clone_url:
                return await self._sync_fork(path, repo.parent_clone_url, report)
            if options.switch_to_default:
                return await self._switch_to_default(path, report)
            if options.pull_from_default:
                return await self._pull_from_default(path, report)

            report(RepoStatus.PULLING, "Pulling changes...")
            await self._runner.pull(path)
            report(RepoStatus.SUCCESS, "Successfully pulled")
            return ExecutionResult.ok("pulled")
        except (GitRunnerError, OSError) as exc:
            logger.debug("Pull of %s failed", repo.name, exc_info=True)
            report(RepoStatus.FAILED, f"Error: {exc}")
            return ExecutionResult.failure("pull", str(exc))

    async def _pull_from_default(self, path: Path, report: StatusReporter) -> ExecutionResult:
        runner = self._runner
        try:
            current = await runner.current_branch(path)
            report(RepoStatus.PULLING, "Detecting default branch...")
            default = await runner.default_branch(path)
            remote_branches = await runner.remote_branches(path)
        except GitCommandError:
            report(RepoStatus.PULLING, "Falling back to regular pull...")
            await runner.pull(path)
            report(RepoStatus.SUCCESS, "Successfully pulled (fallback)")
            return ExecutionResult.ok("pulled")

        if current == default:
            report(RepoStatus.PULLING, f"Pulling {default} (current branch)...")
            await runner.pull(path)
            report(RepoStatus.SUCCESS, f"Successfully pulled {default}")
            return ExecutionResult.ok("pulled_default")

        remote_default = f"origin/{default}"
        if remote_default not in remote_branches:
            report(RepoStatus.PULLING, f"Remote {default} not found, pulling current branch")
            await runner.pull(path)
            report(RepoStatus.SUCCESS, "Successfully pulled")
            return ExecutionResult.ok("pulled")

        report(RepoStatus.PULLING, f"Merging changes from {default}...")
        return await self._merge_and_push(
            path,
            report,
            ref=remote_default,
            label=default,
            current=current,
            kind="merged_from_default",
        )

    async def _switch_to_default(self, path: Path, report: StatusReporter) -> ExecutionResult:
        runner = self._runner
        current = await runner.current_branch(path)
        default = await runner.default_branch(path)
        if current == default:
            report(RepoStatus.PULLING, f"Pulling {default} (current branch)...")
            await runner.pull(path)
            report(RepoStatus.SUCCESS, f"Successfully pulled {default}")
            return ExecutionResult.ok("pulled_default")

        report(RepoStatus.CHECKING, f"Switching from {current} to {default}...")
        await runner.checkout(path, default)
        report(RepoStatus.PULLING, f"Pulling {default}...")
        await runner.pull(path)
        report(RepoStatus.SUCCESS, f"Switched to {default} and pulled")
        return ExecutionResult.ok("switched_to_default", **{"from": current, "to": default})

    async def _sync_fork(self, path: Path, upstream_url: str, report: StatusReporter) -> ExecutionResult:
        runner = self._runner
        report(RepoStatus.PULLING, "Fetching upstream...")
        await runner.ensure_remote(path, "upstream", upstream_url)
        await runner.fetch(path, "upstream")
        current = await runner.current_branch(path)
        default = await runner.default_branch(path)
        upstream_ref = f"upstream/{default}"
        report(RepoStatus.PULLING, f"Merging changes from {upstream_ref}...")
        return await self._merge_and_push(
            path,
            report,
            ref=upstream_ref,
            label=upstream_ref,
            current=current,
            kind="synced_fork",
        )

    async def _merge_and_push(
        self,
        path: Path,
        report: StatusReporter,
        *,
        ref: str,
        label: str,
        current: str,
        kind: str,
    ) -> ExecutionResult:
        runner = self._runner
        details = {"from": label, "to": current}
        try:
            result = await runner.merge(path, ref)
        except GitCommandError as exc:
            await runner.run("merge", "--abort", cwd=path, check=False)
            report(RepoStatus.FAILED, f"Merge conflict with {label}: {exc}")
            return ExecutionResult.failure("merge_conflict", str(exc), **details)

        if ALREADY_UP_TO_DATE in result.stdout:
            report(RepoStatus.SUCCESS, f"Already up to date with {label}")
            return ExecutionResult.ok("up_to_date_with_default", **details)

        report(RepoStatus.PULLING, "Pushing merged changes...")
        try:
            await runner.push(path)
        except GitCommandError as exc:
            report(RepoStatus.SUCCESS, f"Merged {label} into {current} (push failed: {exc})")
            return ExecutionResult.ok(kind, push_error=str(exc), **details)
        report(RepoStatus.SUCCESS, f"Successfully merged {label} into {current}")
        return ExecutionResult.ok(kind, **details)

    async def delete(self, repo: RepoInfo, report: StatusReporter) -> ExecutionResult:
        """Remove a local checkout unless it has uncommitted work."""

        path = self.path_for(repo.name)
        if not path.is_dir():
            report(RepoStatus.SKIPPED, "Not found locally")
            return ExecutionResult.ok("skipped")

        report(RepoStatus.CHECKING, "Checking for uncommitted changes...")
        try:
            changed = await self._runner.changed_files(path)
        except GitCommandError:
            report(RepoStatus.SKIPPED, "Not a git repository")
            return ExecutionResult.ok("skipped")
        if changed:
            report(RepoStatus.UNCOMMITTED, "Has uncommitted changes, skipped")
            return ExecutionResult.ok("uncommitted")

        try:
            report(RepoStatus.DELETING, "Deleting repository...")
            await asyncio.to_thread(shutil.rmtree, path)
        except OSError as exc:
            report(RepoStatus.FAILED, f"Error: {exc}")
            return ExecutionResult.failure("delete", str(exc))
        report(RepoStatus.SUCCESS, "Successfully deleted")
        return ExecutionResult.ok("deleted")


__all__ = ["RepoOperations", "SyncOptions"]
