"""Async runner for the git CLI."""

from __future__ import annotations

import asyncio
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Mapping

from .utils import sanitize_environment


class GitRunnerError(RuntimeError):
    """Base class for git runner errors."""


class GitNotFoundError(GitRunnerError):
    """Raised when the git executable cannot be located."""


class GitCommandError(GitRunnerError):
    """Raised when a git command exits with a non-zero status."""

    def __init__(self, result: "GitExecutionResult") -> None:
        self.result = result
        detail = result.stderr.strip() or result.stdout.strip()
        if not detail:
            detail = f"git {' '.join(result.args[1:])} exited with code {result.returncode}"
        super().__init__(detail)


@dataclass(slots=True)
class GitExecutionResult:
    """Holds the outcome of a git invocation."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class GitRunner:
    """Execute git commands asynchronously."""

    def __init__(self, executable: Path | None = None) -> None:
        self._executable_path = self._resolve_executable(executable)

    @staticmethod
    def _resolve_executable(explicit: Path | None) -> Path:
        if explicit is not None:
            candidate = Path(explicit)
            if candidate.exists() and candidate.is_file():
                return candidate
            raise GitNotFoundError(f"git executable not found at {candidate}")

        binary = shutil.which("git")
        if binary is None:
            raise GitNotFoundError("git executable not found on PATH")
        return Path(binary)

    @property
    def executable(self) -> Path:
        return self._executable_path

    async def version(self) -> GitExecutionResult:
        return await self.run("--version")

    async def run(self, *args: str, cwd: Path | None = None, check: bool = True) -> GitExecutionResult:
        result = await self._invoke(*args, cwd=cwd)
        if check and not result.ok:
            raise GitCommandError(result)
        return result

    async def clone(self, url: str, destination: Path) -> GitExecutionResult:
        return await self.run("clone", url, str(destination), cwd=destination.parent)

    async def fetch_all(self, repo: Path) -> GitExecutionResult:
        return await self.run("fetch", "--all", cwd=repo)

    async def fetch(self, repo: Path, remote: str) -> GitExecutionResult:
        return await self.run("fetch", remote, cwd=repo)

    async def pull(self, repo: Path) -> GitExecutionResult:
        return await self.run("pull", cwd=repo)

    async def push(self, repo: Path) -> GitExecutionResult:
        return await self.run("push", cwd=repo)

    async def merge(self, repo: Path, ref: str) -> GitExecutionResult:
        return await self.run("merge", "--no-edit", ref, cwd=repo)

    async def checkout(self, repo: Path, branch: str) -> GitExecutionResult:
        return await self.run("checkout", branch, cwd=repo)

    async def changed_files(self, repo: Path) -> list[str]:
        """Return porcelain status entries; raises ``GitCommandError`` outside a repository."""

        result = await self.run("status", "--porcelain", cwd=repo)
        return [line for line in result.stdout.splitlines() if line.strip()]

    async def current_branch(self, repo: Path) -> str:
        result = await self.run("rev-parse", "--abbrev-ref", "HEAD", cwd=repo)
        return result.stdout.strip()

    async def remote_names(self, repo: Path) -> list[str]:
        result = await self.run("remote", cwd=repo)
        return [line.strip() for line in result.stdout.splitlines() if line.strip()]

    async def remote_branches(self, repo: Path) -> list[str]:
        result = await self.run("branch", "-r", cwd=repo)
        branches: list[str] = []
        for line in result.stdout.splitlines():
            name = line.strip()
            if not name or "->" in name:
                continue
            branches.append(name)
        return branches

    async def ensure_remote(self, repo: Path, name: str, url: str) -> None:
        if name in await self.remote_names(repo):
            await self.run("remote", "set-url", name, url, cwd=repo)
        else:
            await self.run("remote", "add", name, url, cwd=repo)

    async def default_branch(self, repo: Path) -> str:
        """Best-effort detection of the remote's default branch name."""

        remotes = await self.remote_names(repo)
        if remotes:
            remote = "origin" if "origin" in remotes else remotes[0]
            head_ref = f"refs/remotes/{remote}/HEAD"
            head = await self.run("symbolic-ref", head_ref, cwd=repo, check=False)
            if not head.ok:
                await self.run("remote", "set-head", remote, "--auto", cwd=repo, check=False)
                head = await self.run("symbolic-ref", head_ref, cwd=repo, check=False)
            branch = head.stdout.strip().replace(f"refs/remotes/{remote}/", "", 1)
            if head.ok and branch:
                return branch

        branches = [name for name in await self.remote_branches(repo) if "/" in name]
        if any(name.endswith("/main") for name in branches):
            return "main"
        if any(name.endswith("/master") for name in branches):
            return "master"
        if branches:
            return branches[0].split("/")[-1]
        return "main"

    async def _invoke(self, *args: str, cwd: Path | None = None) -> GitExecutionResult:
        cmd = [str(self._executable_path), *args]
        process = await asyncio.create_subprocess_exec(
            *cmd,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd) if cwd is not None else None,
            env=sanitize_environment(),
        )
        stdout_bytes, stderr_bytes = await process.communicate()
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return GitExecutionResult(args=tuple(cmd), returncode=process.returncode, stdout=stdout, stderr=stderr)


class FakeGitRunner(GitRunner):
    """Test double that answers git commands from canned responses.

    ``responses`` maps a command prefix such as ``"status --porcelain"`` to a
    result, or to a list of results consumed in order (the last one repeats).
    The longest matching prefix wins; unmatched commands succeed silently.
    """

    def __init__(  # type: ignore[override]
        self,
        responses: Mapping[str, GitExecutionResult | Iterable[GitExecutionResult]] | None = None,
    ) -> None:
        self._responses: dict[str, list[GitExecutionResult]] = {}
        for prefix, value in (responses or {}).items():
            self._responses[prefix] = [value] if isinstance(value, GitExecutionResult) else list(value)
        self._invocations: list[tuple[tuple[str, ...], Path | None]] = []
        self._executable_path = Path("/tmp/fake-git")

    async def _invoke(self, *args: str, cwd: Path | None = None) -> GitExecutionResult:  # type: ignore[override]
        self._invocations.append((tuple(args), cwd))
        command = " ".join(args)
        matches = [prefix for prefix in self._responses if command == prefix or command.startswith(prefix + " ")]
        if matches:
            queue = self._responses[max(matches, key=len)]
            result = queue.pop(0) if len(queue) > 1 else queue[0]
            return GitExecutionResult(args=("git", *args), returncode=result.returncode, stdout=result.stdout, stderr=result.stderr)
        return GitExecutionResult(args=("git", *args), returncode=0, stdout="", stderr="")

    @property
    def invocations(self) -> list[tuple[str, ...]]:
        return [args for args, _ in self._invocations]

    def commands(self) -> list[str]:
        return [" ".join(args) for args, _ in self._invocations]


def ok(stdout: str = "") -> GitExecutionResult:
    return GitExecutionResult(args=("git",), returncode=0, stdout=stdout, stderr="")


def failed(stderr: str, returncode: int = 1) -> GitExecutionResult:
    return GitExecutionResult(args=("git",), returncode=returncode, stdout="", stderr=stderr)
