from __future__ import annotations

import asyncio
from pathlib import Path

from gh_pull_all.git import RepoOperations, SyncOptions
from gh_pull_all.git.runner import FakeGitRunner, failed, ok
from gh_pull_all.sources import RepoInfo
from gh_pull_all.status import RepoStatus, TaskStore


def _repo(name: str = "widget", **kwargs) -> RepoInfo:
    return RepoInfo(
        name=name,
        clone_url=f"https://github.com/acme/{name}.git",
        ssh_url=f"git@github.com:acme/{name}.git",
        **kwargs,
    )


def _run(operations: RepoOperations, method: str, repo: RepoInfo):
    store = TaskStore()
    store.add_item(repo.name)
    history: list[tuple[RepoStatus, str]] = []
    store.subscribe(lambda task, _old: history.append((task.status, task.message)))
    result = asyncio.run(getattr(operations, method)(repo, store.reporter(repo.name)))
    return result, store.get(repo.name), history


def _checkout(tmp_path: Path, name: str = "widget") -> Path:
    path = tmp_path / name
    (path / ".git").mkdir(parents=True)
    return path


def test_process_clones_missing_repository(tmp_path: Path) -> None:
    fake = FakeGitRunner()
    operations = RepoOperations(fake, tmp_path)

    result, task, history = _run(operations, "process", _repo())

    assert result.success and result.kind == "cloned"
    assert task.status is RepoStatus.SUCCESS
    assert task.message == "Successfully cloned"
    assert [status for status, _ in history] == [RepoStatus.CLONING, RepoStatus.CLONING, RepoStatus.SUCCESS]
    assert fake.commands() == [
        f"clone https://github.com/acme/widget.git {tmp_path / 'widget'}",
        "fetch --all",
    ]


def test_clone_uses_ssh_url_when_requested(tmp_path: Path) -> None:
    fake = FakeGitRunner()
    operations = RepoOperations(fake, tmp_path, SyncOptions(use_ssh=True))

    _run(operations, "clone", _repo())

    assert fake.commands()[0].startswith("clone git@github.com:acme/widget.git ")


def test_clone_failure_is_reported(tmp_path: Path) -> None:
    fake = FakeGitRunner({"clone": failed("fatal: repository not found", returncode=128)})
    operations = RepoOperations(fake, tmp_path)

    result, task, _ = _run(operations, "clone", _repo())

    assert not result.success
    assert result.kind == "clone"
    assert task.status is RepoStatus.FAILED
    assert task.message == "Error: fatal: repository not found"
    assert task.error_number == 1


def test_private_repository_without_token_is_skipped(tmp_path: Path) -> None:
    fake = FakeGitRunner()
    operations = RepoOperations(fake, tmp_path)

    result, task, _ = _run(operations, "process", _repo(private=True))

    assert result.success and result.kind == "skipped"
    assert task.status is RepoStatus.SKIPPED
    assert task.message == "Private repo, no token provided"
    assert fake.commands() == []


def test_process_pulls_existing_checkout(tmp_path: Path) -> None:
    _checkout(tmp_path)
    fake = FakeGitRunner()
    operations = RepoOperations(fake, tmp_path, SyncOptions(token="secret"))

    result, task, _ = _run(operations, "process", _repo(private=True))

    assert result.kind == "pulled"
    assert task.message == "Successfully pulled"
    assert fake.commands() == ["status --porcelain", "fetch --all", "pull"]


def test_pull_skips_dirty_checkout(tmp_path: Path) -> None:
    _checkout(tmp_path)
    fake = FakeGitRunner({"status --porcelain": ok(" M setup.py\n")})
    operations = RepoOperations(fake, tmp_path)

    result, task, _ = _run(operations, "pull", _repo())

    assert result.success and result.kind == "uncommitted"
    assert task.status is RepoStatus.UNCOMMITTED
    assert "pull" not in fake.commands()


def test_pull_failure_is_reported(tmp_path: Path) -> None:
    _checkout(tmp_path)
    fake = FakeGitRunner({"pull": failed("fatal: refusing to merge unrelated histories")})
    operations = RepoOperations(fake, tmp_path)

    result, task, _ = _run(operations, "pull", _repo())

    assert not result.success
    assert task.status is RepoStatus.FAILED
    assert task.message == "Error: fatal: refusing to merge unrelated histories"


def _default_branch_responses(current: str, default: str = "main") -> dict:
    return {
        "rev-parse --abbrev-ref HEAD": ok(f"{current}\n"),
        "remote": ok("origin\n"),
        "symbolic-ref": ok(f"refs/remotes/origin/{default}\n"),
        "branch -r": ok(f"  origin/{default}\n  origin/{current}\n"),
    }


def test_pull_from_default_merges_and_pushes(tmp_path: Path) -> None:
    _checkout(tmp_path)
    fake = FakeGitRunner(_default_branch_responses("feature") | {"merge": ok("Merge made by the 'ort' strategy.\n")})
    operations = RepoOperations(fake, tmp_path, SyncOptions(pull_from_default=True))

    result, task, _ = _run(operations, "pull", _repo())

    assert result.kind == "merged_from_default"
    assert task.message == "Successfully merged main into feature"
    assert "merge --no-edit origin/main" in fake.commands()
    assert fake.commands()[-1] == "push"


def test_pull_from_default_on_default_branch_just_pulls(tmp_path: Path) -> None:
    _checkout(tmp_path)
    fake = FakeGitRunner(_default_branch_responses("main"))
    operations = RepoOperations(fake, tmp_path, SyncOptions(pull_from_default=True))

    result, task, _ = _run(operations, "pull", _repo())

    assert result.kind == "pulled_default"
    assert task.message == "Successfully pulled main"


def test_pull_from_default_already_up_to_date(tmp_path: Path) -> None:
    _checkout(tmp_path)
    fake = FakeGitRunner(_default_branch_responses("feature") | {"merge": ok("Already up to date.\n")})
    operations = RepoOperations(fake, tmp_path, SyncOptions(pull_from_default=True))

    result, task, _ = _run(operations, "pull", _repo())

    assert result.kind == "up_to_date_with_default"
    assert task.message == "Already up to date with main"
    assert "push" not in fake.commands()


def test_merge_conflict_aborts_and_fails(tmp_path: Path) -> None:
    _checkout(tmp_path)
    fake = FakeGitRunner(
        _default_branch_responses("feature")
        | {"merge --no-edit": failed("CONFLICT (content): Merge conflict in app.py")}
    )
    operations = RepoOperations(fake, tmp_path, SyncOptions(pull_from_default=True))

    result, task, _ = _run(operations, "pull", _repo())

    assert not result.success
    assert result.kind == "merge_conflict"
    assert task.status is RepoStatus.FAILED
    assert task.message.startswith("Merge conflict with main: CONFLICT")
    assert "merge --abort" in fake.commands()


def test_push_failure_still_counts_as_merged(tmp_path: Path) -> None:
    _checkout(tmp_path)
    fake = FakeGitRunner(
        _default_branch_responses("feature")
        | {"merge": ok("Fast-forward\n"), "push": failed("remote: Permission denied")}
    )
    operations = RepoOperations(fake, tmp_path, SyncOptions(pull_from_default=True))

    result, task, _ = _run(operations, "pull", _repo())

    assert result.success
    assert result.details["push_error"] == "remote: Permission denied"
    assert task.status is RepoStatus.SUCCESS
    assert task.message == "Merged main into feature (push failed: remote: Permission denied)"


def test_switch_to_default_checks_out_and_pulls(tmp_path: Path) -> None:
    _checkout(tmp_path)
    fake = FakeGitRunner(_default_branch_responses("feature"))
    operations = RepoOperations(fake, tmp_path, SyncOptions(switch_to_default=True))

    result, task, history = _run(operations, "pull", _repo())

    assert result.kind == "switched_to_default"
    assert result.details == {"from": "feature", "to": "main"}
    assert task.message == "Switched to main and pulled"
    assert (RepoStatus.CHECKING, "Switching from feature to main...") in history
    commands = fake.commands()
    assert commands.index("checkout main") < len(commands) - 1
    assert commands[-1] == "pull"


def test_fork_is_synced_with_upstream(tmp_path: Path) -> None:
    _checkout(tmp_path)
    fake = FakeGitRunner(_default_branch_responses("main") | {"merge": ok("Updating 1a2b..3c4d\n")})
    operations = RepoOperations(fake, tmp_path, SyncOptions(pull_changes_to_fork=True))
    repo = _repo(fork=True, parent_clone_url="https://github.com/upstream-org/widget.git")

    result, task, _ = _run(operations, "pull", repo)

    assert result.kind == "synced_fork"
    assert task.message == "Successfully merged upstream/main into main"
    commands = fake.commands()
    assert "remote add upstream https://github.com/upstream-org/widget.git" in commands
    assert "fetch upstream" in commands
    assert "merge --no-edit upstream/main" in commands


def test_fork_without_known_upstream_is_pulled_normally(tmp_path: Path) -> None:
    _checkout(tmp_path)
    fake = FakeGitRunner()
    operations = RepoOperations(fake, tmp_path, SyncOptions(pull_changes_to_fork=True))

    result, task, _ = _run(operations, "pull", _repo(fork=True))

    assert result.kind == "pulled"
    assert task.message == "Successfully pulled"
    assert not any(command.startswith("remote add upstream") for command in fake.commands())


def test_delete_removes_clean_checkout(tmp_path: Path) -> None:
    path = _checkout(tmp_path)
    fake = FakeGitRunner()
    operations = RepoOperations(fake, tmp_path)

    result, task, history = _run(operations, "delete", _repo())

    assert result.kind == "deleted"
    assert task.message == "Successfully deleted"
    assert not path.exists()
    assert [status for status, _ in history] == [RepoStatus.CHECKING, RepoStatus.DELETING, RepoStatus.SUCCESS]


def test_delete_keeps_dirty_checkout(tmp_path: Path) -> None:
    path = _checkout(tmp_path)
    fake = FakeGitRunner({"status --porcelain": ok("?? notes.txt\n")})
    operations = RepoOperations(fake, tmp_path)

    result, task, _ = _run(operations, "delete", _repo())

    assert result.kind == "uncommitted"
    assert task.status is RepoStatus.UNCOMMITTED
    assert path.exists()


def test_delete_skips_missing_and_non_repositories(tmp_path: Path) -> None:
    (tmp_path / "plain").mkdir()
    fake = FakeGitRunner({"status --porcelain": failed("fatal: not a git repository", returncode=128)})
    operations = RepoOperations(fake, tmp_path)

    _, missing, _ = _run(operations, "delete", _repo("ghost"))
    _, plain, _ = _run(operations, "delete", _repo("plain"))

    assert missing.status is RepoStatus.SKIPPED
    assert missing.message == "Not found locally"
    assert plain.status is RepoStatus.SKIPPED
    assert plain.message == "Not a git repository"
    assert (tmp_path / "plain").exists()
