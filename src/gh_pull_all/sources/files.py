"""Repository lists from YAML files and local directories."""

from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import RepoInfo, RepoSourceError


def load_repo_file(path: Path) -> list[RepoInfo]:
    """Load repositories from a YAML file.

    The document is either a list of entries or a mapping with a ``repos``
    key. An entry is a mapping of ``RepoInfo`` fields (``url`` is accepted for
    ``clone_url``) or a bare clone URL string.
    """

    path = Path(path)
    try:
        document = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise RepoSourceError(f"Cannot read repository list {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise RepoSourceError(f"Failed to parse YAML in {path}: {exc}") from exc

    if document is None:
        return []
    if isinstance(document, dict):
        document = document.get("repos") or []
    if not isinstance(document, list):
        raise RepoSourceError(f"Repository list in {path} must be a list")

    repos: list[RepoInfo] = []
    errors: list[str] = []
    seen: set[str] = set()
    for index, entry in enumerate(document):
        if isinstance(entry, str):
            entry = {"name": _name_from_url(entry), "clone_url": entry}
        try:
            repo = RepoInfo.model_validate(entry)
        except ValidationError as exc:
            errors.append(f"entry {index}: {exc}")
            continue
        if repo.name in seen:
            errors.append(f"entry {index}: duplicate repository name '{repo.name}'")
            continue
        seen.add(repo.name)
        repos.append(repo)

    if errors:
        raise RepoSourceError(f"Invalid repository list {path}: " + "; ".join(errors))
    return repos


def _name_from_url(url: str) -> str:
    tail = url.rstrip("/").rsplit("/", 1)[-1].rsplit(":", 1)[-1]
    return tail[: -len(".git")] if tail.endswith(".git") else tail


def discover_local_repos(directory: Path) -> list[RepoInfo]:
    """List git checkouts directly under ``directory``."""

    directory = Path(directory)
    if not directory.is_dir():
        raise RepoSourceError(f"Directory {directory} does not exist")
    return [
        RepoInfo(name=child.name)
        for child in sorted(directory.iterdir())
        if child.is_dir() and (child / ".git").exists()
    ]


__all__ = ["discover_local_repos", "load_repo_file"]
