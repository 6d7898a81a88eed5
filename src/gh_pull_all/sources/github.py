"""Repository listing from GitHub via the gh CLI or the REST API."""

from __future__ import annotations

import asyncio
import json
import logging
import shutil
from typing import Any, Literal

import httpx

from .models import RepoInfo, RepoSourceError

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"
PER_PAGE = 100
GH_LIST_LIMIT = 1000
GH_JSON_FIELDS = "name,isPrivate,url,sshUrl,updatedAt,isFork,parent"

OwnerKind = Literal["org", "user"]


async def _run_gh(*args: str) -> str | None:
    binary = shutil.which("gh")
    if binary is None:
        return None
    process = await asyncio.create_subprocess_exec(
        binary,
        *args,
        stdin=asyncio.subprocess.DEVNULL,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        logger.debug("gh %s failed: %s", " ".join(args), stderr.decode("utf-8", errors="replace").strip())
        return None
    return stdout.decode("utf-8", errors="replace")


async def get_gh_token() -> str | None:
    """Return the token gh is logged in with, if gh is installed and authenticated."""

    output = await _run_gh("auth", "token")
    token = (output or "").strip()
    return token or None


def _repo_from_gh(entry: dict[str, Any]) -> RepoInfo:
    parent = entry.get("parent") or {}
    parent_url = None
    parent_owner = (parent.get("owner") or {}).get("login")
    if parent_owner and parent.get("name"):
        parent_url = f"https://github.com/{parent_owner}/{parent['name']}.git"
    return RepoInfo(
        name=entry["name"],
        clone_url=f"{entry['url']}.git",
        ssh_url=entry.get("sshUrl"),
        html_url=entry.get("url"),
        updated_at=entry.get("updatedAt"),
        private=bool(entry.get("isPrivate")),
        fork=bool(entry.get("isFork")),
        parent_clone_url=parent_url,
    )


async def list_repos_via_gh(owner: str) -> list[RepoInfo] | None:
    """List repositories with ``gh repo list``; ``None`` when gh is unusable."""

    output = await _run_gh("repo", "list", owner, "--json", GH_JSON_FIELDS, "--limit", str(GH_LIST_LIMIT))
    if output is None:
        return None
    try:
        entries = json.loads(output)
        return [_repo_from_gh(entry) for entry in entries]
    except (ValueError, KeyError, TypeError) as exc:
        logger.debug("Could not parse gh output: %s", exc)
        return None


def _repo_from_api(payload: dict[str, Any]) -> RepoInfo:
    parent = payload.get("parent") or {}
    return RepoInfo(
        name=payload["name"],
        clone_url=payload.get("clone_url") or "",
        ssh_url=payload.get("ssh_url"),
        html_url=payload.get("html_url"),
        updated_at=payload.get("updated_at"),
        private=bool(payload.get("private")),
        fork=bool(payload.get("fork")),
        parent_clone_url=parent.get("clone_url"),
    )


class GitHubClient:
    """Minimal async client for the repository listing endpoints."""

    def __init__(
        self,
        token: str | None = None,
        *,
        base_url: str = GITHUB_API_URL,
        transport: httpx.AsyncBaseTransport | None = None,
        timeout_seconds: float = 30.0,
    ) -> None:
        headers = {"Accept": "application/vnd.github+json"}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=httpx.Timeout(timeout_seconds, connect=10.0),
            transport=transport,
            follow_redirects=True,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_repos(self, owner: str, kind: OwnerKind) -> list[RepoInfo]:
        path = f"/orgs/{owner}/repos" if kind == "org" else f"/users/{owner}/repos"
        label = "Organization" if kind == "org" else "User"
        api_url = f"{self._client.base_url}{path.lstrip('/')}"

        repos: list[RepoInfo] = []
        page = 1
        while True:
            params = {"type": "all", "per_page": PER_PAGE, "sort": "updated", "direction": "desc", "page": page}
            try:
                response = await self._client.get(path, params=params)
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                status = exc.response.status_code
                if status == 404:
                    raise RepoSourceError(f"{label} '{owner}' not found or not accessible (API URL: {api_url})") from exc
                if status == 401:
                    raise RepoSourceError(
                        f"Authentication failed. Please provide a valid GitHub token (API URL: {api_url})"
                    ) from exc
                raise RepoSourceError(f"Failed to fetch repositories from {api_url}: HTTP {status}") from exc
            except httpx.HTTPError as exc:
                raise RepoSourceError(f"Failed to fetch repositories from {api_url}: {exc}") from exc

            batch = response.json()
            repos.extend(_repo_from_api(item) for item in batch)
            if len(batch) < PER_PAGE:
                break
            page += 1
        return repos

    async def repo_parent_url(self, owner: str, name: str) -> str | None:
        """Clone URL of the repository a fork was created from."""

        try:
            response = await self._client.get(f"/repos/{owner}/{name}")
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.debug("Could not resolve parent of %s/%s: %s", owner, name, exc)
            return None
        parent = response.json().get("parent") or {}
        return parent.get("clone_url")


async def fetch_repos(
    owner: str,
    kind: OwnerKind,
    token: str | None = None,
    *,
    prefer_gh: bool = True,
    resolve_forks: bool = False,
    transport: httpx.AsyncBaseTransport | None = None,
) -> tuple[list[RepoInfo], str]:
    """Return the owner's repositories and a label naming where they came from."""

    if prefer_gh:
        repos = await list_repos_via_gh(owner)
        if repos is not None:
            return repos, "gh CLI"

    async with GitHubClient(token, transport=transport) as client:
        repos = await client.list_repos(owner, kind)
        if resolve_forks:
            for index, repo in enumerate(repos):
                if repo.fork and repo.parent_clone_url is None:
                    parent = await client.repo_parent_url(owner, repo.name)
                    repos[index] = repo.model_copy(update={"parent_clone_url": parent})
    return repos, "GitHub API"


__all__ = [
    "GitHubClient",
    "fetch_repos",
    "get_gh_token",
    "list_repos_via_gh",
]
