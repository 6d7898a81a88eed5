"""Sources for the list of repositories to synchronize."""

from .files import discover_local_repos, load_repo_file
from .github import GitHubClient, fetch_repos, get_gh_token, list_repos_via_gh
from .models import RepoInfo, RepoSourceError

__all__ = [
    "GitHubClient",
    "RepoInfo",
    "RepoSourceError",
    "discover_local_repos",
    "fetch_repos",
    "get_gh_token",
    "list_repos_via_gh",
    "load_repo_file",
]
