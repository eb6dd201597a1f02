"""Utility functions for the GitNarrator application."""

from dataclasses import dataclass
from typing import Optional
from urllib.parse import urlparse

FORGE_HOSTS = frozenset({"github.com", "www.github.com"})

# Path words that belong to the forge UI rather than to owner/repo names
RESERVED_PATH_WORDS = frozenset(
    {"tree", "blob", "issues", "pulls", "actions", "projects", "wiki", "security", "settings"}
)


@dataclass(frozen=True)
class RepoRef:
    """A repository reference parsed from a forge URL."""

    owner: str
    repo: str
    branch: Optional[str] = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_repo_url(url: str) -> RepoRef:
    """Extract owner, repository and optional branch from a forge URL.

    Args:
        url: A repository page URL, e.g. ``https://github.com/owner/repo/tree/dev``

    Returns:
        RepoRef with the branch set when the URL points into ``tree/`` or ``blob/``

    Raises:
        ValueError: If the URL is not on the forge host or lacks owner/repo

    Examples:
        >>> parse_repo_url("https://github.com/octocat/hello-world")
        RepoRef(owner='octocat', repo='hello-world', branch=None)
        >>> parse_repo_url("https://github.com/octocat/hello-world/tree/dev").branch
        'dev'
    """
    parsed = urlparse(url.strip())
    if parsed.scheme not in ("http", "https") or parsed.netloc.lower() not in FORGE_HOSTS:
        raise ValueError(f"Not a GitHub repository URL: {url!r}")

    parts = [p for p in parsed.path.split("/") if p]
    owner: Optional[str] = None
    repo: Optional[str] = None
    branch: Optional[str] = None

    for i, part in enumerate(parts):
        if part in RESERVED_PATH_WORDS:
            continue
        if owner is None:
            owner = part
            continue
        repo = part.removesuffix(".git")
        if i + 2 < len(parts) and parts[i + 1] in ("tree", "blob"):
            branch = parts[i + 2]
        break

    if not owner or not repo:
        raise ValueError(f"Could not detect owner and repository in {url!r}")
    return RepoRef(owner=owner, repo=repo, branch=branch)
