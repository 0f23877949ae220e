"""GitHub API client (Cloud or Enterprise)."""

from typing import List, Optional
from urllib.parse import quote

from .base import RemoteProvider
from .models import RemoteRepository

PER_PAGE = 100


def _to_repository(raw: dict) -> RemoteRepository:
    # GitHub has no "empty" flag; a zero size is the closest signal
    return RemoteRepository(
        id=raw.get("id", 0),
        name=raw.get("name", ""),
        full_name=raw.get("full_name", ""),
        description=raw.get("description") or "",
        clone_url=raw.get("clone_url", ""),
        ssh_url=raw.get("ssh_url", ""),
        html_url=raw.get("html_url", ""),
        default_branch=raw.get("default_branch", ""),
        archived=bool(raw.get("archived")),
        private=bool(raw.get("private")),
        fork=bool(raw.get("fork")),
        empty=raw.get("size", 0) == 0,
    )


class GitHubProvider(RemoteProvider):
    """Talks to the GitHub REST API."""

    def default_headers(self) -> dict:
        headers = {"Accept": "application/vnd.github+json"}
        if self.token:
            headers["Authorization"] = f"token {self.token}"
        return headers

    def list_organization_repositories(self, org: str) -> List[RemoteRepository]:
        url = f"{self.api_url}/orgs/{quote(org, safe='')}/repos"
        raw = self._paginate(url, PER_PAGE, "per_page", extra={"type": "all"})
        return [_to_repository(r) for r in raw]

    def get_repository(self, owner: str, name: str) -> Optional[RemoteRepository]:
        url = f"{self.api_url}/repos/{quote(owner, safe='')}/{quote(name, safe='')}"
        raw = self._get(url, allow_missing=True)
        return _to_repository(raw) if raw is not None else None
