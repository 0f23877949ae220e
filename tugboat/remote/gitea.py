"""Gitea API client."""

from typing import List, Optional
from urllib.parse import quote

from .base import RemoteProvider
from .models import RemoteRepository

PAGE_LIMIT = 50


def _to_repository(raw: dict) -> RemoteRepository:
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
        empty=bool(raw.get("empty")),
    )


class GiteaProvider(RemoteProvider):
    """Talks to the Gitea v1 REST API."""

    def default_headers(self) -> dict:
        return {
            "Authorization": f"token {self.token}",
            "Accept": "application/json",
        }

    def list_organization_repositories(self, org: str) -> List[RemoteRepository]:
        url = f"{self.api_url}/api/v1/orgs/{quote(org, safe='')}/repos"
        return [_to_repository(r) for r in self._paginate(url, PAGE_LIMIT, "limit")]

    def get_repository(self, owner: str, name: str) -> Optional[RemoteRepository]:
        url = f"{self.api_url}/api/v1/repos/{quote(owner, safe='')}/{quote(name, safe='')}"
        raw = self._get(url, allow_missing=True)
        return _to_repository(raw) if raw is not None else None
