"""Capability interface every remote provider implements."""

import logging
from abc import ABC, abstractmethod
from typing import List, Optional

import requests

from ..errors import ProviderError
from .models import RemoteRepository

REQUEST_TIMEOUT = 30


class RemoteProvider(ABC):
    """
    Minimal read-only view of a hosting service.

    Implementations must be idempotent and side-effect free; the engine only
    ever lists an organization or looks up a single repository.
    """

    def __init__(self, api_url: str, token: str, session: Optional[requests.Session] = None):
        self.api_url = api_url.rstrip("/")
        self.token = token
        self.session = session or requests.Session()
        self.session.headers.update(self.default_headers())
        self.logger = logging.getLogger('tugboat.remote')

    @abstractmethod
    def default_headers(self) -> dict:
        """Headers sent with every request."""

    @abstractmethod
    def list_organization_repositories(self, org: str) -> List[RemoteRepository]:
        """Return every repository of an organization."""

    @abstractmethod
    def get_repository(self, owner: str, name: str) -> Optional[RemoteRepository]:
        """Return one repository, or None when the provider reports it missing."""

    def _get(self, url: str, params: Optional[dict] = None, allow_missing: bool = False):
        """GET a JSON document; None on 404 when `allow_missing`."""
        self.logger.debug(f"GET {url} {params or ''}")
        try:
            resp = self.session.get(url, params=params, timeout=REQUEST_TIMEOUT)
        except requests.RequestException as e:
            raise ProviderError(f"fetching {url}: {e}") from e

        if allow_missing and resp.status_code == 404:
            return None
        if resp.status_code != 200:
            raise ProviderError(f"API error (status {resp.status_code}): {resp.text[:300]}")
        try:
            return resp.json()
        except ValueError as e:
            raise ProviderError(f"decoding response from {url}: {e}") from e

    def _paginate(self, url: str, page_size: int, size_param: str, extra: Optional[dict] = None) -> List[dict]:
        items: List[dict] = []
        page = 1
        while True:
            params = {"page": page, size_param: page_size}
            if extra:
                params.update(extra)
            batch = self._get(url, params=params) or []
            items.extend(batch)
            if len(batch) < page_size:
                return items
            page += 1
