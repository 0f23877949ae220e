"""Cross-referencing local statuses against remote organization listings."""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .. import pool
from ..remote import RemoteProvider, RemoteRepository
from .status import RepositoryStatus
from .targets import OrgKey

logger = logging.getLogger('tugboat.git_sync.remote_index')


@dataclass
class RemoteIndex:
    """
    Remote repositories by organization and name.

    Organizations whose listing failed are kept in `degraded` with the
    error text instead of being silently dropped.
    """
    organizations: Dict[OrgKey, Dict[str, RemoteRepository]] = field(default_factory=dict)
    degraded: Dict[OrgKey, str] = field(default_factory=dict)

    def lookup(self, key: OrgKey, name: str) -> Optional[RemoteRepository]:
        return self.organizations.get(key, {}).get(name)


def _list_organization(
    key: OrgKey,
    providers: Mapping[str, RemoteProvider]
) -> Tuple[OrgKey, Optional[List[RemoteRepository]], str]:
    provider_name, org = key
    client = providers.get(provider_name)
    if client is None:
        return key, None, f"no client for provider {provider_name}"
    try:
        return key, client.list_organization_repositories(org), ""
    except Exception as e:
        return key, None, f"listing repos for {provider_name}/{org}: {e}"


def build_remote_index(
    keys: Iterable[OrgKey],
    providers: Mapping[str, RemoteProvider],
    workers: int = 0
) -> RemoteIndex:
    """List each distinct organization once, in parallel."""
    index = RemoteIndex()
    unique_keys = list(dict.fromkeys(keys))
    for key, repos, error in pool.run(unique_keys, workers, lambda k: _list_organization(k, providers)):
        if repos is None:
            logger.warning(f"⚠️ Remote annotation skipped for {key[0]}/{key[1]}: {error}")
            index.degraded[key] = error
            continue
        index.organizations[key] = {r.name: r for r in repos}
        logger.debug(f"Indexed {len(repos)} remote repositories for {key[0]}/{key[1]}")
    return index


def annotate(statuses: Iterable[RepositoryStatus], index: RemoteIndex) -> None:
    """
    Set archived/orphan flags from the remote index.

    Only `archived` and `orphan` are written. Repositories of a degraded
    organization are left untouched: a failed listing says nothing about
    whether they exist remotely, so they are not reported as orphans.
    """
    for status in statuses:
        key = (status.provider, status.org)
        if key in index.degraded:
            continue
        repos = index.organizations.get(key)
        if repos is None:
            status.orphan = True
            continue
        remote = repos.get(status.name)
        if remote is None:
            status.orphan = True
        else:
            status.archived = remote.archived
