"""Expansion of configured targets into concrete repository locations."""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from ..config import Target
from ..errors import TargetPathError
from .foldout import resolve_foldout
from .operations import is_git_repo

logger = logging.getLogger('tugboat.git_sync.targets')

OrgKey = Tuple[str, str]


class ExpansionMode(Enum):
    """STATUS yields what exists locally; CLONE yields what still has to be created."""
    STATUS = "status"
    CLONE = "clone"


@dataclass(frozen=True)
class RepositoryLocation:
    """One repository to examine or create, and where it came from."""
    path: Path
    target: str
    provider: str
    org: str
    name: str
    foldout: bool = False

    @property
    def org_key(self) -> OrgKey:
        return (self.provider, self.org)


def expand_organization(target: Target) -> List[RepositoryLocation]:
    """Immediate subdirectories of the target path that are git working copies."""
    root = Path(target.path)
    if not root.exists():
        raise TargetPathError(target.name, target.path)

    locations = []
    try:
        entries = sorted(root.iterdir())
    except OSError as e:
        logger.warning(f"Cannot read {root}: {e}")
        return []

    for entry in entries:
        if not entry.is_dir() or not is_git_repo(entry):
            continue
        locations.append(RepositoryLocation(
            path=entry,
            target=target.name,
            provider=target.provider,
            org=target.org,
            name=entry.name,
        ))
    return locations


def expand_repository(target: Target, mode: ExpansionMode = ExpansionMode.STATUS) -> List[RepositoryLocation]:
    """
    The repository itself plus its foldouts.

    In STATUS mode only existing working copies are returned; in CLONE mode
    only the ones that are still missing. The foldout manifest can only be
    read once the parent exists, so a missing parent yields no foldouts.
    """
    root = Path(target.path)
    if mode is ExpansionMode.STATUS and not root.exists():
        raise TargetPathError(target.name, target.path)

    want_existing = mode is ExpansionMode.STATUS
    locations = []
    if is_git_repo(root) == want_existing:
        locations.append(RepositoryLocation(
            path=root,
            target=target.name,
            provider=target.provider,
            org=target.org,
            name=target.repo,
        ))

    if not root.is_dir():
        return locations

    entries = resolve_foldout(root)
    for entry in entries or []:
        dest = root / entry.target
        if is_git_repo(dest) != want_existing:
            continue
        locations.append(RepositoryLocation(
            path=dest,
            target=target.name,
            provider=target.provider,
            org=entry.org or target.org,
            name=entry.repo,
            foldout=True,
        ))
    return locations


def expand_targets(targets: Iterable[Target], mode: ExpansionMode = ExpansionMode.STATUS) -> List[RepositoryLocation]:
    """
    Flatten targets into repository locations.

    Organization targets are only expanded in STATUS mode; in CLONE mode
    their repositories come from the remote listing, not from disk.
    """
    locations: List[RepositoryLocation] = []
    for target in targets:
        if target.is_organization:
            if mode is ExpansionMode.STATUS:
                locations.extend(expand_organization(target))
        else:
            locations.extend(expand_repository(target, mode))
    return locations


def organization_keys(targets: Sequence[Target], locations: Sequence[RepositoryLocation]) -> List[OrgKey]:
    """Distinct (provider, org) pairs touched by targets and their locations, first-seen order."""
    keys: List[OrgKey] = []
    seen = set()
    for key in [(t.provider, t.org) for t in targets] + [loc.org_key for loc in locations]:
        if key not in seen:
            seen.add(key)
            keys.append(key)
    return keys
