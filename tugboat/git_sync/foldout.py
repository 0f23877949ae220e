"""Foldout manifests: nested repositories checked out inside a parent working copy."""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from ..errors import ManifestFormatError, InvalidFoldoutError

MANIFEST_NAME = ".tugboat.json"

logger = logging.getLogger('tugboat.git_sync.foldout')


@dataclass(frozen=True)
class FoldoutEntry:
    """One nested repository: remote `org/repo` name and local directory relative to the parent."""
    name: str
    target: str

    @property
    def org(self) -> Optional[str]:
        parts = self.name.split("/")
        return parts[0] if len(parts) == 2 else None

    @property
    def repo(self) -> str:
        return self.name.split("/")[-1]


def load_foldout(repository_path: Path) -> Optional[List[FoldoutEntry]]:
    """
    Read the foldout manifest at the root of a working copy.

    Returns:
        None when the repository has no manifest, otherwise the (possibly
        empty) list of entries with their target directories defaulted

    Raises:
        ManifestFormatError: the manifest is not valid JSON of the expected
            shape, or a name is not of the form org/repo
    """
    manifest = Path(repository_path) / MANIFEST_NAME
    try:
        text = manifest.read_text(encoding="utf-8")
    except FileNotFoundError:
        return None
    except UnicodeDecodeError as e:
        raise ManifestFormatError(f"reading {manifest}: {e}") from e

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ManifestFormatError(f"parsing {manifest}: {e}") from e

    if not isinstance(data, dict):
        raise ManifestFormatError(f"parsing {manifest}: expected a JSON object")
    repos = data.get("repos") or []
    if not isinstance(repos, list):
        raise ManifestFormatError(f"parsing {manifest}: 'repos' must be a list")

    entries = []
    for raw in repos:
        if not isinstance(raw, dict):
            raise ManifestFormatError(f"parsing {manifest}: each repo must be an object")
        name = raw.get("name") or ""
        if not isinstance(name, str):
            raise ManifestFormatError(f"parsing {manifest}: repo name must be a string")
        target = raw.get("target")
        if not isinstance(target, (str, type(None))):
            raise ManifestFormatError(f"parsing {manifest}: target of {name} must be a string")
        parts = name.split("/")
        if len(parts) != 2:
            raise ManifestFormatError(f"invalid repo name {name!r} in {MANIFEST_NAME} (expected org/repo)")
        target = target or parts[-1]
        entries.append(FoldoutEntry(name=name, target=target))

    logger.debug(f"Loaded {len(entries)} foldout entries from {manifest}")
    return entries


def validate_foldout(entries: List[FoldoutEntry]) -> None:
    """Reject empty, traversing or duplicated target directories."""
    seen = set()
    for entry in entries:
        if not entry.target:
            raise InvalidFoldoutError(f"foldout target empty for {entry.name}")
        if ".." in entry.target:
            raise InvalidFoldoutError(f"foldout target {entry.target} must not contain ..")
        if entry.target in seen:
            raise InvalidFoldoutError(f"duplicate foldout target {entry.target}")
        seen.add(entry.target)


def resolve_foldout(repository_path: Path) -> Optional[List[FoldoutEntry]]:
    """Load and validate in one step."""
    entries = load_foldout(repository_path)
    if entries is not None:
        validate_foldout(entries)
    return entries
