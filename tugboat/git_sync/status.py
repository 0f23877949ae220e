"""Per-repository status snapshots computed from git."""

import logging
import time
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any

from . import operations
from .operations import GitCommandRunner
from .performance_logger import RepositoryTiming, time_phase
from .targets import RepositoryLocation

logger = logging.getLogger('tugboat.git_sync.status')


@dataclass
class RepositoryStatus:
    """
    Local and remote state of one repository.

    When `error` is set the status could not be computed and every derived
    field (dirty, ahead, behind, archived, orphan) must be ignored.
    """
    path: str
    target: str
    provider: str
    org: str
    name: str
    branch: str = ""
    dirty: bool = False
    ahead: int = 0
    behind: int = 0
    can_fast_forward: bool = False
    archived: bool = False
    orphan: bool = False
    remote_error: str = ""
    error: str = ""

    @property
    def diverged(self) -> bool:
        return self.behind > 0 and not self.can_fast_forward

    @property
    def is_clean(self) -> bool:
        return not (self.error or self.dirty or self.ahead or self.behind)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _parse_counts(output: str) -> Optional[tuple]:
    parts = output.split()
    if len(parts) != 2:
        return None
    try:
        return int(parts[0]), int(parts[1])
    except ValueError:
        return None


def compute_status(
    location: RepositoryLocation,
    runner: GitCommandRunner,
    timing: Optional[RepositoryTiming] = None
) -> RepositoryStatus:
    """
    Inspect one working copy.

    Phases run strictly in order: branch, fetch, dirty check, ahead/behind,
    fast-forward check. Failing to resolve the branch or to read the working
    tree status is fatal for this repository and recorded in `error`; a
    failed fetch is recorded in `remote_error` and a missing upstream leaves
    ahead/behind at zero. Ahead/behind are computed from whatever remote
    refs are cached locally, even when the fetch failed.
    """
    total_start = time.perf_counter()
    path = location.path
    status = RepositoryStatus(
        path=str(path),
        target=location.target,
        provider=location.provider,
        org=location.org,
        name=location.name,
    )
    if timing is not None:
        timing.path = str(path)

    try:
        with time_phase(timing, "branch"):
            result = operations.current_branch(runner, path)
        if not result.ok:
            status.error = f"getting branch: {result.describe()}"
            logger.debug(f"{path}: {status.error}")
            return status
        status.branch = result.stdout.strip()

        with time_phase(timing, "fetch"):
            result = operations.fetch_quiet(runner, path)
        if not result.ok:
            status.remote_error = result.first_error_line() or result.describe()
            logger.debug(f"{path}: fetch failed: {status.remote_error}")

        with time_phase(timing, "status"):
            result = operations.porcelain_status(runner, path)
        if not result.ok:
            status.error = f"checking status: {result.describe()}"
            logger.debug(f"{path}: {status.error}")
            return status
        status.dirty = result.stdout.strip() != ""

        upstream = f"origin/{status.branch}"
        with time_phase(timing, "rev_list"):
            result = operations.ahead_behind(runner, path, status.branch, upstream)
        if result.ok:
            counts = _parse_counts(result.stdout)
            if counts is not None:
                status.ahead, status.behind = counts
        else:
            logger.debug(f"{path}: no upstream {upstream}")

        with time_phase(timing, "merge_base"):
            if status.behind > 0:
                ancestor = operations.is_ancestor(runner, path, status.branch, upstream)
                status.can_fast_forward = ancestor or status.ahead == 0
            else:
                status.can_fast_forward = True

        return status
    finally:
        if timing is not None:
            timing.total = time.perf_counter() - total_start
