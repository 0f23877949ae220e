"""Repository manager: the orchestrating engine behind every Tugboat command."""

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, List, Sequence, Tuple, Mapping, Callable

from .. import pool
from ..config import Config, Target
from ..errors import UnknownTargetError, ProviderError
from ..remote import RemoteProvider, RemoteRepository
from .decisions import Decision, decide_pull, decide_push, decide_sync, execute_decision
from .foldout import resolve_foldout
from .operations import GitCommandRunner, is_git_repo, clone_repository
from .performance_logger import RepositoryTiming, PerformanceLogger, sort_timings
from .remote_index import build_remote_index, annotate
from .status import RepositoryStatus, compute_status
from .targets import (
    ExpansionMode, RepositoryLocation, OrgKey, expand_targets, expand_repository, organization_keys
)
from .utils import OperationOutcome, OperationReport, OutcomeState


def status_flags(status: RepositoryStatus) -> List[str]:
    """Human-readable flags of a status line; an empty list means clean."""
    flags = []
    if status.dirty:
        flags.append("dirty")
    if status.ahead > 0:
        flags.append(f"{status.ahead} ahead")
    if status.behind > 0:
        flags.append(f"{status.behind} behind")
        if not status.can_fast_forward:
            flags.append("diverged")
    if status.remote_error:
        flags.append(f"remote: {status.remote_error}")
    if status.archived:
        flags.append("archived")
    if status.orphan:
        flags.append("orphan")
    return flags


@dataclass
class StatusReport:
    """Statuses of every selected repository, sorted by (target, name)."""
    statuses: List[RepositoryStatus] = field(default_factory=list)
    timings: List[RepositoryTiming] = field(default_factory=list)
    degraded: Dict[OrgKey, str] = field(default_factory=dict)

    def summary(self) -> Dict[str, int]:
        counts = {"clean": 0, "dirty": 0, "ahead": 0, "behind": 0, "diverged": 0, "errors": 0}
        for status in self.statuses:
            if status.error:
                counts["errors"] += 1
                continue
            if status.dirty:
                counts["dirty"] += 1
            if status.ahead > 0:
                counts["ahead"] += 1
            if status.behind > 0:
                counts["behind"] += 1
                if not status.can_fast_forward:
                    counts["diverged"] += 1
            if not status_flags(status):
                counts["clean"] += 1
        return counts

    def to_dict(self) -> Dict[str, Any]:
        return {
            "statuses": [s.to_dict() for s in self.statuses],
            "summary": self.summary(),
            "degraded": [
                {"provider": provider, "org": org, "error": error}
                for (provider, org), error in self.degraded.items()
            ],
            "timings": [t.to_dict() for t in self.timings],
        }


@dataclass
class ListingEntry:
    """One line of a target listing: a repository and whether it is checked out."""
    name: str
    local: bool
    archived: bool = False
    orphan: bool = False
    directory: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"name": self.name, "local": self.local, "archived": self.archived, "orphan": self.orphan}
        if self.directory is not None:
            data["directory"] = self.directory
        return data


@dataclass
class TargetListing:
    target: Target
    entries: List[ListingEntry] = field(default_factory=list)
    error: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "target": self.target.name,
            "provider": self.target.provider,
            "org": self.target.org,
            "path": self.target.path,
            "entries": [e.to_dict() for e in self.entries],
            "error": self.error,
        }


@dataclass(frozen=True)
class _CloneJob:
    clone_url: str
    dest: Path
    target: str
    name: str


def _sort_outcomes(outcomes: List[OperationOutcome]) -> List[OperationOutcome]:
    return sorted(outcomes, key=lambda o: (o.target, o.name, o.path))


class RepositoryManager:
    """
    Runs status, pull, push, sync, clone and list over the configured targets.

    Everything the engine needs is passed in: the configuration, one remote
    client per provider, and the git command runner.
    """

    def __init__(
        self,
        config: Config,
        providers: Mapping[str, RemoteProvider],
        runner: Optional[GitCommandRunner] = None
    ):
        self.config = config
        self.providers = dict(providers)
        self.runner = runner or GitCommandRunner()
        self.logger = logging.getLogger('tugboat.git_sync')
        self.perf_logger = PerformanceLogger()

    # -- selection --

    def targets_for(self, names: Optional[Sequence[str]] = None) -> List[Target]:
        """
        Resolve target names, preserving request order.

        Raises:
            UnknownTargetError: listing every name that is not configured
        """
        if not names:
            return list(self.config.targets)

        by_name = {t.name: t for t in self.config.targets}
        selected = []
        missing = []
        seen = set()
        for name in names:
            target = by_name.get(name)
            if target is None:
                missing.append(name)
                continue
            if name in seen:
                continue
            seen.add(name)
            selected.append(target)
        if missing:
            raise UnknownTargetError(missing)
        return selected

    def _workers(self, workers: Optional[int]) -> int:
        if workers is not None and workers > 0:
            return workers
        return self.config.workers

    def _client(self, provider: str) -> RemoteProvider:
        client = self.providers.get(provider)
        if client is None:
            raise ProviderError(f"no client for provider {provider}")
        return client

    # -- status --

    def collect_statuses(
        self,
        names: Optional[Sequence[str]] = None,
        debug: bool = False,
        workers: Optional[int] = None
    ) -> StatusReport:
        """
        Compute annotated statuses for every repository of the selected targets.

        Target resolution, path checks and foldout manifests are validated
        before any git command runs; per-repository failures end up in
        `RepositoryStatus.error`.
        """
        targets = self.targets_for(names)
        locations = expand_targets(targets, ExpansionMode.STATUS)
        count = self._workers(workers)
        self.logger.info(f"🔍 Checking {len(locations)} repositories across {len(targets)} targets")

        def job(location: RepositoryLocation) -> Tuple[RepositoryStatus, RepositoryTiming]:
            timing = RepositoryTiming()
            return compute_status(location, self.runner, timing), timing

        results = pool.run(locations, count, job)
        statuses = [status for status, _ in results]
        timings = [timing for _, timing in results]

        index = build_remote_index(organization_keys(targets, locations), self.providers, count)
        annotate(statuses, index)

        statuses.sort(key=lambda s: (s.target, s.name, s.path))
        report = StatusReport(statuses=statuses, degraded=dict(index.degraded))
        if debug:
            report.timings = sort_timings(timings)
            self.perf_logger.log_summary(report.timings)
        return report

    # -- pull / push / sync --

    def _act(
        self,
        command: str,
        statuses: List[RepositoryStatus],
        decide: Callable[[RepositoryStatus], Decision],
        workers: Optional[int]
    ) -> OperationReport:
        def job(status: RepositoryStatus) -> OperationOutcome:
            return execute_decision(decide(status), status, self.runner)

        outcomes = pool.run(statuses, self._workers(workers), job)
        report = OperationReport(command=command, outcomes=_sort_outcomes(outcomes))
        self.logger.info(f"✅ {command} finished: {report.counts()}")
        return report

    def _ff_only_by_target(self) -> Dict[str, bool]:
        return {t.name: self.config.ff_only_for(t) for t in self.config.targets}

    def pull(self, names: Optional[Sequence[str]] = None, workers: Optional[int] = None) -> OperationReport:
        statuses = self.collect_statuses(names, workers=workers).statuses
        ff_only = self._ff_only_by_target()
        return self._act("pull", statuses, lambda s: decide_pull(s, ff_only.get(s.target, True)), workers)

    def push(self, names: Optional[Sequence[str]] = None, workers: Optional[int] = None) -> OperationReport:
        statuses = self.collect_statuses(names, workers=workers).statuses
        return self._act("push", statuses, decide_push, workers)

    def sync(self, names: Optional[Sequence[str]] = None, workers: Optional[int] = None) -> OperationReport:
        statuses = self.collect_statuses(names, workers=workers).statuses
        ff_only = self._ff_only_by_target()
        return self._act("sync", statuses, lambda s: decide_sync(s, ff_only.get(s.target, True)), workers)

    # -- clone --

    def _clone_jobs(self, jobs: List[_CloneJob], workers: Optional[int]) -> List[OperationOutcome]:
        attempts = self.config.git_retry_attempts
        delay = self.config.git_retry_delay

        def job(clone_job: _CloneJob) -> OperationOutcome:
            result = clone_repository(clone_job.clone_url, clone_job.dest, attempts, delay)
            return OperationOutcome(
                path=str(clone_job.dest),
                target=clone_job.target,
                name=clone_job.name,
                state=OutcomeState.DONE if result.success else OutcomeState.FAILED,
                message="cloned" if result.success else result.message,
                operations=("clone",),
            )

        return pool.run(jobs, self._workers(workers), job)

    @staticmethod
    def _filtered(repo: RemoteRepository, exclude_empty: bool, include_archived: bool) -> str:
        if repo.empty and exclude_empty:
            return "empty"
        if repo.archived and not include_archived:
            return "archived"
        return ""

    def _clone_organization(
        self, target: Target, exclude_empty: bool, include_archived: bool, workers: Optional[int]
    ) -> List[OperationOutcome]:
        client = self._client(target.provider)
        protocol = self.config.provider_for(target).clone.protocol
        try:
            repos = client.list_organization_repositories(target.org)
        except ProviderError as e:
            raise ProviderError(f"listing repos for {target.org}: {e}") from e

        root = Path(target.path)
        root.mkdir(parents=True, exist_ok=True)

        jobs = []
        for repo in sorted(repos, key=lambda r: r.name):
            if self._filtered(repo, exclude_empty, include_archived):
                continue
            dest = root / repo.name
            if is_git_repo(dest):
                continue
            jobs.append(_CloneJob(repo.clone_url_for(protocol), dest, target.name, repo.name))

        if not jobs:
            self.logger.info(f"Org {target.org}: nothing to clone")
            return []
        self.logger.info(f"📥 Org {target.org}: cloning {len(jobs)} repositories")
        return self._clone_jobs(jobs, workers)

    def _clone_repository(
        self, target: Target, exclude_empty: bool, include_archived: bool, workers: Optional[int]
    ) -> List[OperationOutcome]:
        client = self._client(target.provider)
        protocol = self.config.provider_for(target).clone.protocol
        repo = client.get_repository(target.org, target.repo)
        if repo is None:
            raise ProviderError(f"repo {target.org}/{target.repo} not found")

        root = Path(target.path)
        outcome = OperationOutcome(path=str(root), target=target.name, name=target.repo, state=OutcomeState.UNCHANGED)
        reason = self._filtered(repo, exclude_empty, include_archived)
        if reason:
            outcome.state = OutcomeState.SKIPPED
            outcome.message = reason
            return [outcome]

        root.parent.mkdir(parents=True, exist_ok=True)
        if is_git_repo(root):
            outcome.message = "exists"
        else:
            self.logger.info(f"📥 Cloning {target.org}/{target.repo} -> {root}")
            result = clone_repository(
                repo.clone_url_for(protocol), root, self.config.git_retry_attempts, self.config.git_retry_delay
            )
            outcome.operations = ("clone",)
            if not result.success:
                outcome.state = OutcomeState.FAILED
                outcome.message = result.message
                return [outcome]
            outcome.state = OutcomeState.DONE
            outcome.message = "cloned"

        outcomes = [outcome]
        jobs = []
        for location in expand_repository(target, ExpansionMode.CLONE):
            if not location.foldout:
                continue
            nested = client.get_repository(location.org, location.name)
            if nested is None:
                outcomes.append(OperationOutcome(
                    path=str(location.path), target=target.name, name=location.name,
                    state=OutcomeState.SKIPPED, message=f"{location.org}/{location.name} not found"
                ))
                continue
            if self._filtered(nested, exclude_empty, include_archived):
                continue
            jobs.append(_CloneJob(nested.clone_url_for(protocol), location.path, target.name, location.name))

        if jobs:
            self.logger.info(f"📥 Foldout: cloning {len(jobs)} repos under {root}")
            outcomes.extend(self._clone_jobs(jobs, workers))
        return outcomes

    def clone(
        self,
        names: Optional[Sequence[str]] = None,
        exclude_empty: bool = False,
        include_archived: bool = False,
        workers: Optional[int] = None
    ) -> OperationReport:
        """
        Clone what is missing locally.

        Provider failures (no client, listing error, unknown repository)
        abort the run; individual clone failures are reported per repository.
        """
        outcomes: List[OperationOutcome] = []
        for target in self.targets_for(names):
            if target.is_organization:
                outcomes.extend(self._clone_organization(target, exclude_empty, include_archived, workers))
            else:
                outcomes.extend(self._clone_repository(target, exclude_empty, include_archived, workers))
        return OperationReport(command="clone", outcomes=_sort_outcomes(outcomes))

    # -- list --

    def list_targets(
        self, names: Optional[Sequence[str]] = None, include_archived: bool = False
    ) -> List[TargetListing]:
        """Compare remote repositories with local checkouts for each target."""
        listings = []
        for target in self.targets_for(names):
            listing = TargetListing(target=target)
            root = Path(target.path)
            if target.is_organization:
                client = self.providers.get(target.provider)
                if client is None:
                    listing.error = f"no client for provider {target.provider}"
                    listings.append(listing)
                    continue

                remote: Dict[str, RemoteRepository] = {}
                try:
                    remote = {r.name: r for r in client.list_organization_repositories(target.org)}
                except ProviderError as e:
                    listing.error = f"listing org: {e}"

                local = set()
                if root.is_dir():
                    local = {p.name for p in root.iterdir() if p.is_dir() and is_git_repo(p)}

                for name in sorted(remote):
                    repo = remote[name]
                    if repo.archived and not include_archived:
                        continue
                    listing.entries.append(ListingEntry(name=name, local=name in local, archived=repo.archived))
                for name in sorted(local - set(remote)):
                    listing.entries.append(ListingEntry(name=name, local=True, orphan=not listing.error))
            else:
                listing.entries.append(ListingEntry(name=target.repo, local=is_git_repo(root)))
                for entry in resolve_foldout(root) or []:
                    listing.entries.append(ListingEntry(
                        name=entry.name, local=is_git_repo(root / entry.target), directory=entry.target
                    ))
            listings.append(listing)
        return listings
