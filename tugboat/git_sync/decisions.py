"""
Pull / push / sync decisions derived from a repository status.

Deciding is pure; executing runs the decided git mutations through the
command runner. Nothing is ever forced: a dirty or diverged repository is
skipped, never merged or rebased.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Tuple

from . import operations
from .operations import GitCommandRunner
from .status import RepositoryStatus
from .utils import OperationOutcome, OutcomeState

logger = logging.getLogger('tugboat.git_sync.decisions')

PULL = "pull"
PUSH = "push"

SKIP_DIRTY = "dirty"
SKIP_DIVERGED = "diverged (ff-only)"
SKIP_BEHIND = "behind remote, pull first"


class Verdict(Enum):
    ERROR = "error"    # status could not be computed
    SKIP = "skip"      # left alone on purpose, with a reason
    NOOP = "noop"      # already in sync
    ACT = "act"        # run `actions` in order


@dataclass(frozen=True)
class Decision:
    verdict: Verdict
    actions: Tuple[str, ...] = ()
    reason: str = ""
    ff_only: bool = True


def decide_pull(status: RepositoryStatus, ff_only: bool = True) -> Decision:
    if status.error:
        return Decision(Verdict.ERROR, reason=status.error)
    return Decision(Verdict.ACT, actions=(PULL,), ff_only=ff_only)


def decide_push(status: RepositoryStatus) -> Decision:
    """Push only what is ahead, and never while the remote has commits we lack."""
    if status.error:
        return Decision(Verdict.ERROR, reason=status.error)
    if status.behind > 0:
        return Decision(Verdict.SKIP, reason=SKIP_BEHIND)
    if status.ahead == 0:
        return Decision(Verdict.NOOP)
    return Decision(Verdict.ACT, actions=(PUSH,))


def decide_sync(status: RepositoryStatus, ff_only: bool = True) -> Decision:
    """
    Pull when behind, then push when ahead.

    Dirty working trees are skipped. A diverged branch is skipped under the
    fast-forward-only policy; without it git pull is left to merge.
    """
    if status.error:
        return Decision(Verdict.ERROR, reason=status.error)
    if status.dirty:
        return Decision(Verdict.SKIP, reason=SKIP_DIRTY, ff_only=ff_only)
    if status.behind > 0 and not status.can_fast_forward and ff_only:
        return Decision(Verdict.SKIP, reason=SKIP_DIVERGED, ff_only=ff_only)

    actions = []
    if status.behind > 0:
        actions.append(PULL)
    if status.ahead > 0:
        actions.append(PUSH)
    if not actions:
        return Decision(Verdict.NOOP, ff_only=ff_only)
    return Decision(Verdict.ACT, actions=tuple(actions), ff_only=ff_only)


def execute_decision(decision: Decision, status: RepositoryStatus, runner: GitCommandRunner) -> OperationOutcome:
    """
    Carry out a decision and report what happened.

    Actions run in order and the first failure aborts the rest, so a failed
    pull is never followed by a push.
    """
    outcome = OperationOutcome(
        path=status.path,
        target=status.target,
        name=status.name,
        state=OutcomeState.UNCHANGED,
        ahead=status.ahead,
        behind=status.behind,
    )

    if decision.verdict is Verdict.ERROR:
        outcome.state = OutcomeState.ERROR
        outcome.message = decision.reason
        return outcome
    if decision.verdict is Verdict.SKIP:
        outcome.state = OutcomeState.SKIPPED
        outcome.message = decision.reason
        return outcome
    if decision.verdict is Verdict.NOOP:
        return outcome

    path = Path(status.path)
    done = []
    for action in decision.actions:
        if action == PULL:
            result = operations.pull(runner, path, decision.ff_only)
        elif action == PUSH:
            result = operations.push(runner, path)
        else:
            raise ValueError(f"unknown action {action!r}")
        done.append(action)
        if not result.success:
            outcome.state = OutcomeState.FAILED
            outcome.message = result.message
            outcome.operations = tuple(done)
            return outcome

    logger.debug(f"{status.path}: {', '.join(done)} ok")
    outcome.state = OutcomeState.DONE
    outcome.operations = tuple(done)
    return outcome
