"""Result types shared by the git operations and the command reports."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple, List, Dict


@dataclass
class GitSyncResult:
    """Result of one mutating git operation (pull, push, clone)."""
    success: bool
    message: str
    operation: str
    path: str = ""
    attempts: int = 1
    error_code: Optional[str] = None


class OutcomeState(Enum):
    """What happened to one repository during a pull, push, sync or clone run."""
    DONE = "done"            # every decided operation succeeded
    UNCHANGED = "unchanged"  # nothing needed doing
    SKIPPED = "skipped"      # deliberately left alone
    FAILED = "failed"        # a git operation failed
    ERROR = "error"          # status could not be computed


@dataclass
class OperationOutcome:
    """Per-repository result of a command."""
    path: str
    target: str
    name: str
    state: OutcomeState
    message: str = ""
    operations: Tuple[str, ...] = ()
    ahead: int = 0
    behind: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "path": self.path,
            "target": self.target,
            "name": self.name,
            "state": self.state.value,
            "message": self.message,
            "operations": list(self.operations),
            "ahead": self.ahead,
            "behind": self.behind,
        }


@dataclass
class OperationReport:
    """All outcomes of one command, sorted by (target, name)."""
    command: str
    outcomes: List[OperationOutcome] = field(default_factory=list)

    def count(self, state: OutcomeState) -> int:
        return sum(1 for o in self.outcomes if o.state == state)

    def counts(self) -> Dict[str, int]:
        return {state.value: self.count(state) for state in OutcomeState}

    def to_dict(self) -> Dict[str, object]:
        return {
            "command": self.command,
            "counts": self.counts(),
            "outcomes": [o.to_dict() for o in self.outcomes],
        }
