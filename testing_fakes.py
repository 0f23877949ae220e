"""
In-memory stand-ins for git and the hosting providers, shared by the tests.

FakeRunner answers git invocations from a per-repository script and records
every call; FakeProvider serves canned organization listings.
"""

import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

sys.path.insert(0, str(Path(__file__).parent))

from tugboat.config import Config, ProviderConfig, SyncOptions, Target
from tugboat.errors import ProviderError
from tugboat.git_sync.operations import CommandResult
from tugboat.remote import RemoteProvider, RemoteRepository

OK = CommandResult(0)


class FakeRunner:
    """
    Command seam replacement keyed by (repository path, git subcommand).

    Unscripted commands succeed with empty output.
    """

    def __init__(self):
        self.responses: Dict[Tuple[str, str], CommandResult] = {}
        self.calls: List[Tuple[str, Tuple[str, ...]]] = []
        self._lock = threading.Lock()

    def set(self, path, command: str, result: CommandResult) -> None:
        self.responses[(str(path), command)] = result

    def run(self, cwd, args) -> CommandResult:
        with self._lock:
            self.calls.append((str(cwd), tuple(args)))
        return self.responses.get((str(cwd), args[0]), OK)

    def script(self, path, branch: str = "main", dirty: bool = False, ahead: int = 0,
               behind: int = 0, ancestor: bool = True, fetch_error: str = "") -> None:
        """Describe a repository's git state in one call."""
        self.set(path, "rev-parse", CommandResult(0, f"{branch}\n"))
        if fetch_error:
            self.set(path, "fetch", CommandResult(128, "", f"{fetch_error}\nsecond line\n"))
        self.set(path, "status", CommandResult(0, " M file.txt\n" if dirty else ""))
        self.set(path, "rev-list", CommandResult(0, f"{ahead}\t{behind}\n"))
        self.set(path, "merge-base", OK if ancestor else CommandResult(1))

    def commands_for(self, path) -> List[Tuple[str, ...]]:
        return [args for cwd, args in self.calls if cwd == str(path)]

    def subcommands_for(self, path) -> List[str]:
        return [args[0] for args in self.commands_for(path)]


def remote_repo(name: str, archived: bool = False, empty: bool = False, org: str = "acme") -> RemoteRepository:
    return RemoteRepository(
        id=abs(hash(name)) % 100000,
        name=name,
        full_name=f"{org}/{name}",
        clone_url=f"https://git.example.com/{org}/{name}.git",
        ssh_url=f"git@git.example.com:{org}/{name}.git",
        archived=archived,
        empty=empty,
    )


class FakeProvider(RemoteProvider):
    """Provider backed by a dict of org -> repositories."""

    def __init__(self, orgs: Optional[Dict[str, List[RemoteRepository]]] = None,
                 failing: Optional[Dict[str, str]] = None):
        self.orgs = orgs or {}
        self.failing = failing or {}
        self.list_calls: List[str] = []
        self._lock = threading.Lock()

    def default_headers(self) -> dict:
        return {}

    def list_organization_repositories(self, org: str) -> List[RemoteRepository]:
        with self._lock:
            self.list_calls.append(org)
        if org in self.failing:
            raise ProviderError(self.failing[org])
        return list(self.orgs.get(org, []))

    def get_repository(self, owner: str, name: str) -> Optional[RemoteRepository]:
        for repo in self.orgs.get(owner, []):
            if repo.name == name:
                return repo
        return None


def make_config(targets: List[Target], ff_only: bool = True, providers=("gitea",)) -> Config:
    return Config(
        providers={
            name: ProviderConfig(type="gitea", api_url="https://git.example.com", token="t",
                                 sync=SyncOptions(ff_only=ff_only))
            for name in providers
        },
        targets=targets,
        git_retry_attempts=1,
        git_retry_delay=0.0,
    )


def make_working_copy(path: Path) -> Path:
    """Create a directory that looks like a git working copy (has a .git directory)."""
    (path / ".git").mkdir(parents=True)
    return path
