"""Git command execution for Tugboat, built on GitPython's command wrapper."""

import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Callable

from git import Git, Repo, GitCommandError
from git.exc import GitCommandNotFound

from .utils import GitSyncResult

logger = logging.getLogger('tugboat.git_sync')


@dataclass(frozen=True)
class CommandResult:
    """Captured outcome of one git invocation."""
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def first_error_line(self) -> str:
        """First non-empty line of stderr."""
        for line in self.stderr.strip().splitlines():
            if line.strip():
                return line.strip()
        return ""

    def describe(self) -> str:
        """Short human-readable failure text."""
        detail = self.first_error_line()
        if detail:
            return f"exit status {self.returncode}: {detail}"
        return f"exit status {self.returncode}"


class GitCommandRunner:
    """
    Runs `git <args>` in a working directory and captures the result.

    This is the single seam through which the engine touches git; tests
    substitute a fake with the same `run` signature.
    """

    def run(self, cwd: Path, args: Sequence[str]) -> CommandResult:
        executable = Git.GIT_PYTHON_GIT_EXECUTABLE or "git"
        try:
            status, stdout, stderr = Git(str(cwd)).execute(
                [executable, *args],
                with_extended_output=True,
                with_exceptions=False,
            )
        except GitCommandNotFound as e:
            return CommandResult(returncode=127, stderr=str(e))
        return CommandResult(returncode=status or 0, stdout=stdout or "", stderr=stderr or "")


def is_git_repo(path: Path) -> bool:
    """A working copy is any directory holding a `.git` directory."""
    return (Path(path) / ".git").is_dir()


# -- read-only phases used by the status engine --

def current_branch(runner: GitCommandRunner, path: Path) -> CommandResult:
    return runner.run(path, ["rev-parse", "--abbrev-ref", "HEAD"])


def fetch_quiet(runner: GitCommandRunner, path: Path) -> CommandResult:
    return runner.run(path, ["fetch", "--quiet"])


def porcelain_status(runner: GitCommandRunner, path: Path) -> CommandResult:
    return runner.run(path, ["status", "--porcelain"])


def ahead_behind(runner: GitCommandRunner, path: Path, branch: str, upstream: str) -> CommandResult:
    return runner.run(path, ["rev-list", "--left-right", "--count", f"{branch}...{upstream}"])


def is_ancestor(runner: GitCommandRunner, path: Path, branch: str, upstream: str) -> bool:
    return runner.run(path, ["merge-base", "--is-ancestor", branch, upstream]).ok


# -- mutating operations --

def pull(runner: GitCommandRunner, path: Path, ff_only: bool) -> GitSyncResult:
    args = ["pull"]
    if ff_only:
        args.append("--ff-only")
    result = runner.run(path, args)
    if not result.ok:
        logger.warning(f"git pull failed in {path}: {result.stderr.strip() or result.stdout.strip()}")
        return GitSyncResult(
            success=False,
            message=f"pull failed: {result.describe()}",
            operation="pull",
            path=str(path),
            error_code="PULL_FAILED"
        )
    return GitSyncResult(success=True, message="pulled", operation="pull", path=str(path))


def push(runner: GitCommandRunner, path: Path) -> GitSyncResult:
    result = runner.run(path, ["push"])
    if not result.ok:
        logger.warning(f"git push failed in {path}: {result.stderr.strip() or result.stdout.strip()}")
        return GitSyncResult(
            success=False,
            message=f"push failed: {result.describe()}",
            operation="push",
            path=str(path),
            error_code="PUSH_FAILED"
        )
    return GitSyncResult(success=True, message="pushed", operation="push", path=str(path))


def execute_git_operation_with_retry(
    operation_func: Callable[[], object],
    operation: str,
    path: Path,
    max_attempts: int,
    base_delay: float
) -> GitSyncResult:
    """
    Execute a GitPython operation with retry logic and exponential backoff.

    Args:
        operation_func: Function that executes the GitPython operation
        operation: Description of the operation for logging
        path: Repository path the operation acts on
        max_attempts: Total number of attempts
        base_delay: Delay before the first retry, doubled on each further retry

    Returns:
        GitSyncResult indicating success or failure
    """
    for attempt in range(1, max_attempts + 1):
        try:
            logger.debug(f"Executing Git operation (attempt {attempt}/{max_attempts}): {operation}")
            operation_func()
            return GitSyncResult(
                success=True,
                message=f"{operation} completed successfully",
                operation=operation,
                path=str(path),
                attempts=attempt
            )
        except GitCommandError as e:
            stderr = (e.stderr or "").strip() or str(e)
            error_msg = f"{operation} failed (attempt {attempt}/{max_attempts}): {stderr}"

            if attempt == max_attempts:
                logger.error(error_msg)
                return GitSyncResult(
                    success=False,
                    message=error_msg,
                    operation=operation,
                    path=str(path),
                    attempts=attempt,
                    error_code="GIT_COMMAND_FAILED"
                )

            delay = base_delay * (2 ** (attempt - 1))
            logger.warning(f"{error_msg}, retrying in {delay:.1f}s")
            time.sleep(delay)

    return GitSyncResult(
        success=False,
        message=f"{operation} failed after {max_attempts} attempts",
        operation=operation,
        path=str(path),
        attempts=max_attempts,
        error_code="GIT_COMMAND_MAX_RETRIES_EXCEEDED"
    )


def clone_repository(clone_url: str, dest: Path, max_attempts: int = 1, base_delay: float = 0.0) -> GitSyncResult:
    """Clone `clone_url` into `dest` using GitPython."""
    return execute_git_operation_with_retry(
        lambda: Repo.clone_from(clone_url, str(dest)),
        "clone",
        dest,
        max_attempts,
        base_delay
    )
