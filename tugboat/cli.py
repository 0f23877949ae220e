"""Command-line interface: `tugboat <command> [targets...] [options]`."""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from . import __version__
from .config import load_configuration, migrate_config_file
from .errors import error_handler
from .git_sync import RepositoryManager, StatusReport, OperationReport, OutcomeState, status_flags
from .git_sync.manager import TargetListing
from .logging_config import setup_logging
from .remote import build_remote_clients

logger = logging.getLogger('tugboat.cli')

EPILOG = """\
Configuration:
  tugboat reads ~/.config/tugboat/config.json, or the file named by TUGBOAT_CONFIG.
  GITEA_TOKEN fills in an empty Gitea token.

Examples:
  tugboat clone          # clone all repos from configured targets
  tugboat sync           # pull and push all repos safely
  tugboat status -w 16   # status with 16 parallel workers
  tugboat list           # local vs remote repositories
"""


def _build_parser() -> argparse.ArgumentParser:
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("targets", nargs="*", help="Target names (default: all configured targets).")
    common.add_argument("-w", "--workers", type=int, default=0,
                        help='Parallel workers (default: config "workers" or CPU cores).')

    p = argparse.ArgumentParser(
        prog="tugboat",
        description="Multi-repository management for Gitea and GitHub.",
        epilog=EPILOG,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    sub = p.add_subparsers(dest="command", metavar="<command>")

    clone = sub.add_parser("clone", aliases=["c"], parents=[common], help="Clone targets (org or repo).")
    clone.add_argument("-E", "--exclude-empty", action="store_true", help="Skip empty repositories.")
    clone.add_argument("-a", "--include-archived", action="store_true", help="Also clone archived repositories.")

    sub.add_parser("sync", aliases=["s"], parents=[common], help="Pull then push every repository (ff-only).")

    status = sub.add_parser("status", aliases=["st"], parents=[common], help="Show status for targets (foldouts included).")
    status.add_argument("-d", "--debug", action="store_true", help="Show timing information.")

    ls = sub.add_parser("list", aliases=["ls"], parents=[common], help="List targets, local vs remote.")
    ls.add_argument("-a", "--include-archived", action="store_true", help="Show archived repositories.")

    sub.add_parser("pull", parents=[common], help="Pull targets.")
    sub.add_parser("push", parents=[common], help="Push targets.")

    migrate = sub.add_parser("migrate", help="Migrate the config file from v1 to v2 format.")
    migrate.add_argument("--write", action="store_true", help="Rewrite the config in place (keeps a .bak copy).")

    sub.add_parser("version", help="Show version information.")
    return p


_ALIASES = {"c": "clone", "s": "sync", "st": "status", "ls": "list"}


def print_status_report(report: StatusReport, debug: bool = False) -> None:
    for status in report.statuses:
        if status.error:
            print(f"  [ERROR]    {status.path}: {status.error}")
            continue
        flags = status_flags(status)
        if flags:
            print(f"  {status.path} ({status.branch}) [{', '.join(flags)}]")
        else:
            print(f"  [CLEAN]  {status.path}")

    for (provider, org), error in report.degraded.items():
        print(f"  [WARN]   {provider}/{org}: remote state unknown ({error})")

    s = report.summary()
    print(f"\nSummary: {s['clean']} clean, {s['dirty']} dirty, {s['ahead']} ahead, "
          f"{s['behind']} behind, {s['diverged']} diverged, {s['errors']} errors")

    if debug and report.timings:
        total = sum(t.total for t in report.timings)
        print(f"\nDebug: {len(report.timings)} repos, total time {total:.3f}s")
        for timing in report.timings:
            print(f"  {timing.total:8.3f}s  {timing.path}  (branch {timing.branch:.3f}s, fetch {timing.fetch:.3f}s, "
                  f"status {timing.status:.3f}s, rev-list {timing.rev_list:.3f}s, merge-base {timing.merge_base:.3f}s)")


def print_operation_report(report: OperationReport) -> None:
    for outcome in report.outcomes:
        if outcome.state is OutcomeState.ERROR:
            print(f"  [ERROR] {outcome.path}: {outcome.message}")
        elif outcome.state is OutcomeState.SKIPPED:
            print(f"  [SKIP]  {outcome.path}: {outcome.message}")
        elif outcome.state in (OutcomeState.DONE, OutcomeState.FAILED):
            for op in outcome.operations:
                if op == "pull":
                    detail = f": {outcome.behind} behind" if report.command == "sync" else ""
                    print(f"  [PULL]  {outcome.path}{detail}")
                elif op == "push":
                    print(f"  [PUSH]  {outcome.path}: {outcome.ahead} ahead")
                elif op == "clone" and outcome.state is OutcomeState.DONE:
                    print(f"  [CLONED] {outcome.path}")
            if outcome.state is OutcomeState.FAILED:
                print(f"  [ERROR] {outcome.path}: {outcome.message}")
        elif report.command == "clone" and outcome.message:
            print(f"  [EXISTS] {outcome.path}")

    done = report.count(OutcomeState.DONE)
    unchanged = report.count(OutcomeState.UNCHANGED)
    skipped = report.count(OutcomeState.SKIPPED)
    failed = report.count(OutcomeState.FAILED) + report.count(OutcomeState.ERROR)
    if report.command == "sync":
        print(f"Sync complete: {done + unchanged} synced, {skipped} skipped, {failed} failed")
    elif report.command == "pull":
        print(f"Pull complete: {done} pulled, {failed} failed")
    elif report.command == "push":
        print(f"Push complete: {done} pushed, {skipped} skipped, {failed} failed")
    else:
        print(f"Clone complete: {done} cloned, {skipped} skipped, {failed} failed")


def print_listings(listings: List[TargetListing]) -> None:
    for listing in listings:
        t = listing.target
        print(f"Target: {t.name} ({t.provider}/{t.org}) path={t.path}")
        if listing.error:
            print(f"  [ERROR] {listing.error}")
        for entry in listing.entries:
            mark = "[x]" if entry.local else "[ ]"
            if entry.directory is not None:
                print(f"  {mark} {entry.name} -> {entry.directory}")
            elif entry.orphan:
                print(f"  {mark} {entry.name} (orphan)")
            elif entry.archived:
                print(f"  {mark} {entry.name} (archived)")
            else:
                print(f"  {mark} {entry.name}")
        print()


def _run_migrate(write: bool) -> int:
    result = load_configuration()
    if not result.is_deprecated:
        print(f"Config is already v{result.version} format. No migration needed.")
        return 0
    if not write:
        print("# Migrated v2 config (use --write to save in place):")
        print(result.config.to_json(), end="")
        return 0
    path = Path(result.config_path)
    migrate_config_file(path)
    print(f"Backed up v1 config to: {path.with_name(path.name + '.bak')}")
    print(f"Migrated config to v2: {path}")
    return 0


def run(args: argparse.Namespace) -> int:
    command = _ALIASES.get(args.command, args.command)
    if command == "version":
        print(f"tugboat {__version__}")
        return 0
    if command == "migrate":
        return _run_migrate(args.write)

    result = load_configuration()
    config = result.config
    setup_logging(config.log_level)
    manager = RepositoryManager(config, build_remote_clients(config))
    workers = args.workers if args.workers > 0 else None

    if command == "status":
        print_status_report(manager.collect_statuses(args.targets, args.debug, workers), args.debug)
    elif command == "list":
        print_listings(manager.list_targets(args.targets, args.include_archived))
    elif command == "clone":
        print_operation_report(manager.clone(args.targets, args.exclude_empty, args.include_archived, workers))
    elif command == "pull":
        print_operation_report(manager.pull(args.targets, workers))
    elif command == "push":
        print_operation_report(manager.push(args.targets, workers))
    elif command == "sync":
        print_operation_report(manager.sync(args.targets, workers))
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    if not args.command:
        parser.print_help()
        return 0

    setup_logging("WARNING")
    try:
        return run(args)
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        response = error_handler.handle_command_error(e, args.command)
        print(f"Error: {response.message}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
