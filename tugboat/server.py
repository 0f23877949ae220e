"""MCP server exposing Tugboat's repository commands as tools."""

import logging
import sys
from typing import List, Optional

from mcp.server.fastmcp import FastMCP

from . import __version__
from .config import Config, load_configuration
from .errors import error_handler
from .git_sync import RepositoryManager
from .logging_config import setup_logging
from .remote import build_remote_clients


def register_tools(server: FastMCP, manager: RepositoryManager) -> None:
    """Register MCP tools with the server instance."""

    @server.tool()
    def repository_status(targets: Optional[List[str]] = None, debug: bool = False) -> dict:
        """
        Report the state of every repository of the given targets.

        Each status says whether the working tree is dirty, how many commits
        the branch is ahead of / behind origin, whether a fast-forward is
        possible, and whether the repository is archived or missing
        (orphan) on the hosting provider.

        Args:
            targets: Target names from the configuration; empty means all targets
            debug: Include per-phase timings, slowest repository first

        Returns:
            Dictionary with statuses, a summary of counts and any organizations
            whose remote listing failed
        """
        try:
            report = manager.collect_statuses(targets or [], debug=debug)
            return error_handler.create_success_response("repository_status", report.to_dict())
        except Exception as e:
            return error_handler.handle_command_error(e, "repository_status", {"targets": targets}).to_dict()

    @server.tool()
    def sync_repositories(targets: Optional[List[str]] = None) -> dict:
        """
        Pull then push every repository of the given targets.

        Dirty repositories and diverged branches (under the fast-forward-only
        policy) are skipped and reported, never forced.
        """
        try:
            report = manager.sync(targets or [])
            return error_handler.create_success_response("sync_repositories", report.to_dict())
        except Exception as e:
            return error_handler.handle_command_error(e, "sync_repositories", {"targets": targets}).to_dict()

    @server.tool()
    def pull_repositories(targets: Optional[List[str]] = None) -> dict:
        """Pull every repository of the given targets."""
        try:
            report = manager.pull(targets or [])
            return error_handler.create_success_response("pull_repositories", report.to_dict())
        except Exception as e:
            return error_handler.handle_command_error(e, "pull_repositories", {"targets": targets}).to_dict()

    @server.tool()
    def push_repositories(targets: Optional[List[str]] = None) -> dict:
        """Push repositories that are ahead; repositories behind their remote are skipped."""
        try:
            report = manager.push(targets or [])
            return error_handler.create_success_response("push_repositories", report.to_dict())
        except Exception as e:
            return error_handler.handle_command_error(e, "push_repositories", {"targets": targets}).to_dict()

    @server.tool()
    def list_targets(targets: Optional[List[str]] = None, include_archived: bool = False) -> dict:
        """
        Compare remote repositories with local checkouts.

        Args:
            targets: Target names; empty means all targets
            include_archived: Also list archived remote repositories
        """
        try:
            listings = manager.list_targets(targets or [], include_archived)
            return error_handler.create_success_response(
                "list_targets", {"targets": [listing.to_dict() for listing in listings]}
            )
        except Exception as e:
            return error_handler.handle_command_error(e, "list_targets", {"targets": targets}).to_dict()

    logging.getLogger('tugboat.server').info("MCP tools registered successfully")


def initialize_server(config: Optional[Config] = None) -> FastMCP:
    """Build the MCP server around a loaded configuration."""
    if config is None:
        config = load_configuration().config
    setup_logging(config.log_level)
    server_logger = logging.getLogger('tugboat.server')

    manager = RepositoryManager(config, build_remote_clients(config))
    server = FastMCP("Tugboat", log_level=config.log_level.upper())
    register_tools(server, manager)

    server_logger.info(f"Tugboat MCP server initialized ({len(config.targets)} targets)")
    return server


def main():
    """Entry point for `tugboat-mcp` (stdio transport)."""
    setup_logging("INFO")
    server_logger = logging.getLogger('tugboat.server')
    server_logger.info(f"Tugboat MCP server {__version__}")

    try:
        server = initialize_server()
    except Exception as e:
        server_logger.critical(f"Server initialization failed: {e}", exc_info=True)
        sys.exit(1)

    try:
        server.run(transport="stdio")
    except KeyboardInterrupt:
        server_logger.info("Server shutdown requested")


if __name__ == "__main__":
    main()
