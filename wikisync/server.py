"""Main server implementation for the wikisync MCP server."""

import logging
import sys
from dataclasses import asdict
from typing import Any, Dict

from mcp.server.fastmcp import FastMCP

from .config import Config, load_configuration, validate_configuration
from .errors import error_handler
from .git_sync import (
    StepLogger,
    commit_and_sync,
    force_pull,
    get_default_branch_name,
    get_git_repository_state,
    get_modified_file_list,
    get_remote_name,
    get_remote_url,
    get_sync_state,
    has_git,
)
from .git_sync.commit import SYNC_COMMIT_MESSAGE
from .git_sync.logger import PerformanceLogger
from .git_sync.utils import strip_url_credentials

performance_logger = PerformanceLogger()


def setup_logging(config: Config) -> None:
    """Setup logging configuration with structured logging."""
    class StructuredFormatter(logging.Formatter):
        def format(self, record):
            if hasattr(record, 'operation'):
                step = getattr(record, 'step', None)
                prefix = f"{record.operation}:{step}" if step and step != record.msg else record.operation
                record.msg = f"[{prefix}] {record.msg}"
            return super().format(record)

    logging.basicConfig(
        level=getattr(logging, config.log_level),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    loggers = [
        'wikisync.init',
        'wikisync.git_sync',
        'wikisync.error_handler',
    ]

    formatter = StructuredFormatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    for logger_name in loggers:
        logger = logging.getLogger(logger_name)
        logger.setLevel(getattr(logging, config.log_level))

        # stdout carries the MCP stdio transport, so log to stderr
        if not logger.handlers:
            handler = logging.StreamHandler(sys.stderr)
            handler.setFormatter(formatter)
            logger.addHandler(handler)
            logger.propagate = False


def sync_repository(config: Config, commit_message: str = SYNC_COMMIT_MESSAGE, commit_only: bool = False) -> Dict[str, Any]:
    """Commit local changes of the configured repository and sync them with its remote."""
    wiki_folder_path = str(config.repo_dir)
    try:
        with performance_logger.time_operation("commit_and_sync", {"dir": wiki_folder_path}):
            commit_and_sync(
                wiki_folder_path,
                remote_url=config.remote_url,
                user_info=config.user_info(),
                commit_message=commit_message,
                commit_only=commit_only,
                logger=StepLogger(),
                default_git_info=config.default_git_info(),
                retry_attempts=config.git_retry_attempts,
                retry_delay=config.git_retry_delay,
            )
    except Exception as e:
        return error_handler.handle_git_sync_error(
            e, {'operation': 'commit_and_sync', 'repository_path': wiki_folder_path}
        ).to_dict()

    return error_handler.create_success_response(
        "commit_and_sync", get_sync_status(config, include_files=False)
    )


def force_pull_repository(config: Config) -> Dict[str, Any]:
    """Reset the configured repository to its remote branch, discarding local changes."""
    wiki_folder_path = str(config.repo_dir)
    try:
        with performance_logger.time_operation("force_pull", {"dir": wiki_folder_path}):
            force_pull(
                wiki_folder_path,
                remote_url=config.remote_url,
                user_info=config.user_info(),
                logger=StepLogger(),
                default_git_info=config.default_git_info(),
                retry_attempts=config.git_retry_attempts,
                retry_delay=config.git_retry_delay,
            )
    except Exception as e:
        return error_handler.handle_git_sync_error(
            e, {'operation': 'force_pull', 'repository_path': wiki_folder_path}
        ).to_dict()

    return error_handler.create_success_response("force_pull", get_sync_status(config, include_files=False))


def get_sync_status(config: Config, include_files: bool = True) -> Dict[str, Any]:
    """
    Describe the configured repository without touching the network.

    The sync state compares against the remote-tracking branch as of the
    last fetch.
    """
    wiki_folder_path = str(config.repo_dir)
    if not has_git(wiki_folder_path):
        return {
            "repository_path": wiki_folder_path,
            "repository_exists": False,
            "repository_state": get_git_repository_state(wiki_folder_path),
        }

    branch = get_default_branch_name(wiki_folder_path, config.remote) or config.branch
    remote_name = get_remote_name(wiki_folder_path, branch)
    status = {
        "repository_path": wiki_folder_path,
        "repository_exists": True,
        "branch": branch,
        "remote": remote_name,
        "remote_url": strip_url_credentials(get_remote_url(wiki_folder_path, remote_name)),
        "sync_state": get_sync_state(wiki_folder_path, branch, remote_name).value,
        "repository_state": get_git_repository_state(wiki_folder_path),
    }
    if include_files:
        status["modified_files"] = [asdict(modified) for modified in get_modified_file_list(wiki_folder_path)]
    return status


def register_tools(server: FastMCP, server_config: Config) -> None:
    """Register MCP tools with the server instance."""

    @server.tool(name="commit_and_sync")
    def sync_tool(commit_message: str = SYNC_COMMIT_MESSAGE, commit_only: bool = False) -> dict:
        """
        Commit local changes and synchronize them with the remote repository.

        Pushes when local is ahead, fast-forwards when it is behind and rebases
        when both sides have new commits. Conflicting files are committed with
        their conflict markers so they can be cleaned up later.

        Args:
            commit_message: Message for the commit of local changes
            commit_only: Only commit, do not contact the remote

        Returns:
            Success response with the resulting sync status, or an error response
        """
        return sync_repository(server_config, commit_message, commit_only)

    @server.tool(name="force_pull")
    def force_pull_tool() -> dict:
        """
        Discard all local commits and changes and reset to the remote branch.

        Returns:
            Success response with the resulting sync status, or an error response
        """
        return force_pull_repository(server_config)

    @server.tool(name="sync_status")
    def sync_status_tool() -> dict:
        """
        Report branch, remote, sync state, repository state and modified files.

        Does not fetch; the sync state reflects the last fetch.
        """
        try:
            return get_sync_status(server_config)
        except Exception as e:
            return error_handler.handle_git_sync_error(
                e, {'operation': 'sync_status', 'repository_path': str(server_config.repo_dir)}
            ).to_dict()

    init_logger = logging.getLogger('wikisync.init')
    init_logger.info("MCP tools registered successfully")


def initialize_server() -> FastMCP:
    """Initialize MCP server with stdio transport."""
    try:
        server_config = load_configuration()
        validation_issues = validate_configuration(server_config)

        setup_logging(server_config)
        init_logger = logging.getLogger('wikisync.init')

        if validation_issues:
            for issue in validation_issues:
                if issue.startswith("ERROR:"):
                    init_logger.error(issue[7:])
                elif issue.startswith("WARNING:"):
                    init_logger.warning(issue[9:])

            error_count = sum(1 for issue in validation_issues if issue.startswith("ERROR:"))
            if error_count > 0:
                init_logger.critical(f"Server startup failed due to {error_count} configuration error(s)")
                sys.exit(1)

        init_logger.info("Configuration loaded successfully")

        status = get_sync_status(server_config, include_files=False)
        init_logger.info(
            f"Repository status: repository_exists={status['repository_exists']}, "
            f"repository_state={status['repository_state'] or 'clean'}"
        )

        init_logger.info("Initializing MCP server with stdio transport")
        server = FastMCP(
            "wikisync",
            log_level=server_config.log_level.upper()
        )

        init_logger.info("Registering MCP tools")
        register_tools(server, server_config)

        init_logger.info("wikisync MCP server initialized successfully")

        return server

    except Exception as e:
        if 'init_logger' not in locals():
            logging.basicConfig(level=logging.ERROR)
            init_logger = logging.getLogger('wikisync.init')

        init_logger.critical(f"Server initialization failed: {e}", exc_info=True)
        raise


def main():
    """Main entry point for the wikisync server with stdio transport."""
    startup_logger = None

    try:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        startup_logger = logging.getLogger('wikisync.startup')

        startup_logger.info("=" * 60)
        startup_logger.info("wikisync MCP Server")
        startup_logger.info("=" * 60)

        python_version = f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"
        if sys.version_info < (3, 10):
            startup_logger.error(f"Python 3.10+ required, found {python_version}")
            sys.exit(1)

        server = initialize_server()

        startup_logger.info("Starting server with stdio transport")
        server.run(transport="stdio")

    except KeyboardInterrupt:
        if startup_logger:
            startup_logger.info("Server stopped by user (Ctrl+C)")
    except SystemExit:
        raise
    except Exception as e:
        if startup_logger:
            startup_logger.critical(f"Server failed to start: {e}", exc_info=True)
        sys.exit(1)
