"""
wikisync - keep a local note/wiki folder in sync with a git remote.

The package commits local edits, reconciles them with the remote branch
(push, fast-forward merge or rebase) and exposes the operations as MCP tools.
"""

__version__ = "1.0.0"
__author__ = "wikisync Team"
__description__ = "Bidirectional git synchronization for note and wiki folders"

from .git_sync import (
    clone,
    commit_and_sync,
    force_pull,
    init_git,
    get_sync_state,
    get_git_repository_state,
    get_default_branch_name,
    get_remote_url,
    get_remote_name,
    has_git,
    get_modified_file_list,
    have_local_changes,
)

__all__ = [
    "clone",
    "commit_and_sync",
    "force_pull",
    "init_git",
    "get_sync_state",
    "get_git_repository_state",
    "get_default_branch_name",
    "get_remote_url",
    "get_remote_name",
    "has_git",
    "get_modified_file_list",
    "have_local_changes",
]
