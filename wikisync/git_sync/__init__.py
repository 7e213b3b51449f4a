"""Git synchronization functionality for wikisync."""

from .clone import clone
from .commit import commit_files, init_git_with_branch
from .commit_and_sync import commit_and_sync
from .credential import credential_bracket, credential_off, credential_on
from .engine import EngineResult
from .errors import (
    AssumeSyncError,
    CantSyncGitNotInitializedError,
    CantSyncInSpecialGitStateAutoFixFailed,
    GitPullPushError,
    GitSyncError,
    SyncParameterMissingError,
    SyncScriptIsInDeadLoopError,
)
from .force_pull import force_pull
from .init_git import init_git
from .inspect import (
    ModifiedFile,
    get_default_branch_name,
    get_git_repository_state,
    get_modified_file_list,
    get_remote_name,
    get_remote_repo_name,
    get_remote_url,
    get_sync_state,
    has_git,
    have_local_changes,
    repository_state_flags,
)
from .interface import DefaultGitInfo, GitStep, GitUserInfo, STEPS_ABOUT_CHANGE, SyncState
from .logger import StepLogger

__all__ = [
    'clone',
    'commit_and_sync',
    'force_pull',
    'init_git',
    'commit_files',
    'init_git_with_branch',
    'credential_on',
    'credential_off',
    'credential_bracket',
    'get_sync_state',
    'get_git_repository_state',
    'get_default_branch_name',
    'get_remote_url',
    'get_remote_name',
    'get_remote_repo_name',
    'has_git',
    'get_modified_file_list',
    'have_local_changes',
    'repository_state_flags',
    'ModifiedFile',
    'EngineResult',
    'DefaultGitInfo',
    'GitStep',
    'GitUserInfo',
    'STEPS_ABOUT_CHANGE',
    'SyncState',
    'StepLogger',
    'GitSyncError',
    'SyncParameterMissingError',
    'GitPullPushError',
    'CantSyncGitNotInitializedError',
    'SyncScriptIsInDeadLoopError',
    'CantSyncInSpecialGitStateAutoFixFailed',
    'AssumeSyncError',
]
