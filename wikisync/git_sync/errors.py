"""Exceptions raised by git synchronization operations."""

import json
from typing import Any, Dict, Optional

from .utils import sanitize_options, strip_url_credentials


class GitSyncError(Exception):
    """Base class for all synchronization failures."""
    error_code = "GIT_SYNC_ERROR"


class SyncParameterMissingError(GitSyncError):
    """A required parameter (access token, remote URL) was not supplied. Never retried."""
    error_code = "SYNC_PARAMETER_MISSING"

    def __init__(self, parameter_name: str = "accessToken"):
        self.parameter_name = parameter_name
        super().__init__(
            f"E-1 We need {parameter_name} to sync to the cloud, "
            f"you should pass {parameter_name} as parameters in options."
        )


class GitPullPushError(GitSyncError):
    """
    Network, authentication or protocol failure during push, pull or merge.

    The message embeds the call options with the access token truncated and
    the raw git stderr with inline credentials removed. Safe to retry once
    connectivity or credentials are fixed.
    """
    error_code = "GIT_PULL_PUSH_FAILED"

    def __init__(self, options: Optional[Dict[str, Any]] = None, stderr: str = ""):
        self.configuration = sanitize_options(options or {})
        self.stderr = strip_url_credentials(stderr or "")
        super().__init__(
            "E-2 failed to config git to successfully pull from or push to remote with configuration "
            f"{json.dumps(self.configuration, ensure_ascii=False, default=str)}.\n"
            f"errorMessages: {self.stderr}"
        )


class CantSyncGitNotInitializedError(GitSyncError):
    """The directory has no git metadata; callers must init or clone first."""
    error_code = "GIT_NOT_INITIALIZED"

    def __init__(self, directory: str = ""):
        self.directory = directory
        super().__init__(
            "E-3 we can't sync on a git repository that is not initialized, "
            f"maybe this folder is not a git repository. {directory}"
        )


class SyncScriptIsInDeadLoopError(GitSyncError):
    """The conflict resolution loop guard tripped. This is a bug, never retried."""
    error_code = "SYNC_DEAD_LOOP"

    def __init__(self, extra_message: str = ""):
        super().__init__(
            "E-4 Unable to sync, and the sync script is in a dead loop, "
            f"this is caused by a procedural bug in wikisync. {extra_message}".rstrip()
        )


class CantSyncInSpecialGitStateAutoFixFailed(GitSyncError):
    """Automatic conflict resolution could not finish; manual intervention is required."""
    error_code = "AUTO_FIX_FAILED"

    def __init__(self, state_message: str = "", repository_state: str = ""):
        self.repository_state = repository_state
        super().__init__(
            "E-5 Unable to sync, this folder is in a special git state, thus can't sync directly. "
            "An auto-fix has been tried, but the error still remains. Please resolve all the conflicts "
            "manually, or use a dedicated git tool to repair the repository.\n"
            f"{strip_url_credentials(state_message)}"
        )


class AssumeSyncError(GitSyncError):
    """Local and remote were expected to be equal after a sync but are not."""
    error_code = "ASSUME_SYNC_FAILED"

    def __init__(self, sync_state: str = ""):
        self.sync_state = getattr(sync_state, "value", sync_state)
        super().__init__(
            "E-6 In this state, git should have been synced with the remote, but it is not, "
            f"this is caused by a procedural bug in wikisync or a concurrent writer. {self.sync_state}".rstrip()
        )
