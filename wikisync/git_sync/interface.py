"""Shared types for git synchronization: progress steps, user info and the logger protocol."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol


class GitStep(str, Enum):
    """Progress checkpoints reported to the caller's logger. Never used for control flow."""
    StartGitInitialization = "StartGitInitialization"
    PrepareCloneOnlineWiki = "PrepareCloneOnlineWiki"
    GitRepositoryConfigurationFinished = "GitRepositoryConfigurationFinished"
    StartConfiguringGithubRemoteRepository = "StartConfiguringGithubRemoteRepository"
    StartBackupToGitRemote = "StartBackupToGitRemote"
    PrepareSync = "PrepareSync"
    HaveThingsToCommit = "HaveThingsToCommit"
    AddingFiles = "AddingFiles"
    AddComplete = "AddComplete"
    CommitComplete = "CommitComplete"
    PreparingUserInfo = "PreparingUserInfo"
    FetchingData = "FetchingData"
    NoNeedToSync = "NoNeedToSync"
    NoUpstreamCantPush = "NoUpstreamCantPush"
    LocalAheadStartUpload = "LocalAheadStartUpload"
    CheckingLocalSyncState = "CheckingLocalSyncState"
    CheckingLocalGitRepoSanity = "CheckingLocalGitRepoSanity"
    LocalStateBehindSync = "LocalStateBehindSync"
    LocalStateDivergeRebase = "LocalStateDivergeRebase"
    RebaseResultChecking = "RebaseResultChecking"
    RebaseConflictNeedsResolve = "RebaseConflictNeedsResolve"
    RebaseSucceed = "RebaseSucceed"
    GitPush = "GitPush"
    GitMerge = "GitMerge"
    GitPushFailed = "GitPushFailed"
    GitPushComplete = "GitPushComplete"
    GitMergeComplete = "GitMergeComplete"
    GitMergeFailed = "GitMergeFailed"
    # our algorithm reached a state it does not know how to handle
    SyncFailedAlgorithmWrong = "SyncFailedAlgorithmWrong"
    PerformLastCheckBeforeSynchronizationFinish = "PerformLastCheckBeforeSynchronizationFinish"
    SynchronizationFinish = "SynchronizationFinish"
    StartFetchingFromGithubRemote = "StartFetchingFromGithubRemote"
    CantSyncInSpecialGitStateAutoFixSucceed = "CantSyncInSpecialGitStateAutoFixSucceed"
    StartForcePull = "StartForcePull"
    StartResettingLocalToRemote = "StartResettingLocalToRemote"
    FinishForcePull = "FinishForcePull"


# Steps after which the working tree may contain new content, so a host can reload it
STEPS_ABOUT_CHANGE = (
    GitStep.FetchingData,
    GitStep.LocalStateBehindSync,
    GitStep.RebaseSucceed,
    GitStep.FinishForcePull,
)


class SyncState(str, Enum):
    """How the remote branch relates to local HEAD. 'ahead' means local has commits the remote lacks."""
    NO_UPSTREAM_OR_BARE_UPSTREAM = "noUpstreamOrBareUpstream"
    EQUAL = "equal"
    AHEAD = "ahead"
    BEHIND = "behind"
    DIVERGED = "diverged"


@dataclass(frozen=True)
class DefaultGitInfo:
    """Fallback identity used when the caller does not pass user info."""
    git_user_name: str = "gitsync"
    email: str = "gitsync@gmail.com"
    branch: str = "main"
    remote: str = "origin"


@dataclass
class GitUserInfo:
    """
    Identity for one call.

    ``git_user_name`` is both the commit author and the username embedded in
    https remote URLs; ``access_token`` is only needed for network operations.
    """
    git_user_name: str
    email: Optional[str]
    branch: str
    remote: str = "origin"
    access_token: Optional[str] = field(default=None, repr=False)


@dataclass
class LoggerContext:
    """Tells the logger which operation and step produced a message."""
    function_name: str
    step: GitStep
    dir: Optional[str] = None
    remote_url: Optional[str] = None
    branch: Optional[str] = None


class SyncLogger(Protocol):
    """
    Progress sink passed explicitly to every operation.

    Errors are raised, never reported through the logger.
    """

    def info(self, message: GitStep, context: LoggerContext) -> Any:
        """Report progress for a human to read."""

    def debug(self, message: str, context: LoggerContext) -> Any:
        """Report debug details."""

    def warn(self, message: str, context: LoggerContext) -> Any:
        """Report a failed optional step."""
