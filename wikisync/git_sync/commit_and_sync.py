"""
Commit local edits and reconcile them with the remote branch.

``commit_and_sync`` is the synchronization state machine: it commits, fetches,
classifies how local HEAD relates to the remote branch and pushes, fast-forwards
or rebases until both are equal.
"""

from typing import Iterable, Optional

from .commit import SYNC_COMMIT_MESSAGE, commit_files
from .credential import credential_bracket
from .errors import CantSyncGitNotInitializedError, GitPullPushError, SyncParameterMissingError
from .inspect import (
    NOGIT,
    assume_sync,
    get_default_branch_name,
    get_git_repository_state,
    get_remote_name,
    get_sync_state,
    have_local_changes,
    is_normal_repository_state,
)
from .interface import DefaultGitInfo, GitStep, GitUserInfo, SyncLogger, SyncState
from .logger import StepReporter
from .sync import (
    PushProbeOutcome,
    continue_rebase,
    fetch_remote,
    merge_upstream,
    probe_push,
    push_upstream,
    rebase_onto_upstream,
)


def commit_and_sync(
    wiki_folder_path: str,
    remote_url: Optional[str] = None,
    user_info: Optional[GitUserInfo] = None,
    commit_message: str = SYNC_COMMIT_MESSAGE,
    commit_only: bool = False,
    files_to_ignore: Optional[Iterable[str]] = None,
    logger: Optional[SyncLogger] = None,
    default_git_info: Optional[DefaultGitInfo] = None,
    retry_attempts: int = 3,
    retry_delay: float = 0.5,
) -> None:
    """
    ``git add .`` + ``git commit`` + push, fast-forward or rebase, whatever syncs both ways.

    Args:
        wiki_folder_path: repository to sync
        remote_url: URL of the remote, without credentials; only needed unless ``commit_only``
        user_info: identity and access token; falls back to ``default_git_info`` for committing
        commit_message: message for the commit of local changes
        commit_only: stop after committing, without touching the network
        files_to_ignore: paths kept out of the commit
        logger: optional progress sink
        default_git_info: fallback identity, branch and remote
        retry_attempts: attempts for the fetch on transient network errors
        retry_delay: delay before the first fetch retry

    Raises:
        CantSyncGitNotInitializedError: the folder is not a repository
        SyncParameterMissingError: access token or remote URL missing for a network sync
        CantSyncInSpecialGitStateAutoFixFailed: an interrupted rebase could not be finished
        SyncScriptIsInDeadLoopError: conflict resolution did not terminate
        GitPullPushError: push or merge failed
        AssumeSyncError: local and remote still differ after syncing
    """
    default_git_info = default_git_info or DefaultGitInfo()
    identity = user_info or default_git_info
    git_user_name = identity.git_user_name
    email = identity.email or default_git_info.email
    access_token = user_info.access_token if user_info is not None else None

    branch = get_default_branch_name(wiki_folder_path, default_git_info.remote) or identity.branch
    remote_name = get_remote_name(wiki_folder_path, branch)
    options = {
        "dir": wiki_folder_path,
        "remote_url": remote_url,
        "user_info": user_info,
        "commit_message": commit_message,
        "commit_only": commit_only,
    }

    reporter = StepReporter(logger, "commitAndSync", dir=wiki_folder_path, remote_url=remote_url, branch=branch)

    # preflight check
    repo_starting_state = get_git_repository_state(wiki_folder_path, logger)
    if is_normal_repository_state(repo_starting_state):
        reporter.progress(GitStep.PrepareSync)
        reporter.debug(
            f"{wiki_folder_path} repoStartingState: {repo_starting_state}, {git_user_name} <{email}>",
            GitStep.PrepareSync,
        )
    elif repo_starting_state == NOGIT:
        raise CantSyncGitNotInitializedError(wiki_folder_path)
    else:
        # we may be in the middle of a rebase, try to fix that
        continue_rebase(wiki_folder_path, git_user_name, email, logger, repo_starting_state)

    if have_local_changes(wiki_folder_path):
        reporter.progress(GitStep.HaveThingsToCommit)
        reporter.debug(commit_message, GitStep.HaveThingsToCommit)
        commit_result = commit_files(wiki_folder_path, git_user_name, email, commit_message, files_to_ignore, logger)
        if not commit_result.ok:
            reporter.warn(f"commit failed {commit_result.stderr or commit_result.stdout}", GitStep.CommitComplete)
        reporter.progress(GitStep.CommitComplete)

    if commit_only:
        return

    reporter.progress(GitStep.PreparingUserInfo)
    if not access_token:
        raise SyncParameterMissingError("accessToken")
    if not remote_url:
        raise SyncParameterMissingError("remoteUrl")

    with credential_bracket(wiki_folder_path, remote_url, git_user_name, access_token, remote_name):
        reporter.progress(GitStep.FetchingData)
        fetch_result = fetch_remote(wiki_folder_path, remote_name, branch, retry_attempts, retry_delay)
        if not fetch_result.ok:
            # an empty bare upstream has no branch to fetch yet
            reporter.warn(f"fetch failed: {fetch_result.stderr}", GitStep.FetchingData)

        sync_state = get_sync_state(wiki_folder_path, branch, remote_name, logger)
        if sync_state == SyncState.EQUAL:
            reporter.progress(GitStep.NoNeedToSync)
            return
        elif sync_state == SyncState.NO_UPSTREAM_OR_BARE_UPSTREAM:
            reporter.progress(GitStep.NoUpstreamCantPush)
            probe = probe_push(wiki_folder_path, branch, remote_name, logger)
            if probe.outcome == PushProbeOutcome.BARE_OR_MISSING:
                reporter.warn(
                    "remoteUrl may be not valid, noUpstreamOrBareUpstream after credentialOn",
                    GitStep.NoUpstreamCantPush,
                )
                raise GitPullPushError(options, probe.stderr)
        elif sync_state == SyncState.AHEAD:
            reporter.progress(GitStep.LocalAheadStartUpload)
            push_upstream(wiki_folder_path, branch, remote_name, logger, options)
        elif sync_state == SyncState.BEHIND:
            reporter.progress(GitStep.LocalStateBehindSync)
            merge_upstream(wiki_folder_path, branch, remote_name, logger, options)
        elif sync_state == SyncState.DIVERGED:
            reporter.progress(GitStep.LocalStateDivergeRebase)
            rebase_result = rebase_onto_upstream(wiki_folder_path, branch, remote_name, git_user_name, email)
            reporter.progress(GitStep.RebaseResultChecking)
            if not rebase_result.ok:
                reporter.warn(
                    f"exitCode: {rebase_result.exit_code}, stderr of git rebase: {rebase_result.stderr}",
                    GitStep.RebaseResultChecking,
                )
            if (
                rebase_result.ok
                and get_git_repository_state(wiki_folder_path, logger) == ""
                and get_sync_state(wiki_folder_path, branch, remote_name, logger) == SyncState.AHEAD
            ):
                reporter.progress(GitStep.RebaseSucceed)
            else:
                continue_rebase(wiki_folder_path, git_user_name, email, logger)
                reporter.progress(GitStep.RebaseConflictNeedsResolve)
            push_upstream(wiki_folder_path, branch, remote_name, logger, options)
        else:
            reporter.progress(GitStep.SyncFailedAlgorithmWrong)

    reporter.progress(GitStep.PerformLastCheckBeforeSynchronizationFinish)
    assume_sync(wiki_folder_path, branch, remote_name, logger)
    reporter.progress(GitStep.SynchronizationFinish)
