"""Throw away local history and changes in favour of the remote branch."""

from typing import Optional

from .credential import credential_bracket
from .errors import GitPullPushError, SyncParameterMissingError
from .inspect import get_default_branch_name, get_remote_name
from .interface import DefaultGitInfo, GitStep, GitUserInfo, SyncLogger
from .logger import StepReporter
from .sync import fetch_remote, hard_reset_local_to_remote


def force_pull(
    wiki_folder_path: str,
    remote_url: Optional[str],
    user_info: Optional[GitUserInfo],
    logger: Optional[SyncLogger] = None,
    default_git_info: Optional[DefaultGitInfo] = None,
    retry_attempts: int = 3,
    retry_delay: float = 0.5,
) -> None:
    """
    Fetch and ``git reset --hard <remote>/<branch>``.

    Raises:
        SyncParameterMissingError: access token or remote URL missing
        GitPullPushError: the fetch or the reset failed
    """
    default_git_info = default_git_info or DefaultGitInfo()
    identity = user_info or default_git_info
    access_token = user_info.access_token if user_info is not None else None

    if not access_token:
        raise SyncParameterMissingError("accessToken")
    if not remote_url:
        raise SyncParameterMissingError("remoteUrl")

    branch = get_default_branch_name(wiki_folder_path, default_git_info.remote) or identity.branch
    remote_name = get_remote_name(wiki_folder_path, branch)
    options = {"dir": wiki_folder_path, "remote_url": remote_url, "user_info": user_info}
    reporter = StepReporter(logger, "forcePull", dir=wiki_folder_path, remote_url=remote_url, branch=branch)

    reporter.progress(GitStep.StartForcePull)
    reporter.progress(GitStep.StartConfiguringGithubRemoteRepository)
    with credential_bracket(wiki_folder_path, remote_url, identity.git_user_name, access_token, remote_name):
        reporter.progress(GitStep.StartFetchingFromGithubRemote)
        fetch_result = fetch_remote(wiki_folder_path, remote_name, branch, retry_attempts, retry_delay)
        if not fetch_result.ok:
            raise GitPullPushError(options, fetch_result.stderr)

        reporter.progress(GitStep.StartResettingLocalToRemote)
        reset_result = hard_reset_local_to_remote(wiki_folder_path, branch, remote_name)
        if not reset_result.ok:
            raise GitPullPushError(options, f"Failed to reset local to remote: {reset_result.stderr}")
    reporter.progress(GitStep.FinishForcePull)
