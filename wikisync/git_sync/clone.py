"""Create a local copy of a remote wiki repository."""

import json
from typing import Optional

from .commit import init_git_with_branch
from .credential import credential_bracket
from .engine import run_git_with_retry
from .errors import GitPullPushError, SyncParameterMissingError
from .inspect import get_default_branch_name
from .interface import DefaultGitInfo, GitStep, GitUserInfo, SyncLogger
from .logger import StepReporter
from .utils import sanitize_options


def clone(
    wiki_folder_path: str,
    remote_url: Optional[str],
    user_info: Optional[GitUserInfo],
    default_git_info: Optional[DefaultGitInfo] = None,
    logger: Optional[SyncLogger] = None,
    retry_attempts: int = 3,
    retry_delay: float = 0.5,
) -> None:
    """
    Initialize ``wiki_folder_path`` and pull the remote branch into it.

    Raises:
        SyncParameterMissingError: access token or remote URL missing
        GitPullPushError: the pull failed
    """
    default_git_info = default_git_info or DefaultGitInfo()
    identity = user_info or default_git_info
    access_token = user_info.access_token if user_info is not None else None

    if not access_token:
        raise SyncParameterMissingError("accessToken")
    if not remote_url:
        raise SyncParameterMissingError("remoteUrl")

    remote_name = identity.remote or default_git_info.remote
    options = {"dir": wiki_folder_path, "remote_url": remote_url, "user_info": user_info}
    reporter = StepReporter(logger, "clone", dir=wiki_folder_path, remote_url=remote_url)

    reporter.progress(GitStep.PrepareCloneOnlineWiki)
    reporter.debug(
        json.dumps(sanitize_options({
            "remote_url": remote_url,
            "git_user_name": identity.git_user_name,
            "access_token": access_token,
        })),
        GitStep.PrepareCloneOnlineWiki,
    )
    reporter.debug(f"Running git init in dir {wiki_folder_path}", GitStep.PrepareCloneOnlineWiki)
    init_git_with_branch(wiki_folder_path, identity.branch, initial_commit=False)
    reporter.debug(f"Successfully ran git init in dir {wiki_folder_path}", GitStep.PrepareCloneOnlineWiki)

    reporter.progress(GitStep.StartConfiguringGithubRemoteRepository)
    with credential_bracket(wiki_folder_path, remote_url, identity.git_user_name, access_token, remote_name):
        reporter.progress(GitStep.StartFetchingFromGithubRemote)
        branch = get_default_branch_name(wiki_folder_path, remote_name) or identity.branch
        pull_result = run_git_with_retry(
            ["pull", remote_name, branch], wiki_folder_path, retry_attempts, retry_delay
        )

    if not pull_result.ok:
        raise GitPullPushError(options, pull_result.stderr)
    reporter.progress(GitStep.SynchronizationFinish)
