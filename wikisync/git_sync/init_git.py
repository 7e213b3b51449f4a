"""Turn a folder into a repository, optionally backing it up to a remote right away."""

from typing import Optional

from .commit import commit_files, init_git_with_branch
from .credential import credential_bracket
from .engine import run_git
from .errors import GitPullPushError, SyncParameterMissingError
from .inspect import get_default_branch_name
from .interface import DefaultGitInfo, GitStep, GitUserInfo, SyncLogger
from .logger import StepReporter
from .sync import fetch_remote
from .utils import truncate


def init_git(
    wiki_folder_path: str,
    user_info: Optional[GitUserInfo] = None,
    sync_immediately: bool = False,
    remote_url: Optional[str] = None,
    logger: Optional[SyncLogger] = None,
    default_git_info: Optional[DefaultGitInfo] = None,
) -> None:
    """
    ``git init`` on the configured branch and commit the existing files.

    With ``sync_immediately`` the new history is pushed to ``remote_url``.

    Raises:
        SyncParameterMissingError: syncing without access token or remote URL
        GitPullPushError: the push failed
    """
    default_git_info = default_git_info or DefaultGitInfo()
    identity = user_info or default_git_info
    git_user_name = identity.git_user_name
    email = identity.email or default_git_info.email
    reporter = StepReporter(logger, "initGit", dir=wiki_folder_path, remote_url=remote_url)

    reporter.progress(GitStep.StartGitInitialization)
    reporter.debug(f"Running git init in dir {wiki_folder_path}", GitStep.StartGitInitialization)
    init_git_with_branch(wiki_folder_path, identity.branch, username=git_user_name, email=email)
    reporter.debug(f"Successfully ran git init in dir {wiki_folder_path}", GitStep.StartGitInitialization)
    commit_files(wiki_folder_path, git_user_name, email, logger=logger)

    # a local-only wiki is done here
    if not sync_immediately:
        reporter.progress(GitStep.GitRepositoryConfigurationFinished)
        return

    access_token = user_info.access_token if user_info is not None else None
    if not access_token:
        raise SyncParameterMissingError("accessToken")
    if not remote_url:
        raise SyncParameterMissingError("remoteUrl")

    remote_name = identity.remote or default_git_info.remote
    reporter.debug(
        f"Using gitUrl {remote_url} with gitUserName {git_user_name} and accessToken {truncate(access_token)}",
        GitStep.StartConfiguringGithubRemoteRepository,
    )
    reporter.progress(GitStep.StartConfiguringGithubRemoteRepository)
    with credential_bracket(wiki_folder_path, remote_url, git_user_name, access_token, remote_name):
        reporter.progress(GitStep.FetchingData)
        branch = get_default_branch_name(wiki_folder_path, remote_name) or identity.branch
        fetch_remote(wiki_folder_path, remote_name, branch)
        reporter.progress(GitStep.StartBackupToGitRemote)
        push_result = run_git(["push", remote_name, f"{branch}:{branch}"], wiki_folder_path)

    if not push_result.ok:
        reporter.progress(GitStep.GitPushFailed)
        raise GitPullPushError(
            {"dir": wiki_folder_path, "remote_url": remote_url, "user_info": user_info},
            f"branch: {branch} {push_result.stderr}",
        )
    reporter.progress(GitStep.SynchronizationFinish)
