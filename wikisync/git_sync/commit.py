"""Staging and committing with an explicit identity."""

import os
from typing import Dict, Iterable, Optional

from .engine import EngineResult, run_git
from .interface import DefaultGitInfo, GitStep, SyncLogger
from .logger import StepReporter

DEFAULT_COMMIT_MESSAGE = "Initialize with wikisync"
SYNC_COMMIT_MESSAGE = "Updated with wikisync"


def identity_environment(username: str, email: str) -> Dict[str, str]:
    """Environment that makes git use the same identity for author and committer."""
    return {
        "GIT_AUTHOR_NAME": username,
        "GIT_AUTHOR_EMAIL": email,
        "GIT_COMMITTER_NAME": username,
        "GIT_COMMITTER_EMAIL": email,
    }


def _has_head(wiki_folder_path: str) -> bool:
    return run_git(["rev-parse", "--verify", "--quiet", "HEAD"], wiki_folder_path).ok


def commit_files(
    wiki_folder_path: str,
    username: str,
    email: str,
    message: str = DEFAULT_COMMIT_MESSAGE,
    files_to_ignore: Optional[Iterable[str]] = None,
    logger: Optional[SyncLogger] = None,
) -> EngineResult:
    """
    Stage everything except ``files_to_ignore`` and commit it.

    Args:
        wiki_folder_path: repository to commit in
        username: author and committer name
        email: author and committer email
        message: commit message
        files_to_ignore: paths relative to the repository that stay out of the commit
        logger: optional progress sink

    Returns:
        The ``git commit`` result; a non-zero exit code (e.g. nothing to commit)
        is returned, not raised
    """
    reporter = StepReporter(logger, "commitFiles", dir=wiki_folder_path)

    reporter.progress(GitStep.AddingFiles)
    run_git(["add", "."], wiki_folder_path)

    ignored_paths = [path for path in (files_to_ignore or []) if path]
    if ignored_paths:
        has_head = _has_head(wiki_folder_path)
        for path in ignored_paths:
            if has_head:
                run_git(["reset", "-q", "--", path], wiki_folder_path)
            else:
                # nothing to reset to on an unborn branch
                run_git(["rm", "-q", "-r", "--cached", "--ignore-unmatch", "--", path], wiki_folder_path)
    reporter.progress(GitStep.AddComplete)

    return run_git(
        ["commit", "-m", message, f"--author={username} <{email}>"],
        wiki_folder_path,
        env=identity_environment(username, email),
    )


def init_git_with_branch(
    wiki_folder_path: str,
    branch: str = DefaultGitInfo.branch,
    bare: bool = False,
    initial_commit: bool = True,
    username: str = DefaultGitInfo.git_user_name,
    email: str = DefaultGitInfo.email,
) -> None:
    """
    Create a repository whose first branch is ``branch``.

    With ``initial_commit`` an empty commit is made so HEAD points at a real
    commit; bare repositories never get one.
    """
    os.makedirs(wiki_folder_path, exist_ok=True)
    init_args = ["init", f"--initial-branch={branch}"]
    if bare:
        init_args.append("--bare")
    run_git(init_args, wiki_folder_path)
    if initial_commit and not bare:
        run_git(
            ["commit", "--allow-empty", "-n", "-m", "Initial commit when init a new git."],
            wiki_folder_path,
            env=identity_environment(username, email),
        )
