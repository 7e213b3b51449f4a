"""Network primitives and automatic conflict resolution used by the sync operations."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .commit import commit_files, identity_environment
from .engine import EngineResult, run_git, run_git_with_retry
from .errors import CantSyncInSpecialGitStateAutoFixFailed, GitPullPushError, SyncScriptIsInDeadLoopError
from .inspect import REBASE_FLAGS, get_git_repository_state, is_normal_repository_state, repository_state_flags
from .interface import GitStep, SyncLogger
from .logger import StepReporter

CONFLICT_COMMIT_MESSAGE = "Conflict files committed with wikisync"
MAX_RESOLVE_ITERATIONS = 1000

# Flags of an operation that a commit (plus `rebase --continue`) can conclude
_RESOLVABLE_FLAGS = REBASE_FLAGS | {"MERGING", "CHERRY-PICKING"}


class PushProbeOutcome(Enum):
    """Result of pushing to a remote whose branch could not be compared against."""
    SUCCESS = "success"
    BARE_OR_MISSING = "bareOrMissing"


@dataclass
class PushProbeResult:
    """Outcome of ``probe_push`` plus the stderr of a failed push."""
    outcome: PushProbeOutcome
    stderr: str = ""


def fetch_remote(
    wiki_folder_path: str,
    remote_name: str,
    branch: str,
    max_attempts: int = 3,
    retry_delay: float = 0.5,
) -> EngineResult:
    """Fetch ``branch`` from ``remote_name``, retrying transient network failures."""
    return run_git_with_retry(["fetch", remote_name, branch], wiki_folder_path, max_attempts, retry_delay)


def push_upstream(
    wiki_folder_path: str,
    branch: str,
    remote_name: str,
    logger: Optional[SyncLogger] = None,
    options: Optional[dict] = None,
) -> None:
    """
    Push ``branch`` to ``remote_name``.

    Raises:
        GitPullPushError: when git rejects the push or cannot reach the remote
    """
    reporter = StepReporter(logger, "pushUpstream", dir=wiki_folder_path, branch=branch)
    reporter.progress(GitStep.GitPush)
    # push to the same branch name on the remote; a missing upstream branch is created
    result = run_git(["push", remote_name, f"{branch}:{branch}"], wiki_folder_path)
    if not result.ok:
        reporter.warn(f"exitCode: {result.exit_code}, stderr of git push: {result.stderr}", GitStep.GitPush)
        reporter.progress(GitStep.GitPushFailed)
        raise GitPullPushError(options or {"dir": wiki_folder_path, "branch": branch}, result.stderr)
    reporter.progress(GitStep.GitPushComplete)


def probe_push(
    wiki_folder_path: str,
    branch: str,
    remote_name: str,
    logger: Optional[SyncLogger] = None,
) -> PushProbeResult:
    """
    Push to tell a bare (empty) upstream from a missing one.

    A push that succeeds means the upstream exists but had no branch yet.
    A failed push keeps git's stderr so the caller can report the cause.
    """
    try:
        push_upstream(wiki_folder_path, branch, remote_name, logger)
    except GitPullPushError as error:
        return PushProbeResult(PushProbeOutcome.BARE_OR_MISSING, error.stderr)
    return PushProbeResult(PushProbeOutcome.SUCCESS)


def merge_upstream(
    wiki_folder_path: str,
    branch: str,
    remote_name: str,
    logger: Optional[SyncLogger] = None,
    options: Optional[dict] = None,
) -> None:
    """
    Fast-forward local ``branch`` to ``remote_name/branch``.

    Raises:
        GitPullPushError: when a fast-forward is not possible
    """
    reporter = StepReporter(logger, "mergeUpstream", dir=wiki_folder_path, branch=branch)
    reporter.progress(GitStep.GitMerge)
    result = run_git(["merge", "--ff-only", f"{remote_name}/{branch}"], wiki_folder_path)
    if not result.ok:
        reporter.warn(f"exitCode: {result.exit_code}, stderr of git merge: {result.stderr}", GitStep.GitMerge)
        reporter.progress(GitStep.GitMergeFailed)
        raise GitPullPushError(options or {"dir": wiki_folder_path, "branch": branch}, result.stderr)
    reporter.progress(GitStep.GitMergeComplete)


def rebase_onto_upstream(
    wiki_folder_path: str,
    branch: str,
    remote_name: str,
    username: str,
    email: str,
) -> EngineResult:
    """Replay local commits on top of ``remote_name/branch``."""
    return run_git(
        ["rebase", f"{remote_name}/{branch}"],
        wiki_folder_path,
        env=identity_environment(username, email),
    )


def hard_reset_local_to_remote(wiki_folder_path: str, branch: str, remote_name: str) -> EngineResult:
    """Discard local commits and changes, making ``branch`` equal to ``remote_name/branch``."""
    return run_git(["reset", "--hard", f"{remote_name}/{branch}"], wiki_folder_path)


def _has_conflict_marker(result: EngineResult) -> bool:
    return "CONFLICT" in result.stdout or "CONFLICT" in result.stderr


def continue_rebase(
    wiki_folder_path: str,
    username: str,
    email: str,
    logger: Optional[SyncLogger] = None,
    provided_repository_state: Optional[str] = None,
) -> None:
    """
    Drive an interrupted rebase (or merge) to completion.

    Conflicting files are committed as they are, markers included, so a
    human can clean them up later; then the rebase continues. Repeats while
    git keeps reporting conflicts.

    Raises:
        SyncScriptIsInDeadLoopError: after too many iterations
        CantSyncInSpecialGitStateAutoFixFailed: when committing or continuing fails, or the
            repository is in a special state no commit can conclude (bisect, bare, git dir)
    """
    reporter = StepReporter(logger, "continueRebase", dir=wiki_folder_path)
    repository_state = (
        provided_repository_state
        if provided_repository_state is not None
        else get_git_repository_state(wiki_folder_path, logger)
    )

    if not is_normal_repository_state(repository_state) and not (
        repository_state_flags(repository_state) & _RESOLVABLE_FLAGS
    ):
        # bisect, bare repository or detached git dir
        raise CantSyncInSpecialGitStateAutoFixFailed(
            f"cannot sync or auto-fix in state {repository_state}",
            repository_state,
        )

    loop_count = 0
    while repository_state_flags(repository_state) & _RESOLVABLE_FLAGS:
        loop_count += 1
        if loop_count > MAX_RESOLVE_ITERATIONS:
            raise SyncScriptIsInDeadLoopError(f"{wiki_folder_path} {repository_state}")

        commit_result = commit_files(wiki_folder_path, username, email, CONFLICT_COMMIT_MESSAGE)
        if repository_state_flags(repository_state) & REBASE_FLAGS:
            continue_result = run_git(
                ["rebase", "--continue"],
                wiki_folder_path,
                env=identity_environment(username, email),
            )
        else:
            # committing concluded the merge or cherry-pick
            continue_result = EngineResult(0, "", "")
        repository_state = get_git_repository_state(wiki_folder_path, logger)

        if _has_conflict_marker(continue_result):
            reporter.debug(
                f"rebase --continue stopped at another conflict, state: {repository_state}",
                GitStep.RebaseConflictNeedsResolve,
            )
            continue

        commit_failed = not commit_result.ok and "nothing to commit" not in commit_result.stdout
        if commit_failed or not continue_result.ok:
            raise CantSyncInSpecialGitStateAutoFixFailed(
                f"rebaseContinueStdError when {repository_state}: {continue_result.stderr}\n"
                f"commitStdError when {repository_state}: {commit_result.stderr}",
                repository_state,
            )

    reporter.progress(GitStep.CantSyncInSpecialGitStateAutoFixSucceed)
