"""Read-only inspection of a repository: branch, remote, changes and sync state."""

import os
import re
from dataclasses import dataclass
from pathlib import Path
from typing import FrozenSet, List, Optional
from urllib.parse import urlparse

from .engine import run_git
from .errors import AssumeSyncError, CantSyncGitNotInitializedError
from .interface import DefaultGitInfo, GitStep, SyncLogger, SyncState
from .logger import StepReporter

NOGIT = "NOGIT"

# Operation flags of a repository state token
REBASE_INTERACTIVE = "REBASE-i"
REBASE_MERGE = "REBASE-m"
AM_REBASE = "AM/REBASE"
MERGING = "MERGING"
CHERRY_PICKING = "CHERRY-PICKING"
BISECTING = "BISECTING"
# Suffix flags
BARE = "|BARE"
GIT_DIR = "|GIT_DIR"
DIRTY = "|DIRTY"

_OPERATION_FLAGS = (REBASE_INTERACTIVE, REBASE_MERGE, AM_REBASE, MERGING, CHERRY_PICKING, BISECTING)
REBASE_FLAGS = frozenset({REBASE_INTERACTIVE, REBASE_MERGE, AM_REBASE})

_STATUS_LINE = re.compile(r"^\s?(\?\?|[ACMR][DM]|[ACMR])\s?(\S+.*\S+)$")
_CHANGED_STATUS = re.compile(r"^(\?\?|[ACMR] |[ ACMR][DM])")
_OCTAL_ESCAPE_RUN = re.compile(r"(?:\\[0-7]{3})+")
_SIMPLE_ESCAPES = {'\\"': '"', "\\\\": "\\", "\\t": "\t", "\\n": "\n", "\\r": "\r"}


@dataclass
class ModifiedFile:
    """One changed path reported by ``git status --porcelain``."""
    type: str
    file_relative_path: str
    file_path: str


def _decode_quoted_path(raw_path: str) -> str:
    """
    Turn git's C-quoted path back into text.

    Git quotes paths with non-ASCII bytes and writes each byte as a
    backslash-octal escape, e.g. ``"tiddlers/\\346\\226\\260.tid"``.
    """
    inner = raw_path[1:-1]

    def octal_run_to_text(match: re.Match) -> str:
        octets = bytes(int(escape, 8) for escape in match.group(0).split("\\")[1:])
        return octets.decode("utf-8", errors="replace")

    inner = _OCTAL_ESCAPE_RUN.sub(octal_run_to_text, inner)
    return re.sub(r'\\["\\tnr]', lambda m: _SIMPLE_ESCAPES[m.group(0)], inner)


def get_modified_file_list(wiki_folder_path: str) -> List[ModifiedFile]:
    """
    Get modified files and their change type in a folder.

    Args:
        wiki_folder_path: repository to scan

    Returns:
        Changed files in ``git status`` order
    """
    result = run_git(["status", "--porcelain"], wiki_folder_path)
    modified_files = []
    for line in result.stdout.split("\n"):
        if not line:
            continue
        match = _STATUS_LINE.match(line)
        if match is None:
            continue
        change_type, raw_relative_path = match.group(1), match.group(2)
        # a quoted name with ; or , is left alone, it was not produced by plain octal quoting
        is_safe_quoted_path = (
            raw_relative_path.startswith('"')
            and raw_relative_path.endswith('"')
            and ";" not in raw_relative_path
            and "," not in raw_relative_path
        )
        relative_path = _decode_quoted_path(raw_relative_path) if is_safe_quoted_path else raw_relative_path
        modified_files.append(ModifiedFile(
            type=change_type,
            file_relative_path=relative_path,
            file_path=os.path.join(wiki_folder_path, relative_path),
        ))
    return modified_files


def have_local_changes(wiki_folder_path: str) -> bool:
    """See if there is any file that is untracked, added, copied, modified or renamed."""
    result = run_git(["status", "--porcelain"], wiki_folder_path)
    return any(_CHANGED_STATUS.match(line) for line in result.stdout.split("\n") if line)


def get_remote_url(wiki_folder_path: str, remote_name: Optional[str] = None) -> str:
    """
    Read a remote's URL from the repository config.

    Args:
        wiki_folder_path: repository to inspect
        remote_name: remote to read; defaults to ``origin``, else the first remote

    Returns:
        The URL exactly as configured, or ``''`` when there is no such remote
    """
    if remote_name is None:
        remotes = [name for name in run_git(["remote"], wiki_folder_path).stdout.split("\n") if name]
        if not remotes:
            return ""
        remote_name = "origin" if "origin" in remotes else remotes[0]

    result = run_git(["remote", "get-url", remote_name], wiki_folder_path)
    if not result.ok:
        return ""
    return result.stdout.strip()


def get_remote_name(wiki_folder_path: str, branch: str) -> str:
    """Remote tracked by ``branch``, ``origin`` when not configured."""
    result = run_git(["config", "--get", f"branch.{branch}.remote"], wiki_folder_path)
    remote_name = result.stdout.strip()
    return remote_name if result.ok and remote_name else DefaultGitInfo.remote


def get_remote_repo_name(remote_url: str) -> Optional[str]:
    """
    Repository path of a remote URL, e.g. ``owner/wiki`` for ``https://github.com/owner/wiki``.

    Raises:
        ValueError: when ``remote_url`` is not an absolute URL
    """
    parsed = urlparse(remote_url)
    if not parsed.scheme or not parsed.netloc:
        raise ValueError("Invalid URL")
    repo_name = parsed.path[1:] if parsed.path.startswith("/") else parsed.path
    return repo_name or None


def get_default_branch_name(wiki_folder_path: str, remote_name: str = DefaultGitInfo.remote) -> Optional[str]:
    """
    Branch to sync, e.g. ``main`` or ``master``.

    The current local branch wins; a detached HEAD falls back to the remote's
    advertised HEAD, then to the default branch. Returns ``None`` for a
    folder that does not exist or is not a repository.
    """
    if not os.path.isdir(wiki_folder_path) or not has_git(wiki_folder_path, strict=False):
        return None

    local_branch = run_git(["symbolic-ref", "--quiet", "--short", "HEAD"], wiki_folder_path)
    if local_branch.ok and local_branch.stdout.strip():
        return local_branch.stdout.strip()

    remote_head = run_git(
        ["symbolic-ref", "--quiet", "--short", f"refs/remotes/{remote_name}/HEAD"], wiki_folder_path
    )
    if remote_head.ok and remote_head.stdout.strip():
        return remote_head.stdout.strip()[len(remote_name) + 1:]

    return DefaultGitInfo.branch


def get_sync_state(
    wiki_folder_path: str,
    branch: str,
    remote_name: str = DefaultGitInfo.remote,
    logger: Optional[SyncLogger] = None,
) -> SyncState:
    """
    Determine how the remote branch relates to local HEAD.

    ``ahead`` means local has commits the remote lacks, ``behind`` the
    opposite. Only as fresh as the last fetch.
    """
    reporter = StepReporter(logger, "getSyncState", dir=wiki_folder_path, branch=branch)
    reporter.progress(GitStep.CheckingLocalSyncState)
    result = run_git(
        ["rev-list", "--count", "--left-right", f"{remote_name}/{branch}...HEAD"], wiki_folder_path
    )
    stdout = result.stdout
    reporter.debug(
        f"Checking sync state with upstream, stdout:\n{stdout}\n(stdout end)", GitStep.CheckingLocalSyncState
    )
    return classify_sync_state(stdout)


def classify_sync_state(rev_list_output: str) -> SyncState:
    """Map ``rev-list --count --left-right`` output (``behind\\tahead``) to a sync state."""
    if rev_list_output == "":
        return SyncState.NO_UPSTREAM_OR_BARE_UPSTREAM
    if re.search(r"^0\t0$", rev_list_output, re.MULTILINE):
        return SyncState.EQUAL
    if re.search(r"^0\t\d+$", rev_list_output, re.MULTILINE):
        return SyncState.AHEAD
    if re.search(r"^\d+\t0$", rev_list_output, re.MULTILINE):
        return SyncState.BEHIND
    return SyncState.DIVERGED


def assume_sync(
    wiki_folder_path: str,
    branch: str,
    remote_name: str = DefaultGitInfo.remote,
    logger: Optional[SyncLogger] = None,
) -> None:
    """Raise ``AssumeSyncError`` carrying the observed state unless local equals remote."""
    sync_state = get_sync_state(wiki_folder_path, branch, remote_name, logger)
    if sync_state == SyncState.EQUAL:
        return
    raise AssumeSyncError(sync_state)


def get_git_directory(wiki_folder_path: str, logger: Optional[SyncLogger] = None) -> str:
    """
    Absolute path of the git dir used for ``wiki_folder_path``.

    This may belong to a parent directory when the folder itself has no
    ``.git``.

    Raises:
        CantSyncGitNotInitializedError: when git does not treat the folder as a repository
    """
    reporter = StepReporter(logger, "getGitDirectory", dir=wiki_folder_path)
    reporter.progress(GitStep.CheckingLocalGitRepoSanity)
    result = run_git(["rev-parse", "--absolute-git-dir"], wiki_folder_path)
    if not result.ok or result.stderr:
        reporter.debug(result.stderr, GitStep.CheckingLocalGitRepoSanity)
        raise CantSyncGitNotInitializedError(wiki_folder_path)
    git_directory = result.stdout.strip()
    if not git_directory:
        raise CantSyncGitNotInitializedError(wiki_folder_path)
    return str(Path(git_directory).resolve())


def has_git(wiki_folder_path: str, strict: bool = True) -> bool:
    """
    Check whether the folder is a repository.

    With ``strict``, a git dir inherited from a parent folder does not count:
    the git dir must be ``<folder>/.git`` or the folder itself (bare repository).
    """
    try:
        git_directory = Path(get_git_directory(wiki_folder_path))
    except CantSyncGitNotInitializedError:
        return False
    if not strict:
        return True
    folder = Path(wiki_folder_path).resolve()
    return git_directory in (folder / ".git", folder)


def get_git_repository_state(wiki_folder_path: str, logger: Optional[SyncLogger] = None) -> str:
    """
    Describe special repository conditions as a string token.

    Returns:
        ``''`` for a clean normal repository, ``NOGIT`` without git metadata,
        otherwise operation flags (``REBASE-i``, ``REBASE-m``, ``AM/REBASE``,
        ``MERGING``, ``CHERRY-PICKING``, ``BISECTING``) followed by
        ``|BARE``, ``|GIT_DIR`` or ``|DIRTY``
    """
    if not os.path.isdir(wiki_folder_path) or not has_git(wiki_folder_path):
        return NOGIT
    git_directory = Path(get_git_directory(wiki_folder_path, logger))

    is_rebase_i = (git_directory / "rebase-merge" / "interactive").is_file()
    is_rebase_m = (git_directory / "rebase-merge").is_dir()
    is_am_rebase = (git_directory / "rebase-apply").is_dir()
    is_merging = (git_directory / "MERGE_HEAD").is_file()
    is_cherry_picking = (git_directory / "CHERRY_PICK_HEAD").is_file()
    is_bisecting = (git_directory / "BISECT_LOG").is_file()

    state = ""
    if is_rebase_i:
        state += REBASE_INTERACTIVE
    elif is_rebase_m:
        state += REBASE_MERGE
    else:
        if is_am_rebase:
            state += AM_REBASE
        if is_merging:
            state += MERGING
        if is_cherry_picking:
            state += CHERRY_PICKING
        if is_bisecting:
            state += BISECTING

    is_inside_git_dir = run_git(["rev-parse", "--is-inside-git-dir"], wiki_folder_path).stdout.startswith("true")
    if is_inside_git_dir:
        is_bare = run_git(["rev-parse", "--is-bare-repository"], wiki_folder_path).stdout.startswith("true")
        state += BARE if is_bare else GIT_DIR
    elif run_git(["rev-parse", "--is-inside-work-tree"], wiki_folder_path).stdout.startswith("true"):
        # exit code 1 means there are differences
        if not run_git(["diff", "--no-ext-diff", "--quiet", "--exit-code"], wiki_folder_path).ok:
            state += DIRTY
    return state


def repository_state_flags(repository_state: str) -> FrozenSet[str]:
    """
    Split a repository state token into its flags.

    The flags are an unordered set; several operation flags may be present
    at once.
    """
    if repository_state == NOGIT:
        return frozenset({NOGIT})
    operation_part, separator, suffix = repository_state.partition("|")
    flags = {flag for flag in _OPERATION_FLAGS if flag in operation_part}
    if separator:
        flags.add(f"|{suffix}")
    return frozenset(flags)


def is_normal_repository_state(repository_state: str) -> bool:
    """True for a clean or merely dirty repository that can be synced directly."""
    return repository_state in ("", DIRTY)
