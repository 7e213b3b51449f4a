"""Git command execution through GitPython, normalized to a single result type."""

import logging
import os
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Sequence, Union

from git import Git

from ..platform import get_git_executable

# Non-interactive, untranslated git: fail instead of prompting for a password,
# never open an editor on `rebase --continue`, keep messages parseable.
GIT_ENVIRONMENT = {
    "GIT_TERMINAL_PROMPT": "0",
    "GIT_EDITOR": "true",
    "LC_ALL": "C",
}

# stderr fragments that mark a failure worth retrying
TRANSIENT_ERROR_PATTERNS = (
    "could not resolve host",
    "connection timed out",
    "connection refused",
    "network is unreachable",
    "operation timed out",
    "failed to connect",
    "early eof",
    "the remote end hung up unexpectedly",
    "ssl_error",
    "gnutls",
)


@dataclass
class EngineResult:
    """Outcome of one git invocation."""
    exit_code: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.exit_code == 0


def run_git(args: Sequence[str], directory: Union[str, Path], env: dict = None) -> EngineResult:
    """
    Run ``git <args>`` inside ``directory`` and return its exit code and output.

    Git failures are reported through ``exit_code``; this never raises for a
    non-zero exit. A missing directory is reported like git reports it.
    """
    directory = str(directory)
    if not os.path.isdir(directory):
        return EngineResult(128, "", f"fatal: cannot change to '{directory}': No such file or directory")

    git_executable = Git.GIT_PYTHON_GIT_EXECUTABLE or get_git_executable()
    command = [git_executable, *args]
    status, stdout, stderr = Git(directory).execute(
        command,
        with_extended_output=True,
        with_exceptions=False,
        env={**GIT_ENVIRONMENT, **(env or {})},
    )
    return EngineResult(exit_code=status, stdout=stdout or "", stderr=stderr or "")


def is_transient_failure(result: EngineResult) -> bool:
    """True when a failed result looks like a network hiccup rather than a real rejection."""
    if result.ok:
        return False
    stderr = result.stderr.lower()
    return any(pattern in stderr for pattern in TRANSIENT_ERROR_PATTERNS)


def run_git_with_retry(
    args: Sequence[str],
    directory: Union[str, Path],
    max_attempts: int = 3,
    base_delay: float = 0.5,
) -> EngineResult:
    """
    Run a network git command, retrying transient failures with exponential backoff.

    Args:
        args: git arguments, e.g. ``["fetch", "origin", "main"]``
        directory: repository directory
        max_attempts: total number of attempts
        base_delay: delay before the second attempt, doubled each time

    Returns:
        The result of the last attempt
    """
    logger = logging.getLogger('wikisync.git_sync')
    operation = args[0] if args else "git"

    result = run_git(args, directory)
    for attempt in range(2, max_attempts + 1):
        if not is_transient_failure(result):
            break
        delay = base_delay * (2 ** (attempt - 2))
        logger.warning(
            f"{operation} failed (attempt {attempt - 1}/{max_attempts}), retrying in {delay:.1f}s"
        )
        time.sleep(delay)
        result = run_git(args, directory)

    return result
