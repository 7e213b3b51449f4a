"""
Shared fixtures for the wikisync test suite.

Builds throwaway repositories with the real git executable: a local wiki
repository on ``main`` with one commit, and an empty bare upstream that
plays the role of the remote.
"""

import os
import shutil
import subprocess
import tempfile
import unittest
from pathlib import Path

# Add the project root to the path so we can import wikisync modules
import sys
sys.path.insert(0, str(Path(__file__).parent))

from wikisync.git_sync.commit import init_git_with_branch
from wikisync.git_sync.interface import GitUserInfo

TEST_USER_NAME = "wikisync-test"
TEST_EMAIL = "wikisync-test@example.com"
TEST_ACCESS_TOKEN = "ghp_testAccessToken0123456789"
TEST_BRANCH = "main"


def git(directory, *args: str) -> subprocess.CompletedProcess:
    """Run git with a fixed identity, failing the test on a non-zero exit."""
    return subprocess.run(
        ["git", "-c", f"user.name={TEST_USER_NAME}", "-c", f"user.email={TEST_EMAIL}", *args],
        cwd=str(directory),
        capture_output=True,
        text=True,
        check=True,
    )


def write_file(directory, relative_path: str, content: str) -> Path:
    """Create or overwrite a file inside a working tree."""
    file_path = Path(directory) / relative_path
    file_path.parent.mkdir(parents=True, exist_ok=True)
    file_path.write_text(content, encoding="utf-8")
    return file_path


def head_commit(directory, ref: str = "HEAD") -> str:
    return git(directory, "rev-parse", ref).stdout.strip()


class GitRepositoryTestCase(unittest.TestCase):
    """Base test case with a local repository and an empty bare upstream."""

    def setUp(self):
        """Set up test environment before each test."""
        self.temp_dir = Path(tempfile.mkdtemp())
        self.dir = str(self.temp_dir / "wiki")
        self.upstream_dir = str(self.temp_dir / "upstream.git")

        init_git_with_branch(self.dir, TEST_BRANCH, username=TEST_USER_NAME, email=TEST_EMAIL)
        init_git_with_branch(self.upstream_dir, TEST_BRANCH, bare=True)

        self.remote_url = self.upstream_dir
        self.user_info = GitUserInfo(
            git_user_name=TEST_USER_NAME,
            email=TEST_EMAIL,
            branch=TEST_BRANCH,
            access_token=TEST_ACCESS_TOKEN,
        )

    def tearDown(self):
        """Clean up test environment after each test."""
        if self.temp_dir.exists():
            shutil.rmtree(self.temp_dir, ignore_errors=True)

    def push_local_to_upstream(self) -> None:
        """Publish the local history so that local and upstream start out equal."""
        git(self.dir, "remote", "add", "origin", self.remote_url)
        git(self.dir, "push", "origin", f"{TEST_BRANCH}:{TEST_BRANCH}")
        git(self.dir, "fetch", "origin")

    def clone_upstream(self, name: str = "other") -> str:
        """Second working copy of the upstream, standing in for another device."""
        other_dir = str(self.temp_dir / name)
        git(self.temp_dir, "clone", "--branch", TEST_BRANCH, self.upstream_dir, other_dir)
        return other_dir

    def commit_in(self, directory: str, relative_path: str, content: str, message: str = "edit") -> None:
        write_file(directory, relative_path, content)
        git(directory, "add", "--all")
        git(directory, "commit", "-m", message)

    def push_from(self, directory: str) -> None:
        git(directory, "push", "origin", f"{TEST_BRANCH}:{TEST_BRANCH}")

    def assert_file_content(self, relative_path: str, expected: str, directory: str = None) -> None:
        file_path = Path(directory or self.dir) / relative_path
        self.assertTrue(file_path.exists(), f"{relative_path} does not exist")
        self.assertEqual(file_path.read_text(encoding="utf-8"), expected)

    def list_tracked_files(self, directory: str = None) -> list:
        output = git(directory or self.dir, "ls-files", "-z").stdout
        return [path for path in output.split("\0") if path]

    def is_bare_upstream_empty(self) -> bool:
        return not os.listdir(os.path.join(self.upstream_dir, "refs", "heads"))
