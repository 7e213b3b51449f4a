#!/usr/bin/env python3
"""
Integration tests for commit_and_sync.

Each scenario runs the real git executable against a bare upstream in a
temporary directory and checks that the run ends with local equal to remote,
or with the documented typed error.
"""

import unittest
from pathlib import Path
from unittest.mock import MagicMock, patch

import sys
sys.path.insert(0, str(Path(__file__).parent))

from git_fixtures import GitRepositoryTestCase, TEST_ACCESS_TOKEN, TEST_BRANCH, git, head_commit, write_file
from wikisync.git_sync.commit_and_sync import commit_and_sync
from wikisync.git_sync.errors import (
    CantSyncGitNotInitializedError,
    CantSyncInSpecialGitStateAutoFixFailed,
    GitPullPushError,
    SyncParameterMissingError,
)
from wikisync.git_sync.inspect import get_remote_url, get_sync_state, have_local_changes
from wikisync.git_sync.interface import GitStep, GitUserInfo, SyncState
from wikisync.git_sync.sync import PushProbeOutcome, PushProbeResult


class TestCommitAndSync(GitRepositoryTestCase):
    """Synchronization scenarios against a local bare upstream."""

    def sync(self, **kwargs):
        kwargs.setdefault("remote_url", self.remote_url)
        kwargs.setdefault("user_info", self.user_info)
        commit_and_sync(self.dir, **kwargs)

    def assert_converged(self):
        self.assertEqual(get_sync_state(self.dir, TEST_BRANCH, "origin"), SyncState.EQUAL)
        self.assertEqual(head_commit(self.dir), head_commit(self.upstream_dir, TEST_BRANCH))

    def test_first_sync_to_empty_bare_upstream(self):
        write_file(self.dir, "index.html", "<html></html>")

        self.sync()

        self.assert_converged()
        self.assertFalse(have_local_changes(self.dir))

    def test_local_ahead_is_pushed(self):
        self.sync()
        write_file(self.dir, "new.tid", "new")

        self.sync(commit_message="Add new tiddler")

        self.assert_converged()
        self.assertEqual(git(self.upstream_dir, "log", "-1", "--format=%s", TEST_BRANCH).stdout.strip(), "Add new tiddler")

    def test_equal_state_does_not_push(self):
        self.sync()
        before = head_commit(self.upstream_dir, TEST_BRANCH)

        with patch("wikisync.git_sync.commit_and_sync.push_upstream") as mock_push:
            self.sync()

        mock_push.assert_not_called()
        self.assertEqual(head_commit(self.upstream_dir, TEST_BRANCH), before)

    def test_local_behind_is_fast_forwarded(self):
        self.sync()
        other = self.clone_upstream()
        self.commit_in(other, "remote.tid", "from another device")
        self.push_from(other)

        self.sync()

        self.assert_converged()
        self.assert_file_content("remote.tid", "from another device")

    def test_diverged_without_conflict_is_rebased(self):
        self.sync()
        other = self.clone_upstream()
        self.commit_in(other, "remote.tid", "remote")
        self.push_from(other)
        write_file(self.dir, "local.tid", "local")

        self.sync()

        self.assert_converged()
        self.assert_file_content("remote.tid", "remote")
        self.assert_file_content("local.tid", "local")
        # rebased, not merged
        self.assertEqual(git(self.dir, "rev-list", "--merges", "--count", "HEAD").stdout.strip(), "0")

    def test_diverged_with_conflict_converges_or_asks_for_manual_fix(self):
        self.commit_in(self.dir, "shared.tid", "base\n")
        self.sync()
        other = self.clone_upstream()
        self.commit_in(other, "shared.tid", "remote edit\n")
        self.push_from(other)
        write_file(self.dir, "shared.tid", "local edit\n")

        try:
            self.sync()
        except CantSyncInSpecialGitStateAutoFixFailed:
            return
        self.assert_converged()
        content = (Path(self.dir) / "shared.tid").read_text()
        self.assertIn("local edit", content)
        self.assertIn("remote edit", content)

    def test_files_to_ignore_are_not_synced(self):
        write_file(self.dir, "keep.tid", "keep")
        write_file(self.dir, "$__StoryList.tid", "volatile")

        self.sync(files_to_ignore=["$__StoryList.tid"])

        self.assert_converged()
        pushed = git(self.upstream_dir, "ls-tree", "-r", "--name-only", TEST_BRANCH).stdout.split("\n")
        self.assertIn("keep.tid", pushed)
        self.assertNotIn("$__StoryList.tid", pushed)

    def test_credentials_are_removed_after_sync(self):
        https_url = "https://github.com/owner/wiki.git"
        git(self.dir, "remote", "add", "origin", https_url)

        with patch("wikisync.git_sync.commit_and_sync.fetch_remote") as mock_fetch, \
                patch("wikisync.git_sync.commit_and_sync.probe_push") as mock_probe:
            mock_fetch.return_value = MagicMock(ok=False, stderr="")
            mock_probe.return_value = PushProbeResult(PushProbeOutcome.BARE_OR_MISSING, "fatal: Authentication failed")
            with self.assertRaises(GitPullPushError) as context:
                self.sync(remote_url=https_url)

        mock_probe.assert_called_once()

        self.assertEqual(get_remote_url(self.dir, "origin"), https_url)
        self.assertNotIn(TEST_ACCESS_TOKEN, str(context.exception))

    def test_progress_is_reported_to_logger(self):
        logger = MagicMock()
        write_file(self.dir, "note.tid", "note")

        self.sync(logger=logger)

        steps = [call.args[0] for call in logger.info.call_args_list]
        self.assertIn(GitStep.HaveThingsToCommit, steps)
        self.assertIn(GitStep.NoUpstreamCantPush, steps)
        self.assertEqual(steps[-1], GitStep.SynchronizationFinish)


class TestCommitAndSyncPreconditions(GitRepositoryTestCase):
    """Failures raised before any network operation."""

    def test_missing_access_token_raises_before_network(self):
        write_file(self.dir, "note.tid", "note")
        user_info = GitUserInfo(git_user_name="alice", email="alice@example.com", branch=TEST_BRANCH)

        with patch("wikisync.git_sync.commit_and_sync.fetch_remote") as mock_fetch, \
                patch("wikisync.git_sync.commit_and_sync.push_upstream") as mock_push, \
                patch("wikisync.git_sync.commit_and_sync.probe_push") as mock_probe, \
                patch("wikisync.git_sync.commit_and_sync.credential_bracket") as mock_bracket:
            with self.assertRaises(SyncParameterMissingError) as context:
                commit_and_sync(self.dir, remote_url=self.remote_url, user_info=user_info)

        self.assertEqual(context.exception.parameter_name, "accessToken")
        mock_fetch.assert_not_called()
        mock_push.assert_not_called()
        mock_probe.assert_not_called()
        mock_bracket.assert_not_called()
        # the commit still happened
        self.assertFalse(have_local_changes(self.dir))

    def test_missing_remote_url_raises(self):
        with self.assertRaises(SyncParameterMissingError) as context:
            commit_and_sync(self.dir, remote_url="", user_info=self.user_info)
        self.assertEqual(context.exception.parameter_name, "remoteUrl")

    def test_commit_only_needs_no_credentials(self):
        write_file(self.dir, "note.tid", "note")

        with patch("wikisync.git_sync.commit_and_sync.fetch_remote") as mock_fetch:
            commit_and_sync(self.dir, commit_only=True)

        mock_fetch.assert_not_called()
        self.assertFalse(have_local_changes(self.dir))
        author = git(self.dir, "log", "-1", "--format=%an <%ae>").stdout.strip()
        self.assertEqual(author, "gitsync <gitsync@gmail.com>")

    def test_folder_without_git_raises(self):
        plain_folder = self.temp_dir / "plain"
        plain_folder.mkdir()

        with self.assertRaises(CantSyncGitNotInitializedError):
            commit_and_sync(str(plain_folder), remote_url=self.remote_url, user_info=self.user_info)

    def test_missing_upstream_raises_git_pull_push_error(self):
        missing = str(self.temp_dir / "missing.git")

        with self.assertRaises(GitPullPushError) as context:
            commit_and_sync(self.dir, remote_url=missing, user_info=self.user_info)

        self.assertNotIn(TEST_ACCESS_TOKEN, str(context.exception))
        self.assertIn("does not appear to be a git repository", context.exception.stderr)
        self.assertEqual(get_remote_url(self.dir, "origin"), missing)

    def test_bisect_in_progress_is_refused_before_commit_and_network(self):
        self.commit_in(self.dir, "a.tid", "a")
        self.commit_in(self.dir, "b.tid", "b")
        git(self.dir, "bisect", "start", "HEAD", "HEAD~2")
        bisect_head = head_commit(self.dir)
        write_file(self.dir, "a.tid", "edited during bisect")

        with patch("wikisync.git_sync.commit_and_sync.credential_bracket") as mock_bracket:
            with self.assertRaises(CantSyncInSpecialGitStateAutoFixFailed) as context:
                commit_and_sync(self.dir, remote_url=self.remote_url, user_info=self.user_info)

        self.assertTrue(context.exception.repository_state.startswith("BISECTING"))
        mock_bracket.assert_not_called()
        self.assertEqual(head_commit(self.dir), bisect_head)
        self.assertTrue(self.is_bare_upstream_empty())


if __name__ == "__main__":
    unittest.main(verbosity=2)
