#!/usr/bin/env python3
"""
Unit tests for repository inspection.

Covers branch and remote discovery, local change detection, modified file
parsing (including octal-escaped CJK names), repository state tokens and
sync state classification.
"""

import os
import shutil
import tempfile
import unittest
from pathlib import Path

import sys
sys.path.insert(0, str(Path(__file__).parent))

from git_fixtures import GitRepositoryTestCase, TEST_BRANCH, git, write_file
from wikisync.git_sync.commit import init_git_with_branch
from wikisync.git_sync.errors import AssumeSyncError, CantSyncGitNotInitializedError
from wikisync.git_sync.inspect import (
    NOGIT,
    assume_sync,
    classify_sync_state,
    get_default_branch_name,
    get_git_directory,
    get_git_repository_state,
    get_modified_file_list,
    get_remote_name,
    get_remote_repo_name,
    get_remote_url,
    get_sync_state,
    has_git,
    have_local_changes,
    repository_state_flags,
)
from wikisync.git_sync.interface import SyncState


class TestNonRepositoryFolders(unittest.TestCase):
    """Inspection of folders that are not repositories."""

    def setUp(self):
        self.temp_dir = Path(tempfile.mkdtemp())

    def tearDown(self):
        shutil.rmtree(self.temp_dir, ignore_errors=True)

    def test_default_branch_of_missing_folder_is_none(self):
        self.assertIsNone(get_default_branch_name(str(self.temp_dir / "missing")))

    def test_default_branch_of_plain_folder_is_none(self):
        self.assertIsNone(get_default_branch_name(str(self.temp_dir)))

    def test_repository_state_of_plain_folder_is_nogit(self):
        self.assertEqual(get_git_repository_state(str(self.temp_dir)), NOGIT)
        self.assertEqual(get_git_repository_state(str(self.temp_dir / "missing")), NOGIT)

    def test_has_git_is_false_for_plain_folder(self):
        self.assertFalse(has_git(str(self.temp_dir)))
        self.assertFalse(has_git(str(self.temp_dir), strict=False))

    def test_get_git_directory_raises(self):
        with self.assertRaises(CantSyncGitNotInitializedError):
            get_git_directory(str(self.temp_dir))

    def test_fresh_repository_without_remote_has_no_upstream(self):
        wiki = str(self.temp_dir / "wiki")
        init_git_with_branch(wiki, "main")
        self.assertEqual(get_sync_state(wiki, "main", "origin"), SyncState.NO_UPSTREAM_OR_BARE_UPSTREAM)


class TestRepositoryInspection(GitRepositoryTestCase):
    """Inspection of a real local repository."""

    def test_default_branch_is_current_branch(self):
        self.assertEqual(get_default_branch_name(self.dir), TEST_BRANCH)
        git(self.dir, "checkout", "-q", "-b", "notes")
        self.assertEqual(get_default_branch_name(self.dir), "notes")

    def test_default_branch_on_detached_head_uses_remote_head(self):
        self.push_local_to_upstream()
        git(self.dir, "remote", "set-head", "origin", TEST_BRANCH)
        git(self.dir, "checkout", "-q", "--detach")
        self.assertEqual(get_default_branch_name(self.dir), TEST_BRANCH)

    def test_has_git_strict_ignores_parent_repository(self):
        sub_folder = os.path.join(self.dir, "tiddlers")
        os.makedirs(sub_folder)
        self.assertTrue(has_git(self.dir))
        self.assertFalse(has_git(sub_folder))
        self.assertTrue(has_git(sub_folder, strict=False))
        self.assertEqual(get_git_repository_state(sub_folder), NOGIT)

    def test_have_local_changes(self):
        self.assertFalse(have_local_changes(self.dir))
        write_file(self.dir, "new.tid", "title: new")
        self.assertTrue(have_local_changes(self.dir))

    def test_modified_file_list(self):
        self.commit_in(self.dir, "tracked.tid", "first")
        write_file(self.dir, "tracked.tid", "second")
        write_file(self.dir, "untracked.tid", "new")

        modified = {item.file_relative_path: item for item in get_modified_file_list(self.dir)}

        self.assertEqual(set(modified), {"tracked.tid", "untracked.tid"})
        self.assertEqual(modified["tracked.tid"].type, "M")
        self.assertEqual(modified["untracked.tid"].type, "??")
        self.assertEqual(modified["untracked.tid"].file_path, os.path.join(self.dir, "untracked.tid"))

    def test_modified_file_list_decodes_cjk_names(self):
        write_file(self.dir, "试试啊.json", "{}")
        write_file(self.dir, "tiddlers/新建条目.tid", "text")

        paths = sorted(item.file_relative_path for item in get_modified_file_list(self.dir))

        # untracked directories are reported as a whole
        self.assertEqual(paths, sorted(["试试啊.json", "tiddlers/"]))

    def test_modified_file_list_of_clean_repository_is_empty(self):
        self.assertEqual(get_modified_file_list(self.dir), [])

    def test_remote_url_and_name(self):
        self.assertEqual(get_remote_url(self.dir), "")
        self.assertEqual(get_remote_name(self.dir, TEST_BRANCH), "origin")

        git(self.dir, "remote", "add", "upstream", "https://github.com/owner/wiki.git")
        git(self.dir, "config", f"branch.{TEST_BRANCH}.remote", "upstream")

        self.assertEqual(get_remote_url(self.dir), "https://github.com/owner/wiki.git")
        self.assertEqual(get_remote_url(self.dir, "upstream"), "https://github.com/owner/wiki.git")
        self.assertEqual(get_remote_url(self.dir, "origin"), "")
        self.assertEqual(get_remote_name(self.dir, TEST_BRANCH), "upstream")

    def test_sync_states_against_upstream(self):
        self.push_local_to_upstream()
        self.assertEqual(get_sync_state(self.dir, TEST_BRANCH, "origin"), SyncState.EQUAL)
        assume_sync(self.dir, TEST_BRANCH, "origin")

        self.commit_in(self.dir, "local.tid", "local")
        self.assertEqual(get_sync_state(self.dir, TEST_BRANCH, "origin"), SyncState.AHEAD)
        with self.assertRaises(AssumeSyncError) as context:
            assume_sync(self.dir, TEST_BRANCH, "origin")
        self.assertEqual(context.exception.sync_state, "ahead")

        other = self.clone_upstream()
        self.commit_in(other, "remote.tid", "remote")
        self.push_from(other)
        git(self.dir, "fetch", "origin")
        self.assertEqual(get_sync_state(self.dir, TEST_BRANCH, "origin"), SyncState.DIVERGED)

        git(self.dir, "reset", "-q", "--hard", "HEAD~1")
        self.assertEqual(get_sync_state(self.dir, TEST_BRANCH, "origin"), SyncState.BEHIND)


class TestRepositoryState(GitRepositoryTestCase):
    """Repository state tokens."""

    def test_clean_repository(self):
        self.assertEqual(get_git_repository_state(self.dir), "")

    def test_untracked_files_do_not_make_it_dirty(self):
        write_file(self.dir, "untracked.tid", "new")
        self.assertEqual(get_git_repository_state(self.dir), "")

    def test_modified_tracked_file_is_dirty(self):
        self.commit_in(self.dir, "tracked.tid", "first")
        write_file(self.dir, "tracked.tid", "second")
        self.assertEqual(get_git_repository_state(self.dir), "|DIRTY")

    def test_bare_repository(self):
        self.assertEqual(get_git_repository_state(self.upstream_dir), "|BARE")

    def test_marker_files(self):
        git_dir = Path(self.dir) / ".git"
        (git_dir / "MERGE_HEAD").write_text(head_of(self.dir))
        self.assertEqual(get_git_repository_state(self.dir), "MERGING")

        (git_dir / "CHERRY_PICK_HEAD").write_text(head_of(self.dir))
        flags = repository_state_flags(get_git_repository_state(self.dir))
        self.assertEqual(flags, frozenset({"MERGING", "CHERRY-PICKING"}))

    def test_rebase_merge_takes_priority(self):
        git_dir = Path(self.dir) / ".git"
        (git_dir / "rebase-merge").mkdir()
        (git_dir / "MERGE_HEAD").write_text(head_of(self.dir))
        self.assertEqual(get_git_repository_state(self.dir), "REBASE-m")

        (git_dir / "rebase-merge" / "interactive").write_text("")
        self.assertEqual(get_git_repository_state(self.dir), "REBASE-i")


def head_of(directory: str) -> str:
    return git(directory, "rev-parse", "HEAD").stdout


class TestPureHelpers(unittest.TestCase):
    """Helpers that do not touch git."""

    def test_classify_sync_state(self):
        self.assertEqual(classify_sync_state(""), SyncState.NO_UPSTREAM_OR_BARE_UPSTREAM)
        self.assertEqual(classify_sync_state("0\t0"), SyncState.EQUAL)
        self.assertEqual(classify_sync_state("0\t3"), SyncState.AHEAD)
        self.assertEqual(classify_sync_state("12\t0"), SyncState.BEHIND)
        self.assertEqual(classify_sync_state("2\t5"), SyncState.DIVERGED)

    def test_classify_unrecognized_output_falls_through_to_diverged(self):
        self.assertEqual(classify_sync_state("fatal: bad revision"), SyncState.DIVERGED)

    def test_classification_is_total(self):
        for behind in range(0, 4):
            for ahead in range(0, 4):
                state = classify_sync_state(f"{behind}\t{ahead}")
                self.assertIsInstance(state, SyncState)
                self.assertEqual(state == SyncState.EQUAL, behind == 0 and ahead == 0)

    def test_repository_state_flags(self):
        self.assertEqual(repository_state_flags(""), frozenset())
        self.assertEqual(repository_state_flags(NOGIT), frozenset({NOGIT}))
        self.assertEqual(repository_state_flags("|DIRTY"), frozenset({"|DIRTY"}))
        self.assertEqual(
            repository_state_flags("AM/REBASEMERGING|DIRTY"),
            frozenset({"AM/REBASE", "MERGING", "|DIRTY"}),
        )

    def test_get_remote_repo_name(self):
        self.assertEqual(get_remote_repo_name("https://github.com/owner/wiki"), "owner/wiki")
        self.assertIsNone(get_remote_repo_name("https://github.com/"))
        with self.assertRaises(ValueError):
            get_remote_repo_name("not a url")


if __name__ == "__main__":
    unittest.main(verbosity=2)
