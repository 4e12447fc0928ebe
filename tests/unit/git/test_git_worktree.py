"""Tests for the git-backed working area."""
from __future__ import annotations

from pathlib import Path

import pytest

from helpers.env import TestGitRepo


@pytest.fixture
def workarea(git_repo: TestGitRepo):
    from git_vendor.core.git.worktree import GitWorkingArea

    return GitWorkingArea(git_repo.repo_path)


class TestGitWorkingArea:
    def test_is_bare(self, workarea, tmp_path: Path) -> None:
        from git_vendor.core.git.worktree import GitWorkingArea

        bare = TestGitRepo(tmp_path / "bare.git", bare=True)

        assert workarea.is_bare() is False
        assert GitWorkingArea(bare.repo_path).is_bare() is True

    def test_merge_state_files(self, workarea, git_repo: TestGitRepo) -> None:
        head = git_repo.head()

        workarea.write_merge_state("Merge it", merge_head=head)

        assert git_repo.git_dir_file("MERGE_HEAD").read_text() == f"{head}\n"
        assert git_repo.git_dir_file("MERGE_MSG").read_text() == "Merge it\n"

        workarea.write_merge_state("Squashed")

        assert not git_repo.git_dir_file("MERGE_HEAD").exists()
        assert git_repo.git_dir_file("MERGE_MSG").read_text() == "Squashed\n"

        workarea.clear_merge_state()

        assert not git_repo.git_dir_file("MERGE_MSG").exists()

    def test_apply_tree_updates_index_and_files(self, workarea, git_repo: TestGitRepo) -> None:
        old_head = git_repo.head()
        git_repo.commit_files({"a.txt": "a\n"})
        new_tree = git_repo.tree_of()
        git_repo.git("reset", "-q", "--hard", old_head)

        workarea.apply_tree(git_repo.tree_of(), new_tree)

        assert git_repo.read("a.txt") == "a\n"
        assert git_repo.git("write-tree") == new_tree

    def test_apply_tree_refuses_to_overwrite_local_changes(self, workarea, git_repo: TestGitRepo) -> None:
        from git_vendor.core.exceptions import IOFailureError

        old_tree = git_repo.tree_of()
        git_repo.commit_files({"README.md": "changed upstream\n"})
        new_tree = git_repo.tree_of()
        git_repo.git("reset", "-q", "--hard", "HEAD~1")
        git_repo.write("README.md", "local edit\n")

        with pytest.raises(IOFailureError):
            workarea.apply_tree(old_tree, new_tree)

        assert git_repo.read("README.md") == "local edit\n"

    def test_register_conflicts_creates_unmerged_entries(self, workarea, git_repo: TestGitRepo) -> None:
        from git_vendor.core.git.objects import GitObjectStore
        from git_vendor.core.models import BLOB_MODE, ConflictEntry, ObjectKind, TreeEntry

        store = GitObjectStore(git_repo.repo_path)
        ours = TreeEntry("README.md", store.write_blob(b"ours\n"), BLOB_MODE, ObjectKind.BLOB)
        theirs = TreeEntry("README.md", store.write_blob(b"theirs\n"), BLOB_MODE, ObjectKind.BLOB)

        workarea.register_conflicts([ConflictEntry("README.md", None, ours, theirs)])

        assert git_repo.unmerged_paths() == ["README.md"]
        stages = git_repo.git("ls-files", "--stage", "README.md").splitlines()
        assert [line.split()[2] for line in stages] == ["2", "3"]
