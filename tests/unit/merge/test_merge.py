"""Tests for merging fetched vendor content into HEAD."""
from __future__ import annotations

from pathlib import Path

import pytest

from helpers.env import TestGitRepo


UPSTREAM_FILES = {
    "lib/a.c": "int a;\n",
    "lib/b.c": "int b;\n",
    "src/x.c": "int x;\n",
}


def track_and_fetch(repo: TestGitRepo, upstream: TestGitRepo, pattern: str = "lib/*", name: str = "lib"):
    """Track ``upstream`` for ``pattern``, commit the manifest and fetch."""
    from git_vendor.core.vendor import GitVendor

    vendor = GitVendor.open(repo.repo_path)
    vendor.track(pattern, upstream.url, branch="main", name=name)
    repo.git("add", ".gitattributes")
    repo.git("commit", "-m", f"Track {name}")
    vendor.fetch(name=name)
    return vendor


@pytest.fixture
def populated_upstream(upstream: TestGitRepo) -> TestGitRepo:
    upstream.commit_files(UPSTREAM_FILES, message="Add sources")
    return upstream


class TestOverlayPaths:
    def test_inside_paths_win(self) -> None:
        from git_vendor.core.merge import overlay_paths
        from git_vendor.core.models import ObjectKind, TreeEntry

        outside = {
            "README.md": TreeEntry("README.md", "1" * 40, "100644", ObjectKind.BLOB),
            "lib/a.c": TreeEntry("a.c", "2" * 40, "100644", ObjectKind.BLOB),
        }
        inside = {"lib/a.c": TreeEntry("a.c", "3" * 40, "100644", ObjectKind.BLOB)}

        combined = overlay_paths(outside, inside)

        assert sorted(combined) == ["README.md", "lib/a.c"]
        assert combined["lib/a.c"].oid == "3" * 40

    def test_file_directory_clash_takes_inside(self) -> None:
        from git_vendor.core.merge import overlay_paths
        from git_vendor.core.models import ObjectKind, TreeEntry

        outside = {
            "lib": TreeEntry("lib", "1" * 40, "100644", ObjectKind.BLOB),
            "docs/guide.md": TreeEntry("guide.md", "2" * 40, "100644", ObjectKind.BLOB),
        }
        inside = {
            "lib/a.c": TreeEntry("a.c", "3" * 40, "100644", ObjectKind.BLOB),
            "docs": TreeEntry("docs", "4" * 40, "100644", ObjectKind.BLOB),
        }

        assert sorted(overlay_paths(outside, inside)) == ["docs", "lib/a.c"]


class TestFormatConflictMessage:
    def test_lists_conflicted_paths(self) -> None:
        from git_vendor.core.merge import format_conflict_message
        from git_vendor.core.models import ConflictEntry

        conflicts = [ConflictEntry("lib/a.c", None, None, None), ConflictEntry("lib/b.c", None, None, None)]

        message = format_conflict_message("Merge vendored dependency: lib\n", conflicts)

        assert message == "Merge vendored dependency: lib\n\n# Conflicts:\n#\tlib/a.c\n#\tlib/b.c\n"


class TestCleanMerge:
    def test_commit_mode_creates_two_parent_commit(
        self, git_repo: TestGitRepo, populated_upstream: TestGitRepo
    ) -> None:
        git_repo.commit_files({"docs/notes.md": "notes\n"})
        vendor = track_and_fetch(git_repo, populated_upstream)
        before = git_repo.head()

        [result] = vendor.merge(name="lib")

        assert result.commit == git_repo.head()
        assert git_repo.parents() == [before, populated_upstream.head()]
        assert git_repo.commit_message() == "Merge vendored dependency: lib"
        assert git_repo.ls_tree() == [".gitattributes", "README.md", "docs/notes.md", "lib/a.c", "lib/b.c"]
        assert git_repo.read("README.md") == "# Test Repository\n"
        assert git_repo.read("lib/b.c") == "int b;\n"
        assert git_repo.status_porcelain() == ""
        assert not git_repo.git_dir_file("MERGE_HEAD").exists()

    def test_custom_message(self, git_repo: TestGitRepo, populated_upstream: TestGitRepo) -> None:
        vendor = track_and_fetch(git_repo, populated_upstream)

        vendor.merge(name="lib", message="Import lib v1")

        assert git_repo.commit_message() == "Import lib v1"

    def test_no_commit_stages_result_and_records_merge_head(
        self, git_repo: TestGitRepo, populated_upstream: TestGitRepo
    ) -> None:
        from git_vendor.core.models import MergeMode

        vendor = track_and_fetch(git_repo, populated_upstream)
        before = git_repo.head()

        [result] = vendor.merge(name="lib", mode=MergeMode.NO_COMMIT)

        assert result.commit is None
        assert git_repo.head() == before
        assert git_repo.git_dir_file("MERGE_HEAD").read_text().strip() == populated_upstream.head()
        assert "Merge vendored dependency: lib" in git_repo.git_dir_file("MERGE_MSG").read_text()
        staged = git_repo.git("diff", "--cached", "--name-only").splitlines()
        assert staged == ["lib/a.c", "lib/b.c"]

        git_repo.git("commit", "--no-edit")
        assert git_repo.parents() == [before, populated_upstream.head()]

    def test_squash_stages_result_without_merge_head(
        self, git_repo: TestGitRepo, populated_upstream: TestGitRepo
    ) -> None:
        from git_vendor.core.models import MergeMode

        vendor = track_and_fetch(git_repo, populated_upstream)
        before = git_repo.head()

        vendor.merge(name="lib", mode=MergeMode.SQUASH)

        assert git_repo.head() == before
        assert not git_repo.git_dir_file("MERGE_HEAD").exists()
        assert git_repo.git_dir_file("MERGE_MSG").exists()
        assert git_repo.read("lib/a.c") == "int a;\n"

    def test_merging_again_is_up_to_date(self, git_repo: TestGitRepo, populated_upstream: TestGitRepo) -> None:
        vendor = track_and_fetch(git_repo, populated_upstream)
        vendor.merge(name="lib")
        merged = git_repo.head()

        [result] = vendor.merge(name="lib")

        assert result.up_to_date
        assert result.commit is None
        assert git_repo.head() == merged

    def test_update_keeps_non_conflicting_local_edit(
        self, git_repo: TestGitRepo, populated_upstream: TestGitRepo
    ) -> None:
        vendor = track_and_fetch(git_repo, populated_upstream)
        vendor.merge(name="lib")
        git_repo.commit_files({"lib/a.c": "int a;\nint patched;\n"}, message="Patch lib")
        populated_upstream.commit_files({"lib/b.c": "int b = 2;\n"}, message="Upstream fix")
        vendor.fetch(name="lib")

        vendor.merge(name="lib")

        assert git_repo.read("lib/a.c") == "int a;\nint patched;\n"
        assert git_repo.read("lib/b.c") == "int b = 2;\n"
        assert git_repo.parents()[1] == populated_upstream.head()

    def test_upstream_deletion_is_applied(self, git_repo: TestGitRepo, populated_upstream: TestGitRepo) -> None:
        vendor = track_and_fetch(git_repo, populated_upstream)
        vendor.merge(name="lib")
        populated_upstream.remove_files("lib/b.c")
        vendor.fetch(name="lib")

        vendor.merge(name="lib")

        assert not git_repo.exists("lib/b.c")
        assert "lib/b.c" not in git_repo.ls_tree()

    def test_first_merge_replaces_in_scope_content(
        self, git_repo: TestGitRepo, populated_upstream: TestGitRepo
    ) -> None:
        git_repo.commit_files({"lib/local.c": "int local;\n"})
        vendor = track_and_fetch(git_repo, populated_upstream)
        assert vendor.store.merge_base(git_repo.head(), populated_upstream.head()) is None

        vendor.merge(name="lib")

        assert "lib/local.c" not in git_repo.ls_tree()
        assert not git_repo.exists("lib/local.c")

    def test_batch_merges_in_order(
        self, git_repo: TestGitRepo, populated_upstream: TestGitRepo, tmp_path: Path
    ) -> None:
        other = TestGitRepo(tmp_path / "other")
        other.commit_files({"tools/run.sh": "echo run\n"})
        track_and_fetch(git_repo, populated_upstream)
        vendor = track_and_fetch(git_repo, other, pattern="tools/*", name="tools")

        results = vendor.merge()

        assert [r.dependency.name for r in results] == ["lib", "tools"]
        assert git_repo.parents() == [results[0].commit, other.head()]
        assert git_repo.read("tools/run.sh") == "echo run\n"
        assert git_repo.read("lib/a.c") == "int a;\n"


class TestConflicts:
    def _diverge(self, repo: TestGitRepo, upstream: TestGitRepo):
        vendor = track_and_fetch(repo, upstream)
        vendor.merge(name="lib")
        repo.commit_files({"lib/a.c": "int a = 1;\n"}, message="Local change")
        upstream.commit_files({"lib/a.c": "int a = 2;\n"}, message="Upstream change")
        vendor.fetch(name="lib")
        return vendor

    def test_conflict_leaves_markers_and_merge_state(
        self, git_repo: TestGitRepo, populated_upstream: TestGitRepo
    ) -> None:
        from git_vendor.core.exceptions import ConflictError

        vendor = self._diverge(git_repo, populated_upstream)
        before = git_repo.head()

        with pytest.raises(ConflictError) as exc_info:
            vendor.merge(name="lib")

        assert [c.path for c in exc_info.value.conflicts] == ["lib/a.c"]
        assert exc_info.value.context["paths"] == ["lib/a.c"]
        assert git_repo.head() == before

        content = git_repo.read("lib/a.c")
        assert "<<<<<<< ours" in content
        assert "int a = 1;" in content
        assert "int a = 2;" in content
        assert ">>>>>>> vendor" in content
        assert git_repo.unmerged_paths() == ["lib/a.c"]

        assert git_repo.git_dir_file("MERGE_HEAD").read_text().strip() == populated_upstream.head()
        message = git_repo.git_dir_file("MERGE_MSG").read_text()
        assert "# Conflicts:" in message
        assert "#\tlib/a.c" in message

    def test_conflict_can_be_resolved_and_committed(
        self, git_repo: TestGitRepo, populated_upstream: TestGitRepo
    ) -> None:
        from git_vendor.core.exceptions import ConflictError

        vendor = self._diverge(git_repo, populated_upstream)
        before = git_repo.head()
        with pytest.raises(ConflictError):
            vendor.merge(name="lib")

        git_repo.write("lib/a.c", "int a = 3;\n")
        git_repo.git("add", "lib/a.c")
        git_repo.git("commit", "--no-edit")

        assert git_repo.parents() == [before, populated_upstream.head()]
        assert git_repo.show("HEAD", "lib/a.c") == "int a = 3;"

    def test_squash_conflict_has_no_merge_head(
        self, git_repo: TestGitRepo, populated_upstream: TestGitRepo
    ) -> None:
        from git_vendor.core.exceptions import ConflictError
        from git_vendor.core.models import MergeMode

        vendor = self._diverge(git_repo, populated_upstream)

        with pytest.raises(ConflictError):
            vendor.merge(name="lib", mode=MergeMode.SQUASH)

        assert not git_repo.git_dir_file("MERGE_HEAD").exists()
        assert git_repo.git_dir_file("MERGE_MSG").exists()
        assert git_repo.unmerged_paths() == ["lib/a.c"]


class TestMergeErrors:
    def test_deferred_mode_with_several_dependencies(
        self, git_repo: TestGitRepo, populated_upstream: TestGitRepo
    ) -> None:
        from git_vendor.core.exceptions import InvalidInputError
        from git_vendor.core.models import MergeMode
        from git_vendor.core.vendor import GitVendor

        vendor = GitVendor.open(git_repo.repo_path)
        vendor.track("lib/*", populated_upstream.url, name="lib")
        vendor.track("src/*", populated_upstream.url, name="src")
        before = git_repo.head()

        with pytest.raises(InvalidInputError):
            vendor.merge(mode=MergeMode.NO_COMMIT)

        assert git_repo.head() == before
        assert not git_repo.git_dir_file("MERGE_HEAD").exists()
        assert not git_repo.git_dir_file("MERGE_MSG").exists()

    def test_unfetched_dependency_is_not_found(
        self, git_repo: TestGitRepo, populated_upstream: TestGitRepo
    ) -> None:
        from git_vendor.core.exceptions import NotFoundError
        from git_vendor.core.vendor import GitVendor

        vendor = GitVendor.open(git_repo.repo_path)
        vendor.track("lib/*", populated_upstream.url, name="lib")

        with pytest.raises(NotFoundError, match="Run fetch first"):
            vendor.merge(name="lib")

    def test_untracked_file_in_the_way_blocks_merge(
        self, git_repo: TestGitRepo, populated_upstream: TestGitRepo
    ) -> None:
        from git_vendor.core.exceptions import IOFailureError

        vendor = track_and_fetch(git_repo, populated_upstream)
        before = git_repo.head()
        git_repo.write("lib/a.c", "work in progress\n")

        with pytest.raises(IOFailureError):
            vendor.merge(name="lib")

        assert git_repo.head() == before
        assert git_repo.read("lib/a.c") == "work in progress\n"
        assert not git_repo.exists("lib/b.c")
