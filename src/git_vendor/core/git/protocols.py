"""Collaborator protocols the vendor core is written against.

The core never shells out itself; it asks an :class:`ObjectStore`,
a :class:`Transport` and a :class:`WorkingArea`. The git-backed
implementations live next to this module.
"""
from __future__ import annotations

from pathlib import Path
from typing import Protocol, Sequence, runtime_checkable

from git_vendor.core.models import ConflictEntry, MergeOutcome, TreeEntry


@runtime_checkable
class ObjectStore(Protocol):
    """Content-addressable object storage plus refs."""

    def resolve_ref(self, ref: str) -> str | None:
        """Return the commit a ref points to, or None if the ref is missing."""
        ...

    def head_commit(self) -> str | None:
        """Return the commit HEAD points to, or None on an unborn branch."""
        ...

    def commit_tree(self, commit: str) -> str:
        ...

    def read_tree(self, tree: str) -> list[TreeEntry]:
        ...

    def write_tree(self, entries: Sequence[TreeEntry]) -> str:
        ...

    def read_blob(self, blob: str) -> bytes:
        ...

    def write_blob(self, data: bytes) -> str:
        ...

    def create_commit(self, tree: str, parents: Sequence[str], message: str) -> str:
        ...

    def update_ref(self, ref: str, new: str, old: str | None = None, *, reason: str = "") -> None:
        ...

    def merge_base(self, a: str, b: str) -> str | None:
        ...

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        ...

    def merge_trees(self, base: str, ours: str, theirs: str) -> MergeOutcome:
        """Three-way merge of trees; conflicts are reported, not raised."""
        ...


@runtime_checkable
class Transport(Protocol):
    def fetch(self, url: str, refspecs: Sequence[str]) -> None:
        """Fetch ``refspecs`` from ``url`` into local refs."""
        ...


@runtime_checkable
class WorkingArea(Protocol):
    """Index, working tree and merge-in-progress state."""

    def is_bare(self) -> bool:
        ...

    @property
    def workdir(self) -> Path:
        ...

    @property
    def git_dir(self) -> Path:
        ...

    def apply_tree(self, current: str, target: str) -> None:
        """Move index and working tree from ``current`` to ``target``.

        Must refuse, without touching anything, when local changes would be lost.
        """
        ...

    def checkout_tree(self, tree: str) -> None:
        """Force index and working tree to ``tree``, conflict markers included."""
        ...

    def register_conflicts(self, conflicts: Sequence[ConflictEntry]) -> None:
        """Record base/ours/theirs stages in the index for each conflict."""
        ...

    def write_merge_state(self, message: str, merge_head: str | None = None) -> None:
        ...

    def clear_merge_state(self) -> None:
        ...


__all__ = ["ObjectStore", "Transport", "WorkingArea"]
