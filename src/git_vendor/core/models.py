"""Data models shared by the tree filter, fetch adapter and merge engine."""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from git_vendor.core.registry import VendorDependency

EMPTY_TREE_OID = "4b825dc642cb6eb9a060e54bf8d69288fbee4904"

TREE_MODE = "040000"
BLOB_MODE = "100644"


class ObjectKind(str, enum.Enum):
    BLOB = "blob"
    TREE = "tree"
    COMMIT = "commit"


@dataclass(frozen=True, slots=True)
class TreeEntry:
    """One entry of a tree object.

    Attributes:
        name: Entry name (a single path component)
        oid: Object id of the blob, tree or gitlink commit
        mode: Git file mode as an octal string, e.g. ``100644``
        kind: Object kind
    """

    name: str
    oid: str
    mode: str
    kind: ObjectKind

    def renamed(self, name: str) -> TreeEntry:
        return TreeEntry(name=name, oid=self.oid, mode=self.mode, kind=self.kind)


@dataclass(frozen=True, slots=True)
class ConflictEntry:
    """A path the three-way merge could not reconcile.

    Any side is None when the path does not exist on that side.
    """

    path: str
    base: TreeEntry | None = None
    ours: TreeEntry | None = None
    theirs: TreeEntry | None = None
    reason: str = "content"

    def to_dict(self) -> dict[str, Any]:
        def side(entry: TreeEntry | None) -> dict[str, str] | None:
            if entry is None:
                return None
            return {"oid": entry.oid, "mode": entry.mode}

        return {
            "path": self.path,
            "reason": self.reason,
            "base": side(self.base),
            "ours": side(self.ours),
            "theirs": side(self.theirs),
        }


@dataclass(frozen=True, slots=True)
class MergeOutcome:
    """Result of a three-way tree merge.

    ``tree`` is always written: when there are conflicts it holds the
    conflict-marker blobs that get checked out for the user to resolve.
    """

    tree: str
    conflicts: tuple[ConflictEntry, ...] = ()

    @property
    def clean(self) -> bool:
        return not self.conflicts


class MergeMode(str, enum.Enum):
    """What to do with a clean merge result."""

    COMMIT = "commit"
    NO_COMMIT = "no-commit"
    SQUASH = "squash"

    @property
    def deferred(self) -> bool:
        return self is not MergeMode.COMMIT


@dataclass(frozen=True, slots=True)
class DependencyStatus:
    dependency: VendorDependency
    ref_name: str
    target: str | None = None

    @property
    def fetched(self) -> bool:
        return self.target is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.dependency.to_dict(),
            "ref": self.ref_name,
            "target": self.target,
        }


@dataclass(frozen=True, slots=True)
class FetchResult:
    dependency: VendorDependency
    ref_name: str
    refspec: str
    oid: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.dependency.name,
            "url": self.dependency.url,
            "ref": self.ref_name,
            "commit": self.oid,
        }


@dataclass(frozen=True, slots=True)
class MergeResult:
    """Result of merging one dependency.

    Attributes:
        dependency: The merged dependency
        mode: Requested merge mode
        vendor_commit: Vendor commit that was merged
        tree: Resulting tree id
        commit: New merge commit (COMMIT mode only)
        up_to_date: True when the vendor commit was already merged
    """

    dependency: VendorDependency
    mode: MergeMode
    vendor_commit: str
    tree: str | None = None
    commit: str | None = None
    up_to_date: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.dependency.name,
            "mode": self.mode.value,
            "vendor_commit": self.vendor_commit,
            "tree": self.tree,
            "commit": self.commit,
            "up_to_date": self.up_to_date,
        }


__all__ = [
    "EMPTY_TREE_OID",
    "TREE_MODE",
    "BLOB_MODE",
    "ObjectKind",
    "TreeEntry",
    "ConflictEntry",
    "MergeOutcome",
    "MergeMode",
    "DependencyStatus",
    "FetchResult",
    "MergeResult",
]
