"""Git-backed object store.

Reads and writes objects and refs with git plumbing commands. The three-way
tree merge is done here per path; file contents are merged with
``git merge-file``, which writes standard conflict markers.
"""
from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Sequence

from git_vendor.core.exceptions import IOFailureError
from git_vendor.core.git.runner import DEFAULT_GIT_TIMEOUT_SECONDS, run_git
from git_vendor.core.models import ConflictEntry, MergeOutcome, ObjectKind, TreeEntry
from git_vendor.core.tree_filter import build_tree, flatten_tree

logger = logging.getLogger(__name__)

SYMLINK_MODE = "120000"

# Labels written into conflict markers.
OURS_LABEL = "ours"
BASE_LABEL = "base"
THEIRS_LABEL = "vendor"


def _same(a: TreeEntry | None, b: TreeEntry | None) -> bool:
    if a is None or b is None:
        return a is b
    return a.oid == b.oid and a.mode == b.mode


def _mergeable(entry: TreeEntry | None) -> bool:
    return entry is not None and entry.kind is ObjectKind.BLOB and entry.mode != SYMLINK_MODE


class GitObjectStore:
    """Object store over a git repository."""

    def __init__(self, repo_root: Path, *, timeout: float = DEFAULT_GIT_TIMEOUT_SECONDS) -> None:
        self.repo_root = Path(repo_root)
        self.timeout = timeout

    def _git(self, args: Sequence[str], **kwargs):
        return run_git(args, cwd=self.repo_root, timeout=self.timeout, **kwargs)

    # -- refs and commits -------------------------------------------------

    def resolve_ref(self, ref: str) -> str | None:
        result = self._git(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"], check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip() or None

    def head_commit(self) -> str | None:
        return self.resolve_ref("HEAD")

    def commit_tree(self, commit: str) -> str:
        return self._git(["rev-parse", "--verify", f"{commit}^{{tree}}"]).stdout.strip()

    def create_commit(self, tree: str, parents: Sequence[str], message: str) -> str:
        args = ["commit-tree", tree]
        for parent in parents:
            args += ["-p", parent]
        args += ["-F", "-"]
        return self._git(args, input=message).stdout.strip()

    def update_ref(self, ref: str, new: str, old: str | None = None, *, reason: str = "") -> None:
        args = ["update-ref"]
        if reason:
            args += ["-m", reason]
        args += [ref, new]
        if old is not None:
            args.append(old)
        self._git(args)

    def merge_base(self, a: str, b: str) -> str | None:
        result = self._git(["merge-base", a, b], check=False)
        if result.returncode == 0:
            return result.stdout.strip()
        if result.returncode == 1:
            return None
        raise IOFailureError(
            f"git merge-base failed for {a} {b}: {result.stderr.strip()}",
            context={"a": a, "b": b},
        )

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        result = self._git(["merge-base", "--is-ancestor", ancestor, descendant], check=False)
        if result.returncode in (0, 1):
            return result.returncode == 0
        raise IOFailureError(
            f"git merge-base --is-ancestor failed: {result.stderr.strip()}",
            context={"ancestor": ancestor, "descendant": descendant},
        )

    # -- trees and blobs --------------------------------------------------

    def read_tree(self, tree: str) -> list[TreeEntry]:
        # Names are raw bytes in git; undecodable ones survive as surrogates.
        out = os.fsdecode(self._git(["ls-tree", "-z", tree], text=False).stdout)
        entries: list[TreeEntry] = []
        for record in out.split("\0"):
            if not record:
                continue
            meta, name = record.split("\t", 1)
            mode, kind, oid = meta.split(" ")
            entries.append(TreeEntry(name=name, oid=oid, mode=mode, kind=ObjectKind(kind)))
        return entries

    def write_tree(self, entries: Sequence[TreeEntry]) -> str:
        payload = "".join(f"{e.mode} {e.kind.value} {e.oid}\t{e.name}\0" for e in entries)
        out = self._git(["mktree", "-z"], input=os.fsencode(payload), text=False).stdout
        return out.decode("ascii").strip()

    def read_blob(self, blob: str) -> bytes:
        return self._git(["cat-file", "blob", blob], text=False).stdout

    def write_blob(self, data: bytes) -> str:
        out = self._git(["hash-object", "-w", "--stdin"], input=data, text=False).stdout
        return out.decode("ascii").strip()

    # -- merging ----------------------------------------------------------

    def merge_trees(self, base: str, ours: str, theirs: str) -> MergeOutcome:
        """Three-way merge of ``ours`` and ``theirs`` against ``base``.

        Paths changed on one side only take that side. Paths changed on both
        sides are content-merged; what cannot be reconciled is reported as a
        conflict and the merged tree carries the marker-annotated blob (or, for
        modify/delete, the surviving side).
        """
        if ours == theirs or base == theirs:
            return MergeOutcome(tree=ours)
        if base == ours:
            return MergeOutcome(tree=theirs)

        base_paths = flatten_tree(self, base)
        our_paths = flatten_tree(self, ours)
        their_paths = flatten_tree(self, theirs)

        merged: dict[str, TreeEntry] = {}
        conflicts: list[ConflictEntry] = []

        for path in sorted(set(base_paths) | set(our_paths) | set(their_paths)):
            b = base_paths.get(path)
            o = our_paths.get(path)
            t = their_paths.get(path)

            if _same(o, t):
                result = o
            elif _same(b, o):
                result = t
            elif _same(b, t):
                result = o
            else:
                result, conflict = self._merge_path(path, b, o, t)
                if conflict is not None:
                    conflicts.append(conflict)

            if result is not None:
                merged[path] = result

        directories = set()
        for path in merged:
            parts = path.split("/")
            for i in range(1, len(parts)):
                directories.add("/".join(parts[:i]))
        for path in sorted(p for p in merged if p in directories):
            conflicts.append(
                ConflictEntry(
                    path,
                    base_paths.get(path),
                    our_paths.get(path),
                    their_paths.get(path),
                    reason="file/directory",
                )
            )
            del merged[path]

        tree = build_tree(self, merged)
        if conflicts:
            logger.info("Merge of %s into %s left %d conflict(s)", theirs[:12], ours[:12], len(conflicts))
        return MergeOutcome(tree=tree, conflicts=tuple(conflicts))

    def _merge_path(
        self,
        path: str,
        base: TreeEntry | None,
        ours: TreeEntry | None,
        theirs: TreeEntry | None,
    ) -> tuple[TreeEntry | None, ConflictEntry | None]:
        if ours is None or theirs is None:
            survivor = ours if ours is not None else theirs
            return survivor, ConflictEntry(path, base, ours, theirs, reason="modify/delete")

        if not (_mergeable(ours) and _mergeable(theirs)):
            return ours, ConflictEntry(path, base, ours, theirs, reason="type")

        if ours.mode == theirs.mode or (base is not None and base.mode == theirs.mode):
            mode = ours.mode
        else:
            mode = theirs.mode

        base_data = self.read_blob(base.oid) if _mergeable(base) else b""
        returncode, data = self._merge_file(base_data, self.read_blob(ours.oid), self.read_blob(theirs.oid))

        if returncode < 0:
            return ours, ConflictEntry(path, base, ours, theirs, reason="binary")

        entry = TreeEntry(path.rsplit("/", 1)[-1], self.write_blob(data), mode, ObjectKind.BLOB)
        if returncode == 0:
            return entry, None
        reason = "add/add" if base is None else "content"
        return entry, ConflictEntry(path, base, ours, theirs, reason=reason)

    def _merge_file(self, base: bytes, ours: bytes, theirs: bytes) -> tuple[int, bytes]:
        """Run ``git merge-file``; returns (conflict count or -1 on error, merged bytes)."""
        with tempfile.TemporaryDirectory(prefix="git-vendor-merge-") as tmp:
            tmp_path = Path(tmp)
            files = []
            for label, data in (("ours", ours), ("base", base), ("theirs", theirs)):
                file_path = tmp_path / label
                file_path.write_bytes(data)
                files.append(str(file_path))

            result = self._git(
                [
                    "merge-file",
                    "-p",
                    "-L", OURS_LABEL,
                    "-L", BASE_LABEL,
                    "-L", THEIRS_LABEL,
                    *files,
                ],
                text=False,
                check=False,
            )

        # merge-file exits with the number of conflicts (capped at 127), or a
        # negative value on error (e.g. binary input).
        if result.returncode > 127:
            return -1, b""
        return result.returncode, result.stdout


__all__ = ["GitObjectStore"]
