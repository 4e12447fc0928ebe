"""Reconcile fetched vendor content with the local tree.

Per dependency the engine moves through ``fetched -> filtered -> merged``:

1. the vendor ref is resolved and its tree filtered down to the
   dependency's pattern;
2. the filtered tree is laid over the head tree's paths outside the pattern,
   so the merge only ever touches the dependency's own paths;
3. a three-way merge runs with the head tree as *ours*. The *base* is the
   head tree too, unless HEAD already contains an earlier vendor commit, in
   which case that commit's filtered content is the in-scope base;
4. a clean result is applied (and committed in COMMIT mode); a conflicted
   result is checked out with markers, the merge state recorded and a
   :class:`ConflictError` raised.
"""
from __future__ import annotations

import logging
from typing import Mapping, Optional, Sequence

from git_vendor.core.config import VendorSettings
from git_vendor.core.exceptions import ConflictError, InvalidInputError, NotFoundError
from git_vendor.core.git.protocols import ObjectStore, WorkingArea
from git_vendor.core.models import ConflictEntry, MergeMode, MergeResult, TreeEntry
from git_vendor.core.registry import VendorDependency, vendor_ref_name
from git_vendor.core.tree_filter import build_tree, compile_patterns, filter_tree, flatten_tree

logger = logging.getLogger(__name__)


def overlay_paths(
    outside: Mapping[str, TreeEntry],
    inside: Mapping[str, TreeEntry],
) -> dict[str, TreeEntry]:
    """Combine out-of-scope paths with in-scope ones; in-scope paths win clashes.

    A clash is an exact path match or a file on one side where the other side
    has a directory.
    """
    inside_dirs: set[str] = set()
    for path in inside:
        parts = path.split("/")
        for i in range(1, len(parts)):
            inside_dirs.add("/".join(parts[:i]))

    combined: dict[str, TreeEntry] = {}
    for path, entry in outside.items():
        if path in inside or path in inside_dirs:
            continue
        parts = path.split("/")
        if any("/".join(parts[:i]) in inside for i in range(1, len(parts))):
            continue
        combined[path] = entry
    combined.update(inside)
    return combined


def format_conflict_message(message: str, conflicts: Sequence[ConflictEntry]) -> str:
    lines = [message.rstrip("\n"), "", "# Conflicts:"]
    lines.extend(f"#\t{c.path}" for c in conflicts)
    return "\n".join(lines) + "\n"


class MergeEngine:
    """Merges fetched dependencies into HEAD and the working area."""

    def __init__(self, store: ObjectStore, workarea: WorkingArea, settings: VendorSettings) -> None:
        self.store = store
        self.workarea = workarea
        self.settings = settings

    def merge_all(
        self,
        deps: Sequence[VendorDependency],
        *,
        mode: MergeMode = MergeMode.COMMIT,
        message: Optional[str] = None,
    ) -> list[MergeResult]:
        """Merge ``deps`` in order, stopping at the first failure or conflict.

        Raises:
            InvalidInputError: If more than one dependency is given with a
                deferred mode (checked before anything is touched)
        """
        if len(deps) > 1 and mode.deferred:
            raise InvalidInputError(
                f"--{mode.value} can only be used when merging a single dependency",
                context={"mode": mode.value, "names": [d.name for d in deps]},
            )
        return [self.merge(dep, mode=mode, message=message) for dep in deps]

    def merge(
        self,
        dep: VendorDependency,
        *,
        mode: MergeMode = MergeMode.COMMIT,
        message: Optional[str] = None,
    ) -> MergeResult:
        """Merge one dependency.

        Args:
            dep: Dependency to merge
            mode: COMMIT, NO_COMMIT or SQUASH
            message: Commit message; defaults to the configured template

        Returns:
            MergeResult for a clean (or already up-to-date) merge

        Raises:
            NotFoundError: If the vendor ref or HEAD is missing
            ConflictError: If the merge stopped with conflicts (state recorded)
            IOFailureError: If local changes would be overwritten or git fails
        """
        ref_name = vendor_ref_name(dep, self.settings.ref_scheme, self.settings.ref_prefix)
        vendor_commit = self.store.resolve_ref(ref_name)
        if vendor_commit is None:
            raise NotFoundError(
                f"Vendor ref {ref_name} not found. Run fetch first.",
                context={"name": dep.name, "ref": ref_name},
            )

        head = self.store.head_commit()
        if head is None:
            raise NotFoundError("HEAD does not point to a commit", context={"name": dep.name})

        if self.store.is_ancestor(vendor_commit, head):
            logger.info("%s is already up to date (%s)", dep.name, vendor_commit[:12])
            return MergeResult(dependency=dep, mode=mode, vendor_commit=vendor_commit, up_to_date=True)

        logger.info("Merging %s (%s) into %s", dep.name, vendor_commit[:12], head[:12])

        head_tree = self.store.commit_tree(head)
        base, theirs = self._scoped_trees(dep, head, head_tree, vendor_commit)
        outcome = self.store.merge_trees(base, head_tree, theirs)

        resolved = message if message is not None else self.settings.format_merge_message(dep.name)

        if not outcome.clean:
            self._record_conflicts(dep, mode, vendor_commit, outcome.tree, outcome.conflicts, resolved)

        self.workarea.apply_tree(head_tree, outcome.tree)

        commit: Optional[str] = None
        if mode is MergeMode.COMMIT:
            commit = self.store.create_commit(outcome.tree, [head, vendor_commit], resolved)
            self.store.update_ref("HEAD", commit, head, reason=f"vendor merge: {dep.name}")
            self.workarea.clear_merge_state()
            logger.info("Merged %s as %s", dep.name, commit[:12])
        elif mode is MergeMode.NO_COMMIT:
            self.workarea.write_merge_state(resolved, merge_head=vendor_commit)
        else:
            self.workarea.write_merge_state(resolved)

        return MergeResult(
            dependency=dep,
            mode=mode,
            vendor_commit=vendor_commit,
            tree=outcome.tree,
            commit=commit,
        )

    def _scoped_trees(
        self,
        dep: VendorDependency,
        head: str,
        head_tree: str,
        vendor_commit: str,
    ) -> tuple[str, str]:
        """Return (base, theirs) trees scoped to the dependency's pattern."""
        matcher = compile_patterns([dep.pattern])
        outside = {
            path: entry
            for path, entry in flatten_tree(self.store, head_tree).items()
            if not matcher.match(path)
        }

        theirs = build_tree(self.store, overlay_paths(outside, self._filtered_paths(dep, vendor_commit)))

        merge_base = self.store.merge_base(head, vendor_commit)
        if merge_base is None:
            return head_tree, theirs

        logger.debug("Using %s as merge base for %s", merge_base[:12], dep.name)
        base = build_tree(self.store, overlay_paths(outside, self._filtered_paths(dep, merge_base)))
        return base, theirs

    def _filtered_paths(self, dep: VendorDependency, commit: str) -> dict[str, TreeEntry]:
        tree = filter_tree(
            self.store,
            self.store.commit_tree(commit),
            [dep.pattern],
            on_error=self.settings.filter_errors,
        )
        return flatten_tree(self.store, tree)

    def _record_conflicts(
        self,
        dep: VendorDependency,
        mode: MergeMode,
        vendor_commit: str,
        tree: str,
        conflicts: Sequence[ConflictEntry],
        message: str,
    ) -> None:
        self.workarea.checkout_tree(tree)
        self.workarea.register_conflicts(conflicts)
        merge_head = None if mode is MergeMode.SQUASH else vendor_commit
        self.workarea.write_merge_state(format_conflict_message(message, conflicts), merge_head=merge_head)

        paths = [c.path for c in conflicts]
        logger.info("Merge of %s stopped with %d conflict(s)", dep.name, len(paths))
        raise ConflictError(
            f"Conflicts detected while merging {dep.name}: {', '.join(paths)}",
            conflicts=conflicts,
            context={"name": dep.name, "paths": paths, "vendor_commit": vendor_commit},
        )


__all__ = ["MergeEngine", "overlay_paths", "format_conflict_message"]
