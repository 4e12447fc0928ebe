"""Prune a tree down to the paths matching a set of patterns.

Patterns are glob-style and matched against full tree-relative paths
(components joined with ``/``). They are OR-ed together into one compiled
matcher. ``*`` may cross directory separators, so ``lib/*`` keeps
everything below ``lib/``.

Filtering is bottom-up: a blob survives iff its path matches, a tree
survives iff at least one child survives, and anything else (gitlinks) is
dropped. Subtrees that come through untouched keep their original ids, so
filtering an already-filtered tree returns it unchanged.
"""
from __future__ import annotations

import enum
import fnmatch
import logging
import re
from typing import Mapping, Sequence

from git_vendor.core.exceptions import GitVendorError, InvalidInputError
from git_vendor.core.git.protocols import ObjectStore
from git_vendor.core.models import TREE_MODE, ObjectKind, TreeEntry

logger = logging.getLogger(__name__)


class FilterErrorPolicy(str, enum.Enum):
    """What to do when a subtree cannot be filtered.

    EXCLUDE drops the subtree (logged as a warning); PROPAGATE re-raises.
    """

    EXCLUDE = "exclude"
    PROPAGATE = "propagate"


def _check_brackets(pattern: str) -> None:
    i, n = 0, len(pattern)
    while i < n:
        if pattern[i] == "[":
            j = i + 1
            if j < n and pattern[j] == "!":
                j += 1
            if j < n and pattern[j] == "]":
                j += 1
            while j < n and pattern[j] != "]":
                j += 1
            if j >= n:
                raise InvalidInputError(
                    f"Invalid pattern '{pattern}': unclosed character class",
                    context={"pattern": pattern},
                )
            i = j
        i += 1


def compile_patterns(patterns: Sequence[str]) -> re.Pattern[str]:
    """Compile ``patterns`` into a single matcher with OR semantics.

    Raises:
        InvalidInputError: If no pattern is given or a pattern is malformed
    """
    if not patterns:
        raise InvalidInputError("At least one pattern is required")

    parts: list[str] = []
    for pattern in patterns:
        if not pattern:
            raise InvalidInputError("Patterns must not be empty")
        _check_brackets(pattern)
        parts.append(f"(?:{fnmatch.translate(pattern)})")
    return re.compile("|".join(parts))


def filter_tree(
    store: ObjectStore,
    tree: str,
    patterns: Sequence[str],
    *,
    on_error: FilterErrorPolicy = FilterErrorPolicy.EXCLUDE,
) -> str:
    """Return the id of ``tree`` pruned to the paths matching ``patterns``.

    The result is always a tree id; it is the empty tree when nothing
    matches (or ``tree`` was empty to begin with).

    Args:
        store: Object store holding ``tree``
        tree: Tree id to filter
        patterns: Glob patterns matched against full paths
        on_error: Policy for subtrees that fail to filter

    Raises:
        InvalidInputError: If ``patterns`` is empty or malformed
    """
    matcher = compile_patterns(patterns)
    filtered = _filter_subtree(store, tree, "", matcher, on_error)
    if filtered is None:
        return store.write_tree([])
    return filtered


def _filter_subtree(
    store: ObjectStore,
    tree: str,
    prefix: str,
    matcher: re.Pattern[str],
    on_error: FilterErrorPolicy,
) -> str | None:
    original = store.read_tree(tree)
    kept: list[TreeEntry] = []

    for entry in original:
        path = f"{prefix}/{entry.name}" if prefix else entry.name

        if entry.kind is ObjectKind.BLOB:
            if matcher.match(path):
                kept.append(entry)
        elif entry.kind is ObjectKind.TREE:
            try:
                subtree = _filter_subtree(store, entry.oid, path, matcher, on_error)
            except GitVendorError as e:
                if on_error is FilterErrorPolicy.PROPAGATE:
                    raise
                logger.warning("Excluding subtree '%s' from filtered tree: %s", path, e)
                continue
            if subtree is None:
                continue
            if subtree == entry.oid:
                kept.append(entry)
            else:
                kept.append(TreeEntry(entry.name, subtree, entry.mode, entry.kind))

    if not kept:
        return None
    if kept == original:
        return tree
    return store.write_tree(kept)


def flatten_tree(store: ObjectStore, tree: str, prefix: str = "") -> dict[str, TreeEntry]:
    """Map every non-tree entry below ``tree`` by its full path."""
    paths: dict[str, TreeEntry] = {}
    for entry in store.read_tree(tree):
        path = f"{prefix}/{entry.name}" if prefix else entry.name
        if entry.kind is ObjectKind.TREE:
            paths.update(flatten_tree(store, entry.oid, path))
        else:
            paths[path] = entry
    return paths


def build_tree(store: ObjectStore, paths: Mapping[str, TreeEntry]) -> str:
    """Write nested trees for a ``{path: entry}`` mapping and return the root id.

    Raises:
        InvalidInputError: If a path runs through another path's file
    """
    root: dict[str, object] = {}
    for path, entry in paths.items():
        *dirs, leaf = path.split("/")
        node = root
        for name in dirs:
            child = node.setdefault(name, {})
            if not isinstance(child, dict):
                raise InvalidInputError(
                    f"Path '{path}' conflicts with file '{name}'",
                    context={"path": path},
                )
            node = child
        if leaf in node:
            raise InvalidInputError(f"Path '{path}' conflicts with a directory", context={"path": path})
        node[leaf] = entry.renamed(leaf)
    return _write_node(store, root)


def _write_node(store: ObjectStore, node: dict[str, object]) -> str:
    entries: list[TreeEntry] = []
    for name, child in node.items():
        if isinstance(child, dict):
            entries.append(TreeEntry(name, _write_node(store, child), TREE_MODE, ObjectKind.TREE))
        else:
            assert isinstance(child, TreeEntry)
            entries.append(child)
    return store.write_tree(entries)


__all__ = [
    "FilterErrorPolicy",
    "compile_patterns",
    "filter_tree",
    "flatten_tree",
    "build_tree",
]
