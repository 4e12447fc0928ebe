"""
git-vendor tree filter command.

SUMMARY: Write a tree pruned to the paths matching patterns
"""
from __future__ import annotations

import argparse

from git_vendor.cli import OutputFormatter, add_standard_flags, exit_code_for, get_repo_root, setup_logging
from git_vendor.core.config import load_settings
from git_vendor.core.exceptions import GitVendorError
from git_vendor.core.git.objects import GitObjectStore
from git_vendor.core.tree_filter import FilterErrorPolicy, filter_tree

SUMMARY = "Write a tree pruned to the paths matching patterns"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument("treeish", help="Commit or tree to filter (e.g. HEAD)")
    parser.add_argument("patterns", nargs="+", metavar="pattern", help="Glob patterns (OR-ed)")
    parser.add_argument(
        "--propagate-errors",
        action="store_true",
        help="Fail instead of skipping subtrees that cannot be read",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Filter a tree."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        repo_root = get_repo_root(args)
        settings = load_settings(repo_root)
        setup_logging(args, settings)

        policy = FilterErrorPolicy.PROPAGATE if args.propagate_errors else settings.filter_errors
        store = GitObjectStore(repo_root, timeout=settings.git_timeout_seconds)
        source = store.commit_tree(args.treeish)
        tree = filter_tree(store, source, args.patterns, on_error=policy)
    except GitVendorError as e:
        formatter.error(e, error_code="tree_filter_error")
        return exit_code_for(e)

    formatter.success({"source": source, "tree": tree, "patterns": list(args.patterns)}, tree)
    return 0
