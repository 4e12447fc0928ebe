"""git-vendor tree commands.

- filter: Print the id of a tree pruned to matching paths
"""
from __future__ import annotations

SUBCOMMANDS = {
    "filter": "git_vendor.cli.tree.filter",
}

__all__ = ["SUBCOMMANDS"]
