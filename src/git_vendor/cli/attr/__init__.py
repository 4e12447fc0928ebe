"""git-vendor attr commands.

- set: Declare attributes for a pattern, skipping ones already in effect
"""
from __future__ import annotations

SUBCOMMANDS = {
    "set": "git_vendor.cli.attr.set",
}

__all__ = ["SUBCOMMANDS"]
