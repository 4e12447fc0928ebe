"""
git-vendor attr set command.

SUMMARY: Add attributes for a pattern unless already in effect
"""
from __future__ import annotations

import argparse
from pathlib import Path

from git_vendor.cli import (
    OutputFormatter,
    add_standard_flags,
    exit_code_for,
    open_vendor,
    setup_logging,
)
from git_vendor.core.config import load_settings
from git_vendor.core.exceptions import GitVendorError
from git_vendor.core.manifest import Manifest, set_attributes

SUMMARY = "Add attributes for a pattern unless already in effect"


def register_args(parser: argparse.ArgumentParser) -> None:
    """Register command-specific arguments."""
    parser.add_argument("pattern", help="Path pattern")
    parser.add_argument(
        "attributes",
        nargs="+",
        metavar="attr",
        help="Attributes: 'attr', '-attr', '!attr' or 'attr=value'",
    )
    parser.add_argument(
        "--file",
        "-f",
        help="Manifest file to edit (default: nearest .gitattributes)",
    )
    add_standard_flags(parser)


def main(args: argparse.Namespace) -> int:
    """Set attributes."""
    formatter = OutputFormatter(json_mode=getattr(args, "json", False))

    try:
        if args.file:
            setup_logging(args, load_settings())
            manifest = Manifest(Path(args.file))
            added = set_attributes(manifest, args.pattern, args.attributes)
        else:
            vendor = open_vendor(args)
            manifest = vendor.manifest()
            added = vendor.set_attributes(args.pattern, args.attributes)
    except GitVendorError as e:
        formatter.error(e, error_code="attr_set_error")
        return exit_code_for(e)

    if added:
        message = f"Updated {manifest.path}"
    else:
        message = f"Attributes already set for {args.pattern}"
    formatter.success({"pattern": args.pattern, "file": str(manifest.path), "changed": added}, message)
    return 0
