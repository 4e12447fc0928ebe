"""Manifest file access.

The manifest is a ``.gitattributes``-style text file. It is always read in
full and rewritten in full; comments and blank lines survive a rewrite
verbatim.
"""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from git_vendor.core.attributes import (
    filter_new_attributes,
    format_attribute_line,
    validate_attributes,
)
from git_vendor.core.exceptions import IOFailureError

logger = logging.getLogger(__name__)

DEFAULT_MANIFEST_NAME = ".gitattributes"


def find_manifest(
    start_dir: Path,
    root: Path,
    filename: str = DEFAULT_MANIFEST_NAME,
) -> Path:
    """Find the manifest governing ``start_dir``.

    Walks from ``start_dir`` up to ``root`` (inclusive) and returns the first
    existing ``filename``. Never searches above ``root``. When no manifest
    exists, returns ``start_dir / filename`` (created on first write).

    Args:
        start_dir: Directory the search starts from
        root: Repository root bounding the search
        filename: Manifest file name

    Returns:
        Path to the governing manifest
    """
    start = Path(start_dir).resolve()
    boundary = Path(root).resolve()

    current = start
    while current == boundary or current.is_relative_to(boundary):
        candidate = current / filename
        if candidate.exists():
            return candidate
        if current == boundary or current.parent == current:
            break
        current = current.parent

    return start / filename


class Manifest:
    """Whole-file reader/writer for a manifest."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.exists()

    def read_lines(self) -> list[str]:
        """Return the manifest's lines without line terminators.

        A missing manifest reads as empty.

        Raises:
            IOFailureError: If the file exists but cannot be read
        """
        if not self.path.exists():
            return []
        try:
            content = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise IOFailureError(
                f"Failed to read {self.path}: {e}",
                context={"path": str(self.path)},
            ) from e
        return content.splitlines()

    def write_lines(self, lines: Sequence[str]) -> None:
        """Rewrite the manifest with ``lines``, one per line.

        Raises:
            IOFailureError: If the file cannot be written
        """
        content = "".join(f"{line}\n" for line in lines)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise IOFailureError(
                f"Failed to write {self.path}: {e}",
                context={"path": str(self.path)},
            ) from e
        logger.debug("Rewrote %s (%d lines)", self.path, len(lines))


def set_attributes(manifest: Manifest, pattern: str, tokens: Sequence[str]) -> bool:
    """Declare ``tokens`` for ``pattern`` in ``manifest``.

    Only tokens that change the pattern's attributes are appended, as one new
    line. Repeating a call is a no-op.

    Returns:
        True if a line was appended

    Raises:
        InvalidInputError: If a token is malformed
        IOFailureError: If the manifest cannot be read or written
    """
    validate_attributes(tokens)

    lines = manifest.read_lines()
    new_tokens = filter_new_attributes(pattern, tokens, lines)

    if new_tokens:
        lines.append(format_attribute_line(pattern, new_tokens))
        logger.info("Adding '%s' to %s", lines[-1], manifest.path)

    manifest.write_lines(lines)
    return bool(new_tokens)


__all__ = [
    "DEFAULT_MANIFEST_NAME",
    "find_manifest",
    "Manifest",
    "set_attributes",
]
