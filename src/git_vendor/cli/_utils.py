"""Shared CLI utilities."""
from __future__ import annotations

import argparse
from pathlib import Path

from git_vendor.core.config import VendorSettings, load_settings
from git_vendor.core.exceptions import ConflictError, NotFoundError
from git_vendor.core.git.runner import run_git
from git_vendor.core.logging import configure_logging
from git_vendor.core.vendor import GitVendor

EXIT_ERROR = 1
EXIT_CONFLICT = 2


def get_repo_root(args: argparse.Namespace) -> Path:
    """Get repository root from ``--repo-root`` or detect it from the cwd.

    A bare repository resolves to its git directory.

    Raises:
        NotFoundError: If the cwd is not inside a git repository
    """
    if getattr(args, "repo_root", None):
        return Path(args.repo_root).resolve()

    cwd = Path.cwd()
    for query in ("--show-toplevel", "--absolute-git-dir"):
        result = run_git(["rev-parse", query], cwd=cwd, check=False)
        out = result.stdout.strip()
        if result.returncode == 0 and out:
            return Path(out).resolve()
    raise NotFoundError("Not inside a git repository", context={"cwd": str(cwd)})


def get_start_dir(repo_root: Path) -> Path:
    """Return the cwd when it lies inside ``repo_root``, else ``repo_root``."""
    cwd = Path.cwd().resolve()
    if cwd == repo_root or cwd.is_relative_to(repo_root):
        return cwd
    return repo_root


def setup_logging(args: argparse.Namespace, settings: VendorSettings) -> None:
    level = "DEBUG" if getattr(args, "verbose", False) else settings.log_level
    configure_logging(
        level=level,
        log_file=settings.log_file,
        json_mode=bool(getattr(args, "json", False)),
    )


def open_vendor(args: argparse.Namespace) -> GitVendor:
    """Load settings, configure logging and open the repository for ``args``."""
    repo_root = get_repo_root(args)
    settings = load_settings(repo_root)
    setup_logging(args, settings)
    return GitVendor.open(repo_root, get_start_dir(repo_root), settings=settings)


def exit_code_for(error: Exception) -> int:
    if isinstance(error, ConflictError):
        return EXIT_CONFLICT
    return EXIT_ERROR


__all__ = [
    "EXIT_ERROR",
    "EXIT_CONFLICT",
    "get_repo_root",
    "get_start_dir",
    "setup_logging",
    "open_vendor",
    "exit_code_for",
]
