"""Index, working tree and merge-state files of a git repository."""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Sequence

from git_vendor.core.exceptions import IOFailureError
from git_vendor.core.git.runner import DEFAULT_GIT_TIMEOUT_SECONDS, run_git
from git_vendor.core.models import ConflictEntry

logger = logging.getLogger(__name__)

MERGE_HEAD = "MERGE_HEAD"
MERGE_MSG = "MERGE_MSG"
MERGE_MODE = "MERGE_MODE"


class GitWorkingArea:
    """Working area of a (non-bare) git repository."""

    def __init__(self, repo_root: Path, *, timeout: float = DEFAULT_GIT_TIMEOUT_SECONDS) -> None:
        self.repo_root = Path(repo_root)
        self.timeout = timeout
        self._git_dir: Path | None = None

    def _git(self, args: Sequence[str], **kwargs):
        return run_git(args, cwd=self.repo_root, timeout=self.timeout, **kwargs)

    def is_bare(self) -> bool:
        out = self._git(["rev-parse", "--is-bare-repository"]).stdout.strip()
        return out == "true"

    @property
    def workdir(self) -> Path:
        return self.repo_root

    @property
    def git_dir(self) -> Path:
        if self._git_dir is None:
            out = self._git(["rev-parse", "--absolute-git-dir"]).stdout.strip()
            self._git_dir = Path(out)
        return self._git_dir

    def apply_tree(self, current: str, target: str) -> None:
        """Two-tree fast-forward of index and working tree.

        ``read-tree -m -u`` refuses (and changes nothing) when a path it would
        update has local modifications.
        """
        self._git(["read-tree", "-m", "-u", current, target])

    def checkout_tree(self, tree: str) -> None:
        self._git(["read-tree", "--reset", "-u", tree])

    def register_conflicts(self, conflicts: Sequence[ConflictEntry]) -> None:
        """Replace the stage 0 entry of each conflicted path with stages 1-3."""
        if not conflicts:
            return

        records: list[str] = []
        for conflict in conflicts:
            sides = ((1, conflict.base), (2, conflict.ours), (3, conflict.theirs))
            oid_len = next((len(e.oid) for _, e in sides if e is not None), 40)
            records.append(f"0 {'0' * oid_len}\t{conflict.path}")
            for stage, entry in sides:
                if entry is not None:
                    records.append(f"{entry.mode} {entry.oid} {stage}\t{conflict.path}")

        payload = "".join(f"{r}\0" for r in records)
        self._git(["update-index", "-z", "--index-info"], input=os.fsencode(payload), text=False)
        logger.debug("Registered %d conflicted path(s) in the index", len(conflicts))

    def write_merge_state(self, message: str, merge_head: str | None = None) -> None:
        """Write ``MERGE_MSG`` and, when given, ``MERGE_HEAD``.

        Without ``merge_head`` any stale ``MERGE_HEAD`` is removed, so a
        following ``git commit`` records a single parent.
        """
        msg = message if message.endswith("\n") else f"{message}\n"
        self._write(MERGE_MSG, msg)
        if merge_head is not None:
            self._write(MERGE_HEAD, f"{merge_head}\n")
        else:
            self._remove(MERGE_HEAD)

    def clear_merge_state(self) -> None:
        for name in (MERGE_HEAD, MERGE_MSG, MERGE_MODE):
            self._remove(name)

    def _write(self, name: str, content: str) -> None:
        path = self.git_dir / name
        try:
            path.write_text(content, encoding="utf-8", errors="surrogateescape")
        except OSError as e:
            raise IOFailureError(f"Failed to write {path}: {e}", context={"path": str(path)}) from e

    def _remove(self, name: str) -> None:
        path = self.git_dir / name
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise IOFailureError(f"Failed to remove {path}: {e}", context={"path": str(path)}) from e


__all__ = ["GitWorkingArea", "MERGE_HEAD", "MERGE_MSG"]
