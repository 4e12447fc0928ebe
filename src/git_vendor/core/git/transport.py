"""Network transport backed by ``git fetch``."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Sequence

from git_vendor.core.exceptions import InvalidInputError
from git_vendor.core.git.redaction import redact_url
from git_vendor.core.git.runner import DEFAULT_GIT_TIMEOUT_SECONDS, run_git

logger = logging.getLogger(__name__)


class GitTransport:
    """Fetches refs from a remote URL into the local repository."""

    def __init__(self, repo_root: Path, *, timeout: float = DEFAULT_GIT_TIMEOUT_SECONDS) -> None:
        self.repo_root = Path(repo_root)
        self.timeout = timeout

    def fetch(self, url: str, refspecs: Sequence[str]) -> None:
        """Fetch ``refspecs`` from ``url``.

        Tags are not followed; only the named refs are written.

        Raises:
            InvalidInputError: If no refspec is given
            IOFailureError: If git fails (unreachable remote, missing branch)
        """
        if not refspecs:
            raise InvalidInputError("At least one refspec is required", context={"url": redact_url(url)})

        logger.debug("Fetching %s from %s", ", ".join(refspecs), redact_url(url))
        run_git(
            ["fetch", "--no-tags", "--", url, *refspecs],
            cwd=self.repo_root,
            timeout=self.timeout,
        )


__all__ = ["GitTransport"]
