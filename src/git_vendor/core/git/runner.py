"""Subprocess wrapper for the ``git`` executable.

All git-backed collaborators funnel through :func:`run_git`, which applies
the configured timeout, never uses a shell, redacts credentials before
anything is logged or raised, and maps failures to :class:`IOFailureError`.
"""
from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path
from typing import Any, Mapping, Sequence

from git_vendor.core.exceptions import IOFailureError
from git_vendor.core.git.redaction import redact_args, redact_text

logger = logging.getLogger(__name__)

DEFAULT_GIT_TIMEOUT_SECONDS = 120.0


def _git_env(extra: Mapping[str, str] | None) -> dict[str, str]:
    env = os.environ.copy()
    # Never block on an interactive credential prompt.
    env["GIT_TERMINAL_PROMPT"] = "0"
    if extra:
        env.update(extra)
    return env


def run_git(
    args: Sequence[str],
    *,
    cwd: Path | str,
    input: Any = None,
    text: bool = True,
    check: bool = True,
    timeout: float | None = None,
    env: Mapping[str, str] | None = None,
) -> subprocess.CompletedProcess:
    """Run ``git <args>`` and capture its output.

    Args:
        args: Arguments after ``git``
        cwd: Working directory
        input: Data for stdin (str when ``text``, bytes otherwise)
        text: Decode stdout/stderr as text
        check: Raise on non-zero exit
        timeout: Seconds before the command is killed
        env: Extra environment variables

    Returns:
        CompletedProcess with captured stdout/stderr

    Raises:
        IOFailureError: If git cannot be started, times out, or (with
            ``check``) exits non-zero
    """
    argv = ["git", *[str(a) for a in args]]
    safe_cmd = " ".join(redact_args(argv))
    logger.debug("Running %s (cwd=%s)", safe_cmd, cwd)

    try:
        result = subprocess.run(
            argv,
            cwd=str(cwd),
            input=input,
            capture_output=True,
            text=text,
            timeout=timeout if timeout is not None else DEFAULT_GIT_TIMEOUT_SECONDS,
            env=_git_env(env),
            check=False,
        )
    except FileNotFoundError as e:
        raise IOFailureError(
            "git executable not found on PATH",
            context={"command": safe_cmd},
        ) from e
    except subprocess.TimeoutExpired as e:
        raise IOFailureError(
            f"Git command timed out after {e.timeout}s: {safe_cmd}",
            context={"command": safe_cmd},
        ) from e

    if check and result.returncode != 0:
        raise IOFailureError(
            f"Git command failed: {safe_cmd}\n{redact_text(_output(result)).strip()}",
            context={"command": safe_cmd, "returncode": result.returncode},
        )
    return result


def _output(result: subprocess.CompletedProcess) -> str:
    out = result.stderr or result.stdout or ""
    if isinstance(out, bytes):
        return out.decode("utf-8", errors="replace")
    return out


__all__ = ["DEFAULT_GIT_TIMEOUT_SECONDS", "run_git"]
