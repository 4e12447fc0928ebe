from __future__ import annotations

import logging
import sys
from pathlib import Path

_INSTALLED_HANDLER: logging.Handler | None = None
_INSTALLED_KEY: tuple[str, str] | None = None

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
STDERR_FORMAT = "%(levelname)s %(name)s: %(message)s"


def _level_from_name(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.WARNING


def configure_logging(
    *,
    level: str = "WARNING",
    log_file: Path | None = None,
    json_mode: bool = False,
) -> None:
    """Install the git-vendor log handler on the root logger.

    With ``log_file`` records go to that file only. Otherwise they go to
    stderr, unless ``json_mode`` is set, in which case a NullHandler keeps
    stdout/stderr machine-readable.

    Idempotent per process: reconfiguring with the same target is a no-op,
    and switching targets replaces the previously installed handler.
    """
    global _INSTALLED_HANDLER, _INSTALLED_KEY

    if log_file is not None:
        target = str(Path(log_file).resolve())
    elif json_mode:
        target = "<null>"
    else:
        target = "<stderr>"

    root = logging.getLogger()
    root.setLevel(_level_from_name(level))

    key = (target, level.upper())
    if _INSTALLED_KEY == key and _INSTALLED_HANDLER is not None:
        return

    if _INSTALLED_HANDLER is not None:
        root.removeHandler(_INSTALLED_HANDLER)
        _INSTALLED_HANDLER.close()
        _INSTALLED_HANDLER = None

    handler: logging.Handler
    if log_file is not None:
        Path(target).parent.mkdir(parents=True, exist_ok=True)
        handler = logging.FileHandler(target, encoding="utf-8")
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
    elif json_mode:
        handler = logging.NullHandler()
    else:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(logging.Formatter(STDERR_FORMAT))

    handler.setLevel(_level_from_name(level))
    root.addHandler(handler)

    _INSTALLED_HANDLER = handler
    _INSTALLED_KEY = key


def reset_logging_for_tests() -> None:
    """Test-only: remove the installed handler."""
    global _INSTALLED_HANDLER, _INSTALLED_KEY
    if _INSTALLED_HANDLER is not None:
        logging.getLogger().removeHandler(_INSTALLED_HANDLER)
        _INSTALLED_HANDLER.close()
    _INSTALLED_HANDLER = None
    _INSTALLED_KEY = None


__all__ = ["configure_logging", "reset_logging_for_tests"]
