"""Credential redaction for URLs, git argv and git output.

Users sometimes track credential-bearing URLs such as
``https://token@host/repo.git``; nothing logged or raised may echo them.
"""
from __future__ import annotations

import re
from typing import Iterable
from urllib.parse import urlsplit, urlunsplit

REDACTED = "<redacted>"

_SCHEME_USERINFO_RE = re.compile(r"([a-zA-Z][a-zA-Z0-9+.-]*://)[^\s/@]+@")
_SCP_USER_RE = re.compile(r"\b(?!git@)[^\s@/]+@([^\s:/]+):")


def redact_url(url: str) -> str:
    """Return ``url`` without embedded credentials.

    ``git@host:path`` is left alone; ``git`` is the conventional non-secret
    SSH user.
    """
    raw = str(url)
    if "://" in raw:
        parts = urlsplit(raw)
        if parts.username is None and parts.password is None:
            return raw
        netloc = parts.hostname or ""
        if parts.port:
            netloc = f"{netloc}:{parts.port}"
        return urlunsplit((parts.scheme, netloc, parts.path, parts.query, parts.fragment))

    m = re.match(r"(?P<user>[^@\s/]+)@(?P<host>[^:\s/]+):(?P<path>.+)$", raw)
    if m and m.group("user") != "git":
        return f"{REDACTED}@{m.group('host')}:{m.group('path')}"
    return raw


def redact_text(text: str) -> str:
    """Redact credential-bearing URL fragments anywhere in ``text``."""
    s = _SCHEME_USERINFO_RE.sub(rf"\1{REDACTED}@", str(text))
    return _SCP_USER_RE.sub(rf"{REDACTED}@\1:", s)


def redact_args(args: Iterable[str]) -> list[str]:
    return [redact_url(a) for a in args]


__all__ = ["REDACTED", "redact_url", "redact_text", "redact_args"]
