"""Pattern registry: vendor dependencies as manifest lines.

A vendor line carries the ``vendor`` marker and ``vendor-*`` attributes::

    lib/* vendor vendor-name=o/r vendor-url=https://example.com/o/r.git vendor-branch=main

Older manifests may lack the marker (``vendor-name`` + ``vendor-url``), or
even the name (``vendor-url`` + ``vendor-branch``); both are still read.
"""
from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

from git_vendor.core.attributes import (
    AttributeKind,
    AttributeLine,
    format_attribute_line,
    parse_attribute_line,
)

VENDOR_MARKER = "vendor"
NAME_ATTR = "vendor-name"
URL_ATTR = "vendor-url"
BRANCH_ATTR = "vendor-branch"

VENDOR_ATTRS = frozenset({VENDOR_MARKER, NAME_ATTR, URL_ATTR, BRANCH_ATTR})

DEFAULT_REF_PREFIX = "refs/vendor"


class RefScheme(str, enum.Enum):
    """How a dependency's vendor ref is named."""

    NAME = "name"
    PATTERN = "pattern"


@dataclass(frozen=True, slots=True)
class VendorDependency:
    """A vendored dependency.

    Attributes:
        name: Unique key; addresses the dependency's vendor ref
        pattern: Path pattern selecting the vendored content (not unique)
        url: Remote repository URL
        branch: Remote branch, or None to track the remote's default branch
    """

    name: str
    pattern: str
    url: str
    branch: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "name": self.name,
            "pattern": self.pattern,
            "url": self.url,
            "branch": self.branch,
        }


def name_from_url(url: str) -> str:
    """Derive a dependency name from a repository URL.

    Uses the last two path components with any ``.git`` suffix removed, e.g.
    ``https://example.com/o/r.git`` -> ``o/r`` and
    ``git@github.com:o/r.git`` -> ``o/r``.
    """
    raw = url.strip().rstrip("/")
    if "://" in raw:
        raw = raw.split("://", 1)[1]
        raw = raw.split("/", 1)[1] if "/" in raw else ""
    elif re.match(r"^[^/@\s]+@[^:/\s]+:", raw):
        raw = raw.split(":", 1)[1]

    if raw.endswith(".git"):
        raw = raw[:-4]

    parts = [p for p in raw.split("/") if p and p not in {".", ".."}]
    return "/".join(parts[-2:])


def dependency_to_tokens(dep: VendorDependency) -> list[str]:
    """Return the attribute tokens describing ``dep``."""
    tokens = [
        VENDOR_MARKER,
        f"{NAME_ATTR}={dep.name}",
        f"{URL_ATTR}={dep.url}",
    ]
    if dep.branch:
        tokens.append(f"{BRANCH_ATTR}={dep.branch}")
    return tokens


def format_dependency_line(dep: VendorDependency) -> str:
    """Format ``dep`` as a manifest line."""
    return format_attribute_line(dep.pattern, dependency_to_tokens(dep))


def _value(line: AttributeLine, name: str) -> str | None:
    entry = line.get(name)
    if entry is None or entry.state.kind is not AttributeKind.VALUE:
        return None
    return entry.state.value


def _has_marker(line: AttributeLine) -> bool:
    entry = line.get(VENDOR_MARKER)
    return entry is not None and entry.state.kind is AttributeKind.SET


def dependency_from_line(line: AttributeLine) -> VendorDependency | None:
    """Build a dependency from a parsed line, or None if it is not a vendor line."""
    name = _value(line, NAME_ATTR)
    url = _value(line, URL_ATTR)
    branch = _value(line, BRANCH_ATTR)

    if url is None:
        return None
    if name is None:
        # Oldest format: url + branch, keyed by the pattern.
        if branch is None or _has_marker(line):
            return None
        name = name_from_url(url)
        if not name:
            return None

    return VendorDependency(name=name, pattern=line.pattern, url=url, branch=branch)


def parse_dependency_line(line: str) -> VendorDependency | None:
    """Parse a raw manifest line into a dependency, if it declares one."""
    parsed = parse_attribute_line(line)
    if parsed is None:
        return None
    return dependency_from_line(parsed)


def parse_dependencies(lines: Iterable[str]) -> list[VendorDependency]:
    """Return every dependency declared in ``lines``, in manifest order."""
    deps: list[VendorDependency] = []
    for line in lines:
        dep = parse_dependency_line(line)
        if dep is not None:
            deps.append(dep)
    return deps


def select_dependencies(
    deps: Sequence[VendorDependency],
    pattern: str | None = None,
    name: str | None = None,
) -> list[VendorDependency]:
    """Select dependencies by exact pattern and/or exact name.

    With neither filter, every dependency is returned.
    """
    selected = list(deps)
    if pattern is not None:
        selected = [d for d in selected if d.pattern == pattern]
    if name is not None:
        selected = [d for d in selected if d.name == name]
    return selected


def carries_vendor_attributes(line: AttributeLine) -> bool:
    return any(entry.name in VENDOR_ATTRS for entry in line.entries)


def is_vendor_line_for_pattern(line: str, pattern: str) -> bool:
    """Return True if ``line`` is for ``pattern`` and carries any vendor attribute."""
    parsed = parse_attribute_line(line)
    if parsed is None or parsed.pattern != pattern:
        return False
    return carries_vendor_attributes(parsed)


_SANITIZE = (
    ("*", "STAR"),
    ("?", "QMARK"),
    ("[", "("),
    ("]", ")"),
    (" ", "_"),
    ("/", "-"),
)


def sanitize_ref_component(pattern: str) -> str:
    """Turn a pattern into a ref-safe component, e.g. ``src/[a-z]?`` -> ``src-(a-z)QMARK``."""
    result = pattern
    for old, new in _SANITIZE:
        result = result.replace(old, new)
    return result


def vendor_ref_name(
    dep: VendorDependency,
    scheme: RefScheme = RefScheme.NAME,
    prefix: str = DEFAULT_REF_PREFIX,
) -> str:
    """Return the full vendor ref for ``dep``, e.g. ``refs/vendor/o/r``."""
    prefix = prefix.rstrip("/")
    if scheme is RefScheme.PATTERN:
        return f"{prefix}/{sanitize_ref_component(dep.pattern)}"
    return f"{prefix}/{dep.name}"


__all__ = [
    "VENDOR_MARKER",
    "NAME_ATTR",
    "URL_ATTR",
    "BRANCH_ATTR",
    "VENDOR_ATTRS",
    "DEFAULT_REF_PREFIX",
    "RefScheme",
    "VendorDependency",
    "name_from_url",
    "dependency_to_tokens",
    "format_dependency_line",
    "dependency_from_line",
    "parse_dependency_line",
    "parse_dependencies",
    "select_dependencies",
    "carries_vendor_attributes",
    "is_vendor_line_for_pattern",
    "sanitize_ref_component",
    "vendor_ref_name",
]
