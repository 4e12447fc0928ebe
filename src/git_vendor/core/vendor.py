"""Vendor capability over a repository.

:class:`VendorCapable` is the five-operation interface (track, untrack,
status, fetch, merge). :class:`GitVendor` implements it by composing an
object store, a transport and a working area rather than extending any
repository type.
"""
from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional, Sequence

from git_vendor.core.attributes import (
    filter_new_attributes,
    format_attribute_line,
    parse_attribute_line,
    validate_attributes,
)
from git_vendor.core.config import VendorSettings, load_settings
from git_vendor.core.exceptions import InvalidInputError, NotFoundError, UnsupportedError
from git_vendor.core.fetch import FetchAdapter
from git_vendor.core.git.objects import GitObjectStore
from git_vendor.core.git.protocols import ObjectStore, Transport, WorkingArea
from git_vendor.core.git.transport import GitTransport
from git_vendor.core.git.worktree import GitWorkingArea
from git_vendor.core.manifest import Manifest, find_manifest, set_attributes
from git_vendor.core.merge import MergeEngine
from git_vendor.core.models import DependencyStatus, FetchResult, MergeMode, MergeResult
from git_vendor.core.registry import (
    BRANCH_ATTR,
    VENDOR_ATTRS,
    VendorDependency,
    dependency_to_tokens,
    format_dependency_line,
    is_vendor_line_for_pattern,
    name_from_url,
    parse_dependencies,
    parse_dependency_line,
    select_dependencies,
    vendor_ref_name,
)

logger = logging.getLogger(__name__)


class VendorCapable(ABC):
    """Vendoring operations on a repository."""

    @abstractmethod
    def track(
        self,
        pattern: str,
        url: str,
        branch: Optional[str] = None,
        name: Optional[str] = None,
    ) -> VendorDependency:
        """Record a dependency in the manifest."""

    @abstractmethod
    def untrack(self, pattern: str, name: Optional[str] = None) -> int:
        """Remove the vendor lines for ``pattern``; returns the number removed."""

    @abstractmethod
    def status(self, pattern: Optional[str] = None, name: Optional[str] = None) -> list[DependencyStatus]:
        """Report tracked dependencies and their vendor refs."""

    @abstractmethod
    def fetch(self, pattern: Optional[str] = None, name: Optional[str] = None) -> list[FetchResult]:
        """Fetch the selected dependencies into their vendor refs."""

    @abstractmethod
    def merge(
        self,
        pattern: Optional[str] = None,
        name: Optional[str] = None,
        *,
        mode: MergeMode = MergeMode.COMMIT,
        message: Optional[str] = None,
    ) -> list[MergeResult]:
        """Merge the selected dependencies into HEAD."""


class GitVendor(VendorCapable):
    """Vendor operations composed over git collaborators."""

    def __init__(
        self,
        store: ObjectStore,
        transport: Transport,
        workarea: WorkingArea,
        settings: Optional[VendorSettings] = None,
        *,
        start_dir: Optional[Path] = None,
    ) -> None:
        self.store = store
        self.transport = transport
        self.workarea = workarea
        self.settings = settings or VendorSettings()
        self._start_dir = Path(start_dir) if start_dir is not None else None

    @classmethod
    def open(
        cls,
        repo_root: Path,
        start_dir: Optional[Path] = None,
        *,
        settings: Optional[VendorSettings] = None,
    ) -> "GitVendor":
        """Wire git-backed collaborators for the repository at ``repo_root``.

        Args:
            repo_root: Repository root (work tree root, or the git dir of a bare repo)
            start_dir: Directory manifest discovery starts from (defaults to ``repo_root``)
            settings: Preloaded settings (loaded from ``repo_root`` when omitted)
        """
        root = Path(repo_root)
        resolved = settings or load_settings(root)
        timeout = resolved.git_timeout_seconds
        return cls(
            GitObjectStore(root, timeout=timeout),
            GitTransport(root, timeout=timeout),
            GitWorkingArea(root, timeout=timeout),
            resolved,
            start_dir=start_dir,
        )

    # -- helpers ----------------------------------------------------------

    def _require_worktree(self) -> None:
        if self.workarea.is_bare():
            raise UnsupportedError("This operation is not supported in a bare repository")

    def manifest(self) -> Manifest:
        root = self.workarea.workdir
        start = self._start_dir or root
        return Manifest(find_manifest(start, root, self.settings.manifest_name))

    def dependencies(self) -> list[VendorDependency]:
        return parse_dependencies(self.manifest().read_lines())

    def ref_name(self, dep: VendorDependency) -> str:
        return vendor_ref_name(dep, self.settings.ref_scheme, self.settings.ref_prefix)

    def _select(self, pattern: Optional[str], name: Optional[str]) -> list[VendorDependency]:
        return select_dependencies(self.dependencies(), pattern=pattern, name=name)

    # -- operations -------------------------------------------------------

    def set_attributes(self, pattern: str, tokens: Sequence[str]) -> bool:
        """Declare plain attributes for ``pattern``; see :func:`set_attributes`."""
        self._require_worktree()
        return set_attributes(self.manifest(), pattern, tokens)

    def track(
        self,
        pattern: str,
        url: str,
        branch: Optional[str] = None,
        name: Optional[str] = None,
    ) -> VendorDependency:
        """Record a dependency in the manifest.

        A dependency already tracked under the same pattern and name is
        updated in place (its other attributes are kept); tracking it again
        unchanged leaves the manifest untouched.

        Raises:
            UnsupportedError: In a bare repository
            InvalidInputError: For an empty pattern, a name that cannot be
                derived, a malformed value, or a name tracked under another pattern
        """
        self._require_worktree()

        pattern = pattern.strip()
        if not pattern or any(ch.isspace() for ch in pattern):
            raise InvalidInputError(f"Invalid pattern '{pattern}'", context={"pattern": pattern})
        if not url.strip():
            raise InvalidInputError("A repository URL is required", context={"pattern": pattern})

        # Manifest tokens are whitespace-separated.
        for field, value in (("url", url.strip()), ("name", name or ""), ("branch", branch or "")):
            if any(ch.isspace() for ch in value):
                raise InvalidInputError(
                    f"Invalid {field} '{value}': whitespace is not allowed",
                    context={"pattern": pattern, field: value},
                )

        dep_name = name or name_from_url(url)
        if not dep_name:
            raise InvalidInputError(
                f"Cannot derive a dependency name from '{url}'; pass one explicitly",
                context={"url": url},
            )

        dep = VendorDependency(name=dep_name, pattern=pattern, url=url.strip(), branch=branch or None)
        tokens = dependency_to_tokens(dep)
        validate_attributes(tokens)

        manifest = self.manifest()
        lines = manifest.read_lines()

        existing: Optional[int] = None
        for index, line in enumerate(lines):
            tracked = parse_dependency_line(line)
            if tracked is None or tracked.name != dep.name:
                continue
            if tracked.pattern != dep.pattern:
                raise InvalidInputError(
                    f"Dependency '{dep.name}' is already tracked for pattern '{tracked.pattern}'",
                    context={"name": dep.name, "pattern": tracked.pattern},
                )
            existing = index

        if existing is None:
            lines.append(format_dependency_line(dep))
            logger.info("Tracking %s for %s", dep.name, dep.pattern)
        else:
            current = parse_attribute_line(lines[existing])
            assert current is not None
            new_tokens = filter_new_attributes(pattern, tokens, [lines[existing]])
            dropped_branch = dep.branch is None and current.get(BRANCH_ATTR) is not None
            if not new_tokens and not dropped_branch:
                logger.debug("%s is already tracked for %s", dep.name, dep.pattern)
                return dep

            others = [
                token
                for token, entry in zip(current.tokens, current.entries)
                if entry.name not in VENDOR_ATTRS
            ]
            lines[existing] = format_attribute_line(pattern, [*tokens, *others])
            logger.info("Updating %s for %s", dep.name, dep.pattern)

        manifest.write_lines(lines)
        return dep

    def untrack(self, pattern: str, name: Optional[str] = None) -> int:
        """Remove every vendor line for ``pattern`` (optionally only ``name``'s).

        Whole lines are removed, including any non-vendor attributes they
        carry. A missing manifest is a no-op.
        """
        self._require_worktree()

        manifest = self.manifest()
        if not manifest.exists():
            return 0

        kept: list[str] = []
        removed = 0
        for line in manifest.read_lines():
            if is_vendor_line_for_pattern(line, pattern):
                dep = parse_dependency_line(line)
                if name is None or (dep is not None and dep.name == name):
                    removed += 1
                    continue
            kept.append(line)

        if removed:
            manifest.write_lines(kept)
            logger.info("Untracked %d line(s) for %s", removed, pattern)
        return removed

    def status(self, pattern: Optional[str] = None, name: Optional[str] = None) -> list[DependencyStatus]:
        self._require_worktree()
        statuses: list[DependencyStatus] = []
        for dep in self._select(pattern, name):
            ref_name = self.ref_name(dep)
            statuses.append(DependencyStatus(dep, ref_name, self.store.resolve_ref(ref_name)))
        return statuses

    def fetch(self, pattern: Optional[str] = None, name: Optional[str] = None) -> list[FetchResult]:
        """Fetch the selected dependencies in order, stopping at the first failure.

        Raises:
            NotFoundError: If nothing is selected
        """
        self._require_worktree()
        deps = self._select(pattern, name)
        if not deps:
            raise NotFoundError(
                "No vendored dependencies to fetch",
                context={"pattern": pattern, "name": name},
            )
        return FetchAdapter(self.store, self.transport, self.settings).fetch_all(deps)

    def merge(
        self,
        pattern: Optional[str] = None,
        name: Optional[str] = None,
        *,
        mode: MergeMode = MergeMode.COMMIT,
        message: Optional[str] = None,
    ) -> list[MergeResult]:
        """Merge the selected dependencies in order.

        Raises:
            NotFoundError: If nothing is selected or a vendor ref is missing
            InvalidInputError: For a deferred mode with several dependencies
            ConflictError: If a merge stops with conflicts
        """
        self._require_worktree()
        deps = self._select(pattern, name)
        if not deps:
            raise NotFoundError(
                "No vendored dependencies to merge",
                context={"pattern": pattern, "name": name},
            )
        engine = MergeEngine(self.store, self.workarea, self.settings)
        return engine.merge_all(deps, mode=mode, message=message)


__all__ = ["VendorCapable", "GitVendor"]
