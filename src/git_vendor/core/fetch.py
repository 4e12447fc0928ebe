"""Fetch vendored dependencies into their namespaced refs."""
from __future__ import annotations

import logging
from typing import Sequence

from git_vendor.core.config import VendorSettings
from git_vendor.core.exceptions import NotFoundError
from git_vendor.core.git.protocols import ObjectStore, Transport
from git_vendor.core.git.redaction import redact_url
from git_vendor.core.models import FetchResult
from git_vendor.core.registry import VendorDependency, vendor_ref_name

logger = logging.getLogger(__name__)


def build_refspec(dep: VendorDependency, ref_name: str) -> str:
    """Return the forced refspec mapping the dependency's remote branch to ``ref_name``.

    Without a branch the remote's HEAD is fetched.
    """
    if dep.branch:
        return f"+refs/heads/{dep.branch}:{ref_name}"
    return f"+HEAD:{ref_name}"


class FetchAdapter:
    """Pulls each dependency's remote content into ``<ref_prefix>/<name>``."""

    def __init__(self, store: ObjectStore, transport: Transport, settings: VendorSettings) -> None:
        self.store = store
        self.transport = transport
        self.settings = settings

    def ref_name(self, dep: VendorDependency) -> str:
        return vendor_ref_name(dep, self.settings.ref_scheme, self.settings.ref_prefix)

    def fetch(self, dep: VendorDependency) -> FetchResult:
        """Fetch one dependency.

        Raises:
            IOFailureError: If the transport fails
            NotFoundError: If the ref is still missing after the fetch
        """
        ref_name = self.ref_name(dep)
        refspec = build_refspec(dep, ref_name)

        logger.info("Fetching %s from %s", dep.name, redact_url(dep.url))
        self.transport.fetch(dep.url, [refspec])

        oid = self.store.resolve_ref(ref_name)
        if oid is None:
            raise NotFoundError(
                f"Fetch of '{dep.name}' did not create {ref_name}",
                context={"name": dep.name, "ref": ref_name},
            )
        logger.info("Fetched %s -> %s", dep.name, oid[:12])
        return FetchResult(dependency=dep, ref_name=ref_name, refspec=refspec, oid=oid)

    def fetch_all(self, deps: Sequence[VendorDependency]) -> list[FetchResult]:
        """Fetch ``deps`` in order, stopping at the first failure."""
        return [self.fetch(dep) for dep in deps]


__all__ = ["FetchAdapter", "build_refspec"]
