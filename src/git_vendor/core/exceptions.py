"""Error taxonomy for git-vendor.

Every failure surfaces as a :class:`GitVendorError` subclass carrying a
message and a ``context`` mapping. :class:`ConflictError` is the only error
raised after persistent state (index, working tree, merge markers) has been
mutated.
"""
from __future__ import annotations

from typing import Any, Dict, Mapping, Sequence


class GitVendorError(Exception):
    """Base exception for git-vendor."""

    context: Dict[str, Any]

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        super().__init__(message)
        if context is not None:
            # Store a shallow copy to avoid accidental mutation.
            self.context = dict(context)
        else:
            self.context = {}

    def to_json_error(self) -> Dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {
            "message": str(self),
            "code": self.__class__.__name__,
            "context": self.context,
        }


class InvalidInputError(GitVendorError, ValueError):
    """Raised for malformed attributes, empty pattern sets or invalid option combinations."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        GitVendorError.__init__(self, message, context=context)
        ValueError.__init__(self, message)


class NotFoundError(GitVendorError, LookupError):
    """Raised when a ref or a vendored dependency cannot be found."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        GitVendorError.__init__(self, message, context=context)
        LookupError.__init__(self, message)


class UnsupportedError(GitVendorError):
    """Raised when an operation needs a working tree and the repository has none."""


class IOFailureError(GitVendorError, OSError):
    """Raised when the manifest or the object store cannot be read or written."""

    def __init__(self, message: str = "", *, context: Mapping[str, Any] | None = None) -> None:
        GitVendorError.__init__(self, message, context=context)
        OSError.__init__(self, message)


class ConflictError(GitVendorError):
    """Raised when a vendor merge stops with conflicts.

    Conflict markers have been written to the working tree and the merge
    state recorded, so the user can resolve in place and commit.
    """

    def __init__(
        self,
        message: str,
        *,
        conflicts: Sequence[Any] = (),
        context: Mapping[str, Any] | None = None,
    ) -> None:
        self.conflicts = list(conflicts)
        ctx = dict(context or {})
        ctx.setdefault("paths", [getattr(c, "path", str(c)) for c in self.conflicts])
        super().__init__(message, context=ctx)


__all__ = [
    "GitVendorError",
    "InvalidInputError",
    "NotFoundError",
    "UnsupportedError",
    "IOFailureError",
    "ConflictError",
]
