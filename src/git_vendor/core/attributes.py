"""Attribute line model.

Parses gitattributes-style tokens into ``(name, state)`` pairs and decides
which requested tokens are new for a pattern, comparing states rather than
spellings:

=============  ========  ===============
Syntax         Name      State
=============  ========  ===============
``attr``       ``attr``  SET
``attr=true``  ``attr``  SET
``-attr``      ``attr``  UNSET
``attr=false`` ``attr``  UNSET
``!attr``      ``attr``  UNSPECIFIED
``attr=val``   ``attr``  VALUE(``val``)
=============  ========  ===============
"""
from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Sequence

from git_vendor.core.exceptions import InvalidInputError


class AttributeKind(enum.Enum):
    SET = "set"
    UNSET = "unset"
    UNSPECIFIED = "unspecified"
    VALUE = "value"


@dataclass(frozen=True, slots=True)
class AttributeState:
    """Normalized attribute state; ``value`` is only meaningful for VALUE."""

    kind: AttributeKind
    value: str | None = None

    @classmethod
    def set(cls) -> AttributeState:
        return cls(AttributeKind.SET)

    @classmethod
    def unset(cls) -> AttributeState:
        return cls(AttributeKind.UNSET)

    @classmethod
    def unspecified(cls) -> AttributeState:
        return cls(AttributeKind.UNSPECIFIED)

    @classmethod
    def of(cls, value: str) -> AttributeState:
        return cls(AttributeKind.VALUE, value)


@dataclass(frozen=True, slots=True)
class AttributeEntry:
    """A single attribute: a name and its normalized state.

    Two entries are semantically equal iff name and state match, so
    ``parse_attribute("diff") == parse_attribute("diff=true")``.
    """

    name: str
    state: AttributeState

    def token(self) -> str:
        """Render the canonical spelling of this entry."""
        kind = self.state.kind
        if kind is AttributeKind.SET:
            return self.name
        if kind is AttributeKind.UNSET:
            return f"-{self.name}"
        if kind is AttributeKind.UNSPECIFIED:
            return f"!{self.name}"
        return f"{self.name}={self.state.value}"


@dataclass(frozen=True, slots=True)
class AttributeLine:
    """A manifest line: a pattern followed by attribute entries, in order."""

    pattern: str
    entries: tuple[AttributeEntry, ...]
    tokens: tuple[str, ...] = ()

    def get(self, name: str) -> AttributeEntry | None:
        """Return the last entry named ``name`` on this line, if any."""
        found = None
        for entry in self.entries:
            if entry.name == name:
                found = entry
        return found


def parse_attribute(token: str) -> AttributeEntry:
    """Parse one attribute token into an :class:`AttributeEntry`.

    Leading and trailing whitespace is trimmed before classification.
    """
    token = token.strip()

    if token.startswith("-"):
        return AttributeEntry(token[1:], AttributeState.unset())
    if token.startswith("!"):
        return AttributeEntry(token[1:], AttributeState.unspecified())
    if "=" in token:
        name, value = token.split("=", 1)
        if value == "true":
            return AttributeEntry(name, AttributeState.set())
        if value == "false":
            return AttributeEntry(name, AttributeState.unset())
        return AttributeEntry(name, AttributeState.of(value))
    return AttributeEntry(token, AttributeState.set())


def _name_part(token: str) -> str:
    if token[0] in "-!":
        return token[1:]
    if "=" in token:
        return token.split("=", 1)[0]
    return token


def validate_attributes(tokens: Iterable[str]) -> None:
    """Validate attribute tokens.

    Empty and whitespace-only tokens are skipped.

    Raises:
        InvalidInputError: If a token has an empty name or whitespace inside its name.
    """
    for raw in tokens:
        token = raw.strip()
        if not token:
            continue

        name = _name_part(token)
        if not name or any(ch.isspace() for ch in name):
            raise InvalidInputError(
                f"Invalid attribute '{token}'",
                context={"attribute": token},
            )


def format_attribute_line(pattern: str, tokens: Iterable[str]) -> str:
    """Format a pattern and its attribute tokens into a manifest line.

    Tokens are trimmed; empty ones are dropped. Order is preserved.
    """
    parts = [pattern]
    for raw in tokens:
        token = raw.strip()
        if token:
            parts.append(token)
    return " ".join(parts)


def split_line(line: str) -> list[str] | None:
    """Split a manifest line into ``[pattern, *tokens]``.

    Returns None for blank lines and comments.
    """
    trimmed = line.strip()
    if not trimmed or trimmed.startswith("#"):
        return None
    return trimmed.split()


def parse_attribute_line(line: str) -> AttributeLine | None:
    """Parse a manifest line, or return None for blank lines and comments."""
    parts = split_line(line)
    if parts is None:
        return None
    pattern, tokens = parts[0], tuple(parts[1:])
    return AttributeLine(
        pattern=pattern,
        entries=tuple(parse_attribute(t) for t in tokens),
        tokens=tokens,
    )


def existing_states(pattern: str, lines: Iterable[str]) -> dict[str, AttributeState]:
    """Collect the attribute states already declared for ``pattern``.

    Every line whose pattern equals ``pattern`` exactly is consulted; a later
    line overwrites an earlier one for the same attribute name.
    """
    states: dict[str, AttributeState] = {}
    for line in lines:
        parsed = parse_attribute_line(line)
        if parsed is None or parsed.pattern != pattern:
            continue
        for entry in parsed.entries:
            states[entry.name] = entry.state
    return states


def filter_new_attributes(
    pattern: str,
    tokens: Sequence[str],
    lines: Iterable[str],
) -> list[str]:
    """Return the tokens that would change the attributes of ``pattern``.

    A token is new when its attribute is not declared yet for ``pattern`` or
    is declared with a different state. ``diff`` and ``diff=true`` are the
    same state, as are ``-diff`` and ``diff=false``; ``filter=foo`` and
    ``filter=bar`` are different.

    Args:
        pattern: Exact pattern string to look up
        tokens: Candidate attribute tokens
        lines: Existing manifest lines

    Returns:
        Trimmed candidate tokens that are new, in their original order and spelling
    """
    existing = existing_states(pattern, lines)

    new_tokens: list[str] = []
    for raw in tokens:
        token = raw.strip()
        if not token:
            continue
        entry = parse_attribute(token)
        if existing.get(entry.name) != entry.state:
            new_tokens.append(token)
    return new_tokens


__all__ = [
    "AttributeKind",
    "AttributeState",
    "AttributeEntry",
    "AttributeLine",
    "parse_attribute",
    "validate_attributes",
    "format_attribute_line",
    "split_line",
    "parse_attribute_line",
    "existing_states",
    "filter_new_attributes",
]
