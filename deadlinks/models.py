"""Data models for the link-checking pipeline.

These are plain, immutable Python objects.  Each stage hands them to the
next one; nothing mutates a reference or a verdict after creation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class Route(str, Enum):
    """Where the classifier sends a link."""

    IGNORED = "ignored"
    SHOULD_BE_RELATIVE = "should_be_relative"
    DEAD_INTERNAL = "dead_internal"
    INTERNAL = "internal"
    EXTERNAL = "external"


class VerdictKind(str, Enum):
    ALIVE = "alive"
    DEAD_INTERNAL = "dead_internal"
    DEAD_EXTERNAL = "dead_external"
    SHOULD_BE_RELATIVE = "should_be_relative"
    IGNORED = "ignored"


@dataclass(frozen=True)
class LinkReference:
    """A single hyperlink found in a document."""

    url: str
    title: str
    source_path: str
    line: int = 0


@dataclass(frozen=True)
class LinkVerdict:
    """The final classification of one :class:`LinkReference`."""

    kind: VerdictKind
    reference: LinkReference
    status_code: int | None = None
    reason: str | None = None

    @property
    def is_dead(self) -> bool:
        return self.kind in (VerdictKind.DEAD_INTERNAL, VerdictKind.DEAD_EXTERNAL)
