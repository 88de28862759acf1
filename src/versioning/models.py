"""Data models for version constraints and matching."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Tuple


class ResolutionMode(Enum):
    """Resolution strategy derived from the declared range."""
    EXACT = "exact"
    RANGE = "range"
    LATEST = "latest"


@dataclass(frozen=True)
class VersionSpec:
    """Normalized representation of a declared range and derived behavior flags."""
    raw: str
    mode: ResolutionMode
    include_prerelease: bool

    def __str__(self) -> str:
        return self.raw or "*"


@dataclass(frozen=True)
class NoMatch:
    """Matcher outcome when no candidate satisfies the range.

    Distinct from an exception so callers decide how to report it.
    """
    constraint: VersionSpec
    candidates: Tuple[str, ...] = field(default_factory=tuple)

    def __bool__(self) -> bool:
        return False
