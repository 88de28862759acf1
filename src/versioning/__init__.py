"""Version constraint parsing and matching."""

from .matcher import best_match, matching_versions, parse_version, satisfies, validate_constraint
from .models import NoMatch, ResolutionMode, VersionSpec
from .parser import parse_constraint, tokenize_package

__all__ = [
    "best_match",
    "matching_versions",
    "parse_version",
    "satisfies",
    "validate_constraint",
    "NoMatch",
    "ResolutionMode",
    "VersionSpec",
    "parse_constraint",
    "tokenize_package",
]
