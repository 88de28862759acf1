"""Version constraint matcher using npm-style semantic versioning.

Pure functions: no I/O, deterministic for a given candidate set.
"""

import logging
import re
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence, Union

import semantic_version

from errors import InvalidConstraint
from .models import NoMatch, ResolutionMode, VersionSpec
from .parser import parse_constraint

logger = logging.getLogger(__name__)

Constraint = Union[str, VersionSpec, None]


def _normalize_spec(spec_str: str) -> str:
    """Normalize npm range syntax (hyphen, x-ranges) into SimpleSpec-compatible form."""
    s = spec_str.strip()

    # Hyphen ranges: "1.2.3 - 1.4.5" => ">=1.2.3, <=1.4.5"
    m = re.match(r'^\s*([0-9A-Za-z\.\-\+]+)\s+-\s+([0-9A-Za-z\.\-\+]+)\s*$', s)
    if m:
        left, right = m.group(1), m.group(2)
        # Use comma-separated comparators without spaces per SimpleSpec grammar
        return f">={left},<={right}"

    # x-ranges: 1.2.x or 1.x or 1.* -> convert to comparator pairs
    s2 = s.replace('*', 'x').lower()
    m = re.match(r'^\s*(\d+)\.(\d+)\.x\s*$', s2)
    if m:
        major, minor = int(m.group(1)), int(m.group(2))
        return f">={major}.{minor}.0,<{major}.{minor + 1}.0"

    m = re.match(r'^\s*(\d+)(\.x)?\s*$', s2)
    if m:
        major = int(m.group(1))
        return f">={major}.0.0,<{major + 1}.0.0"

    return spec_str


@lru_cache(maxsize=1024)
def _compile(spec_str: str):
    """Compile a range, preferring NpmSpec which understands ^, ~, hyphen ranges and x-ranges."""
    try:
        return semantic_version.NpmSpec(spec_str)
    except ValueError:
        # Fallback to normalized SimpleSpec if NpmSpec cannot parse
        try:
            return semantic_version.SimpleSpec(_normalize_spec(spec_str))
        except ValueError as e:
            raise InvalidConstraint(spec_str, str(e)) from e


def parse_version(value: str) -> Optional[semantic_version.Version]:
    """Parse a concrete version, returning None for non-semver strings."""
    try:
        return semantic_version.Version(str(value).strip().lstrip('v'))
    except ValueError:
        return None


def validate_constraint(constraint: Constraint) -> VersionSpec:
    """Parse and compile ``constraint``, raising InvalidConstraint when it is malformed."""
    spec = parse_constraint(constraint)
    if spec.mode != ResolutionMode.LATEST:
        _compile(spec.raw)
    return spec


def satisfies(version: Union[str, semantic_version.Version], constraint: Constraint) -> bool:
    """Return True when ``version`` satisfies the declared range."""
    spec = parse_constraint(constraint)
    ver = version if isinstance(version, semantic_version.Version) else parse_version(version)
    if ver is None:
        return False
    if ver.prerelease and not spec.include_prerelease:
        return False
    if spec.mode == ResolutionMode.LATEST:
        return True
    if spec.mode == ResolutionMode.EXACT:
        pinned = parse_version(spec.raw)
        if pinned is not None:
            return ver == pinned
    return _compile(spec.raw).match(ver)


def matching_versions(
    candidates: Iterable[str], constraint: Constraint
) -> List[semantic_version.Version]:
    """All satisfying candidates, highest first. Invalid candidates are skipped."""
    spec = parse_constraint(constraint)
    matched = []
    for raw in candidates:
        ver = parse_version(raw)
        if ver is None:
            logger.debug("Skipping non-semver candidate %r", raw)
            continue
        if satisfies(ver, spec):
            matched.append(ver)
    matched.sort(reverse=True)
    return matched


def best_match(
    candidates: Sequence[str], constraint: Constraint
) -> Union[semantic_version.Version, NoMatch]:
    """Apply the range and pick the highest matching version.

    Returns:
        The selected Version, or a NoMatch carrying the range and the
        candidate list when nothing satisfies it.
    """
    spec = parse_constraint(constraint)
    matched = matching_versions(candidates, spec)
    if not matched:
        return NoMatch(constraint=spec, candidates=tuple(str(c) for c in candidates))
    return matched[0]
