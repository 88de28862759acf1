"""Lockfile freshness and artifact integrity checks."""

from __future__ import annotations

import hmac
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

from errors import IntegrityMismatch, LockfileStale
from versioning.matcher import satisfies
from .integrity import compute_integrity, parse_integrity
from .model import Lockfile, LockfileEntry

logger = logging.getLogger(__name__)

MISSING = "missing"
UNSATISFIED = "unsatisfied"
DANGLING = "dangling"


@dataclass(frozen=True)
class StaleReason:
    name: str
    reason: str
    constraint: Optional[str] = None
    locked_version: Optional[str] = None
    required_by: Optional[str] = None

    def describe(self) -> str:
        if self.reason == MISSING:
            return f"{self.name}@{self.constraint or '*'} is declared but not locked"
        if self.reason == DANGLING:
            return f"{self.name} is required by {self.required_by} but not locked"
        text = f"{self.name} is locked at {self.locked_version}, which does not satisfy {self.constraint}"
        if self.required_by:
            text += f" (required by {self.required_by})"
        return text

    def to_dict(self) -> Dict[str, Any]:
        return {
            "package": self.name,
            "reason": self.reason,
            "constraint": self.constraint,
            "locked_version": self.locked_version,
            "required_by": self.required_by,
        }


@dataclass(frozen=True)
class Freshness:
    """``fresh`` is True when every declared range is satisfied by the lockfile."""

    stale: Tuple[StaleReason, ...] = ()

    @property
    def fresh(self) -> bool:
        return not self.stale

    @property
    def stale_packages(self) -> List[str]:
        return sorted({r.name for r in self.stale})

    def __bool__(self) -> bool:
        return self.fresh


def verify_fresh(lockfile: Optional[Lockfile], constraints: Mapping[str, str]) -> Freshness:
    """Check a lockfile against the currently declared top-level ranges.

    Every entry's own ranges must also admit the versions locked for its
    dependencies. Uses the matcher only; nothing is re-resolved. A missing
    lockfile is stale for every declared package.
    """
    reasons: List[StaleReason] = []
    entries = lockfile.entries if lockfile is not None else {}
    for name in sorted(constraints):
        constraint = constraints[name] or ""
        entry = entries.get(name)
        if entry is None:
            reasons.append(StaleReason(name, MISSING, constraint=constraint))
        elif not satisfies(entry.version, constraint):
            reasons.append(
                StaleReason(name, UNSATISFIED, constraint=constraint, locked_version=entry.version)
            )

    for name in sorted(entries):
        declared = entries[name].dependencies
        for dep in sorted(declared):
            target = entries.get(dep)
            if target is None:
                reasons.append(StaleReason(dep, DANGLING, required_by=name))
            elif not satisfies(target.version, declared[dep]):
                reasons.append(StaleReason(dep, UNSATISFIED, constraint=declared[dep],
                                           locked_version=target.version, required_by=name))

    if reasons:
        logger.debug("Lockfile stale: %s", ", ".join(r.describe() for r in reasons))
    return Freshness(stale=tuple(reasons))


def ensure_fresh(lockfile: Optional[Lockfile], constraints: Mapping[str, str]) -> None:
    """Frozen-mode gate.

    Raises:
        LockfileStale: the lockfile does not cover the declared ranges.
    """
    result = verify_fresh(lockfile, constraints)
    if not result.fresh:
        raise LockfileStale(list(result.stale))


@dataclass(frozen=True)
class IntegrityCheck:
    ok: bool
    expected: str
    actual: str

    def __bool__(self) -> bool:
        return self.ok


def verify_integrity(entry: LockfileEntry, actual_digest: str) -> IntegrityCheck:
    """Compare a freshly computed digest with the recorded one.

    Digests are compared as decoded bytes (legacy hex and base64 forms
    compare equal); an empty or unparsable record never matches.
    """
    expected = entry.integrity or ""
    try:
        exp_alg, exp_bytes = parse_integrity(expected)
        act_alg, act_bytes = parse_integrity(actual_digest)
    except ValueError:
        return IntegrityCheck(ok=False, expected=expected, actual=actual_digest)
    ok = exp_alg == act_alg and hmac.compare_digest(exp_bytes, act_bytes)
    return IntegrityCheck(ok=ok, expected=expected, actual=actual_digest)


def ensure_integrity(entry: LockfileEntry, data: bytes) -> str:
    """Digest ``data`` with the entry's algorithm and require a match.

    Raises:
        IntegrityMismatch: always fatal; the artifact must not be installed.
    """
    try:
        algorithm, _ = parse_integrity(entry.integrity)
    except ValueError:
        algorithm = ""
    actual = compute_integrity(data, algorithm)
    check = verify_integrity(entry, actual)
    if not check.ok:
        logger.error("Integrity mismatch for %s@%s", entry.name, entry.version)
        raise IntegrityMismatch(entry.name, check.expected, check.actual)
    return actual
