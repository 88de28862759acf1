"""Structured error taxonomy for resolution, lockfiles and the registry.

Errors carry the offending package names, ranges and chains as attributes;
``str()`` gives a human message and ``to_dict()`` a machine-readable one.
Nothing in the library prints: the CLI renders these.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

ROOT = "<root>"


def format_chain(path: Sequence[str]) -> str:
    """Render a package chain as ``a → b → c``."""
    return " → ".join(path)


@dataclass(frozen=True)
class Edge:
    """A dependency edge: ``requester`` asked for ``name`` with ``constraint``."""

    requester: str
    name: str
    constraint: str
    path: Tuple[str, ...] = ()

    def describe(self) -> str:
        chain = format_chain(self.path) if self.path else self.requester
        return f"{chain} requires {self.name}@{self.constraint or '*'}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "requester": self.requester,
            "name": self.name,
            "constraint": self.constraint,
            "path": list(self.path),
        }


class PkglockError(Exception):
    """Base class for all pkglock errors."""

    code = "error"

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.code, "message": str(self)}


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------

class ResolutionError(PkglockError):
    """Resolution aborted; no partial graph is ever returned."""

    code = "resolution_error"


class UnresolvableDependency(ResolutionError):
    """A dependency could not be satisfied by the registry."""

    code = "unresolvable_dependency"

    def __init__(self, name: str, *, requested_by: Optional[str] = None,
                 constraint: Optional[str] = None, path: Sequence[str] = (),
                 message: Optional[str] = None):
        self.name = name
        self.requested_by = requested_by
        self.constraint = constraint
        self.path = tuple(path)
        super().__init__(message or self._message())

    def _message(self) -> str:
        msg = f"Unresolvable dependency: {self.name}"
        if self.constraint:
            msg += f"@{self.constraint}"
        if self.requested_by:
            msg += f" (required by {self.requested_by})"
        return msg

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "package": self.name,
            "requested_by": self.requested_by,
            "constraint": self.constraint,
            "path": list(self.path),
        })
        return data


class PackageNotFound(UnresolvableDependency):
    code = "package_not_found"

    def _message(self) -> str:
        msg = f"Package not found: {self.name}"
        if self.requested_by:
            msg += f" (required by {self.requested_by})"
        return msg


class VersionNotFound(UnresolvableDependency):
    code = "version_not_found"

    def __init__(self, name: str, version: str, **kwargs: Any):
        self.version = version
        super().__init__(name, **kwargs)

    def _message(self) -> str:
        return f"Version not found: {self.name}@{self.version}"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["version"] = self.version
        return data


class NoSatisfyingVersion(UnresolvableDependency):
    code = "no_satisfying_version"

    def __init__(self, name: str, constraint: str, candidates: Sequence[str], **kwargs: Any):
        self.candidates = list(candidates)
        super().__init__(name, constraint=constraint, **kwargs)

    def _message(self) -> str:
        available = ", ".join(self.candidates) if self.candidates else "none"
        msg = f"No version of {self.name} satisfies {self.constraint}"
        if self.requested_by:
            msg += f" (required by {self.requested_by})"
        return f"{msg}; available: {available}"

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["candidates"] = list(self.candidates)
        return data


class InvalidConstraint(ResolutionError):
    code = "invalid_constraint"

    def __init__(self, constraint: str, reason: str = ""):
        self.constraint = constraint
        self.reason = reason
        super().__init__(f"Invalid version range '{constraint}'" + (f": {reason}" if reason else ""))

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["constraint"] = self.constraint
        return data


class VersionConflict(ResolutionError):
    """Two edges require incompatible versions of one package."""

    code = "version_conflict"

    def __init__(self, name: str, existing: Edge, incoming: Edge, version: str):
        self.name = name
        self.existing = existing
        self.incoming = incoming
        self.version = version
        super().__init__(
            f"Version conflict for {name}: {existing.describe()} (resolved {version}), "
            f"but {incoming.describe()}"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "package": self.name,
            "version": self.version,
            "existing": self.existing.to_dict(),
            "incoming": self.incoming.to_dict(),
        })
        return data


class CyclicDependency(ResolutionError):
    code = "cyclic_dependency"

    def __init__(self, path: Sequence[str]):
        self.path = tuple(path)
        super().__init__(f"Circular dependency detected: {format_chain(self.path)}")

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["path"] = list(self.path)
        return data


class MaxDepthExceeded(ResolutionError):
    code = "max_depth_exceeded"

    def __init__(self, path: Sequence[str], max_depth: int):
        self.path = tuple(path)
        self.max_depth = max_depth
        super().__init__(
            f"Maximum dependency depth {max_depth} exceeded: {format_chain(self.path)}"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"path": list(self.path), "max_depth": self.max_depth})
        return data


# ---------------------------------------------------------------------------
# Lockfile
# ---------------------------------------------------------------------------

class LockfileError(PkglockError):
    code = "lockfile_error"


class LockfileParseError(LockfileError):
    code = "lockfile_parse_error"


class LockfileSchemaMismatch(LockfileParseError):
    code = "lockfile_schema_mismatch"

    def __init__(self, found: Any, supported: int):
        self.found = found
        self.supported = supported
        super().__init__(
            f"Unsupported lockfile schemaVersion {found!r} (this tool reads version {supported})"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"found": self.found, "supported": self.supported})
        return data


class LockfileStale(LockfileError):
    code = "lockfile_stale"

    def __init__(self, reasons: List[Any]):
        self.reasons = list(reasons)
        names = sorted({r.name for r in self.reasons})
        super().__init__(
            "Lockfile is out of date for: " + ", ".join(names)
            + ". Run without --frozen to update it."
        )

    @property
    def packages(self) -> List[str]:
        return sorted({r.name for r in self.reasons})

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data["packages"] = self.packages
        data["reasons"] = [r.to_dict() for r in self.reasons]
        return data


class IntegrityMismatch(LockfileError):
    code = "integrity_mismatch"

    def __init__(self, name: str, expected: str, actual: str):
        self.name = name
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"Integrity check failed for {name}: expected {expected or '<none>'}, got {actual}"
        )

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"package": self.name, "expected": self.expected, "actual": self.actual})
        return data


# ---------------------------------------------------------------------------
# Registry transport
# ---------------------------------------------------------------------------

class RegistryError(PkglockError):
    """Non-retryable registry failure (unexpected 4xx, malformed body)."""

    code = "registry_error"

    def __init__(self, message: str, *, url: str = "", status: int = 0):
        self.url = url
        self.status = status
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({"url": self.url, "status": self.status})
        return data


class RegistryUnavailable(RegistryError):
    """Transient failures persisted past the retry budget."""

    code = "registry_unavailable"

    def __init__(self, url: str, attempts: int, last_error: str, status: int = 0):
        self.attempts = attempts
        self.last_error = last_error
        super().__init__(
            f"Request failed after {attempts} attempts: {last_error}",
            url=url,
            status=status,
        )
