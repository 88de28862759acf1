"""Package metadata provider interface consumed by the resolver."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional


@dataclass(frozen=True)
class PackageVersionDescriptor:
    """One published version of a package, as reported by the registry.

    Read-only input to the resolver. ``resolved`` and ``integrity`` are
    optional extras some providers know about (tarball URL, content hash).
    """

    name: str
    version: str
    dependencies: Mapping[str, str] = field(default_factory=dict)
    kind: Optional[str] = None
    resolved: Optional[str] = None
    integrity: Optional[str] = None


class MetadataProvider(ABC):
    """Source of version lists and dependency maps.

    Implementations raise ``PackageNotFound`` / ``VersionNotFound`` for unknown
    names and versions and must be safe to call from several threads.
    """

    @abstractmethod
    def list_versions(self, name: str) -> List[str]:
        """Return every published version of ``name``."""

    @abstractmethod
    def get_dependencies(self, name: str, version: str) -> Dict[str, str]:
        """Return the declared dependency map of ``name@version``."""

    def describe(self, name: str, version: str) -> PackageVersionDescriptor:
        """Full descriptor for ``name@version``.

        The default only knows the dependency map; registry-backed providers
        override this to add kind, source locator and integrity.
        """
        return PackageVersionDescriptor(
            name=name,
            version=version,
            dependencies=dict(self.get_dependencies(name, version)),
            resolved=registry_reference(name, version),
        )


def registry_reference(name: str, version: str) -> str:
    """Source locator used when the provider has no tarball URL."""
    return f"registry:{name}@{version}"
