"""Package metadata providers."""

from .provider import MetadataProvider, PackageVersionDescriptor, registry_reference
from .snapshot import SnapshotProvider
from .client import RegistryClient

__all__ = [
    "MetadataProvider",
    "PackageVersionDescriptor",
    "registry_reference",
    "SnapshotProvider",
    "RegistryClient",
]
