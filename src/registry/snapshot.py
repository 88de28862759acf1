"""In-memory metadata provider, optionally loaded from a JSON snapshot.

Snapshot shape::

    {
      "@scope/pkg": {
        "1.0.0": {"dependencies": {"dep": "^2.0.0"}, "kind": "cursor",
                  "resolved": "https://...", "integrity": "sha256-..."}
      }
    }

A version may also map straight to its dependency dict.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping

from errors import PackageNotFound, VersionNotFound
from .provider import MetadataProvider, PackageVersionDescriptor, registry_reference

logger = logging.getLogger(__name__)

_DESCRIPTOR_KEYS = {"dependencies", "kind", "resolved", "integrity"}


class SnapshotProvider(MetadataProvider):
    """Serves metadata from a fixed mapping; counts calls for diagnostics."""

    def __init__(self, packages: Mapping[str, Mapping[str, Any]]):
        self._packages: Dict[str, Dict[str, Dict[str, Any]]] = {}
        for name, versions in packages.items():
            self._packages[name] = {
                str(version): self._normalize(info) for version, info in versions.items()
            }
        self.calls: List[tuple] = []

    @staticmethod
    def _normalize(info: Any) -> Dict[str, Any]:
        if info is None:
            return {"dependencies": {}}
        if isinstance(info, dict) and (not info or set(info) & _DESCRIPTOR_KEYS):
            out = dict(info)
            out["dependencies"] = dict(info.get("dependencies") or {})
            return out
        if isinstance(info, dict):
            return {"dependencies": dict(info)}
        raise ValueError(f"Unsupported snapshot entry: {info!r}")

    @classmethod
    def from_file(cls, path: str) -> "SnapshotProvider":
        with open(path, "r", encoding="utf-8") as fh:
            data = json.load(fh)
        if not isinstance(data, dict):
            raise ValueError(f"Registry snapshot {path} must be a JSON object")
        logger.debug("Loaded registry snapshot with %d packages from %s", len(data), path)
        return cls(data)

    def list_versions(self, name: str) -> List[str]:
        self.calls.append(("list_versions", name))
        versions = self._packages.get(name)
        if versions is None:
            raise PackageNotFound(name)
        return list(versions)

    def _info(self, name: str, version: str) -> Dict[str, Any]:
        versions = self._packages.get(name)
        if versions is None:
            raise PackageNotFound(name)
        info = versions.get(version)
        if info is None:
            raise VersionNotFound(name, version)
        return info

    def get_dependencies(self, name: str, version: str) -> Dict[str, str]:
        self.calls.append(("get_dependencies", name, version))
        return dict(self._info(name, version)["dependencies"])

    def describe(self, name: str, version: str) -> PackageVersionDescriptor:
        self.calls.append(("describe", name, version))
        info = self._info(name, version)
        return PackageVersionDescriptor(
            name=name,
            version=version,
            dependencies=dict(info["dependencies"]),
            kind=info.get("kind"),
            resolved=info.get("resolved") or registry_reference(name, version),
            integrity=info.get("integrity"),
        )
