"""Project manifest (``prpm.json``): the declared top-level ranges."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Any, Dict, Mapping, Optional

from constants import Constants

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Manifest:
    name: Optional[str] = None
    version: Optional[str] = None
    dependencies: Mapping[str, str] = field(default_factory=dict)
    extra: Mapping[str, Any] = field(default_factory=dict)

    def with_dependency(self, name: str, constraint: str) -> "Manifest":
        deps = dict(self.dependencies)
        deps[name] = constraint
        return replace(self, dependencies={k: deps[k] for k in sorted(deps)})

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = dict(self.extra)
        if self.name is not None:
            data["name"] = self.name
        if self.version is not None:
            data["version"] = self.version
        data["dependencies"] = {k: self.dependencies[k] for k in sorted(self.dependencies)}
        return data


def manifest_path(directory: str) -> str:
    return os.path.join(directory, Constants.MANIFEST_FILE)


def read_manifest(directory: str) -> Manifest:
    """Load ``prpm.json``.

    Raises:
        FileNotFoundError: no manifest in ``directory``.
        ValueError: the manifest is not an object or dependencies are malformed.
    """
    path = manifest_path(directory)
    with open(path, "r", encoding="utf-8") as fh:
        data = json.load(fh)
    if not isinstance(data, dict):
        raise ValueError(f"{path} must contain a JSON object")
    deps = data.get("dependencies") or {}
    if not isinstance(deps, dict) or not all(isinstance(v, str) for v in deps.values()):
        raise ValueError(f"{path}: dependencies must map package names to version ranges")
    extra = {k: v for k, v in data.items() if k not in ("name", "version", "dependencies")}
    logger.debug("Loaded manifest %s with %d dependencies", path, len(deps))
    return Manifest(
        name=data.get("name"),
        version=data.get("version"),
        dependencies={k: deps[k] for k in sorted(deps)},
        extra=extra,
    )


def write_manifest(manifest: Manifest, directory: str) -> str:
    path = manifest_path(directory)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(manifest.to_dict(), fh, indent=2, ensure_ascii=False)
        fh.write("\n")
    return path
