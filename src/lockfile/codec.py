"""Lockfile serialization (``prpm.lock``).

Output is stable: entries and dependency maps are sorted by name, two-space
indent, trailing newline, so two resolutions of the same constraints produce
byte-identical files.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import Any, Dict, Optional, Union

from constants import Constants
from errors import LockfileParseError, LockfileSchemaMismatch
from .model import Lockfile, LockfileEntry

logger = logging.getLogger(__name__)


def _entry_to_dict(entry: LockfileEntry) -> Dict[str, Any]:
    return {
        "version": entry.version,
        "resolved": entry.resolved,
        "integrity": entry.integrity,
        "dependencies": {k: entry.dependencies[k] for k in sorted(entry.dependencies)},
        "kind": entry.kind,
    }


def to_dict(lockfile: Lockfile) -> Dict[str, Any]:
    return {
        "schemaVersion": lockfile.schema_version,
        "generatedAt": lockfile.generated_at,
        "entries": {name: _entry_to_dict(lockfile.entries[name]) for name in sorted(lockfile.entries)},
    }


def dumps(lockfile: Lockfile) -> str:
    """Serialize to the persisted JSON form."""
    return json.dumps(to_dict(lockfile), indent=2, ensure_ascii=False) + "\n"


def _require_str(value: Any, where: str, *, allow_none: bool = False) -> Optional[str]:
    if value is None and allow_none:
        return None
    if not isinstance(value, str):
        raise LockfileParseError(f"{where} must be a string")
    return value


def _parse_entry(name: str, raw: Any) -> LockfileEntry:
    if not isinstance(raw, dict):
        raise LockfileParseError(f"Entry {name!r} must be an object")
    deps = raw.get("dependencies") or {}
    if not isinstance(deps, dict):
        raise LockfileParseError(f"Entry {name!r}: dependencies must be an object")
    dependencies = {}
    for dep_name in sorted(deps):
        dependencies[dep_name] = _require_str(deps[dep_name], f"Entry {name!r}: dependency {dep_name!r}")
    return LockfileEntry(
        name=name,
        version=_require_str(raw.get("version"), f"Entry {name!r}: version"),
        resolved=_require_str(raw.get("resolved", ""), f"Entry {name!r}: resolved"),
        integrity=_require_str(raw.get("integrity", ""), f"Entry {name!r}: integrity"),
        dependencies=dependencies,
        kind=_require_str(raw.get("kind"), f"Entry {name!r}: kind", allow_none=True),
    )


def parse(data: Union[bytes, str]) -> Lockfile:
    """Parse serialized lockfile content.

    Raises:
        LockfileSchemaMismatch: missing, unknown or newer ``schemaVersion``.
        LockfileParseError: anything else malformed.
    """
    if isinstance(data, bytes):
        try:
            data = data.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise LockfileParseError(f"Lockfile is not valid UTF-8: {exc}") from exc
    try:
        doc = json.loads(data)
    except json.JSONDecodeError as exc:
        raise LockfileParseError(f"Lockfile is not valid JSON: {exc}") from exc
    if not isinstance(doc, dict):
        raise LockfileParseError("Lockfile must be a JSON object")

    schema = doc.get("schemaVersion")
    if isinstance(schema, bool) or schema != Constants.LOCKFILE_SCHEMA_VERSION:
        raise LockfileSchemaMismatch(schema, Constants.LOCKFILE_SCHEMA_VERSION)

    generated_at = _require_str(doc.get("generatedAt", ""), "generatedAt")
    raw_entries = doc.get("entries") or {}
    if not isinstance(raw_entries, dict):
        raise LockfileParseError("entries must be an object")
    entries = {name: _parse_entry(name, raw_entries[name]) for name in sorted(raw_entries)}
    return Lockfile(schema_version=schema, generated_at=generated_at, entries=entries)


def lockfile_path(directory: str) -> str:
    return os.path.join(directory, Constants.LOCKFILE_NAME)


def read_lockfile(directory: str) -> Optional[Lockfile]:
    """Read ``prpm.lock`` from ``directory``; None when it does not exist."""
    path = lockfile_path(directory)
    try:
        with open(path, "rb") as fh:
            content = fh.read()
    except FileNotFoundError:
        logger.debug("No lockfile at %s", path)
        return None
    return parse(content)


def write_lockfile(lockfile: Lockfile, directory: str) -> str:
    """Atomically write ``prpm.lock`` into ``directory`` and return its path."""
    path = lockfile_path(directory)
    content = dumps(lockfile).encode("utf-8")
    fd, tmp_path = tempfile.mkstemp(prefix=".prpm.lock.", dir=directory)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(content)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise
    logger.info("Wrote %s (%d entries)", path, len(lockfile.entries))
    return path
