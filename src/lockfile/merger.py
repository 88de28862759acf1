"""Merge a partial re-resolution into an existing lockfile."""

from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional, Set

from constants import Constants
from errors import ROOT, Edge, UnresolvableDependency, VersionConflict
from resolver.graph import DependencyGraph
from versioning.matcher import satisfies
from .model import IntegrityFn, Lockfile, LockfileEntry, build_entries, provider_integrity, utc_timestamp

logger = logging.getLogger(__name__)


def _reachable(entries: Dict[str, LockfileEntry], roots: Iterable[str]) -> Set[str]:
    seen: Set[str] = set()
    stack = [r for r in roots if r in entries]
    while stack:
        name = stack.pop()
        if name in seen:
            continue
        seen.add(name)
        stack.extend(d for d in entries[name].dependencies if d in entries and d not in seen)
    return seen


def merge(
    existing: Optional[Lockfile],
    fresh: DependencyGraph,
    touched: Iterable[str],
    integrity_fn: IntegrityFn = provider_integrity,
    *,
    roots: Optional[Iterable[str]] = None,
    generated_at: Optional[str] = None,
) -> Lockfile:
    """Combine ``existing`` with freshly resolved entries.

    Names in ``touched``, names the existing lockfile does not have yet, and
    everything they reach in ``fresh`` take the fresh entry; every other
    existing entry is kept as-is. Entries reachable from no root are dropped.

    Args:
        roots: Current top-level names. Defaults to the existing top-level
            entries plus the fresh graph's roots.

    Raises:
        VersionConflict: a kept entry's declared range does not admit the
            version its dependency is locked at.
        UnresolvableDependency: a kept entry depends on a package that is in
            neither lockfile.
    """
    touched = set(touched)
    old_entries = dict(existing.entries) if existing is not None else {}
    added = set(fresh.nodes) - set(old_entries)
    replaced = fresh.closure(touched | added)
    fresh_entries = build_entries(fresh, integrity_fn, replaced)

    merged: Dict[str, LockfileEntry] = {}
    for name in sorted(set(old_entries) | replaced):
        merged[name] = fresh_entries[name] if name in replaced else old_entries[name]

    if roots is None:
        root_names = (existing.top_level() if existing is not None else set()) | set(fresh.roots)
    else:
        root_names = set(roots)
    live = _reachable(merged, root_names)
    pruned = sorted(set(merged) - live)
    if pruned:
        logger.info("Pruning %d orphaned entries: %s", len(pruned), ", ".join(pruned))
    merged = {name: merged[name] for name in sorted(live)}

    for name, entry in merged.items():
        if name in replaced:
            continue
        for dep, constraint in sorted(entry.dependencies.items()):
            target = merged.get(dep)
            if target is None:
                raise UnresolvableDependency(dep, requested_by=name, constraint=constraint,
                                             path=(name, dep))
            if not satisfies(target.version, constraint):
                raise VersionConflict(
                    dep,
                    Edge(requester=name, name=dep, constraint=constraint, path=(name,)),
                    _fresh_edge(fresh, dep),
                    target.version,
                )

    return Lockfile(
        schema_version=Constants.LOCKFILE_SCHEMA_VERSION,
        generated_at=generated_at or utc_timestamp(),
        entries=merged,
    )


def _fresh_edge(fresh: DependencyGraph, name: str) -> Edge:
    """The edge that selected ``name`` in the fresh resolution."""
    if name in fresh.roots:
        return Edge(requester=ROOT, name=name, constraint=fresh.roots[name])
    for node in fresh:
        if name in node.declared:
            return Edge(requester=node.name, name=name, constraint=node.declared[name],
                        path=(node.name,))
    return Edge(requester=ROOT, name=name, constraint="")
