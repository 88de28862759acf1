"""Lockfile typed model."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, Mapping, Optional, Set

from constants import Constants
from resolver.graph import DependencyGraph, GraphNode

IntegrityFn = Callable[[GraphNode], str]


def utc_timestamp() -> str:
    """ISO-8601 UTC timestamp with millisecond precision."""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@dataclass(frozen=True)
class LockfileEntry:
    name: str
    version: str
    resolved: str
    integrity: str
    dependencies: Mapping[str, str] = field(default_factory=dict)
    kind: Optional[str] = None


@dataclass(frozen=True)
class Lockfile:
    schema_version: int
    generated_at: str
    entries: Mapping[str, LockfileEntry] = field(default_factory=dict)

    def get(self, name: str) -> Optional[LockfileEntry]:
        return self.entries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self.entries

    def __len__(self) -> int:
        return len(self.entries)

    def versions(self) -> Dict[str, str]:
        return {name: self.entries[name].version for name in sorted(self.entries)}

    def top_level(self) -> Set[str]:
        """Entries no other entry depends on."""
        required = {dep for e in self.entries.values() for dep in e.dependencies}
        return {name for name in self.entries if name not in required}

    def same_entries(self, other: Optional["Lockfile"]) -> bool:
        return other is not None and dict(self.entries) == dict(other.entries)

    def to_graph(self, roots: Optional[Mapping[str, str]] = None) -> DependencyGraph:
        """Rebuild a DependencyGraph from the locked entries.

        ``roots`` defaults to the top-level entries with an open range.
        Dependencies missing from the lockfile are left out of the edges.
        """
        if roots is None:
            roots = {name: "" for name in sorted(self.top_level())}
        depths: Dict[str, int] = {}
        frontier = [name for name in sorted(roots) if name in self.entries]
        for name in frontier:
            depths[name] = 0
        while frontier:
            nxt = []
            for name in frontier:
                for dep in sorted(self.entries[name].dependencies):
                    if dep in self.entries and dep not in depths:
                        depths[dep] = depths[name] + 1
                        nxt.append(dep)
            frontier = nxt
        nodes = {}
        for name in sorted(self.entries):
            entry = self.entries[name]
            nodes[name] = GraphNode(
                name=name,
                version=entry.version,
                depth=depths.get(name, 0),
                dependencies=tuple(d for d in sorted(entry.dependencies) if d in self.entries),
                declared=dict(entry.dependencies),
                kind=entry.kind,
                resolved=entry.resolved,
                integrity=entry.integrity,
            )
        return DependencyGraph(roots=dict(roots), nodes=nodes)


def entry_from_node(node: GraphNode, integrity: str) -> LockfileEntry:
    return LockfileEntry(
        name=node.name,
        version=node.version,
        resolved=node.resolved or "",
        integrity=integrity or "",
        dependencies={k: node.declared[k] for k in sorted(node.declared)},
        kind=node.kind,
    )


def provider_integrity(node: GraphNode) -> str:
    """Integrity function that records whatever digest the provider reported."""
    return node.integrity or ""


def build_entries(
    graph: DependencyGraph, integrity_fn: IntegrityFn, names: Optional[Iterable[str]] = None
) -> Dict[str, LockfileEntry]:
    selected = sorted(graph.nodes) if names is None else sorted(n for n in names if n in graph.nodes)
    return {name: entry_from_node(graph.nodes[name], integrity_fn(graph.nodes[name])) for name in selected}


def to_lockfile(
    graph: DependencyGraph,
    integrity_fn: IntegrityFn = provider_integrity,
    generated_at: Optional[str] = None,
) -> Lockfile:
    """One entry per graph node, ordered by name."""
    return Lockfile(
        schema_version=Constants.LOCKFILE_SCHEMA_VERSION,
        generated_at=generated_at or utc_timestamp(),
        entries=build_entries(graph, integrity_fn),
    )
