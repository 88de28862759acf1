"""Resolved dependency graph: a flat name -> node table with name references."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Set, Tuple


@dataclass(frozen=True)
class GraphNode:
    """One resolved package. Edges are names, never object references."""

    name: str
    version: str
    depth: int
    dependencies: Tuple[str, ...] = ()
    declared: Mapping[str, str] = field(default_factory=dict)
    kind: Optional[str] = None
    resolved: Optional[str] = None
    integrity: Optional[str] = None


@dataclass(frozen=True)
class DependencyGraph:
    """Outcome of a successful resolution.

    ``roots`` maps each top-level name to the range it was requested with.
    Acyclic and closed-world: every name in a node's ``dependencies`` is a
    key of ``nodes``.
    """

    roots: Mapping[str, str]
    nodes: Mapping[str, GraphNode]

    def __contains__(self, name: object) -> bool:
        return name in self.nodes

    def __getitem__(self, name: str) -> GraphNode:
        return self.nodes[name]

    def __iter__(self) -> Iterator[GraphNode]:
        for name in sorted(self.nodes):
            yield self.nodes[name]

    def __len__(self) -> int:
        return len(self.nodes)

    def resolved_map(self) -> Dict[str, str]:
        """``{name: version}`` sorted by name."""
        return {name: self.nodes[name].version for name in sorted(self.nodes)}

    def closure(self, names: Iterable[str]) -> Set[str]:
        """``names`` plus everything reachable from them in this graph."""
        seen: Set[str] = set()
        stack = [n for n in names if n in self.nodes]
        while stack:
            name = stack.pop()
            if name in seen:
                continue
            seen.add(name)
            stack.extend(d for d in self.nodes[name].dependencies if d not in seen)
        return seen

    def nested_tree(self) -> Dict[str, Any]:
        """Nested ``{name: {"version", "dependencies": {...}}}`` from the roots.

        Like ``render_tree``, a package with dependencies is expanded once;
        later occurrences are ``{"version", "deduped": True}``.
        """
        expanded: Set[str] = set()

        def _expand(name: str) -> Dict[str, Any]:
            node = self.nodes[name]
            if name in expanded and node.dependencies:
                return {"version": node.version, "deduped": True}
            expanded.add(name)
            return {
                "version": node.version,
                "dependencies": {child: _expand(child) for child in node.dependencies},
            }

        return {name: _expand(name) for name in sorted(self.roots) if name in self.nodes}

    def to_dict(self) -> Dict[str, Any]:
        """Machine-readable resolution result."""
        return {
            "roots": dict(sorted(self.roots.items())),
            "resolved": self.resolved_map(),
            "tree": self.nested_tree(),
        }


def render_tree(graph: DependencyGraph, *, show_kind: bool = False) -> str:
    """Render the graph as an indented tree.

    Packages already expanded elsewhere are printed once more with
    ``(deduped)`` and not expanded again.
    """
    lines: List[str] = []
    expanded: Set[str] = set()

    def _label(node: GraphNode) -> str:
        label = f"{node.name}@{node.version}"
        if show_kind and node.kind:
            label += f" [{node.kind}]"
        return label

    def _walk(name: str, prefix: str, last: bool) -> None:
        node = graph.nodes[name]
        connector = "└── " if last else "├── "
        if name in expanded and node.dependencies:
            lines.append(f"{prefix}{connector}{_label(node)} (deduped)")
            return
        lines.append(f"{prefix}{connector}{_label(node)}")
        expanded.add(name)
        child_prefix = prefix + ("    " if last else "│   ")
        for i, child in enumerate(node.dependencies):
            _walk(child, child_prefix, i == len(node.dependencies) - 1)

    roots = [n for n in sorted(graph.roots) if n in graph.nodes]
    for i, name in enumerate(roots):
        _walk(name, "", i == len(roots) - 1)
    return "\n".join(lines)
