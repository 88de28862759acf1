"""Dependency graph builder.

Depth-first, memoized expansion of root constraints into a flat graph with
one resolved version per package name. Any unresolvable edge, cycle,
conflict or depth violation aborts the whole resolution.
"""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field, replace
from typing import Dict, List, Mapping, Optional, Sequence, Set, Tuple

from constants import Constants
from common.logging_utils import extra_context, is_debug_enabled, Timer
from errors import (
    ROOT,
    CyclicDependency,
    Edge,
    MaxDepthExceeded,
    NoSatisfyingVersion,
    PackageNotFound,
    VersionConflict,
    VersionNotFound,
)
from registry.provider import MetadataProvider, PackageVersionDescriptor
from versioning.matcher import best_match, parse_version, satisfies, validate_constraint
from versioning.models import NoMatch, VersionSpec
from .graph import DependencyGraph, GraphNode

logger = logging.getLogger(__name__)


@dataclass
class _Walk:
    """Recursion state for one resolution run.

    ``path`` is the chain currently being expanded and ``visiting`` the same
    names as a set; ``resolved`` holds finished nodes. ``chains`` keeps the
    longest chain below each finished node so depth limits do not depend on
    visit order.
    """

    preferred: Mapping[str, str]
    path: List[str] = field(default_factory=list)
    visiting: Set[str] = field(default_factory=set)
    resolved: Dict[str, GraphNode] = field(default_factory=dict)
    edges: Dict[str, Edge] = field(default_factory=dict)
    chains: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    pending: Dict[str, "Future[List[str]]"] = field(default_factory=dict)


class GraphBuilder:
    """Resolves root constraints against a :class:`MetadataProvider`.

    Version lists for a node's direct dependencies are prefetched on a thread
    pool; every graph mutation happens on the calling thread.
    """

    def __init__(
        self,
        provider: MetadataProvider,
        *,
        max_depth: Optional[int] = None,
        max_workers: Optional[int] = None,
    ):
        self.provider = provider
        self.max_depth = Constants.MAX_DEPTH if max_depth is None else int(max_depth)
        if not 1 <= self.max_depth <= Constants.MAX_DEPTH_LIMIT:
            raise ValueError(
                f"max_depth must be between 1 and {Constants.MAX_DEPTH_LIMIT}, got {self.max_depth}"
            )
        self.max_workers = Constants.MAX_CONCURRENCY if max_workers is None else int(max_workers)
        self._executor: Optional[ThreadPoolExecutor] = None

    def resolve(
        self,
        root_name: str,
        root_constraint: Optional[str] = None,
        *,
        preferred: Optional[Mapping[str, str]] = None,
    ) -> DependencyGraph:
        """Resolve a single package and everything it depends on."""
        return self.resolve_project({root_name: root_constraint or ""}, preferred=preferred)

    def resolve_project(
        self,
        constraints: Mapping[str, str],
        *,
        preferred: Optional[Mapping[str, str]] = None,
    ) -> DependencyGraph:
        """Resolve every top-level constraint into one graph.

        Args:
            constraints: Top-level ``{name: range}``.
            preferred: ``{name: version}`` to keep whenever that version is
                still published and satisfies the requesting edge.

        Raises:
            ResolutionError: on the first failure; nothing partial is returned.
        """
        walk = _Walk(preferred=dict(preferred or {}))
        roots = {name: (constraints[name] or "") for name in sorted(constraints)}
        if is_debug_enabled(logger):
            logger.debug(
                "Resolution start",
                extra=extra_context(
                    event="function_entry",
                    component="resolver",
                    action="resolve",
                    count=len(roots)
                )
            )

        with Timer() as t:
            if self.max_workers > 1 and roots:
                self._executor = ThreadPoolExecutor(
                    max_workers=self.max_workers, thread_name_prefix="pkglock-lookup"
                )
            try:
                self._prefetch(walk, list(roots))
                for name, constraint in roots.items():
                    self._visit(walk, name, constraint, ROOT, 0)
            finally:
                if self._executor is not None:
                    self._executor.shutdown(wait=True, cancel_futures=True)
                    self._executor = None

        logger.info("Resolved %d packages in %.0f ms", len(walk.resolved), t.duration_ms())
        nodes = {name: walk.resolved[name] for name in sorted(walk.resolved)}
        return DependencyGraph(roots=roots, nodes=nodes)

    # ------------------------------------------------------------------

    def _prefetch(self, walk: _Walk, names: Sequence[str]) -> None:
        if self._executor is None:
            return
        for name in names:
            if name in walk.resolved or name in walk.visiting or name in walk.pending:
                continue
            walk.pending[name] = self._executor.submit(self.provider.list_versions, name)

    def _versions(self, walk: _Walk, name: str, edge: Edge) -> List[str]:
        future = walk.pending.pop(name, None)
        try:
            if future is not None:
                return list(future.result())
            return list(self.provider.list_versions(name))
        except PackageNotFound as exc:
            raise PackageNotFound(
                name,
                requested_by=edge.requester,
                constraint=edge.constraint,
                path=edge.path + (name,),
            ) from exc

    def _describe(self, name: str, version: str, edge: Edge) -> PackageVersionDescriptor:
        try:
            return self.provider.describe(name, version)
        except VersionNotFound as exc:
            raise VersionNotFound(
                name,
                version,
                requested_by=edge.requester,
                constraint=edge.constraint,
                path=edge.path + (name,),
            ) from exc

    def _select(self, walk: _Walk, name: str, versions: List[str], spec: VersionSpec):
        pinned = walk.preferred.get(name)
        if pinned and pinned in versions and satisfies(pinned, spec):
            return pinned
        selected = best_match(versions, spec)
        if isinstance(selected, NoMatch):
            return selected
        # Map back to the registry's own spelling of the version
        for raw in versions:
            if parse_version(raw) == selected:
                return raw
        return str(selected)

    def _check_depth(self, walk: _Walk, name: str, depth: int) -> None:
        chain = walk.chains.get(name, (name,))
        if depth + len(chain) - 1 > self.max_depth:
            raise MaxDepthExceeded(tuple(walk.path) + chain, self.max_depth)

    def _lower_depth(self, walk: _Walk, name: str, depth: int) -> None:
        """Record a shallower path to an already resolved subtree."""
        stack = [(name, depth)]
        while stack:
            current, current_depth = stack.pop()
            node = walk.resolved[current]
            if current_depth >= node.depth:
                continue
            walk.resolved[current] = replace(node, depth=current_depth)
            stack.extend((child, current_depth + 1) for child in node.dependencies)

    def _visit(self, walk: _Walk, name: str, constraint: str, requester: str, depth: int) -> None:
        spec = validate_constraint(constraint)
        edge = Edge(requester=requester, name=name, constraint=spec.raw, path=tuple(walk.path))

        existing = walk.resolved.get(name)
        if existing is not None:
            if not satisfies(existing.version, spec):
                raise VersionConflict(name, walk.edges[name], edge, existing.version)
            self._check_depth(walk, name, depth)
            if depth < existing.depth:
                self._lower_depth(walk, name, depth)
            return

        if name in walk.visiting:
            start = walk.path.index(name)
            raise CyclicDependency(walk.path[start:] + [name])

        if depth > self.max_depth:
            raise MaxDepthExceeded(tuple(walk.path) + (name,), self.max_depth)

        versions = self._versions(walk, name, edge)
        selected = self._select(walk, name, versions, spec)
        if isinstance(selected, NoMatch):
            raise NoSatisfyingVersion(
                name,
                spec.raw or "*",
                selected.candidates,
                requested_by=requester,
                path=edge.path + (name,),
            )

        descriptor = self._describe(name, selected, edge)
        declared = dict(descriptor.dependencies)
        children = sorted(declared)
        if is_debug_enabled(logger):
            logger.debug(
                "Selected version",
                extra=extra_context(
                    event="decision",
                    component="resolver",
                    action="select",
                    package=name,
                    version=selected,
                    count=len(children)
                )
            )

        walk.edges[name] = edge
        walk.visiting.add(name)
        walk.path.append(name)
        self._prefetch(walk, children)
        for child in children:
            self._visit(walk, child, declared[child], name, depth + 1)
        walk.path.pop()
        walk.visiting.discard(name)

        longest: Tuple[str, ...] = ()
        for child in children:
            if len(walk.chains[child]) > len(longest):
                longest = walk.chains[child]
        walk.chains[name] = (name,) + longest
        walk.resolved[name] = GraphNode(
            name=name,
            version=selected,
            depth=depth,
            dependencies=tuple(children),
            declared=declared,
            kind=descriptor.kind,
            resolved=descriptor.resolved,
            integrity=descriptor.integrity,
        )


def resolve(
    provider: MetadataProvider,
    root_name: str,
    root_constraint: Optional[str] = None,
    max_depth: Optional[int] = None,
) -> DependencyGraph:
    """Resolve ``root_name`` at ``root_constraint`` into a DependencyGraph."""
    return GraphBuilder(provider, max_depth=max_depth).resolve(root_name, root_constraint)
