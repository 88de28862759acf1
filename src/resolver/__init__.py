"""Dependency graph construction."""

from .builder import GraphBuilder, resolve
from .graph import DependencyGraph, GraphNode, render_tree

__all__ = ["GraphBuilder", "resolve", "DependencyGraph", "GraphNode", "render_tree"]
