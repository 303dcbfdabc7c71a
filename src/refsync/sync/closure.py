"""
Dependency Closure.

Collects, for each project, the workspace projects it depends on: each
direct dependency (in graph order) followed, when transitive collection is
enabled, by that dependency's own closure.

Closures are memoized per collector, so one collector should live for
exactly one sync run. The walk keeps its own stack, so the depth of the
dependency chain is not limited by the interpreter's recursion limit.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set

from ..core.types import ProjectGraph, ProjectNode

logger = logging.getLogger(__name__)


@dataclass
class _Frame:
    """A project whose closure is being collected."""

    name: str
    collected: List[ProjectNode]
    names: Set[str]
    edge_index: int = 0
    waiting_on: Optional[str] = None

    def add(self, nodes: List[ProjectNode]) -> None:
        for node in nodes:
            if node.name not in self.names:
                self.names.add(node.name)
                self.collected.append(node)


class DependencyCollector:
    """
    Memoized dependency closure computer.

    A project's slot is reserved before its dependencies are visited. When a
    cycle leads back to a project that is still being collected, the caller
    sees that project's partial closure instead of walking it again; the
    project is recorded in ``cycles``.

    Attributes:
        graph: The workspace project graph.
        include_transitive: Whether to follow dependencies of dependencies.
        cycles: Projects whose closure was observed while still in progress.
    """

    def __init__(self, graph: ProjectGraph, include_transitive: bool = True):
        self.graph = graph
        self.include_transitive = include_transitive
        self.cycles: Set[str] = set()
        self._collected: Dict[str, List[ProjectNode]] = {}
        self._in_progress: Set[str] = set()

    def _memoized(self, project_name: str) -> List[ProjectNode]:
        if project_name in self._in_progress:
            logger.debug(f'Dependency cycle through "{project_name}", using partial closure')
            self.cycles.add(project_name)
        return self._collected[project_name]

    def _enter(self, project_name: str) -> _Frame:
        collected: List[ProjectNode] = []
        self._collected[project_name] = collected
        self._in_progress.add(project_name)
        return _Frame(name=project_name, collected=collected, names={project_name})

    def collect(self, project_name: str) -> List[ProjectNode]:
        """
        Ordered, deduplicated dependency projects of ``project_name``.

        Edges to targets that are not workspace projects (external packages)
        are skipped. A project never appears in its own closure.
        """
        if project_name in self._collected:
            return self._memoized(project_name)

        stack = [self._enter(project_name)]
        while stack:
            frame = stack[-1]
            if frame.waiting_on is not None:
                frame.add(self._collected[frame.waiting_on])
                frame.waiting_on = None

            edges = self.graph.dependencies_of(frame.name)
            descended = False
            while frame.edge_index < len(edges):
                edge = edges[frame.edge_index]
                frame.edge_index += 1

                target = self.graph.get_node(edge.target)
                if target is None:
                    # external package
                    continue
                frame.add([target])

                if not self.include_transitive:
                    continue
                if edge.target in self._collected:
                    frame.add(self._memoized(edge.target))
                    continue

                frame.waiting_on = edge.target
                stack.append(self._enter(edge.target))
                descended = True
                break

            if not descended:
                self._in_progress.discard(frame.name)
                stack.pop()

        return self._collected[project_name]


def collect_project_dependencies(
    graph: ProjectGraph,
    project_name: str,
    include_transitive: bool = True,
) -> List[ProjectNode]:
    """Convenience wrapper computing a single closure with a fresh collector."""
    return DependencyCollector(graph, include_transitive).collect(project_name)
