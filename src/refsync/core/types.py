"""
Core type definitions for refsync.

Projects, dependency edges and the workspace project graph, as supplied by
the graph provider and consumed by the reference sync.
"""

import posixpath
from enum import StrEnum
from typing import Dict, List, Optional

import rustworkx as rx
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ReferenceKind(StrEnum):
    """Classification of an existing manifest reference."""
    LOCAL = "local"
    CROSS_PROJECT = "cross_project"


class DependencyType(StrEnum):
    """How a dependency edge was discovered."""
    STATIC = "static"
    IMPLICIT = "implicit"
    EXTERNAL = "external"


class ProjectNode(BaseModel):
    """
    A workspace project.

    ``root`` is the workspace-relative POSIX directory of the project, ``"."``
    for the workspace root pseudo-project.
    """
    name: str
    root: str
    project_type: Optional[str] = None
    tags: List[str] = Field(default_factory=list)

    model_config = ConfigDict(frozen=True)

    @field_validator("root")
    @classmethod
    def _normalize_root(cls, value: str) -> str:
        # "libs/a/", "./libs/a" and "libs/a" are the same project root
        return posixpath.normpath(value.replace("\\", "/")) if value else "."

    @property
    def is_workspace_root(self) -> bool:
        return self.root == "."


class DependencyEdge(BaseModel):
    """``source`` depends on ``target``. ``target`` may be an external package."""
    source: str
    target: str
    type: DependencyType = DependencyType.STATIC

    model_config = ConfigDict(frozen=True)


class ProjectGraph(BaseModel):
    """
    Snapshot of the workspace dependency graph.

    Edge lists keep the order the provider reported them in; that order
    drives the order of generated references.
    """
    nodes: Dict[str, ProjectNode] = Field(default_factory=dict)
    dependencies: Dict[str, List[DependencyEdge]] = Field(default_factory=dict)

    def get_node(self, name: str) -> Optional[ProjectNode]:
        return self.nodes.get(name)

    def dependencies_of(self, name: str) -> List[DependencyEdge]:
        return self.dependencies.get(name, [])

    def project_roots(self) -> List[str]:
        return [node.root for node in self.nodes.values()]

    def _to_rustworkx(self) -> rx.PyDiGraph:
        graph = rx.PyDiGraph()
        indices = {name: graph.add_node(name) for name in self.nodes}
        for name, edges in self.dependencies.items():
            if name not in indices:
                continue
            for edge in edges:
                if edge.target in indices and edge.target != name:
                    graph.add_edge(indices[name], indices[edge.target], edge.type)
        return graph

    def find_cycles(self) -> List[List[str]]:
        """
        Groups of projects that depend on each other in a cycle.

        Each group is a strongly connected component with more than one
        project, names sorted; groups are sorted by their first name.
        """
        graph = self._to_rustworkx()
        if rx.is_directed_acyclic_graph(graph):
            return []
        components = [
            sorted(graph[idx] for idx in component)
            for component in rx.strongly_connected_components(graph)
            if len(component) > 1
        ]
        return sorted(components)

    def topological_order(self) -> List[str]:
        """
        Project names ordered so that every project comes after its dependencies.

        Raises:
            rustworkx.DAGHasCycle: If the graph contains a cycle.
        """
        graph = self._to_rustworkx()
        order = rx.topological_sort(graph)
        return [graph[idx] for idx in reversed(order)]
