"""
Project Graph Provider.

Builds the workspace ProjectGraph consumed by the reference sync, either
from an exported project-graph JSON file or by discovering projects on disk.

Discovery:
    - Every directory holding a package.json or project.json is a project.
    - Project name: project.json "name" > package.json "name" > directory name.
    - Edges: package.json dependency sections matched against workspace
      package names (anything else is an external ``npm:`` edge), plus
      project.json "implicitDependencies".
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import posixpath
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..config import IGNORE_DIRECTORIES, MAX_DIRECTORY_DEPTH
from .types import DependencyEdge, DependencyType, ProjectGraph, ProjectNode

logger = logging.getLogger(__name__)

PACKAGE_DEPENDENCY_SECTIONS = (
    "dependencies",
    "devDependencies",
    "peerDependencies",
    "optionalDependencies",
)


class GraphLoadError(Exception):
    """
    Raised when the project graph cannot be built.

    Attributes:
        path: The file that could not be read, if any.
        message: Human-readable error message.
    """

    def __init__(self, message: str, path: Optional[Path] = None):
        self.path = path
        self.message = message
        super().__init__(f"{path}: {message}" if path else message)


# =============================================================================
# Graph File
# =============================================================================


def _parse_graph_data(data: Dict[str, Any], path: Path) -> ProjectGraph:
    # `nx graph --file` wraps everything under "graph"
    body = data.get("graph", data)
    raw_nodes = body.get("nodes")
    if not isinstance(raw_nodes, dict):
        raise GraphLoadError('Expected a "nodes" object', path)

    nodes: Dict[str, ProjectNode] = {}
    for name, raw in raw_nodes.items():
        node_data = raw.get("data", raw)
        root = node_data.get("root")
        if root is None:
            raise GraphLoadError(f'Project "{name}" has no root', path)
        nodes[name] = ProjectNode(
            name=raw.get("name", name),
            root=posixpath.normpath(root.replace("\\", "/")) if root else ".",
            project_type=raw.get("type") or node_data.get("projectType"),
            tags=node_data.get("tags", []),
        )

    dependencies: Dict[str, List[DependencyEdge]] = {}
    for name, raw_edges in (body.get("dependencies") or {}).items():
        edges = []
        for raw in raw_edges:
            edge_type = raw.get("type", DependencyType.STATIC.value)
            if edge_type == "dynamic":
                edge_type = DependencyType.STATIC.value
            edges.append(
                DependencyEdge(
                    source=raw.get("source", name),
                    target=raw["target"],
                    type=DependencyType(edge_type),
                )
            )
        dependencies[name] = edges

    return ProjectGraph(nodes=nodes, dependencies=dependencies)


def load_graph_file(path: Path) -> ProjectGraph:
    """
    Load a project graph exported as JSON.

    Accepts the ``{"graph": {"nodes": ..., "dependencies": ...}}`` shape
    written by ``nx graph --file``, and the same shape without the
    ``graph`` wrapper, with ``root`` directly on each node.

    Raises:
        GraphLoadError: If the file is missing or malformed.
    """
    if not path.exists():
        raise GraphLoadError("Graph file not found", path)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return _parse_graph_data(data, path)
    except GraphLoadError:
        raise
    except Exception as e:
        raise GraphLoadError(f"Failed to parse graph file: {e}", path)


# =============================================================================
# Discovery
# =============================================================================


@dataclass
class _DiscoveredProject:
    name: str
    root: str
    project_type: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    package_name: Optional[str] = None
    package_dependencies: List[str] = field(default_factory=list)
    implicit_dependencies: List[str] = field(default_factory=list)


def _read_json_file(path: Path) -> Dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise GraphLoadError(f"Failed to parse: {e}", path)
    if not isinstance(data, dict):
        raise GraphLoadError("Expected a JSON object", path)
    return data


def _iter_project_dirs(workspace_root: Path):
    for dirpath, dirnames, filenames in os.walk(workspace_root):
        current = Path(dirpath)
        depth = len(current.relative_to(workspace_root).parts)
        if depth >= MAX_DIRECTORY_DEPTH:
            dirnames[:] = []
        else:
            dirnames[:] = sorted(d for d in dirnames if d not in IGNORE_DIRECTORIES)

        if "package.json" in filenames or "project.json" in filenames:
            yield current, set(filenames)


def _read_project(workspace_root: Path, directory: Path, filenames: set) -> _DiscoveredProject:
    root = directory.relative_to(workspace_root).as_posix() or "."
    package = _read_json_file(directory / "package.json") if "package.json" in filenames else {}
    project = _read_json_file(directory / "project.json") if "project.json" in filenames else {}

    package_name = package.get("name")
    name = project.get("name") or package_name or directory.name

    package_dependencies: List[str] = []
    for section in PACKAGE_DEPENDENCY_SECTIONS:
        for dep_name in (package.get(section) or {}):
            if dep_name not in package_dependencies:
                package_dependencies.append(dep_name)

    return _DiscoveredProject(
        name=name,
        root=root,
        project_type=project.get("projectType"),
        tags=project.get("tags", []),
        package_name=package_name,
        package_dependencies=package_dependencies,
        implicit_dependencies=[
            dep for dep in project.get("implicitDependencies", []) if not dep.startswith("!")
        ],
    )


def discover_project_graph(workspace_root: Path) -> ProjectGraph:
    """
    Discover workspace projects and their dependencies on disk.

    Args:
        workspace_root: The workspace root directory.

    Returns:
        ProjectGraph with one node per project directory.

    Raises:
        GraphLoadError: If a package.json/project.json cannot be parsed, or
            two projects share a name.
    """
    workspace_root = workspace_root.resolve()
    projects: List[_DiscoveredProject] = []

    for directory, filenames in _iter_project_dirs(workspace_root):
        projects.append(_read_project(workspace_root, directory, filenames))

    nodes: Dict[str, ProjectNode] = {}
    by_package_name: Dict[str, str] = {}
    for project in projects:
        if project.name in nodes:
            raise GraphLoadError(
                f'Duplicate project name "{project.name}" at '
                f'"{nodes[project.name].root}" and "{project.root}"'
            )
        nodes[project.name] = ProjectNode(
            name=project.name,
            root=project.root,
            project_type=project.project_type,
            tags=project.tags,
        )
        if project.package_name:
            by_package_name[project.package_name] = project.name

    dependencies: Dict[str, List[DependencyEdge]] = {}
    for project in projects:
        edges: List[DependencyEdge] = []
        seen = set()

        for dep_name in project.package_dependencies:
            if dep_name in by_package_name:
                target, edge_type = by_package_name[dep_name], DependencyType.STATIC
            else:
                target, edge_type = f"npm:{dep_name}", DependencyType.EXTERNAL
            if target == project.name or target in seen:
                continue
            seen.add(target)
            edges.append(DependencyEdge(source=project.name, target=target, type=edge_type))

        for dep_name in project.implicit_dependencies:
            if dep_name not in nodes:
                logger.warning(
                    f'Project "{project.name}" has an implicit dependency on unknown project "{dep_name}"'
                )
                continue
            if dep_name == project.name or dep_name in seen:
                continue
            seen.add(dep_name)
            edges.append(
                DependencyEdge(source=project.name, target=dep_name, type=DependencyType.IMPLICIT)
            )

        dependencies[project.name] = edges

    logger.debug(f"Discovered {len(nodes)} project(s) under {workspace_root}")
    return ProjectGraph(nodes=nodes, dependencies=dependencies)


async def create_project_graph_async(
    workspace_root: Path,
    graph_file: Optional[Path] = None,
) -> ProjectGraph:
    """
    Build the project graph without blocking the event loop.

    Args:
        workspace_root: The workspace root directory.
        graph_file: Exported graph to load instead of discovering projects.
    """
    if graph_file is not None:
        return await asyncio.to_thread(load_graph_file, graph_file)
    return await asyncio.to_thread(discover_project_graph, workspace_root)
