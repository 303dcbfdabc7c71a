"""
Reference Sync.

Drives the reconciliation of every manifest in the workspace against the
project graph:

    1. Check the workspace configuration registers the plugin.
    2. Keep the root manifest referencing every project with a manifest.
    3. For each project, reconcile its runtime manifests and its default
       manifest with the project's dependency closure.
    4. Format the changed files and report that the workspace was out of sync.

Nothing is written to disk here; changes are staged on the tree and the
caller decides whether to commit them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from ..config import (
    MANIFEST_FILE_NAME,
    PLUGIN_NAME,
    WORKSPACE_CONFIG_FILE,
    SyncOptions,
    read_workspace_config,
    resolve_sync_options,
)
from ..core.formatter import format_files
from ..core.graph import create_project_graph_async
from ..core.tree import FsTree, Tree
from ..core.types import ProjectGraph, ProjectNode
from .closure import DependencyCollector
from .paths import join_path_fragments
from .references import update_manifest_references, update_root_references

logger = logging.getLogger(__name__)

ROOT_MANIFEST_PATH = MANIFEST_FILE_NAME

OUT_OF_SYNC_MESSAGE = (
    "Based on the workspace project graph, some TypeScript configuration files "
    "are missing project references to the projects they depend on."
)


class SyncConfigurationError(Exception):
    """Raised when the workspace is not set up for reference syncing."""


@dataclass
class SyncResult:
    """
    Outcome of a sync run that found the workspace out of sync.

    Attributes:
        out_of_sync_message: Human-readable summary for the caller.
        changed_files: Workspace paths of the manifests that were updated.
        cycles: Groups of projects that depend on each other in a cycle.
    """

    out_of_sync_message: str
    changed_files: List[str] = field(default_factory=list)
    cycles: List[List[str]] = field(default_factory=list)


def _manifest_path(project: ProjectNode, file_name: str = MANIFEST_FILE_NAME) -> str:
    return join_path_fragments(project.root, file_name)


def _check_preconditions(tree: Tree) -> None:
    config = read_workspace_config(tree)
    if not config.has_plugin(PLUGIN_NAME):
        raise SyncConfigurationError(
            f'The "{PLUGIN_NAME}" plugin must be added to the "plugins" list in '
            f"{WORKSPACE_CONFIG_FILE} before syncing manifests. Run 'refsync init' to add it."
        )
    if not tree.exists(ROOT_MANIFEST_PATH):
        raise SyncConfigurationError(
            f'A "{ROOT_MANIFEST_PATH}" file must exist in the workspace root.'
        )


def _sync_project(
    tree: Tree,
    project: ProjectNode,
    collector: DependencyCollector,
    project_roots: List[str],
    options: SyncOptions,
) -> bool:
    dependencies = []
    for dependency in collector.collect(project.name):
        if tree.exists(_manifest_path(dependency)):
            dependencies.append(dependency)
        elif options.verbose:
            logger.warning(
                f'Skipping dependency "{dependency.name}" of project "{project.name}" as there '
                f'is no {MANIFEST_FILE_NAME} file in its root "{dependency.root}".'
            )

    has_changes = False
    for runtime_name in options.runtime_manifest_names:
        runtime_manifest_path = _manifest_path(project, runtime_name)
        if not tree.exists(runtime_manifest_path):
            continue
        has_changes = (
            update_manifest_references(
                tree,
                runtime_manifest_path,
                dependencies,
                project.root,
                project_roots,
                runtime_name,
                options.runtime_manifest_names,
            )
            or has_changes
        )

    has_changes = (
        update_manifest_references(
            tree,
            _manifest_path(project),
            dependencies,
            project.root,
            project_roots,
        )
        or has_changes
    )
    return has_changes


def sync_project_graph(tree: Tree, graph: ProjectGraph, options: SyncOptions) -> Optional[SyncResult]:
    """
    Reconcile every manifest in ``tree`` with an already loaded graph.

    Returns:
        SyncResult if any manifest changed, None if the workspace is in sync.
    """
    project_roots = graph.project_roots()
    projects = [node for node in graph.nodes.values() if tree.exists(_manifest_path(node))]

    cycles = graph.find_cycles()
    for cycle in cycles:
        logger.warning(
            "Dependency cycle detected between projects: "
            + ", ".join(cycle)
            + ". References generated for these projects may be incomplete."
        )

    has_changes = False
    if projects:
        has_changes = update_root_references(tree, ROOT_MANIFEST_PATH, projects) or has_changes

    collector = DependencyCollector(graph, include_transitive=options.include_transitive)
    for node in graph.nodes.values():
        if node.is_workspace_root:
            continue
        if not tree.exists(_manifest_path(node)):
            if options.verbose:
                logger.warning(
                    f'Skipping project "{node.name}" as there is no {MANIFEST_FILE_NAME} '
                    f'file found in the project root "{node.root}".'
                )
            continue
        has_changes = _sync_project(tree, node, collector, project_roots, options) or has_changes

    if not has_changes:
        logger.debug("All manifest references are in sync")
        return None

    format_files(tree, options.format)
    return SyncResult(
        out_of_sync_message=OUT_OF_SYNC_MESSAGE,
        changed_files=[change.path for change in tree.list_changes()],
        cycles=cycles,
    )


async def sync_references(
    tree: Tree,
    graph: Optional[ProjectGraph] = None,
    options: Optional[SyncOptions] = None,
    graph_file: Optional[Path] = None,
) -> Optional[SyncResult]:
    """
    Sync manifest references with the workspace project graph.

    Args:
        tree: Workspace tree. Changes are staged, not committed.
        graph: Project graph to use. Loaded from the workspace when omitted,
            which requires ``tree`` to be an FsTree.
        options: Sync options. Resolved from refsync.yaml and the
            environment when omitted.
        graph_file: Exported graph to load instead of discovering projects.

    Returns:
        SyncResult if the workspace was out of sync, None otherwise.

    Raises:
        SyncConfigurationError: If the plugin is not registered or the root
            manifest is missing.
    """
    _check_preconditions(tree)

    if options is None:
        options = resolve_sync_options(read_workspace_config(tree))

    if graph is None:
        if not isinstance(tree, FsTree):
            raise SyncConfigurationError("A project graph is required for in-memory trees.")
        graph = await create_project_graph_async(tree.root, graph_file)

    return sync_project_graph(tree, graph, options)
