"""
Manifest reference reconciliation.

Rewrites the ``references`` list of a single manifest so that its
cross-project entries mirror the dependency graph, and keeps the workspace
root manifest pointing at every project that owns a manifest.

Local references (pointing inside the owning project) are never touched.
Cross-project references are never hand-maintained: they are dropped and
regenerated from the graph on every run.
"""

from __future__ import annotations

import logging
from typing import Any, Collection, Dict, List, Optional, Sequence

from ..core.tree import Tree, read_json, write_json
from ..core.types import ProjectNode, ReferenceKind
from .paths import (
    classify_reference,
    normalize_reference_path,
    relative_path,
    resolve_reference_manifest_path,
)
from .variants import resolve_reference_target

logger = logging.getLogger(__name__)


def update_manifest_references(
    tree: Tree,
    manifest_path: str,
    dependencies: Sequence[ProjectNode],
    project_root: str,
    project_roots: Collection[str],
    runtime_manifest_name: Optional[str] = None,
    runtime_manifest_names: Sequence[str] = (),
) -> bool:
    """
    Reconcile the references of one project manifest with its dependencies.

    Local references are kept verbatim and in order. Every dependency gets a
    reference, inserted at the front of the list, so that later (usually
    deeper) dependencies come first. This is a best-effort build order for
    tools that walk the list sequentially, not a topological sort.

    Args:
        tree: Workspace tree.
        manifest_path: Workspace path of the manifest to update.
        dependencies: Dependency closure of the owning project.
        project_root: Root of the owning project.
        project_roots: Roots of every workspace project.
        runtime_manifest_name: Runtime flavor of this manifest, if any.
        runtime_manifest_names: Recognized runtime flavors, in priority order.

    Returns:
        True if the references changed and the manifest was rewritten.
    """
    manifest: Dict[str, Any] = read_json(tree, manifest_path)
    original_references = manifest.get("references") or []

    references: List[Dict[str, Any]] = []
    original_paths = set()
    kept_paths = set()

    for ref in original_references:
        normalized = normalize_reference_path(ref["path"])
        original_paths.add(normalized)

        referenced = resolve_reference_manifest_path(tree, manifest_path, ref["path"])
        kind = classify_reference(tree, referenced, project_root, project_roots)
        if kind is ReferenceKind.LOCAL and normalized not in kept_paths:
            references.append(ref)
            kept_paths.add(normalized)

    has_changes = False
    for dependency in dependencies:
        target = resolve_reference_target(
            tree, dependency, runtime_manifest_name, runtime_manifest_names
        )
        reference_path = relative_path(project_root, target)
        normalized = normalize_reference_path(reference_path)

        if normalized not in kept_paths:
            kept_paths.add(normalized)
            references.insert(0, {"path": reference_path})
        if normalized not in original_paths:
            has_changes = True

    has_changes = (
        has_changes
        or kept_paths != original_paths
        or len(references) != len(original_references)
    )

    if has_changes:
        logger.debug(f"Updating references of {manifest_path}")
        manifest["references"] = references
        write_json(tree, manifest_path, manifest)

    return has_changes


def update_root_references(
    tree: Tree,
    root_manifest_path: str,
    projects: Sequence[ProjectNode],
) -> bool:
    """
    Keep the root manifest referencing every project that owns a manifest.

    Existing references survive as long as their target manifest exists;
    references to new projects are appended in project order. The workspace
    root project itself is never referenced.

    Args:
        tree: Workspace tree.
        root_manifest_path: Workspace path of the root manifest.
        projects: Projects owning a manifest.

    Returns:
        True if the references changed and the root manifest was rewritten.
    """
    root_manifest: Dict[str, Any] = read_json(tree, root_manifest_path)
    original_references = root_manifest.get("references") or []

    # insertion-ordered set
    reference_paths: Dict[str, None] = {}
    has_changes = False

    for ref in original_references:
        referenced = resolve_reference_manifest_path(tree, root_manifest_path, ref["path"])
        normalized = normalize_reference_path(ref["path"])
        if tree.exists(referenced) and normalized not in reference_paths:
            reference_paths[normalized] = None
        else:
            logger.debug(f"Dropping root reference to {ref['path']}")
            has_changes = True

    for project in projects:
        if project.is_workspace_root:
            continue
        normalized = normalize_reference_path(project.root)
        if normalized not in reference_paths:
            reference_paths[normalized] = None
            has_changes = True

    if has_changes:
        root_manifest["references"] = [{"path": f"./{path}"} for path in reference_paths]
        write_json(tree, root_manifest_path, root_manifest)

    return has_changes
