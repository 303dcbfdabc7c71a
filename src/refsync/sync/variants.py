"""
Runtime manifest resolution.

A runtime-flavored manifest (``tsconfig.lib.json``, ``tsconfig.build.json``,
...) should reference the matching flavor of its dependencies rather than
their default manifest.
"""

from typing import Optional, Sequence

from ..core.tree import Tree
from ..core.types import ProjectNode
from .paths import join_path_fragments


def resolve_reference_target(
    tree: Tree,
    dependency: ProjectNode,
    runtime_manifest_name: Optional[str] = None,
    runtime_manifest_names: Sequence[str] = (),
) -> str:
    """
    Workspace path a manifest should reference for ``dependency``.

    Resolution order:
        1. The dependency's manifest with the same runtime name.
        2. The first of ``runtime_manifest_names`` the dependency has.
        3. The dependency root (its default manifest).

    Steps 1 and 2 only apply when ``runtime_manifest_name`` is given.
    """
    if not runtime_manifest_name:
        return dependency.root

    same_flavor = join_path_fragments(dependency.root, runtime_manifest_name)
    if tree.exists(same_flavor):
        return same_flavor

    # TODO: warn when a dependency has more than one runtime manifest
    for candidate_name in runtime_manifest_names:
        candidate = join_path_fragments(dependency.root, candidate_name)
        if tree.exists(candidate):
            return candidate

    return dependency.root
