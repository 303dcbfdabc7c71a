"""
Reference path helpers and the Local / CrossProject classifier.

Reference paths are stored relative to the manifest that holds them; every
helper here works on workspace-relative POSIX paths.
"""

import posixpath
import re
from typing import Collection

from ..config import MANIFEST_FILE_NAME
from ..core.tree import Tree
from ..core.types import ReferenceKind

_TRAILING_MANIFEST = re.compile(rf"/{re.escape(MANIFEST_FILE_NAME)}$")


def join_path_fragments(*fragments: str) -> str:
    """Join and normalize path fragments. The workspace root is ``"."``."""
    return posixpath.normpath(posixpath.join(*fragments))


def dirname(path: str) -> str:
    return posixpath.dirname(path) or "."


def relative_path(start: str, path: str) -> str:
    """Relative path from directory ``start`` to ``path``."""
    return posixpath.relpath(path, start)


def normalize_reference_path(path: str) -> str:
    """
    Normalize a reference path for comparison.

    Strips a leading ``./`` and a trailing ``/tsconfig.json``, so
    ``./libs/a``, ``libs/a/`` and ``libs/a/tsconfig.json`` compare equal.
    """
    return _TRAILING_MANIFEST.sub("", posixpath.normpath(path))


def resolve_reference_manifest_path(tree: Tree, owner_manifest_path: str, reference_path: str) -> str:
    """
    Workspace path of the manifest a reference points at.

    A reference naming a file points at that file; a reference naming a
    directory points at the directory's default manifest.
    """
    resolved = join_path_fragments(dirname(owner_manifest_path), reference_path)
    if tree.is_file(resolved):
        return resolved
    return join_path_fragments(resolved, MANIFEST_FILE_NAME)


def manifest_directory(tree: Tree, manifest_path: str) -> str:
    if tree.is_file(manifest_path):
        return dirname(manifest_path)
    return posixpath.normpath(manifest_path)


def is_outside(project_root: str, path: str) -> bool:
    relative = relative_path(project_root, path)
    return relative == ".." or relative.startswith("../")


def classify_reference(
    tree: Tree,
    referenced_manifest_path: str,
    project_root: str,
    project_roots: Collection[str],
) -> ReferenceKind:
    """
    Decide whether a reference stays inside its owning project.

    A reference is CROSS_PROJECT when it leaves ``project_root``, or when it
    lands inside another registered project nested under ``project_root``.
    Anything else, ``project_root`` itself included, is LOCAL.

    Args:
        tree: Workspace tree, used to tell files from directories.
        referenced_manifest_path: Workspace path the reference resolves to.
        project_root: Root of the project owning the manifest.
        project_roots: Roots of every workspace project.
    """
    project_root = posixpath.normpath(project_root)
    project_roots = {posixpath.normpath(root) for root in project_roots}
    current = manifest_directory(tree, referenced_manifest_path)

    if is_outside(project_root, current):
        return ReferenceKind.CROSS_PROJECT

    while current != project_root and current != ".":
        if current in project_roots:
            return ReferenceKind.CROSS_PROJECT
        current = dirname(current)

    return ReferenceKind.LOCAL
