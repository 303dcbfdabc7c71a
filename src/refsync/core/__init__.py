"""
Core modules for refsync.

This package contains the collaborators the reference sync runs against:
- types: ProjectNode, DependencyEdge, ProjectGraph
- tree: Workspace file tree with staged writes
- graph: Project graph loading and discovery
- formatter: Formatting of changed files
"""

from .tree import ChangeType, FileChange, FsTree, MemoryTree, Tree, read_json, write_json
from .types import DependencyEdge, DependencyType, ProjectGraph, ProjectNode, ReferenceKind

__all__ = [
    # Types
    "ProjectNode", "DependencyEdge", "DependencyType", "ProjectGraph", "ReferenceKind",
    # Tree
    "Tree", "FsTree", "MemoryTree", "FileChange", "ChangeType", "read_json", "write_json",
]
