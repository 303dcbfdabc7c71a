"""
Reference sync.

- paths: reference path normalization and Local / CrossProject classification
- closure: memoized dependency closures
- variants: runtime manifest resolution
- references: per-manifest and root manifest reconciliation
- generator: the workspace-wide sync run
"""

from .closure import DependencyCollector, collect_project_dependencies
from .generator import (
    OUT_OF_SYNC_MESSAGE,
    SyncConfigurationError,
    SyncResult,
    sync_project_graph,
    sync_references,
)
from .references import update_manifest_references, update_root_references

__all__ = [
    "DependencyCollector",
    "collect_project_dependencies",
    "OUT_OF_SYNC_MESSAGE",
    "SyncConfigurationError",
    "SyncResult",
    "sync_project_graph",
    "sync_references",
    "update_manifest_references",
    "update_root_references",
]
