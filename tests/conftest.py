"""
Shared fixtures and builders for refsync tests.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional

import pytest

from refsync.config import PLUGIN_NAME
from refsync.core.tree import MemoryTree
from refsync.core.types import DependencyEdge, ProjectGraph, ProjectNode


def manifest(*paths: str, **extra) -> str:
    """Serialized manifest with the given reference paths."""
    data = dict(extra)
    if paths:
        data["references"] = [{"path": p} for p in paths]
    return json.dumps(data, indent=2) + "\n"


def references_of(tree: MemoryTree, path: str) -> List[str]:
    return [ref["path"] for ref in json.loads(tree.read(path)).get("references", [])]


def make_graph(
    projects: Dict[str, str],
    dependencies: Optional[Dict[str, List[str]]] = None,
) -> ProjectGraph:
    """Graph from ``{name: root}`` and ``{name: [target, ...]}``."""
    nodes = {name: ProjectNode(name=name, root=root) for name, root in projects.items()}
    edges = {
        name: [DependencyEdge(source=name, target=target) for target in targets]
        for name, targets in (dependencies or {}).items()
    }
    return ProjectGraph(nodes=nodes, dependencies=edges)


@pytest.fixture
def workspace_files() -> Dict[str, str]:
    """Minimal workspace: plugin registered, root manifest present."""
    return {
        "refsync.yaml": f"plugins:\n  - {PLUGIN_NAME}\n",
        "tsconfig.json": manifest(),
    }


def write_files(root: Path, files: Dict[str, str]) -> Path:
    for path, content in files.items():
        target = root / path
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content)
    return root


@pytest.fixture
def disk_workspace(tmp_path, workspace_files) -> Path:
    """
    On-disk workspace where api depends on util through package.json,
    and no manifest references anything yet.
    """
    workspace_files.update(
        {
            "packages/api/package.json": json.dumps({"name": "api", "dependencies": {"util": "*"}}),
            "packages/api/tsconfig.json": manifest(),
            "packages/util/package.json": json.dumps({"name": "util"}),
            "packages/util/tsconfig.json": manifest(),
        }
    )
    return write_files(tmp_path, workspace_files)


@pytest.fixture(autouse=True)
def restore_root_logging():
    """CLI commands reconfigure the root logger; undo it after each test."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
