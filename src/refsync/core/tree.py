"""
Workspace Tree.

A virtual view of the workspace files. Reads fall through to the backing
store; writes are staged in memory until ``commit()``, so a run can be
inspected (``--check``, ``--dry-run``) before anything touches the disk.

All paths are workspace-relative POSIX strings.
"""

from __future__ import annotations

import json
import logging
import posixpath
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import StrEnum
from pathlib import Path
from typing import Any, Dict, List, Optional

import json5

logger = logging.getLogger(__name__)


class ChangeType(StrEnum):
    CREATE = "create"
    UPDATE = "update"


@dataclass
class FileChange:
    """A staged write."""

    path: str
    type: ChangeType
    content: str


def normalize_tree_path(path: str) -> str:
    """Normalize a workspace-relative path (``./a/../b`` -> ``b``, ``""`` -> ``.``)."""
    normalized = posixpath.normpath(path.replace("\\", "/"))
    if normalized.startswith("/"):
        normalized = normalized.lstrip("/") or "."
    return normalized


class Tree(ABC):
    """
    Base workspace tree with staged writes.

    Subclasses provide the backing store through ``_read_base``,
    ``_is_file_base`` and ``_is_dir_base``.
    """

    def __init__(self) -> None:
        self._staged: Dict[str, str] = {}

    @abstractmethod
    def _read_base(self, path: str) -> Optional[str]:
        """Content of a file in the backing store, or None if there is none."""

    @abstractmethod
    def _is_file_base(self, path: str) -> bool:
        ...

    @abstractmethod
    def _is_dir_base(self, path: str) -> bool:
        ...

    def is_file(self, path: str) -> bool:
        path = normalize_tree_path(path)
        return path in self._staged or self._is_file_base(path)

    def exists(self, path: str) -> bool:
        """Check whether a file or directory exists at ``path``."""
        path = normalize_tree_path(path)
        if self.is_file(path) or self._is_dir_base(path):
            return True
        prefix = "" if path == "." else f"{path}/"
        return any(staged.startswith(prefix) for staged in self._staged)

    def read(self, path: str) -> str:
        """
        Read a file as text.

        Raises:
            FileNotFoundError: If no file exists at ``path``.
        """
        path = normalize_tree_path(path)
        if path in self._staged:
            return self._staged[path]
        content = self._read_base(path)
        if content is None:
            raise FileNotFoundError(f"File not found in workspace: {path}")
        return content

    def write(self, path: str, content: str) -> None:
        path = normalize_tree_path(path)
        logger.debug(f"Staging write to {path}")
        self._staged[path] = content

    def list_changes(self) -> List[FileChange]:
        """Staged writes that differ from the backing store, in path order."""
        changes = []
        for path in sorted(self._staged):
            content = self._staged[path]
            original = self._read_base(path)
            if original == content:
                continue
            change_type = ChangeType.CREATE if original is None else ChangeType.UPDATE
            changes.append(FileChange(path=path, type=change_type, content=content))
        return changes


class MemoryTree(Tree):
    """Tree backed by a dict of path -> content. Nothing ever touches the disk."""

    def __init__(self, files: Optional[Dict[str, str]] = None) -> None:
        super().__init__()
        self._files: Dict[str, str] = {
            normalize_tree_path(path): content for path, content in (files or {}).items()
        }

    def _read_base(self, path: str) -> Optional[str]:
        return self._files.get(path)

    def _is_file_base(self, path: str) -> bool:
        return path in self._files

    def _is_dir_base(self, path: str) -> bool:
        if path == ".":
            return True
        prefix = f"{path}/"
        return any(existing.startswith(prefix) for existing in self._files)

    def commit(self) -> List[FileChange]:
        """Apply staged writes to the in-memory store."""
        changes = self.list_changes()
        for change in changes:
            self._files[change.path] = change.content
        self._staged.clear()
        return changes


class FsTree(Tree):
    """
    Tree backed by a directory on disk.

    Attributes:
        root: Absolute workspace root directory.
    """

    def __init__(self, root: Path) -> None:
        super().__init__()
        self.root = Path(root).resolve()

    def _abs(self, path: str) -> Path:
        return self.root if path == "." else self.root / path

    def _read_base(self, path: str) -> Optional[str]:
        target = self._abs(path)
        if not target.is_file():
            return None
        return target.read_text(encoding="utf-8")

    def _is_file_base(self, path: str) -> bool:
        return self._abs(path).is_file()

    def _is_dir_base(self, path: str) -> bool:
        return self._abs(path).is_dir()

    def commit(self) -> List[FileChange]:
        """
        Flush staged writes to disk.

        Returns:
            The changes that were written.
        """
        changes = self.list_changes()
        for change in changes:
            target = self._abs(change.path)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(change.content, encoding="utf-8")
            logger.info(f"{change.type.value.upper()} {change.path}")
        self._staged.clear()
        return changes


def read_json(tree: Tree, path: str) -> Any:
    """
    Read and parse a JSON file from the tree.

    Manifests may use the JSONC dialect written by ``tsc --init``, so
    comments and trailing commas are accepted. They are not preserved when
    the file is written back.

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If the content cannot be parsed.
    """
    return json5.loads(tree.read(path))


def serialize_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


def write_json(tree: Tree, path: str, data: Any) -> None:
    """Serialize ``data`` with 2-space indentation and stage it at ``path``."""
    tree.write(path, serialize_json(data))
