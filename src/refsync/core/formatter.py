"""
Formatter for staged workspace files.

Changed JSON files are run through prettier when it is installed, so the
written manifests match the workspace's own formatting. Without prettier,
they are re-serialized canonically.
"""

from __future__ import annotations

import json
import logging
import shutil
import subprocess
from typing import List, Optional

from .tree import Tree, serialize_json

logger = logging.getLogger(__name__)


def _find_prettier() -> Optional[str]:
    return shutil.which("prettier")


def _run_prettier(executable: str, path: str, content: str) -> Optional[str]:
    """Format one file through prettier's stdin mode. None if prettier fails."""
    try:
        result = subprocess.run(
            [executable, "--stdin-filepath", path],
            input=content,
            capture_output=True,
            text=True,
            check=True,
            timeout=60,
        )
        return result.stdout
    except subprocess.CalledProcessError as e:
        logger.warning(f"prettier failed on {path}: {e.stderr.strip()}")
    except subprocess.TimeoutExpired:
        logger.warning(f"prettier timed out on {path}")
    return None


def format_files(tree: Tree, mode: str = "auto") -> List[str]:
    """
    Format every staged JSON file in place.

    Args:
        tree: Tree holding the staged changes.
        mode: "auto" (prettier if available, else canonical JSON),
            "json" (canonical JSON only) or "none".

    Returns:
        Paths of the files that were formatted.
    """
    if mode == "none":
        return []

    prettier = _find_prettier() if mode == "auto" else None
    formatted = []

    for change in tree.list_changes():
        if not change.path.endswith(".json"):
            continue

        content = None
        if prettier:
            content = _run_prettier(prettier, change.path, change.content)
        if content is None:
            content = serialize_json(json.loads(change.content))

        tree.write(change.path, content)
        formatted.append(change.path)

    logger.debug(f"Formatted {len(formatted)} file(s)")
    return formatted
