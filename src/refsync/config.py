"""
Global Configuration and Sync Defaults.

This module centralizes the defaults used when reconciling manifest
references, and the loading of the workspace configuration file
(refsync.yaml) into explicit option objects.

Precedence for sync options: CLI overrides > environment > refsync.yaml > defaults.
"""

import os
from typing import TYPE_CHECKING, Any, Dict, List, Literal, Mapping, Optional, Set, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field

if TYPE_CHECKING:
    from .core.tree import Tree

# --- Workspace Layout ---

# Default composite build manifest of every project
MANIFEST_FILE_NAME = "tsconfig.json"

# Workspace configuration file, at the workspace root
WORKSPACE_CONFIG_FILE = "refsync.yaml"

# Plugin entry that must be registered before syncing
PLUGIN_NAME = "refsync/typescript"

# Runtime manifest flavors checked for every project, in priority order
COMMON_RUNTIME_MANIFEST_NAMES: List[str] = [
    "tsconfig.app.json",
    "tsconfig.lib.json",
    "tsconfig.build.json",
    "tsconfig.cjs.json",
    "tsconfig.esm.json",
    "tsconfig.runtime.json",
]

# --- Environment Toggles ---

ENV_VERBOSE_LOGGING = "REFSYNC_VERBOSE_LOGGING"
ENV_DISABLE_TRANSITIVE = "REFSYNC_DISABLE_TRANSITIVE_DEPENDENCIES"

# --- Discovery Limits ---

# Maximum directory depth when discovering projects
MAX_DIRECTORY_DEPTH = 15

# Directories never searched for projects
IGNORE_DIRECTORIES: Set[str] = {
    # Version Control
    ".git",
    ".svn",
    ".hg",
    # Dependencies & Build Output
    "node_modules",
    "dist",
    "build",
    "out",
    "coverage",
    "tmp",
    # Tool Caches
    ".nx",
    ".cache",
    ".turbo",
    ".next",
    ".angular",
    ".yarn",
    ".pnpm-store",
    ".venv",
    "__pycache__",
    # IDEs
    ".idea",
    ".vscode",
}

FormatMode = Literal["auto", "json", "none"]


class PluginEntry(BaseModel):
    """Expanded plugin registration (``{plugin: ..., options: {...}}``)."""

    plugin: str
    options: Dict[str, Any] = Field(default_factory=dict)


class SyncSettings(BaseModel):
    """The ``sync`` section of refsync.yaml. Unset fields fall back to defaults."""

    runtime_manifest_names: Optional[List[str]] = None
    transitive_dependencies: Optional[bool] = None
    verbose: Optional[bool] = None
    format: Optional[FormatMode] = None

    model_config = ConfigDict(extra="ignore")


class WorkspaceConfig(BaseModel):
    """Parsed content of refsync.yaml."""

    plugins: List[Union[str, PluginEntry]] = Field(default_factory=list)
    sync: SyncSettings = Field(default_factory=SyncSettings)

    model_config = ConfigDict(extra="ignore")

    def has_plugin(self, name: str = PLUGIN_NAME) -> bool:
        """Check whether a plugin is registered, in short or expanded form."""
        for entry in self.plugins:
            if isinstance(entry, str):
                if entry == name:
                    return True
            elif entry.plugin == name:
                return True
        return False


class SyncOptions(BaseModel):
    """
    Effective options for one sync run.

    Attributes:
        runtime_manifest_names: Recognized runtime manifest flavors, in order.
        include_transitive: Reference transitive dependencies, not only direct ones.
        verbose: Surface soft-skip warnings.
        format: Formatter mode applied to changed files.
    """

    runtime_manifest_names: List[str] = Field(
        default_factory=lambda: list(COMMON_RUNTIME_MANIFEST_NAMES)
    )
    include_transitive: bool = True
    verbose: bool = False
    format: FormatMode = "auto"

    model_config = ConfigDict(frozen=True)


def read_workspace_config(tree: "Tree", path: str = WORKSPACE_CONFIG_FILE) -> WorkspaceConfig:
    """
    Load refsync.yaml from the workspace tree.

    Returns:
        WorkspaceConfig: Parsed configuration, or an empty one if the file
        does not exist.

    Raises:
        ValueError: If the file is not valid YAML or has an invalid shape.
    """
    if not tree.exists(path):
        return WorkspaceConfig()

    try:
        data = yaml.safe_load(tree.read(path)) or {}
        return WorkspaceConfig.model_validate(data)
    except Exception as e:
        raise ValueError(f"Failed to parse {path}: {e}")


def _env_flag(environ: Mapping[str, str], name: str) -> bool:
    return environ.get(name, "").strip().lower() == "true"


def resolve_sync_options(
    config: WorkspaceConfig,
    environ: Optional[Mapping[str, str]] = None,
    **overrides: Any,
) -> SyncOptions:
    """
    Merge refsync.yaml, environment toggles and explicit overrides.

    Overrides with a value of ``None`` are ignored, so CLI options that were
    not given can be passed straight through.
    """
    environ = os.environ if environ is None else environ
    settings = config.sync
    values: Dict[str, Any] = {}

    if settings.runtime_manifest_names is not None:
        values["runtime_manifest_names"] = list(settings.runtime_manifest_names)
    if settings.transitive_dependencies is not None:
        values["include_transitive"] = settings.transitive_dependencies
    if settings.verbose is not None:
        values["verbose"] = settings.verbose
    if settings.format is not None:
        values["format"] = settings.format

    if _env_flag(environ, ENV_VERBOSE_LOGGING):
        values["verbose"] = True
    if _env_flag(environ, ENV_DISABLE_TRANSITIVE):
        values["include_transitive"] = False

    values.update({key: value for key, value in overrides.items() if value is not None})
    return SyncOptions(**values)
