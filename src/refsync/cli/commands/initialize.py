"""
Init Command - Workspace setup.

Creates refsync.yaml at the workspace root with the plugin registered, or
registers the plugin in an existing file.
"""

from pathlib import Path

import click
import yaml
from rich.console import Console
from rich.panel import Panel

from ...config import COMMON_RUNTIME_MANIFEST_NAMES, PLUGIN_NAME, WORKSPACE_CONFIG_FILE

console = Console()

# Default configuration template
DEFAULT_CONFIG = {
    "plugins": [PLUGIN_NAME],
    "sync": {
        "runtime_manifest_names": list(COMMON_RUNTIME_MANIFEST_NAMES),
        "transitive_dependencies": True,
        "format": "auto",
    },
}


def _register_plugin(data: dict) -> bool:
    """Add the plugin to a loaded config. Returns False if it was already there."""
    plugins = data.setdefault("plugins", []) or []
    data["plugins"] = plugins
    for entry in plugins:
        name = entry if isinstance(entry, str) else (entry or {}).get("plugin")
        if name == PLUGIN_NAME:
            return False
    plugins.append(PLUGIN_NAME)
    return True


@click.command()
@click.option(
    "--workspace",
    "-w",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Workspace root",
)
@click.option("--force", is_flag=True, help="Overwrite existing configuration")
def init(workspace: str, force: bool):
    """
    Set up refsync in a workspace.

    Writes refsync.yaml with the plugin registered. An existing file keeps
    its settings and only gains the plugin entry, unless --force is given.
    """
    console.print(Panel.fit("🔗 [bold blue]refsync Initialization[/bold blue]", border_style="blue"))

    root_dir = Path(workspace).resolve()
    config_file = root_dir / WORKSPACE_CONFIG_FILE

    if config_file.exists() and not force:
        try:
            data = yaml.safe_load(config_file.read_text()) or {}
        except yaml.YAMLError as e:
            raise click.ClickException(f"Failed to parse {config_file}: {e}")

        if not _register_plugin(data):
            console.print(f"[green]✓[/green] {PLUGIN_NAME} is already registered in {config_file.name}")
            return

        with open(config_file, "w") as f:
            yaml.dump(data, f, sort_keys=False, default_flow_style=False)
        console.print(f"✅ Registered [cyan]{PLUGIN_NAME}[/cyan] in [dim]{config_file}[/dim]")
        return

    with open(config_file, "w") as f:
        yaml.dump(DEFAULT_CONFIG, f, sort_keys=False, default_flow_style=False)

    if not (root_dir / "tsconfig.json").exists():
        console.print("[yellow]No tsconfig.json found in the workspace root; create one before syncing.[/yellow]")

    console.print("\n✨ [bold green]Initialized successfully![/bold green]")
    console.print(f"   Config created at: [dim]{config_file}[/dim]")
