"""
Graph Command - Inspect the project graph the sync runs against.

Usage:
    refsync graph                    # Projects and their referenced dependencies
    refsync graph --no-transitive    # Direct dependencies only
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.tree import Tree

from ...config import MANIFEST_FILE_NAME, resolve_sync_options
from ...core.graph import GraphLoadError, create_project_graph_async
from ...sync.closure import DependencyCollector
from ...sync.paths import join_path_fragments
from ..utils import configure_logging, echo_error, open_workspace

console = Console()


@click.command()
@click.option(
    "--workspace",
    "-w",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Workspace root",
)
@click.option(
    "--graph-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Project graph JSON to use instead of discovering projects",
)
@click.option("--no-transitive", is_flag=True, help="Only show direct dependencies")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def graph(workspace: str, graph_file: str | None, no_transitive: bool, verbose: bool):
    """
    Show each project and the dependencies it should reference.
    """
    configure_logging(verbose)
    tree, config = open_workspace(workspace)
    options = resolve_sync_options(config, include_transitive=False if no_transitive else None)

    try:
        project_graph = asyncio.run(
            create_project_graph_async(tree.root, Path(graph_file) if graph_file else None)
        )
    except GraphLoadError as e:
        echo_error(str(e))
        sys.exit(1)

    collector = DependencyCollector(project_graph, include_transitive=options.include_transitive)
    label = "transitive" if options.include_transitive else "direct"
    view = Tree(f"📦 [bold]{tree.root.name}[/bold] ({len(project_graph.nodes)} projects, {label})")

    for node in project_graph.nodes.values():
        has_manifest = tree.exists(join_path_fragments(node.root, MANIFEST_FILE_NAME))
        icon = "[green]✓[/green]" if has_manifest else "[dim]·[/dim]"
        branch = view.add(f"{icon} [cyan]{node.name}[/cyan] [dim]{node.root}[/dim]")

        dependencies = collector.collect(node.name)
        if not dependencies:
            branch.add("[dim]No workspace dependencies[/dim]")
        for dependency in dependencies:
            branch.add(f"→ {dependency.name} [dim]{dependency.root}[/dim]")

    console.print(view)

    cycles = project_graph.find_cycles()
    if cycles:
        console.print(f"\n[yellow]Dependency cycles ({len(cycles)}):[/yellow]")
        for cycle in cycles:
            console.print(f"  ⚠️  {', '.join(cycle)}")
