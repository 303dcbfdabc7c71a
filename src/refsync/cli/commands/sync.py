"""
Sync Command - Reconcile manifest references with the project graph.

Usage:
    refsync sync                 # Update out-of-sync manifests
    refsync sync --check         # Exit 1 if anything is out of sync (CI)
    refsync sync --dry-run       # Show what would change
"""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import List

import click
from pydantic import BaseModel, Field
from rich.console import Console
from rich.table import Table

from ...config import resolve_sync_options
from ...core.graph import GraphLoadError
from ...core.tree import FileChange
from ...sync.generator import SyncConfigurationError, sync_references
from ..utils import configure_logging, echo_error, echo_info, echo_success, echo_warning, open_workspace

console = Console()


class SyncResponse(BaseModel):
    """JSON output of the sync command."""

    in_sync: bool
    message: str | None = None
    changed_files: List[str] = Field(default_factory=list)
    written: bool = False
    cycles: List[List[str]] = Field(default_factory=list)


@click.command()
@click.option(
    "--workspace",
    "-w",
    type=click.Path(exists=True, file_okay=False),
    default=".",
    help="Workspace root containing tsconfig.json",
)
@click.option(
    "--graph-file",
    type=click.Path(exists=True, dir_okay=False),
    help="Project graph JSON to use instead of discovering projects",
)
@click.option("--check", is_flag=True, help="Fail if references are out of sync, without writing")
@click.option("--dry-run", is_flag=True, help="Show what would change without writing")
@click.option("--verbose", "-v", is_flag=True, help="Report skipped projects and dependencies")
@click.option(
    "--no-transitive",
    is_flag=True,
    help="Only reference direct dependencies",
)
@click.option(
    "--format",
    "format_mode",
    type=click.Choice(["auto", "json", "none"]),
    help="How to format changed files (default: auto)",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def sync(
    workspace: str,
    graph_file: str | None,
    check: bool,
    dry_run: bool,
    verbose: bool,
    no_transitive: bool,
    format_mode: str | None,
    as_json: bool,
):
    """
    Sync project references of every tsconfig.json with the project graph.

    Cross-project references are regenerated from the dependency graph;
    references that stay inside a project are left untouched.

    \b
    Examples:
        refsync sync
        refsync sync --check
        refsync sync --graph-file graph.json --no-transitive
    """
    configure_logging(verbose)
    tree, config = open_workspace(workspace)

    options = resolve_sync_options(
        config,
        verbose=True if verbose else None,
        include_transitive=False if no_transitive else None,
        format=format_mode,
    )

    try:
        result = asyncio.run(
            sync_references(
                tree,
                options=options,
                graph_file=Path(graph_file) if graph_file else None,
            )
        )
    except (SyncConfigurationError, GraphLoadError) as e:
        echo_error(str(e))
        sys.exit(1)
    except ValueError as e:
        echo_error(f"Failed to read workspace files: {e}")
        sys.exit(1)

    write = result is not None and not (check or dry_run)
    changes = tree.list_changes()
    if write:
        tree.commit()

    if as_json:
        response = SyncResponse(
            in_sync=result is None,
            message=result.out_of_sync_message if result else None,
            changed_files=result.changed_files if result else [],
            written=write,
            cycles=result.cycles if result else [],
        )
        click.echo(response.model_dump_json(indent=2))
        if result is not None and check:
            sys.exit(1)
        return

    if result is None:
        echo_success("All project references are in sync")
        return

    echo_warning(result.out_of_sync_message)
    _print_changes_table(changes)

    if check:
        echo_info("Run 'refsync sync' to update them.")
        sys.exit(1)
    if dry_run:
        echo_info("Dry run: no files were written.")
        return

    echo_success(f"Updated {len(changes)} file(s)")


def _print_changes_table(changes: List[FileChange]) -> None:
    """Print a table of staged changes."""
    table = Table(title="Out of Sync")
    table.add_column("File", style="cyan")
    table.add_column("Change")

    for change in changes:
        table.add_row(change.path, change.type.value)

    console.print(table)
