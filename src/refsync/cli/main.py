"""
refsync CLI - Main entry point.

This module registers all CLI commands. Each command is implemented
in its own module under cli/commands/.
"""

import click

from .commands import graph, initialize, sync


@click.group()
@click.version_option(package_name="refsync")
def main():
    """refsync: TypeScript project reference sync.

    Keeps the "references" of every tsconfig.json in a monorepo in step
    with the workspace dependency graph.

    \b
    Quick Start:
      refsync init
      refsync sync --check
      refsync sync
    """
    pass


# Register commands
main.add_command(sync.sync)
main.add_command(initialize.init)
main.add_command(graph.graph)

if __name__ == "__main__":
    main()
