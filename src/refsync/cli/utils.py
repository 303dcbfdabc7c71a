"""
CLI Utilities - Shared helper functions for command line operations.

This module provides common functionality used across CLI commands,
including formatted printing, logging setup and workspace loading.
"""

import logging
from pathlib import Path

import click

from ..config import WorkspaceConfig, read_workspace_config
from ..core.tree import FsTree


def echo_success(message: str) -> None:
    """
    Print a success message with a green checkmark.

    Args:
        message (str): The message to display.
    """
    click.echo(click.style(f"✅ {message}", fg="green"))


def echo_error(message: str) -> None:
    """
    Print an error message with a red cross.

    Args:
        message (str): The error message to display.
    """
    click.echo(click.style(f"❌ {message}", fg="red"), err=True)


def echo_warning(message: str) -> None:
    """
    Print a warning message with a yellow alert symbol.

    Args:
        message (str): The warning message to display.
    """
    click.echo(click.style(f"⚠️  {message}", fg="yellow"))


def echo_info(message: str) -> None:
    """
    Print an informational message, dimmed.

    Args:
        message (str): The info message to display.
    """
    click.echo(click.style(f"   {message}", dim=True))


def configure_logging(verbose: bool) -> None:
    """Route library logging to stderr; DEBUG with --verbose, WARNING otherwise."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        force=True,
    )


def open_workspace(workspace: str) -> tuple[FsTree, WorkspaceConfig]:
    """
    Open the workspace tree and its refsync.yaml.

    Raises:
        click.ClickException: If refsync.yaml cannot be parsed.
    """
    tree = FsTree(Path(workspace))
    try:
        config = read_workspace_config(tree)
    except ValueError as e:
        raise click.ClickException(str(e))
    return tree, config
