"""CLI subcommands. Each module defines one command named after itself."""

from __future__ import annotations

import importlib
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import click

_COMMANDS = ("run", "workspace", "languages")


def register_commands(cli: click.Group) -> None:
    """Attach every subcommand to *cli*, in help order."""
    for name in _COMMANDS:
        module = importlib.import_module(f"coderun.cli_commands.{name}")
        cli.add_command(getattr(module, name))
