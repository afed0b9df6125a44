"""Shared CLI output formatters."""

from __future__ import annotations

import logging

from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from coderun.engine.languages import ProfileRegistry  # noqa: TC001
from coderun.engine.models import ExecutionOutcome, OutcomeKind

console = Console()
err_console = Console(stderr=True)

_KIND_STYLES = {
    OutcomeKind.NORMAL: "green",
    OutcomeKind.BUILD_FAILURE: "yellow",
    OutcomeKind.TIMEOUT: "red",
    OutcomeKind.HOST_ERROR: "bold red",
}


def configure_logging(verbose: bool = False) -> None:
    """Send log records to stderr through rich; DEBUG when *verbose*."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def print_outcome(outcome: ExecutionOutcome, *, as_json: bool = False) -> None:
    """Print a run outcome: the program's streams, then a status line."""
    if as_json:
        console.print_json(outcome.model_dump_json())
        return

    if outcome.stdout:
        console.out(outcome.stdout, end="", highlight=False)
    if outcome.stderr:
        err_console.out(outcome.stderr, end="", highlight=False)

    style = _KIND_STYLES[outcome.kind]
    status = f"[{style}]{outcome.kind.value}[/{style}]"
    if outcome.exit_code is not None:
        status += f" exit={outcome.exit_code}"
    status += f" ({outcome.duration:.2f}s)"
    if outcome.truncated:
        status += " [yellow]output truncated[/yellow]"
    if outcome.detail:
        status += f": {escape(outcome.detail)}"
    err_console.print(status)


def print_languages_table(profiles: ProfileRegistry) -> None:
    """Pretty-print the supported language profiles as a table."""
    table = Table(title="Supported Languages")
    table.add_column("Language", style="cyan")
    table.add_column("Entry file")
    table.add_column("Image")
    table.add_column("Build step")

    for profile in profiles:
        table.add_row(
            profile.name,
            profile.entry_file,
            profile.image,
            _truncate(" ".join(profile.build)) if profile.build else "-",
        )

    console.print(table)


def _truncate(text: str, max_len: int = 60) -> str:
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."
