"""``coderun run`` — run source files in a sandbox."""

from __future__ import annotations

import asyncio
import sys
from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.markup import escape

from coderun.cli_commands._output import configure_logging, err_console, print_outcome
from coderun.config import CONFIG_ENV_VAR

if TYPE_CHECKING:
    from coderun.engine.engine import RunEngine
    from coderun.engine.models import ExecutionOutcome, RunRequest

EXIT_PROGRAM_FAILED = 1
EXIT_ENGINE_ERROR = 2


@click.command()
@click.argument("files", nargs=-1, type=click.Path(exists=True, dir_okay=False))
@click.option("--language", "-l", default=None, help="Language id; inferred from the first file when omitted.")
@click.option("--stdin", "stdin_text", default=None, help="Text fed to the program on stdin.")
@click.option("--stdin-file", type=click.Path(exists=True, dir_okay=False), default=None, help="File fed on stdin.")
@click.option("--workspace", "-w", "workspace_id", default=None, help="Copy this workspace's files first.")
@click.option("--time-limit", type=float, default=None, help="Seconds (1-30, default 5).")
@click.option("--memory", type=float, default=None, help="Memory ceiling in MB (64-2048, default 512).")
@click.option("--cpus", type=float, default=None, help="CPU share in cores (0.1-4, default 0.5).")
@click.option("--local", is_flag=True, help="Run on the host without isolation (development only).")
@click.option("--json", "as_json", is_flag=True, help="Print the outcome as JSON.")
@click.option("--config", "config_path", envvar=CONFIG_ENV_VAR, default=None, help="Settings YAML file.")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--telemetry", is_flag=True, help="Enable telemetry.")
def run(
    files: tuple[str, ...],
    language: str | None,
    stdin_text: str | None,
    stdin_file: str | None,
    workspace_id: str | None,
    time_limit: float | None,
    memory: float | None,
    cpus: float | None,
    local: bool,
    as_json: bool,
    config_path: str | None,
    verbose: bool,
    telemetry: bool,
) -> None:
    """Run FILES (and/or a workspace) and print the program's output."""
    from coderun.config import load_settings
    from coderun.engine.engine import RunEngine
    from coderun.engine.errors import CodeRunError
    from coderun.engine.models import RunRequest, SuppliedFile

    configure_logging(verbose)

    if not files and not workspace_id:
        raise click.UsageError("Give at least one FILE or --workspace.")
    if stdin_text is not None and stdin_file is not None:
        raise click.UsageError("--stdin and --stdin-file are mutually exclusive.")

    try:
        settings = load_settings(config_path)
    except CodeRunError as exc:
        err_console.print(f"[red]Configuration error:[/red] {escape(str(exc))}")
        sys.exit(EXIT_ENGINE_ERROR)

    if telemetry or settings.telemetry.enabled:
        from coderun.utils.telemetry import configure_telemetry

        configure_telemetry(otlp_endpoint=settings.telemetry.otlp_endpoint)

    sandbox = None
    if local:
        from coderun.engine.local_sandbox import LocalSandbox

        sandbox = LocalSandbox(settings.sandbox)
    engine = RunEngine.from_settings(settings, sandbox=sandbox)

    if language is None:
        profile = engine.profiles.for_extension(files[0]) if files else None
        if profile is None:
            raise click.UsageError("Cannot infer the language; pass --language.")
        language = profile.name

    if stdin_file is not None:
        stdin_text = Path(stdin_file).read_text(encoding="utf-8")

    request = RunRequest(
        language=language,
        workspace_id=workspace_id,
        files=tuple(
            SuppliedFile(name=Path(f).name, content=Path(f).read_text(encoding="utf-8")) for f in files
        ),
        stdin=stdin_text or "",
        time_limit=time_limit,
        memory=memory,
        cpus=cpus,
    )

    if verbose:
        err_console.print(
            f"Running {language} (time={request.time_limit:g}s, "
            f"memory={request.memory:g}MB, cpus={request.cpus:g})"
        )

    try:
        outcome = asyncio.run(_execute(engine, request))
    except CodeRunError as exc:
        err_console.print(f"[red]{escape(str(exc))}[/red]")
        sys.exit(EXIT_ENGINE_ERROR)

    print_outcome(outcome, as_json=as_json)
    if outcome.is_engine_failure:
        sys.exit(EXIT_ENGINE_ERROR)
    if not outcome.succeeded:
        sys.exit(EXIT_PROGRAM_FAILED)


async def _execute(engine: RunEngine, request: RunRequest) -> ExecutionOutcome:
    try:
        return await engine.run(request)
    finally:
        await engine.aclose()
