"""``coderun languages`` — list supported language profiles."""

from __future__ import annotations

import json

import click

from coderun.cli_commands._output import console, print_languages_table
from coderun.config import CONFIG_ENV_VAR


@click.command()
@click.option("--config", "config_path", envvar=CONFIG_ENV_VAR, default=None, help="Settings YAML file.")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON.")
def languages(config_path: str | None, as_json: bool) -> None:
    """List the languages this installation can run."""
    from coderun.config import load_settings
    from coderun.engine.languages import ProfileRegistry

    settings = load_settings(config_path)
    registry = ProfileRegistry(images=settings.images)

    if as_json:
        console.print_json(json.dumps([p.model_dump(mode="json") for p in registry]))
        return

    print_languages_table(registry)
