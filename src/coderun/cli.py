"""Command-line entry point: ``coderun run|workspace|languages``."""

from __future__ import annotations

import click

from coderun import __version__

_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


@click.group(context_settings=_CONTEXT_SETTINGS)
@click.version_option(version=__version__, prog_name="coderun")
def main() -> None:
    """coderun — run programs in throwaway, resource-bounded sandboxes.

    \b
    Examples:
      coderun run main.py --stdin "1 2"
      coderun run -l cpp solution.cpp --time-limit 2 --memory 256
      coderun workspace create
    """


from coderun.cli_commands import register_commands  # noqa: E402

register_commands(main)

if __name__ == "__main__":
    main()
