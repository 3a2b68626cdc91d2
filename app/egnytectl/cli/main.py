"""Main CLI application entry point.

Defines the Typer application and global options.
"""

from pathlib import Path
from typing import Annotated

import typer

from egnytectl import __version__
from egnytectl.cli.commands import apply, config, install, status

# Create main Typer app
app = typer.Typer(
    name="egnytectl",
    help="Keep cloud drive mappings in line with group membership.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"egnytectl version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    version: Annotated[
        bool | None,
        typer.Option(
            "--version",
            "-V",
            callback=version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
    ] = None,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable verbose output.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-essential output.",
        ),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Config file to use instead of the default location.",
        ),
    ] = None,
) -> None:
    """egnytectl - Cloud drive mappings from a desired-state table.

    Reads a table of drive mappings, checks which directory groups the
    current user belongs to, and mounts or unmounts drives to match.
    """
    # Store options in context for subcommands
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["config_path"] = config_path


# Register commands
app.add_typer(apply.app, name="apply")
app.add_typer(status.app, name="status")
app.add_typer(install.app, name="install")
app.add_typer(config.app, name="config")


if __name__ == "__main__":
    app()
