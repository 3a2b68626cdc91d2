"""Config command implementation.

Creates, shows and locates the egnytectl configuration file.
"""

from pathlib import Path
from typing import Annotated

import tomli_w
import typer
from rich.syntax import Syntax

from egnytectl.cli.common import get_config_option, require_config
from egnytectl.core.config import AppConfig, ConfigError, config_to_dict, save_config
from egnytectl.core.paths import get_config_path
from egnytectl.utils.formatting import console, print_error, print_info, print_success

app = typer.Typer(
    help="Manage the egnytectl configuration.",
    no_args_is_help=True,
)


def _resolve_path(ctx: typer.Context) -> Path:
    return get_config_option(ctx) or get_config_path()


@app.command("init")
def init_config(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite an existing config file."),
    ] = False,
) -> None:
    """Write a default configuration file."""
    path = _resolve_path(ctx)
    if path.exists() and not force:
        print_error(f"Config already exists: {path}")
        print_info("Use --force to overwrite it.")
        raise typer.Exit(code=1)

    try:
        saved = save_config(AppConfig(), path)
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e
    print_success(f"Config written to {saved}")


@app.command("show")
def show_config(ctx: typer.Context) -> None:
    """Print the effective configuration.

    The Graph client secret is never part of the file; only whether its
    environment variable is set is shown.
    """
    config = require_config(get_config_option(ctx))
    text = tomli_w.dumps(config_to_dict(config))
    console.print(Syntax(text, "toml", theme="ansi_dark", background_color="default"))

    secret_state = "set" if config.authorization.client_secret() else "not set"
    console.print(
        f"[dim]Client secret ({config.authorization.client_secret_env}): {secret_state}[/dim]"
    )


@app.command("path")
def show_path(ctx: typer.Context) -> None:
    """Print the config file location."""
    console.print(str(_resolve_path(ctx)))
