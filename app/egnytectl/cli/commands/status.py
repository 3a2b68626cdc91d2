"""Status command implementation.

Shows, for every mapping, the observed mount state, whether the user is
authorized and what ``apply`` would do. Nothing is changed.
"""

import json
from pathlib import Path
from typing import Annotated

import typer

from egnytectl.cli.common import (
    get_config_option,
    init_logging,
    require_authorizer,
    require_config,
    require_mappings,
    require_mount_table,
)
from egnytectl.cli.display import create_status_table
from egnytectl.core.components import (
    build_mappings,
    get_directory,
    get_mount_table,
    get_reconciler,
)
from egnytectl.core.reconciler import MappingStatus
from egnytectl.utils.formatting import console, print_info

app = typer.Typer(
    help="Show drive mapping status.",
    invoke_without_command=True,
)


def _status_to_dict(status: MappingStatus) -> dict[str, object]:
    mapping = status.mapping
    return {
        "drive_letter": mapping.drive_letter,
        "drive_name": mapping.drive_name,
        "domain_name": mapping.domain_name,
        "drive_path": mapping.drive_path,
        "group_key": mapping.group_key,
        "always_authorized": mapping.always_authorized,
        "authorized": status.authorized,
        "state": status.observed.state.value if status.observed else None,
        "remote": status.observed.remote if status.observed else None,
        "action": status.action.action_type.value if status.action else None,
        "error": status.error,
    }


@app.callback(invoke_without_command=True)
def show_status(
    ctx: typer.Context,
    mappings: Annotated[
        str | None,
        typer.Option(
            "--mappings",
            "-m",
            help="Mapping table path or URL (overrides the config).",
        ),
    ] = None,
    as_json: Annotated[
        bool,
        typer.Option("--json", help="Print status as JSON."),
    ] = False,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Config file to use.",
        ),
    ] = None,
) -> None:
    """Show observed state and planned action per drive."""
    if ctx.invoked_subcommand is not None:
        return

    config = require_config(get_config_option(ctx, config_path))
    init_logging(ctx, config)

    desired = build_mappings(require_mappings(config, mappings), config.home_drive)
    mount_table = get_mount_table(config.backend)
    require_mount_table(mount_table)
    authorizer = require_authorizer(get_directory(config.authorization))

    reconciler = get_reconciler(config, authorizer, mount_table=mount_table)
    statuses = reconciler.inspect(desired)

    if as_json:
        console.print_json(json.dumps([_status_to_dict(s) for s in statuses]))
        return

    if not statuses:
        print_info("The mapping table has no usable rows.")
        return

    console.print(create_status_table(statuses))
    pending = sum(1 for s in statuses if s.action)
    console.print(f"\n[dim]{len(statuses)} drive(s), {pending} pending action(s)[/dim]")
