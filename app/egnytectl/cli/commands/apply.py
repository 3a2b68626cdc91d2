"""Apply command implementation.

Reconciles the mounted cloud drives with the mapping table: mounts drives
the user is entitled to and removes drives the user no longer is.
"""

from pathlib import Path
from typing import Annotated

import typer

from egnytectl.cli.common import (
    get_config_option,
    init_logging,
    require_authorizer,
    require_backend,
    require_config,
    require_mappings,
    require_mount_table,
)
from egnytectl.cli.display import (
    create_actions_table,
    create_results_table,
    print_actions_summary,
    print_results_summary,
)
from egnytectl.core.components import (
    build_mappings,
    get_backend,
    get_directory,
    get_mount_table,
    get_reconciler,
)
from egnytectl.models.action import ActionResult
from egnytectl.utils.formatting import console, print_info, print_success, print_warning

app = typer.Typer(
    help="Reconcile drive mappings.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def apply_mappings(
    ctx: typer.Context,
    dry_run: Annotated[
        bool,
        typer.Option(
            "--dry-run",
            "-n",
            help="Show what would be done without making changes.",
        ),
    ] = False,
    mappings: Annotated[
        str | None,
        typer.Option(
            "--mappings",
            "-m",
            help="Mapping table path or URL (overrides the config).",
        ),
    ] = None,
    config_path: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Config file to use.",
        ),
    ] = None,
) -> None:
    """Reconcile drive mappings with group membership.

    For every row of the mapping table, in order:
      - authorized and not mounted: mount
      - mounted by the client but no longer authorized: unmount
      - authorized but held by a foreign or disconnected mount: remount

    Per-drive failures are reported but do not change the exit code. The
    command exits with 1 only if it cannot start (configuration, mapping
    table, group membership or drive client unavailable).

    Examples:
        egnytectl apply --dry-run                 # Preview changes
        egnytectl apply -m \\\\fs01\\it\\drives.csv   # Use another table
    """
    if ctx.invoked_subcommand is not None:
        return

    config = require_config(get_config_option(ctx, config_path))
    init_logging(ctx, config)

    desired = build_mappings(require_mappings(config, mappings), config.home_drive)
    if not desired:
        print_info("The mapping table has no usable rows. Nothing to do.")
        return

    backend = get_backend(config.backend)
    mount_table = get_mount_table(config.backend)

    # All fatal checks happen before the first change
    if not dry_run:
        require_backend(backend)
    require_mount_table(mount_table)
    authorizer = require_authorizer(get_directory(config.authorization))

    reconciler = get_reconciler(config, authorizer, backend=backend, mount_table=mount_table)
    statuses = reconciler.inspect(desired)
    actions = [status.action for status in statuses if status.action]
    unobserved = [status for status in statuses if status.error]

    if not actions and not unobserved:
        print_success("All drives are in the desired state. Nothing to do.")
        return

    if actions:
        console.print(create_actions_table(actions, dry_run))
        print_actions_summary(actions)
    for status in unobserved:
        mapping = status.mapping
        print_warning(f"Skipping {mapping.mount_point} ({mapping.drive_name}): {status.error}")

    if dry_run:
        print_info("\nDry-run mode: No changes were made.")
        return

    results: list[ActionResult] = []
    if actions:
        console.print("\n[bold]Executing actions...[/bold]\n")
        results = reconciler.apply(actions)

    console.print(create_results_table(results, unobserved))
    print_results_summary(results, unobserved)
