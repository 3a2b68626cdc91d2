"""Install command implementation.

Installs or upgrades the desktop drive client and opens its firewall ports.
"""

from pathlib import Path
from typing import Annotated

import typer

from egnytectl.cli.common import get_config_option, init_logging, require_config
from egnytectl.core.provision import ClientProvisioner
from egnytectl.utils.formatting import print_error, print_info, print_success

app = typer.Typer(
    help="Install or update the drive client.",
    invoke_without_command=True,
)


@app.callback(invoke_without_command=True)
def install_client(
    ctx: typer.Context,
    force: Annotated[
        bool,
        typer.Option(
            "--force",
            "-f",
            help="Reinstall even if the recorded version is current.",
        ),
    ] = False,
    installer: Annotated[
        Path | None,
        typer.Option(
            "--installer",
            "-i",
            help="Local MSI to install instead of downloading one.",
            exists=True,
            dir_okay=False,
        ),
    ] = None,
) -> None:
    """Install or update the drive client.

    Compares the version advertised on the vendor download page with the
    recorded installed version, installs the MSI when it is newer, and adds
    inbound firewall rules for the client.
    """
    if ctx.invoked_subcommand is not None:
        return

    config = require_config(get_config_option(ctx))
    init_logging(ctx, config)

    provisioner = ClientProvisioner(config.install, config.backend.effective_executable)
    print_info("Checking drive client...")

    if not provisioner.ensure_client(force=force, installer=installer):
        print_error("Drive client installation failed. See the log for details.")
        raise typer.Exit(code=1)

    version = provisioner.installed_version()
    print_success(f"Drive client ready (version {version or 'unknown'}).")
