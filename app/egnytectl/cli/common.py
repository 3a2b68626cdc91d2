"""Shared helpers for CLI commands.

Loading the configuration, setting up logging and running the fatal
prechecks are the same for ``apply`` and ``status``. Every helper here
prints a user-facing error and exits with code 1 when a precondition
fails.
"""

import logging
from pathlib import Path

import typer

from egnytectl.backends.base import BackendUnavailableError, MountBackend
from egnytectl.core.config import (
    AppConfig,
    ConfigError,
    ConfigNotFoundError,
    load_config_or_default,
)
from egnytectl.core.logging_config import setup_logging
from egnytectl.core.mappings import MappingError, load_mappings
from egnytectl.core.paths import get_cache_dir
from egnytectl.directory.base import AuthorizationError, Authorizer, GroupDirectory
from egnytectl.models.mapping import DriveMapping
from egnytectl.mounts.base import MountTable, MountTableError
from egnytectl.utils.formatting import print_error, print_info, print_warning

logger = logging.getLogger(__name__)


def get_config_option(ctx: typer.Context, override: Path | None = None) -> Path | None:
    """Resolve the config path from a command option or the global option."""
    if override is not None:
        return override
    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    return obj.get("config_path")


def require_config(path: Path | None = None) -> AppConfig:
    """Load the configuration or exit.

    Raises:
        typer.Exit: If the configuration is unusable.
    """
    try:
        return load_config_or_default(path)
    except ConfigNotFoundError as e:
        print_error(str(e))
        print_info("Run 'egnytectl config init' to create a default configuration.")
        raise typer.Exit(code=1) from e
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(code=1) from e


def init_logging(ctx: typer.Context, config: AppConfig) -> None:
    """Configure logging from the config and the global verbosity flags."""
    obj = ctx.obj if isinstance(ctx.obj, dict) else {}
    console_level = "WARNING"
    if obj.get("verbose"):
        console_level = "DEBUG"
    elif obj.get("quiet"):
        console_level = "ERROR"

    transcript = setup_logging(
        level=config.logging.level,
        retention=config.logging.retention,
        console_level=console_level,
    )
    if transcript is not None:
        logger.debug("Transcript: %s", transcript)


def require_mappings(config: AppConfig, source: str | None = None) -> list[DriveMapping]:
    """Load the desired-state table or exit.

    Rows with errors are reported as warnings and skipped; the remaining
    rows are returned in table order.

    Raises:
        typer.Exit: If no source is configured or the table is unusable.
    """
    location = source or config.mappings.source
    if not location:
        print_error("No mapping table configured.")
        print_info("Pass --mappings or set [mappings] source in the config.")
        raise typer.Exit(code=1)

    try:
        table = load_mappings(location, cache_dir=get_cache_dir(), kind=config.backend.kind)
    except MappingError as e:
        print_error(str(e))
        logger.error("Mapping table unusable: %s", e)
        raise typer.Exit(code=1) from e

    for error in table.errors:
        print_warning(f"Skipping row, {error}")
    return list(table.mappings)


def require_authorizer(directory: GroupDirectory) -> Authorizer:
    """Query group membership or exit.

    Raises:
        typer.Exit: If membership cannot be established.
    """
    try:
        authorizer = Authorizer.from_directory(directory)
    except AuthorizationError as e:
        print_error(f"Group membership unavailable from {directory.name}: {e}")
        logger.error("Authorization failed, no drives were changed: %s", e)
        raise typer.Exit(code=1) from e
    logger.info("Loaded %d group(s) from %s", authorizer.group_count, directory.name)
    return authorizer


def require_backend(backend: MountBackend) -> None:
    """Ensure the drive client is installed or exit.

    Raises:
        typer.Exit: If the client executable cannot be found.
    """
    try:
        backend.ensure_available()
    except BackendUnavailableError as e:
        print_error(str(e))
        print_info("Run 'egnytectl install' to install the drive client.")
        logger.error("%s", e)
        raise typer.Exit(code=1) from e


def require_mount_table(mount_table: MountTable) -> None:
    """Ensure the OS mount table can be read or exit.

    Raises:
        typer.Exit: If the mount table query fails.
    """
    try:
        mount_table.snapshot()
    except MountTableError as e:
        print_error(str(e))
        logger.error("Mount table unavailable: %s", e)
        raise typer.Exit(code=1) from e
