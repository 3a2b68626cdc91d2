"""Factory functions for the reconciliation collaborators.

Builds the mount backend, mount table, group directory, reconciler and the
final mapping list from an AppConfig. Shared by the ``apply`` and ``status``
CLI commands.
"""

from __future__ import annotations

import getpass
import logging
from typing import TYPE_CHECKING

from egnytectl.backends.base import MountBackend
from egnytectl.backends.egnyte_macos import MacEgnyteBackend
from egnytectl.backends.egnyte_windows import WindowsEgnyteBackend
from egnytectl.core.reconciler import Reconciler
from egnytectl.directory.base import GroupDirectory
from egnytectl.directory.graph import GraphGroupDirectory
from egnytectl.directory.local import LocalGroupDirectory
from egnytectl.models.mapping import home_drive_mapping
from egnytectl.mounts.base import MountTable
from egnytectl.mounts.posix import PosixMountTable
from egnytectl.mounts.windows import WindowsMountTable

if TYPE_CHECKING:
    from collections.abc import Callable

    from egnytectl.core.config import (
        AppConfig,
        AuthorizationSection,
        BackendSection,
        HomeDriveSection,
    )
    from egnytectl.models.mapping import DriveMapping

logger = logging.getLogger(__name__)


def get_backend(settings: BackendSection) -> MountBackend:
    """Get the drive client backend for the configured kind."""
    if settings.kind == "macos":
        return MacEgnyteBackend(
            executable=settings.effective_executable,
            timeout=settings.command_timeout,
            username=settings.username,
        )
    return WindowsEgnyteBackend(
        executable=settings.effective_executable,
        timeout=settings.command_timeout,
        use_sso=settings.use_sso,
    )


def get_mount_table(settings: BackendSection) -> MountTable:
    """Get the OS mount table matching the backend kind."""
    if settings.kind == "macos":
        return PosixMountTable(timeout=settings.command_timeout)
    return WindowsMountTable(timeout=settings.command_timeout)


def get_directory(settings: AuthorizationSection) -> GroupDirectory:
    """Get the group directory for the configured provider."""
    if settings.provider == "graph":
        return GraphGroupDirectory(settings)
    return LocalGroupDirectory()


def get_reconciler(
    config: AppConfig,
    is_authorized: Callable[[str], bool],
    backend: MountBackend | None = None,
    mount_table: MountTable | None = None,
) -> Reconciler:
    """Build a Reconciler from the configuration.

    Args:
        config: Effective configuration.
        is_authorized: Membership check for group keys.
        backend: Backend to use. If None, built from the config.
        mount_table: Mount table to use. If None, built from the config.
    """
    return Reconciler(
        backend or get_backend(config.backend),
        mount_table or get_mount_table(config.backend),
        is_authorized,
        policy=config.reconcile.foreign_mount_policy,
        verify_attempts=config.reconcile.verify_attempts,
        verify_interval=config.reconcile.verify_interval,
    )


def build_mappings(
    mappings: tuple[DriveMapping, ...] | list[DriveMapping],
    settings: HomeDriveSection,
) -> list[DriveMapping]:
    """Append the personal home drive to the desired mappings, if enabled.

    The home drive comes last. A table row that already uses the home drive
    letter wins, and the home drive is skipped with a warning.
    """
    result = list(mappings)
    if not settings.enabled or settings.domain is None:
        return result

    username = settings.username or getpass.getuser()
    home = home_drive_mapping(
        letter=settings.letter,
        name=settings.name,
        domain=settings.domain,
        username=username,
        path_template=settings.path_template,
    )
    taken = {mapping.drive_letter.casefold() for mapping in result}
    if home.drive_letter.casefold() in taken:
        logger.warning(
            "Home drive letter %s is already used by the mapping table; skipping home drive",
            home.drive_letter,
        )
        return result

    logger.debug("Adding home drive %s -> %s", home.mount_point, home.drive_path)
    result.append(home)
    return result
