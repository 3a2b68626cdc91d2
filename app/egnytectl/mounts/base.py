"""Abstract base class for operating system mount tables.

A mount table answers what currently occupies a drive letter or mount
path, classified into a MountState, and can forcibly delete an OS-level
mount entry.
"""

from abc import ABC, abstractmethod

from egnytectl.backends.base import StepResult
from egnytectl.models.mount import MountState, ObservedDrive

# Substring identifying mounts that belong to the drive client
CLIENT_MARKER = "egnyte"


class MountTableError(RuntimeError):
    """Raised when the mount table cannot be queried."""


def is_client_mount(*fields: str | None) -> bool:
    """Check if any reported field attributes the mount to the drive client."""
    return any(field and CLIENT_MARKER in field.lower() for field in fields)


class MountTable(ABC):
    """Abstract base class for OS mount tables.

    Example:
        >>> table = WindowsMountTable()
        >>> table.query("F").state
        <MountState.UNMOUNTED: 'unmounted'>
    """

    def __init__(self, timeout: float = 60.0) -> None:
        """Initialize the mount table.

        Args:
            timeout: Upper bound in seconds for every OS command.
        """
        self._timeout = timeout

    @abstractmethod
    def snapshot(self) -> dict[str, ObservedDrive]:
        """Read every occupied mount point.

        Returns:
            Observed drives keyed by normalized mount point.

        Raises:
            MountTableError: If the OS cannot be queried.
        """

    @abstractmethod
    def delete(self, mount_point: str) -> StepResult:
        """Forcibly delete the OS-level mount entry.

        Deleting an entry that does not exist is not an error for callers;
        they re-query the state afterwards.
        """

    @abstractmethod
    def normalize(self, mount_point: str) -> str:
        """Normalize a mount point to the key used by snapshot()."""

    def query(self, mount_point: str) -> ObservedDrive:
        """Observe a single mount point.

        Raises:
            MountTableError: If the OS cannot be queried.
        """
        key = self.normalize(mount_point)
        observed = self.snapshot().get(key)
        if observed is None:
            return ObservedDrive(mount_point=key, state=MountState.UNMOUNTED)
        return observed
