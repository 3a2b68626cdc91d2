"""Observed mount state models.

Mount state is recomputed on every reconciliation pass and is never
persisted between runs.
"""

from dataclasses import dataclass, field
from enum import Enum

class MountState(Enum):
    """Observed state of a drive letter or mount path.

    Attributes:
        UNMOUNTED: Nothing is mounted at the mount point.
        MOUNTED_FOREIGN: Something is mounted that does not belong to the
            drive client (e.g. a plain file server share).
        MOUNTED_CORRECT: The drive client owns the mount point.
        MOUNTED_DISCONNECTED: The mount point exists but its network session
            is reported as disconnected or unavailable.
    """

    UNMOUNTED = "unmounted"
    MOUNTED_FOREIGN = "foreign"
    MOUNTED_CORRECT = "correct"
    MOUNTED_DISCONNECTED = "disconnected"

    @property
    def is_mounted(self) -> bool:
        """Check if anything occupies the mount point."""
        return self != MountState.UNMOUNTED

@dataclass(frozen=True, slots=True)
class ObservedDrive:
    """What the operating system reports for one mount point.

    Attributes:
        mount_point: Drive letter (without colon) or mount path.
        state: Classified mount state.
        remote: Remote target the OS reports, if any.
        provider: Network provider or filesystem type, if reported.
    """

    mount_point: str
    state: MountState
    remote: str | None = field(default=None)
    provider: str | None = field(default=None)

    def describe(self) -> str:
        """Short human-readable description for logs."""
        if self.remote:
            return f"{self.state.value} ({self.remote})"
        return self.state.value
