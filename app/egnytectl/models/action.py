"""Action models for drive reconciliation.

This module defines data structures for representing the corrective
actions the reconciler decides on (mount, unmount, remount) and their
execution results.
"""

from dataclasses import dataclass
from enum import Enum

from egnytectl.models.mapping import DriveMapping
from egnytectl.models.mount import MountState


class ActionType(Enum):
    """Type of drive action.

    Attributes:
        MOUNT: Add the mapping to the client and connect it.
        UNMOUNT: Delete the OS mount entry and remove the mapping from the client.
        REMOUNT: Force-unmount whatever occupies the mount point, then mount.
        FORCE_UNMOUNT: Delete a foreign or disconnected OS mount entry only.
    """

    MOUNT = "mount"
    UNMOUNT = "unmount"
    REMOUNT = "remount"
    FORCE_UNMOUNT = "force-unmount"

    @property
    def expected_state(self) -> MountState:
        """Mount state that should be observed once the action has run."""
        if self in (ActionType.MOUNT, ActionType.REMOUNT):
            return MountState.MOUNTED_CORRECT
        return MountState.UNMOUNTED


@dataclass(frozen=True, slots=True)
class Action:
    """Represents a single drive action to be executed.

    Attributes:
        action_type: The type of action.
        mapping: The mapping the action applies to.
        observed: Mount state observed when the action was planned.
        reason: Optional explanation for why this action is being taken.
    """

    action_type: ActionType
    mapping: DriveMapping
    observed: MountState
    reason: str | None = None

    @property
    def is_mount(self) -> bool:
        """Check if this action ends with the drive mounted."""
        return self.action_type in (ActionType.MOUNT, ActionType.REMOUNT)

    @property
    def is_destructive(self) -> bool:
        """Check if this action tears down an existing mount."""
        return self.action_type in (
            ActionType.UNMOUNT,
            ActionType.REMOUNT,
            ActionType.FORCE_UNMOUNT,
        )


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Result of executing a drive action.

    Attributes:
        action: The action that was executed.
        success: Whether the expected mount state was reached.
        message: Optional success message or additional information.
        error: Optional error message if the action failed.
        final_state: Mount state observed after the action, if verified.
    """

    action: Action
    success: bool
    message: str | None = None
    error: str | None = None
    final_state: MountState | None = None

    @property
    def failed(self) -> bool:
        """Check if the action failed."""
        return not self.success
