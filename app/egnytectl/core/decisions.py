"""Reconciliation decision table.

Pure data: for every combination of observed mount state and authorization
the table names the corrective action, or None when the mount point is
already where it should be. Nothing here touches the system, so the table
can be tested exhaustively without a mount backend.
"""

from egnytectl.core.config import ForeignMountPolicy
from egnytectl.models.action import ActionType
from egnytectl.models.mount import MountState

DecisionKey = tuple[MountState, bool]

# (observed state, authorized) -> action
DECISION_TABLE: dict[DecisionKey, ActionType | None] = {
    (MountState.UNMOUNTED, True): ActionType.MOUNT,
    (MountState.UNMOUNTED, False): None,
    (MountState.MOUNTED_CORRECT, True): None,
    (MountState.MOUNTED_CORRECT, False): ActionType.UNMOUNT,
    (MountState.MOUNTED_FOREIGN, True): ActionType.REMOUNT,
    (MountState.MOUNTED_FOREIGN, False): None,
    (MountState.MOUNTED_DISCONNECTED, True): ActionType.REMOUNT,
    (MountState.MOUNTED_DISCONNECTED, False): None,
}

# Overrides applied on top of DECISION_TABLE under the "cleanup" policy
CLEANUP_OVERRIDES: dict[DecisionKey, ActionType | None] = {
    (MountState.MOUNTED_FOREIGN, False): ActionType.FORCE_UNMOUNT,
    (MountState.MOUNTED_DISCONNECTED, False): ActionType.FORCE_UNMOUNT,
}

REASONS: dict[DecisionKey, str] = {
    (MountState.UNMOUNTED, True): "Authorized and not mounted",
    (MountState.MOUNTED_CORRECT, False): "Mounted but no longer authorized",
    (MountState.MOUNTED_FOREIGN, True): "Letter held by a foreign mount",
    (MountState.MOUNTED_DISCONNECTED, True): "Mount is disconnected",
    (MountState.MOUNTED_FOREIGN, False): "Foreign mount cleanup",
    (MountState.MOUNTED_DISCONNECTED, False): "Disconnected mount cleanup",
}


def decision_table(policy: ForeignMountPolicy = "leave") -> dict[DecisionKey, ActionType | None]:
    """Get the complete decision table for a foreign-mount policy.

    Args:
        policy: "leave" keeps foreign/disconnected mounts of unauthorized
            mappings, "cleanup" force-unmounts them.

    Returns:
        Mapping of (state, authorized) to action, covering every combination.
    """
    if policy == "cleanup":
        return {**DECISION_TABLE, **CLEANUP_OVERRIDES}
    return dict(DECISION_TABLE)


def decide(
    state: MountState,
    authorized: bool,
    policy: ForeignMountPolicy = "leave",
) -> ActionType | None:
    """Look up the action for one observed state.

    Args:
        state: Observed mount state.
        authorized: Whether the identity is entitled to the mapping.
        policy: Foreign-mount policy for the run.

    Returns:
        The action to take, or None if nothing needs to change.
    """
    return decision_table(policy)[(state, authorized)]


def reason_for(state: MountState, authorized: bool) -> str | None:
    """Human-readable reason for a decision, if any action is taken."""
    return REASONS.get((state, authorized))
