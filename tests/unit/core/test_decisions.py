"""Unit tests for the reconciliation decision table."""

import itertools

import pytest
from egnytectl.core.decisions import (
    DECISION_TABLE,
    decide,
    decision_table,
    reason_for,
)
from egnytectl.models.action import ActionType
from egnytectl.models.mount import MountState

ALL_KEYS = set(itertools.product(MountState, (True, False)))


class TestDecisionTable:
    """Tests for the decision table data."""

    @pytest.mark.parametrize("policy", ["leave", "cleanup"])
    def test_covers_every_combination(self, policy: str) -> None:
        """Every (state, authorized) pair has an entry."""
        assert set(decision_table(policy)) == ALL_KEYS  # type: ignore[arg-type]

    @pytest.mark.parametrize(
        ("state", "authorized", "expected"),
        [
            (MountState.UNMOUNTED, True, ActionType.MOUNT),
            (MountState.UNMOUNTED, False, None),
            (MountState.MOUNTED_CORRECT, True, None),
            (MountState.MOUNTED_CORRECT, False, ActionType.UNMOUNT),
            (MountState.MOUNTED_FOREIGN, True, ActionType.REMOUNT),
            (MountState.MOUNTED_FOREIGN, False, None),
            (MountState.MOUNTED_DISCONNECTED, True, ActionType.REMOUNT),
            (MountState.MOUNTED_DISCONNECTED, False, None),
        ],
    )
    def test_leave_policy(
        self, state: MountState, authorized: bool, expected: ActionType | None
    ) -> None:
        """The default policy leaves foreign mounts of unauthorized mappings alone."""
        assert decide(state, authorized) == expected

    @pytest.mark.parametrize("state", [MountState.MOUNTED_FOREIGN, MountState.MOUNTED_DISCONNECTED])
    def test_cleanup_policy_force_unmounts(self, state: MountState) -> None:
        """The cleanup policy removes stale mounts the user is not entitled to."""
        assert decide(state, False, "cleanup") == ActionType.FORCE_UNMOUNT

    def test_cleanup_policy_keeps_other_decisions(self) -> None:
        """Only the unauthorized stale rows differ between policies."""
        leave = decision_table("leave")
        cleanup = decision_table("cleanup")

        changed = {key for key in ALL_KEYS if leave[key] != cleanup[key]}
        assert changed == {
            (MountState.MOUNTED_FOREIGN, False),
            (MountState.MOUNTED_DISCONNECTED, False),
        }

    def test_table_copy_is_independent(self) -> None:
        """Callers cannot modify the module-level table through a copy."""
        table = decision_table()
        table[(MountState.UNMOUNTED, True)] = None

        assert DECISION_TABLE[(MountState.UNMOUNTED, True)] == ActionType.MOUNT


class TestReasonFor:
    """Tests for reason_for function."""

    def test_reason_for_actions(self) -> None:
        """Actionable combinations have a reason."""
        assert reason_for(MountState.UNMOUNTED, True) == "Authorized and not mounted"
        assert reason_for(MountState.MOUNTED_DISCONNECTED, True) == "Mount is disconnected"

    def test_no_reason_without_action(self) -> None:
        """Combinations without an action have no reason."""
        assert reason_for(MountState.MOUNTED_CORRECT, True) is None
