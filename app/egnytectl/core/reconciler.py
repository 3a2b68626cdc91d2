"""Drive reconciliation.

The Reconciler compares every desired mapping with what the operating
system reports for its mount point, decides a corrective action through the
decision table and executes it with the mount backend. Mappings are handled
strictly in input order, one at a time. A failure inside one mapping is
recorded on its result and never stops the loop.

After every action the mount table is queried again until the expected
state appears; that observation, not the client's exit code, decides
whether the action succeeded.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from egnytectl.backends.base import MountBackend, StepResult
from egnytectl.core.config import ForeignMountPolicy
from egnytectl.core.decisions import decide, reason_for
from egnytectl.models.action import Action, ActionResult, ActionType
from egnytectl.models.mapping import DriveMapping
from egnytectl.models.mount import MountState, ObservedDrive
from egnytectl.mounts.base import MountTable, MountTableError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MappingStatus:
    """Observation and decision for one mapping.

    Attributes:
        mapping: The desired mapping.
        authorized: Whether the identity is entitled to it.
        observed: What the mount table reported, or None if the query failed.
        action: Planned action, or None if nothing needs to change.
        error: Query error, if the mount point could not be observed.
    """

    mapping: DriveMapping
    authorized: bool
    observed: ObservedDrive | None = None
    action: Action | None = None
    error: str | None = None


class Reconciler:
    """Brings mounted drives in line with the desired mappings.

    Attributes:
        policy: Foreign-mount policy for the run.
        verify_attempts: Mount table queries after each action.
        verify_interval: Seconds between verification queries.

    Example:
        >>> reconciler = Reconciler(backend, mount_table, authorizer)
        >>> results = reconciler.run(mappings)
    """

    def __init__(
        self,
        backend: MountBackend,
        mount_table: MountTable,
        is_authorized: Callable[[str], bool],
        *,
        policy: ForeignMountPolicy = "leave",
        verify_attempts: int = 3,
        verify_interval: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self._backend = backend
        self._mount_table = mount_table
        self._is_authorized = is_authorized
        self.policy = policy
        self.verify_attempts = max(1, verify_attempts)
        self.verify_interval = verify_interval
        self._sleep = sleep

    def is_authorized(self, mapping: DriveMapping) -> bool:
        """Check whether the identity is entitled to a mapping."""
        return mapping.always_authorized or self._is_authorized(mapping.group_key)

    def inspect(self, mappings: Iterable[DriveMapping]) -> list[MappingStatus]:
        """Observe every mapping and decide its action without changing anything.

        Args:
            mappings: Desired mappings in processing order.

        Returns:
            One MappingStatus per mapping, in input order.
        """
        statuses: list[MappingStatus] = []
        for mapping in mappings:
            authorized = self.is_authorized(mapping)
            try:
                observed = self._mount_table.query(mapping.drive_letter)
            except MountTableError as e:
                logger.error(
                    "Could not observe %s (%s): %s",
                    mapping.mount_point,
                    mapping.drive_name,
                    e,
                )
                statuses.append(MappingStatus(mapping, authorized, error=str(e)))
                continue

            action_type = decide(observed.state, authorized, self.policy)
            action = None
            if action_type is not None:
                action = Action(
                    action_type=action_type,
                    mapping=mapping,
                    observed=observed.state,
                    reason=reason_for(observed.state, authorized),
                )
            logger.info(
                "%s (%s): observed %s, authorized=%s, action=%s",
                mapping.mount_point,
                mapping.drive_name,
                observed.describe(),
                authorized,
                action_type.value if action_type else "none",
            )
            statuses.append(MappingStatus(mapping, authorized, observed, action))
        return statuses

    def plan(self, mappings: Iterable[DriveMapping]) -> list[Action]:
        """Compute the corrective actions for the mappings, in input order."""
        return [status.action for status in self.inspect(mappings) if status.action]

    def apply(self, actions: Iterable[Action]) -> list[ActionResult]:
        """Execute actions one after another.

        An unexpected error inside one action is recorded as its failure and
        the remaining actions still run.

        Returns:
            One ActionResult per action, in order.
        """
        results: list[ActionResult] = []
        for action in actions:
            try:
                result = self._execute(action)
            except Exception as e:
                logger.exception(
                    "%s %s raised an unexpected error",
                    action.action_type.value,
                    action.mapping.drive_name,
                )
                result = ActionResult(action=action, success=False, error=f"unexpected error: {e}")
            if result.success:
                logger.info("%s %s succeeded", action.action_type.value, action.mapping.drive_name)
            else:
                logger.error(
                    "%s %s failed: %s",
                    action.action_type.value,
                    action.mapping.drive_name,
                    result.error,
                )
            results.append(result)
        return results

    def run(self, mappings: Iterable[DriveMapping]) -> list[ActionResult]:
        """Plan and execute in one pass."""
        return self.apply(self.plan(mappings))

    def _execute(self, action: Action) -> ActionResult:
        mapping = action.mapping
        steps: list[StepResult] = []

        if action.is_destructive:
            steps.append(self._mount_table.delete(mapping.drive_letter))
        if action.action_type in (ActionType.UNMOUNT, ActionType.REMOUNT):
            # Removing a mapping the client no longer knows is harmless
            steps.append(self._backend.remove(mapping))
        if action.is_mount:
            if action.is_destructive and not steps[0].ok:
                occupant = self._recheck(mapping)
                if occupant is None or occupant.is_mounted:
                    logger.error(
                        "Not mounting %s: %s was not cleared",
                        mapping.drive_name,
                        mapping.mount_point,
                    )
                    return self._result(action, steps, occupant, attempted=False)
            steps.extend(self._mount(mapping))

        return self._result(action, steps, self._verify(mapping, action.action_type.expected_state))

    def _recheck(self, mapping: DriveMapping) -> MountState | None:
        """Observe a mount point once, returning None if the query fails."""
        try:
            return self._mount_table.query(mapping.drive_letter).state
        except MountTableError as e:
            logger.error("Could not re-check %s: %s", mapping.mount_point, e)
            return None

    def _result(
        self,
        action: Action,
        steps: list[StepResult],
        final_state: MountState | None,
        *,
        attempted: bool = True,
    ) -> ActionResult:
        expected = action.action_type.expected_state
        summary = "; ".join(step.describe() for step in steps)

        if attempted and final_state == expected:
            return ActionResult(
                action=action,
                success=True,
                message=summary or None,
                final_state=final_state,
            )

        observed = final_state.value if final_state else "unknown"
        if attempted:
            error = f"expected {expected.value}, observed {observed}"
        else:
            error = f"mount point still {observed} after delete, not mounted"
        failures = [step.describe() for step in steps if not step.ok]
        if failures:
            error = f"{error} ({'; '.join(failures)})"
        return ActionResult(
            action=action,
            success=False,
            message=summary or None,
            error=error,
            final_state=final_state,
        )

    def _mount(self, mapping: DriveMapping) -> list[StepResult]:
        add = self._backend.add(mapping)
        if not add.ok:
            logger.warning("Not connecting %s: add did not succeed", mapping.drive_name)
            return [add]
        if not self._backend.requires_connect:
            return [add]
        return [add, self._backend.connect(mapping)]

    def _verify(self, mapping: DriveMapping, expected: MountState) -> MountState | None:
        """Poll the mount table until the expected state shows up.

        Returns:
            The last observed state, or None if every query failed.
        """
        state: MountState | None = None
        for attempt in range(1, self.verify_attempts + 1):
            try:
                state = self._mount_table.query(mapping.drive_letter).state
            except MountTableError as e:
                logger.warning("Verification query for %s failed: %s", mapping.mount_point, e)
                state = None
            if state == expected:
                return state
            if attempt < self.verify_attempts:
                self._sleep(self.verify_interval)

        logger.debug(
            "%s did not reach %s after %d check(s)",
            mapping.mount_point,
            expected.value,
            self.verify_attempts,
        )
        return state
