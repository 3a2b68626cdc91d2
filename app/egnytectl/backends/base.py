"""Abstract base class for mount backends.

This module defines the MountBackend interface that all drive client
command surfaces must implement, plus the shared process invocation that
turns spawn errors, timeouts and exit codes into step results.
"""

import logging
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass

from egnytectl.models.mapping import DriveMapping
from egnytectl.utils.shell import command_exists, run_command

logger = logging.getLogger(__name__)


class BackendUnavailableError(RuntimeError):
    """Raised when the drive client executable is missing."""


@dataclass(frozen=True, slots=True)
class StepResult:
    """Outcome of one client invocation.

    Attributes:
        step: Client command that was run ("add", "connect", "remove", ...).
        ok: Whether the command started and exited with code 0.
        returncode: Exit code, or None if the process never completed.
        detail: Diagnostic output or error description.
    """

    step: str
    ok: bool
    returncode: int | None = None
    detail: str = ""

    def describe(self) -> str:
        """One-line description for logs and results."""
        if self.returncode is None:
            return f"{self.step} failed: {self.detail}"
        if self.ok:
            return f"{self.step} ok"
        suffix = f": {self.detail}" if self.detail else ""
        return f"{self.step} exited with code {self.returncode}{suffix}"


class MountBackend(ABC):
    """Abstract base class for drive client backends.

    Backends drive the vendor client that actually creates, activates and
    removes cloud drive mappings. Every call blocks until the client exits
    or the timeout expires; the client is never invoked concurrently.

    Attributes:
        executable: Client executable name or path.
        timeout: Upper bound in seconds for every invocation.

    Example:
        >>> backend = WindowsEgnyteBackend(executable, timeout=60)
        >>> if backend.is_available():
        ...     step = backend.add(mapping)
        ...     if step.ok:
        ...         backend.connect(mapping)
    """

    def __init__(self, executable: str, timeout: float = 60.0) -> None:
        """Initialize the backend.

        Args:
            executable: Client executable name or path.
            timeout: Upper bound in seconds for every invocation.
        """
        self._executable = executable
        self._timeout = timeout

    @property
    def executable(self) -> str:
        """Client executable name or path."""
        return self._executable

    @property
    def timeout(self) -> float:
        """Timeout per client invocation in seconds."""
        return self._timeout

    @property
    @abstractmethod
    def name(self) -> str:
        """Short backend name for logs."""

    @property
    def requires_connect(self) -> bool:
        """Whether a separate connect step must follow add."""
        return True

    def is_available(self) -> bool:
        """Check if the client executable can be found."""
        return command_exists(self._executable)

    def ensure_available(self) -> None:
        """Raise if the client executable is missing.

        Raises:
            BackendUnavailableError: If the executable cannot be found.
        """
        if not self.is_available():
            msg = f"Drive client not found: {self._executable}"
            raise BackendUnavailableError(msg)

    @abstractmethod
    def add(self, mapping: DriveMapping) -> StepResult:
        """Create the mapping in the client."""

    @abstractmethod
    def connect(self, mapping: DriveMapping) -> StepResult:
        """Activate a mapping by its label."""

    @abstractmethod
    def remove(self, mapping: DriveMapping) -> StepResult:
        """Delete a mapping by its label."""

    def _invoke(self, step: str, args: list[str]) -> StepResult:
        return invoke_step(self.name, step, args, self._timeout)


def invoke_step(label: str, step: str, args: list[str], timeout: float) -> StepResult:
    """Run one external command and capture its outcome.

    Spawn failures and timeouts never propagate; they are returned as
    failed steps so the caller can continue with the next mapping. Exit
    codes are always logged.

    Args:
        label: Program name for log messages.
        step: Step name ("add", "delete", ...).
        args: Command and arguments.
        timeout: Upper bound in seconds.

    Returns:
        StepResult describing the outcome.
    """
    logger.debug("Running %s %s: %s", label, step, " ".join(args))
    try:
        result = run_command(args, timeout=timeout)
    except subprocess.TimeoutExpired:
        logger.error("%s %s timed out after %.0fs", label, step, timeout)
        return StepResult(step, ok=False, detail=f"timed out after {timeout:.0f}s")
    except OSError as e:
        logger.error("%s %s could not be started: %s", label, step, e)
        return StepResult(step, ok=False, detail=str(e))

    logger.info("%s %s exited with code %d", label, step, result.returncode)
    if not result.success:
        logger.warning("%s %s output: %s", label, step, result.output or "<none>")
    return StepResult(
        step,
        ok=result.success,
        returncode=result.returncode,
        detail=result.output,
    )
