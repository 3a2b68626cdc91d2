"""Egnyte Desktop App backend for macOS.

Drives ``egnytecli drives ...``. The macOS client opens the session as part
of ``add`` (``--openSession``), so there is no separate connect command.
"""

import getpass

from egnytectl.backends.base import MountBackend, StepResult
from egnytectl.models.mapping import DriveMapping


class MacEgnyteBackend(MountBackend):
    """Backend for the macOS ``egnytecli`` command line."""

    def __init__(
        self,
        executable: str = "egnytecli",
        timeout: float = 60.0,
        username: str | None = None,
    ) -> None:
        super().__init__(executable, timeout)
        self._username = username

    @property
    def name(self) -> str:
        return "egnytecli"

    @property
    def requires_connect(self) -> bool:
        return False

    @property
    def username(self) -> str:
        """Cloud username, defaulting to the login name."""
        return self._username or getpass.getuser()

    def add(self, mapping: DriveMapping) -> StepResult:
        return self._invoke(
            "add",
            [
                self.executable,
                "drives",
                "add",
                mapping.drive_name,
                "--domain",
                mapping.domain_name,
                "--username",
                self.username,
                "--cloudStartPath",
                mapping.drive_path,
                "--openSession",
            ],
        )

    def connect(self, mapping: DriveMapping) -> StepResult:
        # Session is opened by add
        return StepResult("connect", ok=True, returncode=0, detail="opened by add")

    def remove(self, mapping: DriveMapping) -> StepResult:
        return self._invoke(
            "remove",
            [self.executable, "drives", "remove", mapping.drive_name],
        )
