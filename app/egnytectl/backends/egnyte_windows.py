"""Egnyte Desktop App backend for Windows.

Drives ``EgnyteClient.exe -command ...`` to add, connect and remove drive
mappings.
"""

from egnytectl.backends.base import MountBackend, StepResult
from egnytectl.models.mapping import DriveMapping


class WindowsEgnyteBackend(MountBackend):
    """Backend for the Windows Egnyte Desktop App command line.

    Attributes:
        use_sso: Pass ``-sso use_sso`` so the client authenticates with the
            signed-in Windows identity.
    """

    def __init__(self, executable: str, timeout: float = 60.0, use_sso: bool = True) -> None:
        super().__init__(executable, timeout)
        self._use_sso = use_sso

    @property
    def name(self) -> str:
        return "EgnyteClient"

    @property
    def use_sso(self) -> bool:
        """Whether single sign-on is requested on add."""
        return self._use_sso

    def add(self, mapping: DriveMapping) -> StepResult:
        """Create the mapping with its label, domain, letter and remote path."""
        args = [
            self.executable,
            "-command",
            "add",
            "-l",
            mapping.drive_name,
            "-d",
            mapping.domain_name,
        ]
        if self._use_sso:
            args.extend(["-sso", "use_sso"])
        args.extend(["-t", mapping.drive_letter, "-m", mapping.drive_path])
        return self._invoke("add", args)

    def connect(self, mapping: DriveMapping) -> StepResult:
        """Connect the mapping so the drive letter appears."""
        return self._invoke(
            "connect",
            [self.executable, "-command", "connect", "-l", mapping.drive_name],
        )

    def remove(self, mapping: DriveMapping) -> StepResult:
        """Remove the mapping from the client."""
        return self._invoke(
            "remove",
            [self.executable, "-command", "remove", "-l", mapping.drive_name],
        )
