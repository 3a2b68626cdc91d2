"""Windows drive-letter mount table.

Queries logical disks and network connections through CIM (one PowerShell
call returning JSON) and deletes stale entries with ``net use /delete``.
"""

import json
import logging
import subprocess
from typing import Any

from egnytectl.backends.base import StepResult, invoke_step
from egnytectl.models.mount import MountState, ObservedDrive
from egnytectl.mounts.base import MountTable, MountTableError, is_client_mount
from egnytectl.utils.shell import run_command

logger = logging.getLogger(__name__)

# Collects disks and network connections as a single JSON document
_QUERY_SCRIPT = (
    "$disks = @(Get-CimInstance -ClassName Win32_LogicalDisk | "
    "Select-Object DeviceID,DriveType,ProviderName); "
    "$conns = @(Get-CimInstance -ClassName Win32_NetworkConnection | "
    "Select-Object LocalName,RemoteName,ConnectionState,Status,ProviderName); "
    "@{disks=$disks; connections=$conns} | ConvertTo-Json -Depth 3 -Compress"
)

# Win32_NetworkConnection.Status values that mean the session is not usable
_BROKEN_STATUSES = frozenset({"unavailable", "degraded", "error", "lost comm", "nonrecover"})

# Win32_LogicalDisk.DriveType for network drives
_NETWORK_DRIVE = 4


def _as_list(value: Any) -> list[dict[str, Any]]:
    """ConvertTo-Json collapses single-item arrays into objects."""
    if value is None:
        return []
    if isinstance(value, dict):
        return [value]
    return [item for item in value if isinstance(item, dict)]


def _letter(device: object) -> str | None:
    if not isinstance(device, str) or not device:
        return None
    letter = device.strip().rstrip(":").upper()
    return letter if len(letter) == 1 else None


def classify_connection(connection: dict[str, Any]) -> MountState:
    """Classify a Win32_NetworkConnection entry.

    Args:
        connection: Entry with ConnectionState, Status, RemoteName and ProviderName.

    Returns:
        MOUNTED_DISCONNECTED, MOUNTED_CORRECT, or MOUNTED_FOREIGN.
    """
    state = str(connection.get("ConnectionState") or "").lower()
    status = str(connection.get("Status") or "").lower()
    if state == "disconnected" or status in _BROKEN_STATUSES:
        return MountState.MOUNTED_DISCONNECTED
    if is_client_mount(connection.get("RemoteName"), connection.get("ProviderName")):
        return MountState.MOUNTED_CORRECT
    return MountState.MOUNTED_FOREIGN


def parse_drive_report(payload: str) -> dict[str, ObservedDrive]:
    """Parse the JSON produced by the CIM query script.

    Network connections take precedence over logical disks because only
    they report the session state.

    Args:
        payload: JSON text with "disks" and "connections" arrays.

    Returns:
        Observed drives keyed by upper-case letter.

    Raises:
        MountTableError: If the payload is not valid JSON.
    """
    try:
        data = json.loads(payload or "{}")
    except json.JSONDecodeError as e:
        raise MountTableError(f"Unexpected drive report: {e}") from e
    if not isinstance(data, dict):
        raise MountTableError("Unexpected drive report: not an object")

    drives: dict[str, ObservedDrive] = {}

    for disk in _as_list(data.get("disks")):
        letter = _letter(disk.get("DeviceID"))
        if letter is None:
            continue
        provider = disk.get("ProviderName") or None
        if disk.get("DriveType") == _NETWORK_DRIVE and is_client_mount(provider):
            state = MountState.MOUNTED_CORRECT
        else:
            state = MountState.MOUNTED_FOREIGN
        drives[letter] = ObservedDrive(letter, state, remote=provider)

    for connection in _as_list(data.get("connections")):
        letter = _letter(connection.get("LocalName"))
        if letter is None:
            continue
        drives[letter] = ObservedDrive(
            letter,
            classify_connection(connection),
            remote=connection.get("RemoteName") or None,
            provider=connection.get("ProviderName") or None,
        )

    return drives


class WindowsMountTable(MountTable):
    """Mount table for Windows drive letters."""

    def normalize(self, mount_point: str) -> str:
        return mount_point.strip().rstrip(":\\").upper()

    def snapshot(self) -> dict[str, ObservedDrive]:
        """Read all drive letters through CIM.

        Raises:
            MountTableError: If PowerShell cannot be run or fails.
        """
        args = ["powershell.exe", "-NoProfile", "-NonInteractive", "-Command", _QUERY_SCRIPT]
        try:
            result = run_command(args, timeout=self._timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise MountTableError(f"Drive query failed: {e}") from e
        if not result.success:
            raise MountTableError(f"Drive query failed: {result.output}")

        drives = parse_drive_report(result.stdout)
        logger.debug("Observed drive letters: %s", ", ".join(sorted(drives)) or "<none>")
        return drives

    def delete(self, mount_point: str) -> StepResult:
        """Delete the drive letter with ``net use X: /delete /y``."""
        letter = self.normalize(mount_point)
        return invoke_step(
            "net use",
            "delete",
            ["net", "use", f"{letter}:", "/delete", "/y"],
            self._timeout,
        )
