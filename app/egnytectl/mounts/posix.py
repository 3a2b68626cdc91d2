"""POSIX mount table for mount paths (macOS and Linux).

Reads ``mount`` output, detects dead FUSE sessions by stat-ing the mount
point, and deletes stale entries with ``umount``.
"""

import errno
import logging
import os
import re
import subprocess

from egnytectl.backends.base import StepResult, invoke_step
from egnytectl.models.mount import MountState, ObservedDrive
from egnytectl.mounts.base import MountTable, MountTableError, is_client_mount
from egnytectl.utils.shell import run_command

logger = logging.getLogger(__name__)

# "<device> on <path> (<opts>)" on macOS, "<device> on <path> type <fs> (<opts>)" on Linux
_MOUNT_LINE = re.compile(
    r"^(?P<device>.+?) on (?P<path>/.*?)(?: type (?P<fstype>\S+))? \((?P<options>[^)]*)\)$"
)

# stat() errors that mean the mount exists but its session is gone
_DEAD_SESSION_ERRNOS = frozenset({errno.ENOTCONN, errno.EIO, errno.ETIMEDOUT})


def _is_session_dead(path: str) -> bool:
    try:
        os.stat(path)
    except OSError as e:
        return e.errno in _DEAD_SESSION_ERRNOS
    return False


def parse_mount_output(output: str) -> dict[str, ObservedDrive]:
    """Parse ``mount`` output into observed drives keyed by mount path.

    Args:
        output: Raw stdout of ``mount``.

    Returns:
        Observed drives; dead-session detection is not applied here.
    """
    drives: dict[str, ObservedDrive] = {}
    for line in output.splitlines():
        match = _MOUNT_LINE.match(line.strip())
        if match is None:
            continue
        path = match.group("path").rstrip("/") or "/"
        device = match.group("device")
        fstype = match.group("fstype") or match.group("options").split(",")[0].strip()
        if is_client_mount(device, fstype, match.group("options")):
            state = MountState.MOUNTED_CORRECT
        else:
            state = MountState.MOUNTED_FOREIGN
        drives[path] = ObservedDrive(path, state, remote=device, provider=fstype)
    return drives


class PosixMountTable(MountTable):
    """Mount table for absolute mount paths."""

    def normalize(self, mount_point: str) -> str:
        return mount_point.rstrip("/") or "/"

    def snapshot(self) -> dict[str, ObservedDrive]:
        """Read the mount table and mark unreachable sessions as disconnected.

        Raises:
            MountTableError: If ``mount`` cannot be run or fails.
        """
        try:
            result = run_command(["mount"], timeout=self._timeout)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise MountTableError(f"Mount query failed: {e}") from e
        if not result.success:
            raise MountTableError(f"Mount query failed: {result.output}")

        drives = parse_mount_output(result.stdout)
        for path, observed in list(drives.items()):
            if observed.state == MountState.MOUNTED_CORRECT and _is_session_dead(path):
                drives[path] = ObservedDrive(
                    path,
                    MountState.MOUNTED_DISCONNECTED,
                    remote=observed.remote,
                    provider=observed.provider,
                )
        return drives

    def delete(self, mount_point: str) -> StepResult:
        """Force-unmount the path with ``umount -f``."""
        path = self.normalize(mount_point)
        return invoke_step("umount", "delete", ["umount", "-f", path], self._timeout)
