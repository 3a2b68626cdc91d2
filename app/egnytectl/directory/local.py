"""Local directory group lookup.

On Windows the groups of the logon token are read with
``whoami /groups /fo csv /nh``, which includes nested domain groups. On
POSIX systems ``id -Gn`` is used.
"""

import csv
import io
import logging
import os
import subprocess

from egnytectl.directory.base import AuthorizationError, GroupDirectory
from egnytectl.utils.shell import run_command

logger = logging.getLogger(__name__)


def parse_whoami_groups(output: str) -> frozenset[str]:
    """Parse ``whoami /groups /fo csv /nh`` output.

    Each group is returned both as reported ("ACME\\FinanceUsers") and
    without its domain prefix ("FinanceUsers"), so the mapping table may use
    either form.

    Args:
        output: Raw CSV output without header.

    Returns:
        Set of group names.
    """
    groups: set[str] = set()
    for row in csv.reader(io.StringIO(output)):
        if not row or not row[0].strip():
            continue
        name = row[0].strip()
        groups.add(name)
        if "\\" in name:
            groups.add(name.rsplit("\\", 1)[1])
    return frozenset(groups)


def parse_id_groups(output: str) -> frozenset[str]:
    """Parse ``id -Gn`` output (space-separated group names)."""
    return frozenset(output.split())


class LocalGroupDirectory(GroupDirectory):
    """Group membership from the local logon session."""

    _TIMEOUT: float = 30.0

    @property
    def name(self) -> str:
        return "local directory"

    def _command(self) -> list[str]:
        if os.name == "nt":
            return ["whoami", "/groups", "/fo", "csv", "/nh"]
        return ["id", "-Gn"]

    def list_groups(self) -> frozenset[str]:
        """Read the current identity's groups.

        Raises:
            AuthorizationError: If the lookup command fails.
        """
        args = self._command()
        try:
            result = run_command(args, timeout=self._TIMEOUT)
        except (OSError, subprocess.TimeoutExpired) as e:
            raise AuthorizationError(f"Group lookup failed: {e}") from e
        if not result.success:
            msg = f"Group lookup exited with code {result.returncode}: {result.output}"
            raise AuthorizationError(msg)

        if args[0] == "whoami":
            groups = parse_whoami_groups(result.stdout)
        else:
            groups = parse_id_groups(result.stdout)

        if not groups:
            raise AuthorizationError("Group lookup returned no groups")

        logger.info("Current identity is a member of %d local group(s)", len(groups))
        return groups
