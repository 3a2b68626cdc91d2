"""Unit tests for the local group directory."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest
from egnytectl.directory.base import AuthorizationError
from egnytectl.directory.local import (
    LocalGroupDirectory,
    parse_id_groups,
    parse_whoami_groups,
)
from egnytectl.utils.shell import CommandResult

WHOAMI = ["whoami", "/groups", "/fo", "csv", "/nh"]


class TestParsers:
    """Tests for the group output parsers."""

    def test_whoami_groups(self, mock_whoami_groups_output: str) -> None:
        """Names are reported with and without their domain prefix."""
        groups = parse_whoami_groups(mock_whoami_groups_output)

        assert "Everyone" in groups
        assert "ACME\\FinanceUsers" in groups
        assert "FinanceUsers" in groups
        assert "Users" in groups

    def test_id_groups(self) -> None:
        """id -Gn output is space separated."""
        assert parse_id_groups("staff everyone finance\n") == {"staff", "everyone", "finance"}


class TestLocalGroupDirectory:
    """Tests for LocalGroupDirectory lookups."""

    @patch("egnytectl.directory.local.run_command")
    def test_list_groups_windows(self, mock_run: MagicMock, mock_whoami_groups_output: str) -> None:
        """whoami output is parsed on Windows."""
        mock_run.return_value = CommandResult(
            stdout=mock_whoami_groups_output, stderr="", returncode=0
        )
        directory = LocalGroupDirectory()

        with patch.object(LocalGroupDirectory, "_command", return_value=WHOAMI):
            groups = directory.list_groups()

        assert "FinanceUsers" in groups
        mock_run.assert_called_once()

    @patch("egnytectl.directory.local.run_command")
    def test_list_groups_posix(self, mock_run: MagicMock) -> None:
        """id output is parsed elsewhere."""
        mock_run.return_value = CommandResult(stdout="staff finance\n", stderr="", returncode=0)

        with patch.object(LocalGroupDirectory, "_command", return_value=["id", "-Gn"]):
            groups = LocalGroupDirectory().list_groups()

        assert groups == {"staff", "finance"}

    @patch("egnytectl.directory.local.run_command")
    def test_nonzero_exit_raises(self, mock_run: MagicMock) -> None:
        """A failed lookup is an authorization error."""
        mock_run.return_value = CommandResult(stdout="", stderr="no logon session", returncode=1)

        with pytest.raises(AuthorizationError, match="no logon session"):
            LocalGroupDirectory().list_groups()

    @patch("egnytectl.directory.local.run_command")
    def test_timeout_raises(self, mock_run: MagicMock) -> None:
        """A hanging lookup is an authorization error."""
        mock_run.side_effect = subprocess.TimeoutExpired("whoami", 30)

        with pytest.raises(AuthorizationError):
            LocalGroupDirectory().list_groups()

    @patch("egnytectl.directory.local.run_command")
    def test_no_groups_raises(self, mock_run: MagicMock) -> None:
        """An empty membership list is treated as a failed lookup."""
        mock_run.return_value = CommandResult(stdout="\n", stderr="", returncode=0)

        with pytest.raises(AuthorizationError, match="no groups"):
            LocalGroupDirectory().list_groups()
