"""Unit tests for drive client provisioning."""

import subprocess
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from egnytectl.core.config import InstallSection
from egnytectl.core.provision import ClientProvisioner, ProvisionError, parse_version
from egnytectl.utils.http import DownloadError
from egnytectl.utils.shell import CommandResult

PAGE = b'<a href="/dl/EgnyteDesktopApp_3.21.1.msi">Download</a>'
EXE = "C:\\Program Files (x86)\\Egnyte Connect\\EgnyteClient.exe"


@pytest.fixture
def settings() -> InstallSection:
    """Install settings pointing at a fake vendor page."""
    return InstallSection(
        download_page_url="https://vendor.example.com/desktop",
        installer_url="https://vendor.example.com/dl/EgnyteDesktopApp_{version}.msi",
    )


@pytest.fixture
def fetch() -> MagicMock:
    """Download function returning the vendor page."""
    return MagicMock(return_value=PAGE)


@pytest.fixture
def provisioner(tmp_path: Path, settings: InstallSection, fetch: MagicMock) -> ClientProvisioner:
    """Provisioner with its marker in a temporary directory."""
    return ClientProvisioner(settings, EXE, marker_path=tmp_path / "client.toml", fetch=fetch)


def _ok(stdout: str = "") -> CommandResult:
    return CommandResult(stdout=stdout, stderr="", returncode=0)


class TestVersions:
    """Tests for version discovery and comparison."""

    def test_parse_version_is_numeric(self) -> None:
        """Components compare as numbers, not strings."""
        assert parse_version("3.10.0") > parse_version("3.9.15")

    def test_latest_version(self, provisioner: ClientProvisioner, fetch: MagicMock) -> None:
        """The first pattern match on the vendor page wins."""
        assert provisioner.latest_version() == "3.21.1"
        fetch.assert_called_once_with("https://vendor.example.com/desktop")

    def test_latest_version_without_match(
        self, provisioner: ClientProvisioner, fetch: MagicMock
    ) -> None:
        """A page without a version is an error."""
        fetch.return_value = b"<html>maintenance</html>"

        with pytest.raises(ProvisionError, match="No version"):
            provisioner.latest_version()

    def test_latest_version_download_error(
        self, provisioner: ClientProvisioner, fetch: MagicMock
    ) -> None:
        """Download errors become ProvisionError."""
        fetch.side_effect = DownloadError("HTTP 503")

        with pytest.raises(ProvisionError, match="HTTP 503"):
            provisioner.latest_version()

    def test_latest_version_requires_page(self, tmp_path: Path) -> None:
        """Without a download page there is nothing to check."""
        provisioner = ClientProvisioner(InstallSection(), EXE, marker_path=tmp_path / "m.toml")

        with pytest.raises(ProvisionError, match="download_page_url"):
            provisioner.latest_version()

    @pytest.mark.parametrize(
        ("latest", "installed", "expected"),
        [
            ("3.21.1", None, True),
            ("3.21.1", "3.21.0", True),
            ("3.21.1", "3.21.1", False),
            ("3.9.0", "3.10.0", False),
            ("3.21.1", "unknown", True),
        ],
    )
    def test_needs_install(
        self,
        provisioner: ClientProvisioner,
        latest: str,
        installed: str | None,
        expected: bool,
    ) -> None:
        """Only a newer advertised version requires an install."""
        assert provisioner.needs_install(latest, installed) is expected


class TestMarker:
    """Tests for the installed-version marker."""

    def test_missing_marker(self, provisioner: ClientProvisioner) -> None:
        """No marker means nothing recorded."""
        assert provisioner.installed_version() is None

    def test_write_and_read_marker(self, provisioner: ClientProvisioner) -> None:
        """The written version is read back."""
        provisioner.write_marker("3.21.1")

        assert provisioner.installed_version() == "3.21.1"

    def test_corrupt_marker_ignored(self, provisioner: ClientProvisioner) -> None:
        """An unreadable marker is treated as missing."""
        provisioner.marker_path.write_text("not = [toml")

        assert provisioner.installed_version() is None


class TestInstall:
    """Tests for msiexec and firewall invocations."""

    def test_fresh_install(self, provisioner: ClientProvisioner, tmp_path: Path) -> None:
        """A fresh install runs msiexec /i only and writes the marker."""
        msi = tmp_path / "EgnyteDesktopApp_3.21.1.msi"
        msi.write_bytes(b"MSI")

        with patch("egnytectl.core.provision.run_command", return_value=_ok()) as mock_run:
            provisioner.install(msi, version="3.21.1")

        mock_run.assert_called_once()
        assert mock_run.call_args[0][0] == ["msiexec", "/i", str(msi), "/qn", "/norestart"]
        assert provisioner.installed_version() == "3.21.1"

    def test_upgrade_uninstalls_first(self, provisioner: ClientProvisioner, tmp_path: Path) -> None:
        """An upgrade runs msiexec /x before /i."""
        msi = tmp_path / "client.msi"
        msi.write_bytes(b"MSI")

        with patch("egnytectl.core.provision.run_command", return_value=_ok()) as mock_run:
            provisioner.install(msi, version="3.21.1", upgrade=True)

        modes = [call[0][0][1] for call in mock_run.call_args_list]
        assert modes == ["/x", "/i"]

    def test_upgrade_with_new_product_code(
        self, provisioner: ClientProvisioner, tmp_path: Path
    ) -> None:
        """msiexec /x reporting an unknown product still proceeds to /i."""
        msi = tmp_path / "client.msi"
        msi.write_bytes(b"MSI")

        def run(args: list[str], **kwargs: object) -> CommandResult:
            code = 1605 if args[1] == "/x" else 0
            return CommandResult(stdout="", stderr="", returncode=code)

        with patch("egnytectl.core.provision.run_command", side_effect=run) as mock_run:
            provisioner.install(msi, version="3.22.0", upgrade=True)

        modes = [call[0][0][1] for call in mock_run.call_args_list]
        assert modes == ["/x", "/i"]
        assert provisioner.installed_version() == "3.22.0"

    def test_unknown_product_on_install_fails(
        self, provisioner: ClientProvisioner, tmp_path: Path
    ) -> None:
        """Exit code 1605 is only tolerated for the uninstall step."""
        msi = tmp_path / "client.msi"
        msi.write_bytes(b"MSI")
        result = CommandResult(stdout="", stderr="", returncode=1605)

        with (
            patch("egnytectl.core.provision.run_command", return_value=result),
            pytest.raises(ProvisionError, match="1605"),
        ):
            provisioner.install(msi, version="3.22.0")

    def test_reboot_required_is_success(
        self, provisioner: ClientProvisioner, tmp_path: Path
    ) -> None:
        """Exit code 3010 means installed, reboot pending."""
        msi = tmp_path / "client.msi"
        msi.write_bytes(b"MSI")
        result = CommandResult(stdout="", stderr="", returncode=3010)

        with patch("egnytectl.core.provision.run_command", return_value=result):
            provisioner.install(msi, version="3.21.1")

        assert provisioner.installed_version() == "3.21.1"

    def test_msiexec_failure(self, provisioner: ClientProvisioner, tmp_path: Path) -> None:
        """Other exit codes raise and leave no marker."""
        msi = tmp_path / "client.msi"
        msi.write_bytes(b"MSI")
        result = CommandResult(stdout="", stderr="", returncode=1603)

        with (
            patch("egnytectl.core.provision.run_command", return_value=result),
            pytest.raises(ProvisionError, match="1603"),
        ):
            provisioner.install(msi)

        assert provisioner.installed_version() is None

    def test_msiexec_timeout(self, provisioner: ClientProvisioner, tmp_path: Path) -> None:
        """A hanging installer is an error."""
        msi = tmp_path / "client.msi"
        msi.write_bytes(b"MSI")

        with (
            patch(
                "egnytectl.core.provision.run_command",
                side_effect=subprocess.TimeoutExpired("msiexec", 900),
            ),
            pytest.raises(ProvisionError, match="timed out"),
        ):
            provisioner.install(msi)

    def test_missing_installer(self, provisioner: ClientProvisioner, tmp_path: Path) -> None:
        """A missing MSI is reported before msiexec runs."""
        with pytest.raises(ProvisionError, match="Installer not found"):
            provisioner.install(tmp_path / "missing.msi")

    def test_firewall_rules(self, provisioner: ClientProvisioner) -> None:
        """Inbound TCP and UDP rules are added for the client executable."""
        with patch("egnytectl.core.provision.run_command", return_value=_ok()) as mock_run:
            provisioner.open_firewall_ports()

        assert mock_run.call_count == 2
        for call, protocol in zip(mock_run.call_args_list, ("TCP", "UDP"), strict=True):
            args = call[0][0]
            assert args[:5] == ["netsh", "advfirewall", "firewall", "add", "rule"]
            assert "dir=in" in args
            assert f"program={EXE}" in args
            assert f"protocol={protocol}" in args

    def test_firewall_failure(self, provisioner: ClientProvisioner) -> None:
        """A rejected rule raises ProvisionError."""
        result = CommandResult(
            stdout="", stderr="The requested operation requires elevation.", returncode=1
        )

        with (
            patch("egnytectl.core.provision.run_command", return_value=result),
            pytest.raises(ProvisionError, match="elevation"),
        ):
            provisioner.open_firewall_ports()


class TestEnsureClient:
    """Tests for the complete provisioning flow."""

    def test_up_to_date_skips_install(self, provisioner: ClientProvisioner) -> None:
        """Nothing is installed when the recorded version is current."""
        provisioner.write_marker("3.21.1")

        with patch("egnytectl.core.provision.run_command") as mock_run:
            assert provisioner.ensure_client() is True

        mock_run.assert_not_called()

    def test_downloads_and_installs(
        self, provisioner: ClientProvisioner, fetch: MagicMock, tmp_path: Path
    ) -> None:
        """A newer version is downloaded, installed and the firewall opened."""
        provisioner.write_marker("3.20.0")
        fetch.side_effect = [PAGE, b"MSI"]

        with (
            patch("egnytectl.core.provision.ensure_cache_dir", return_value=tmp_path),
            patch("egnytectl.core.provision.run_command", return_value=_ok()) as mock_run,
        ):
            assert provisioner.ensure_client() is True

        fetch.assert_called_with("https://vendor.example.com/dl/EgnyteDesktopApp_3.21.1.msi")
        commands = [call[0][0][:2] for call in mock_run.call_args_list]
        assert commands == [
            ["msiexec", "/x"],
            ["msiexec", "/i"],
            ["netsh", "advfirewall"],
            ["netsh", "advfirewall"],
        ]
        assert provisioner.installed_version() == "3.21.1"

    def test_local_installer(self, provisioner: ClientProvisioner, tmp_path: Path) -> None:
        """A local MSI is installed without contacting the vendor page."""
        msi = tmp_path / "EgnyteDesktopApp_3.22.0.msi"
        msi.write_bytes(b"MSI")

        with patch("egnytectl.core.provision.run_command", return_value=_ok()):
            assert provisioner.ensure_client(installer=msi) is True

        assert provisioner.installed_version() == "3.22.0"

    def test_failure_returns_false(self, provisioner: ClientProvisioner, fetch: MagicMock) -> None:
        """Errors are logged and reported as False."""
        fetch.side_effect = DownloadError("offline")

        assert provisioner.ensure_client() is False
