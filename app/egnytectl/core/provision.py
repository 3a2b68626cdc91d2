"""Drive client provisioning.

Installs or upgrades the Windows desktop client from its MSI package and
opens the inbound firewall ports it needs. The installed version is
remembered in a small TOML marker in the state directory so the next run
can skip the download when nothing changed.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
import tomllib
from collections.abc import Callable
from datetime import UTC, datetime
from pathlib import Path
from tempfile import NamedTemporaryFile

import tomli_w

from egnytectl.core.config import InstallSection
from egnytectl.core.paths import ensure_cache_dir, get_client_marker_path
from egnytectl.utils.http import DownloadError, download
from egnytectl.utils.shell import run_command

logger = logging.getLogger(__name__)

# msiexec: success, reboot initiated, reboot required
_MSI_SUCCESS_CODES = frozenset({0, 1641, 3010})
# msiexec /x: the package's product is not installed
_MSI_UNKNOWN_PRODUCT = 1605

_FIREWALL_PROTOCOLS = ("TCP", "UDP")


class ProvisionError(Exception):
    """Raised when the client cannot be downloaded, installed or configured."""


def parse_version(version: str) -> tuple[int, ...]:
    """Parse a dotted version into a comparable tuple.

    Example:
        >>> parse_version("3.10.2") > parse_version("3.9.15")
        True

    Raises:
        ValueError: If a component is not numeric.
    """
    return tuple(int(part) for part in version.strip().split("."))


class ClientProvisioner:
    """Install/update flow for the desktop client.

    Attributes:
        settings: Install section of the configuration.
        executable: Client executable the firewall rules apply to.
        marker_path: TOML file recording the installed version.
    """

    def __init__(
        self,
        settings: InstallSection,
        executable: str,
        marker_path: Path | None = None,
        fetch: Callable[[str], bytes] = download,
    ) -> None:
        """Initialize the provisioner.

        Args:
            settings: Download and installer settings.
            executable: Client executable path.
            marker_path: Installed-version marker. If None, uses the state dir.
            fetch: Download function taking a URL and returning the body.
        """
        self.settings = settings
        self.executable = executable
        self.marker_path = marker_path or get_client_marker_path()
        self._fetch = fetch

    def _download(self, url: str) -> bytes:
        try:
            return self._fetch(url)
        except DownloadError as e:
            raise ProvisionError(str(e)) from e

    def latest_version(self) -> str:
        """Get the version currently advertised by the vendor.

        Raises:
            ProvisionError: If the page is not configured, unreachable, or
                does not mention a version.
        """
        if not self.settings.download_page_url:
            raise ProvisionError("install.download_page_url is not configured")

        page = self._download(self.settings.download_page_url).decode("utf-8", errors="replace")
        match = re.search(self.settings.version_pattern, page)
        if match is None:
            raise ProvisionError(
                f"No version matching {self.settings.version_pattern!r} "
                f"on {self.settings.download_page_url}"
            )
        version = match.group(1)
        logger.info("Latest client version: %s", version)
        return version

    def installed_version(self) -> str | None:
        """Read the installed version from the marker, if any."""
        if not self.marker_path.exists():
            return None
        try:
            with open(self.marker_path, "rb") as f:
                data = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            logger.warning("Ignoring unreadable client marker %s: %s", self.marker_path, e)
            return None

        version = data.get("client", {}).get("version")
        return version if isinstance(version, str) else None

    def needs_install(self, latest: str, installed: str | None) -> bool:
        """Check whether the latest version is newer than the installed one."""
        if installed is None:
            return True
        try:
            return parse_version(latest) > parse_version(installed)
        except ValueError:
            logger.warning("Cannot compare versions %r and %r; reinstalling", latest, installed)
            return latest != installed

    def fetch_installer(self, version: str) -> Path:
        """Download the MSI for a version into the cache directory.

        Raises:
            ProvisionError: If no installer URL is configured or the download fails.
        """
        if not self.settings.installer_url:
            raise ProvisionError("install.installer_url is not configured")

        url = self.settings.installer_url.format(version=version)
        data = self._download(url)
        try:
            target = ensure_cache_dir() / f"EgnyteDesktopApp_{version}.msi"
            target.write_bytes(data)
        except (OSError, RuntimeError) as e:
            raise ProvisionError(f"Failed to store installer: {e}") from e
        logger.info("Downloaded installer to %s", target)
        return target

    def _msiexec(self, mode: str, installer: Path) -> None:
        args = ["msiexec", mode, str(installer), "/qn", "/norestart"]
        logger.debug("Running %s", " ".join(args))
        try:
            result = run_command(args, timeout=self.settings.install_timeout)
        except subprocess.TimeoutExpired as e:
            raise ProvisionError(f"msiexec {mode} timed out") from e
        except OSError as e:
            raise ProvisionError(f"msiexec could not be started: {e}") from e

        logger.info("msiexec %s exited with code %d", mode, result.returncode)
        if mode == "/x" and result.returncode == _MSI_UNKNOWN_PRODUCT:
            logger.info("No installed product matches %s; installing over it", installer.name)
            return
        if result.returncode not in _MSI_SUCCESS_CODES:
            raise ProvisionError(f"msiexec {mode} exited with code {result.returncode}")
        if result.returncode != 0:
            logger.warning("A reboot is required to finish the client installation")

    def install(self, installer: Path, version: str | None = None, upgrade: bool = False) -> None:
        """Install the client from an MSI package.

        Args:
            installer: Path to the MSI.
            version: Version being installed, recorded in the marker.
            upgrade: Uninstall the existing client first.

        Raises:
            ProvisionError: If msiexec fails or the installer is missing.
        """
        if not installer.is_file():
            raise ProvisionError(f"Installer not found: {installer}")
        if upgrade:
            self._msiexec("/x", installer)
        self._msiexec("/i", installer)
        self.write_marker(version or "unknown")

    def write_marker(self, version: str) -> Path:
        """Record the installed version atomically.

        Raises:
            ProvisionError: If the marker cannot be written.
        """
        data = {
            "client": {
                "version": version,
                "installed_at": datetime.now(UTC).isoformat(timespec="seconds"),
            }
        }
        tmp_path: Path | None = None
        try:
            self.marker_path.parent.mkdir(parents=True, exist_ok=True)
            with NamedTemporaryFile(
                mode="wb",
                dir=self.marker_path.parent,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                tomli_w.dump(data, f)
            os.replace(str(tmp_path), str(self.marker_path))
        except OSError as e:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise ProvisionError(f"Failed to write client marker: {e}") from e
        return self.marker_path

    def open_firewall_ports(self) -> None:
        """Allow inbound TCP and UDP traffic for the client executable.

        Raises:
            ProvisionError: If a rule cannot be added.
        """
        for protocol in _FIREWALL_PROTOCOLS:
            args = [
                "netsh",
                "advfirewall",
                "firewall",
                "add",
                "rule",
                f"name={self.settings.firewall_rule_name}",
                "dir=in",
                "action=allow",
                f"program={self.executable}",
                f"protocol={protocol}",
                "enable=yes",
            ]
            try:
                result = run_command(args, timeout=60.0)
            except (OSError, subprocess.TimeoutExpired) as e:
                raise ProvisionError(f"Firewall rule ({protocol}) failed: {e}") from e
            if not result.success:
                raise ProvisionError(f"Firewall rule ({protocol}) failed: {result.output}")
            logger.info("Added inbound %s firewall rule for %s", protocol, self.executable)

    def ensure_client(self, force: bool = False, installer: Path | None = None) -> bool:
        """Install or upgrade the client if needed, then open firewall ports.

        Args:
            force: Install even when the recorded version is current.
            installer: Local MSI to use instead of downloading one.

        Returns:
            True if the client is installed and configured.
        """
        try:
            installed = self.installed_version()
            if installer is not None:
                match = re.search(self.settings.version_pattern, installer.name)
                version = match.group(1) if match else None
            else:
                version = self.latest_version()

            if not force and version is not None and not self.needs_install(version, installed):
                logger.info("Client %s is up to date", installed)
                return True

            if installer is None:
                installer = self.fetch_installer(version)
            self.install(installer, version=version, upgrade=installed is not None)
            self.open_firewall_ports()
        except ProvisionError as e:
            logger.error("Client provisioning failed: %s", e)
            return False

        logger.info("Client %s installed", version or "(unknown version)")
        return True
