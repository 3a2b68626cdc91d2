"""Pytest configuration and shared fixtures.

This module contains fixtures used across all test modules, including an
in-memory mount table and a drive client backend that updates it, so the
reconciler can be driven without real processes.
"""

from pathlib import Path

import pytest
from egnytectl.backends.base import MountBackend, StepResult
from egnytectl.directory.base import AuthorizationError, GroupDirectory
from egnytectl.models.mapping import DriveMapping
from egnytectl.models.mount import MountState, ObservedDrive
from egnytectl.mounts.base import MountTable, MountTableError


class FakeMountTable(MountTable):
    """Mount table backed by a dict of letter -> state."""

    def __init__(self, calls: list[tuple[str, str]]) -> None:
        super().__init__(timeout=1.0)
        self.states: dict[str, MountState] = {}
        self.calls = calls
        self.fail_query = False
        self.delete_ok = True
        self.unreadable: set[str] = set()

    def normalize(self, mount_point: str) -> str:
        if mount_point.startswith("/"):
            return mount_point.rstrip("/") or "/"
        return mount_point.strip().rstrip(":\\").upper()

    def query(self, mount_point: str) -> ObservedDrive:
        if self.normalize(mount_point) in self.unreadable:
            raise MountTableError(f"cannot query {mount_point}")
        return super().query(mount_point)

    def snapshot(self) -> dict[str, ObservedDrive]:
        if self.fail_query:
            raise MountTableError("query failed")
        return {
            key: ObservedDrive(key, state)
            for key, state in self.states.items()
            if state.is_mounted
        }

    def delete(self, mount_point: str) -> StepResult:
        key = self.normalize(mount_point)
        self.calls.append(("delete", key))
        if not self.delete_ok:
            return StepResult("delete", ok=False, returncode=2, detail="device busy")
        self.states.pop(key, None)
        return StepResult("delete", ok=True, returncode=0)


class FakeBackend(MountBackend):
    """Backend that records calls and mounts drives in a FakeMountTable."""

    def __init__(self, table: FakeMountTable, calls: list[tuple[str, str]]) -> None:
        super().__init__("EgnyteClient.exe", timeout=1.0)
        self.table = table
        self.calls = calls
        self.add_ok = True
        self.add_mounts = False
        self.connect_mounts = True
        self.available = True

    @property
    def name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return self.available

    def add(self, mapping: DriveMapping) -> StepResult:
        self.calls.append(("add", mapping.drive_name))
        if self.add_mounts:
            self.table.states[self.table.normalize(mapping.drive_letter)] = (
                MountState.MOUNTED_CORRECT
            )
        if not self.add_ok:
            return StepResult("add", ok=False, returncode=1, detail="mapping already exists")
        return StepResult("add", ok=True, returncode=0)

    def connect(self, mapping: DriveMapping) -> StepResult:
        self.calls.append(("connect", mapping.drive_name))
        if self.connect_mounts:
            self.table.states[self.table.normalize(mapping.drive_letter)] = (
                MountState.MOUNTED_CORRECT
            )
        return StepResult("connect", ok=True, returncode=0)

    def remove(self, mapping: DriveMapping) -> StepResult:
        self.calls.append(("remove", mapping.drive_name))
        return StepResult("remove", ok=True, returncode=0)


class FakeDirectory(GroupDirectory):
    """Group directory with a fixed membership, or a fixed failure."""

    def __init__(self, groups: frozenset[str], error: str | None = None) -> None:
        self.groups = groups
        self.error = error
        self.queries = 0

    @property
    def name(self) -> str:
        return "fake directory"

    def list_groups(self) -> frozenset[str]:
        self.queries += 1
        if self.error is not None:
            raise AuthorizationError(self.error)
        return self.groups


@pytest.fixture
def calls() -> list[tuple[str, str]]:
    """Shared, ordered log of backend and mount table calls."""
    return []


@pytest.fixture
def mount_table(calls: list[tuple[str, str]]) -> FakeMountTable:
    """In-memory mount table with nothing mounted."""
    return FakeMountTable(calls)


@pytest.fixture
def backend(mount_table: FakeMountTable, calls: list[tuple[str, str]]) -> FakeBackend:
    """Fake drive client backend wired to the mount table."""
    return FakeBackend(mount_table, calls)


@pytest.fixture
def directory() -> FakeDirectory:
    """Directory in which the user belongs to FinanceUsers only."""
    return FakeDirectory(frozenset({"FinanceUsers", "Everyone"}))


@pytest.fixture
def finance_mapping() -> DriveMapping:
    """Finance share mapped to F: for members of FinanceUsers."""
    return DriveMapping(
        drive_name="Finance",
        drive_letter="F",
        domain_name="acme",
        drive_path="/Shared/Finance",
        group_key="FinanceUsers",
    )


@pytest.fixture
def marketing_mapping() -> DriveMapping:
    """Marketing share mapped to M: for members of MarketingUsers."""
    return DriveMapping(
        drive_name="Marketing",
        drive_letter="M",
        domain_name="acme",
        drive_path="/Shared/Marketing",
        group_key="MarketingUsers",
    )


@pytest.fixture
def sample_csv() -> str:
    """Mapping table as exported by PowerShell Export-Csv."""
    return (
        '#TYPE System.Management.Automation.PSCustomObject\n'
        '"DriveName","DriveLetter","DomainName","DrivePath","GroupName"\n'
        '"Finance","F","acme","/Shared/Finance","FinanceUsers"\n'
        '"Marketing","M:","acme","/Shared/Marketing","MarketingUsers"\n'
    )


@pytest.fixture
def config_file(tmp_path: Path, sample_csv: str) -> Path:
    """Config file pointing at the sample table, without verification delays."""
    table = tmp_path / "drives.csv"
    table.write_text(sample_csv, encoding="utf-8")
    path = tmp_path / "config.toml"
    path.write_text(
        f"[mappings]\nsource = '{table}'\n\n[reconcile]\nverify_interval = 0.0\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def mock_cim_report() -> str:
    """Sample output of the CIM drive query script."""
    return (
        '{"disks":['
        '{"DeviceID":"C:","DriveType":3,"ProviderName":null},'
        '{"DeviceID":"F:","DriveType":4,'
        '"ProviderName":"\\\\\\\\EgnyteDrive\\\\acme\\\\Shared\\\\Finance"},'
        '{"DeviceID":"S:","DriveType":4,"ProviderName":"\\\\\\\\fs01\\\\share"}'
        '],"connections":['
        '{"LocalName":"S:","RemoteName":"\\\\\\\\fs01\\\\share","ConnectionState":"Connected",'
        '"Status":"OK","ProviderName":"Microsoft Windows Network"},'
        '{"LocalName":"M:","RemoteName":"\\\\\\\\EgnyteDrive\\\\acme\\\\Shared\\\\Marketing",'
        '"ConnectionState":"Disconnected","Status":"Unavailable","ProviderName":"Egnyte Drive"}'
        ']}'
    )


@pytest.fixture
def mock_whoami_groups_output() -> str:
    """Sample ``whoami /groups /fo csv /nh`` output."""
    return (
        '"Everyone","Well-known group","S-1-1-0","Mandatory group, Enabled by default"\n'
        '"ACME\\FinanceUsers","Group","S-1-5-21-1-2-3-1105","Mandatory group, Enabled"\n'
        '"BUILTIN\\Users","Alias","S-1-5-32-545","Mandatory group, Enabled"\n'
    )


@pytest.fixture
def mock_mount_output() -> str:
    """Sample macOS ``mount`` output."""
    return (
        "/dev/disk3s1s1 on / (apfs, sealed, local, read-only, journaled)\n"
        "devfs on /dev (devfs, local, nobrowse)\n"
        "egnyte-drive@osxfuse0 on /Volumes/Finance (macfuse, nodev, nosuid, synchronous)\n"
        "//jdoe@fs01/share on /Volumes/share (smbfs, nodev, nosuid, mounted by jdoe)\n"
    )
