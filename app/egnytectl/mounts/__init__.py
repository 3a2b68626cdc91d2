"""Operating system mount tables.

This module exports the mount table interface and its Windows and POSIX
implementations.
"""

from egnytectl.mounts.base import MountTable, MountTableError
from egnytectl.mounts.posix import PosixMountTable
from egnytectl.mounts.windows import WindowsMountTable

__all__ = ["MountTable", "MountTableError", "PosixMountTable", "WindowsMountTable"]
