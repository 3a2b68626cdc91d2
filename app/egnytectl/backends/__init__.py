"""Mount backends for driving the cloud drive client.

This module provides the abstract MountBackend and the concrete command
surfaces of the Windows and macOS Egnyte clients.
"""

from egnytectl.backends.base import BackendUnavailableError, MountBackend, StepResult
from egnytectl.backends.egnyte_macos import MacEgnyteBackend
from egnytectl.backends.egnyte_windows import WindowsEgnyteBackend

__all__ = [
    "BackendUnavailableError",
    "MacEgnyteBackend",
    "MountBackend",
    "StepResult",
    "WindowsEgnyteBackend",
]
