"""Data models for egnytectl.

This module exports the core data structures used throughout the application.
"""

from egnytectl.models.action import Action, ActionResult, ActionType
from egnytectl.models.mapping import DriveMapping, home_drive_mapping
from egnytectl.models.mount import MountState, ObservedDrive

__all__ = [
    "Action",
    "ActionResult",
    "ActionType",
    "DriveMapping",
    "MountState",
    "ObservedDrive",
    "home_drive_mapping",
]
