"""Drive mapping model for the desired-state table.

This module defines the validated, immutable representation of one row of
the drive mapping table: which cloud path should appear at which drive
letter, and which directory group entitles a user to it.
"""

import string
from typing import Annotated

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class DriveMapping(BaseModel):
    """A single desired drive mapping.

    Attributes:
        drive_name: Human-readable label, also used as the client's mapping name.
        drive_letter: Single drive letter (Windows) or absolute mount path.
        domain_name: Cloud tenant the mapping belongs to.
        drive_path: Remote path inside the tenant (e.g. "/Shared/Finance").
        group_key: Directory group name or ID that authorizes the mapping.
        always_authorized: True for mappings every identity is entitled to
            (the personal home drive).
    """

    model_config = ConfigDict(extra="forbid", frozen=True, str_strip_whitespace=True)

    drive_name: Annotated[str, Field(min_length=1, description="Drive label")]
    drive_letter: Annotated[str, Field(min_length=1, description="Drive letter or mount path")]
    domain_name: Annotated[str, Field(min_length=1, description="Cloud tenant domain")]
    drive_path: Annotated[str, Field(min_length=1, description="Remote path in the tenant")]
    group_key: Annotated[str, Field(description="Authorizing group name or ID")] = ""
    always_authorized: Annotated[
        bool,
        Field(description="Mapping is granted regardless of group membership"),
    ] = False

    @field_validator("drive_letter")
    @classmethod
    def normalize_drive_letter(cls, value: str) -> str:
        """Accept "F", "f" or "F:" as a letter, or an absolute mount path."""
        if value.startswith("/"):
            return value.rstrip("/") or "/"
        letter = value.rstrip(":").upper()
        if len(letter) != 1 or letter not in string.ascii_uppercase:
            msg = f"drive letter must be a single letter A-Z or an absolute path, got {value!r}"
            raise ValueError(msg)
        return letter

    @field_validator("drive_path")
    @classmethod
    def validate_drive_path(cls, value: str) -> str:
        """Remote paths are absolute inside the tenant."""
        value = value.replace("\\", "/")
        if not value.startswith("/"):
            msg = f"drive path must start with '/', got {value!r}"
            raise ValueError(msg)
        return value

    @model_validator(mode="after")
    def validate_authorization(self) -> "DriveMapping":
        """A mapping needs a group unless it is granted to everyone."""
        if not self.group_key and not self.always_authorized:
            msg = "group key cannot be empty"
            raise ValueError(msg)
        return self

    @property
    def is_letter(self) -> bool:
        """Check if the mount point is a Windows drive letter."""
        return not self.drive_letter.startswith("/")

    @property
    def mount_point(self) -> str:
        """Mount point as the operating system names it ("F:" or the path)."""
        return f"{self.drive_letter}:" if self.is_letter else self.drive_letter


def home_drive_mapping(
    letter: str,
    name: str,
    domain: str,
    username: str,
    path_template: str = "/Private/{username}",
) -> DriveMapping:
    """Build the personal home drive mapping for an identity.

    Args:
        letter: Fixed drive letter (or mount path) for the home drive.
        name: Label of the home drive.
        domain: Cloud tenant domain.
        username: Identity the drive belongs to.
        path_template: Remote path template; ``{username}`` is substituted.

    Returns:
        A DriveMapping that is always authorized.
    """
    return DriveMapping(
        drive_name=name,
        drive_letter=letter,
        domain_name=domain,
        drive_path=path_template.format(username=username),
        always_authorized=True,
    )


def mount_point_mismatch(mount_point: str, kind: str) -> str | None:
    """Describe why a mount point cannot be used with a backend kind.

    The Windows client maps drive letters; the macOS client mounts at
    absolute paths.

    Args:
        mount_point: Normalized drive letter or mount path.
        kind: Backend kind ("windows" or "macos").

    Returns:
        An error message, or None if the mount point fits the backend.
    """
    is_path = mount_point.startswith("/")
    if kind == "macos" and not is_path:
        return f"mount point {mount_point!r} must be an absolute path for the macos backend"
    if kind != "macos" and is_path:
        return f"mount point {mount_point!r} must be a drive letter for the {kind} backend"
    return None
