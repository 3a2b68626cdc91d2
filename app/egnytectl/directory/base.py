"""Abstract base class for group directories.

A group directory lists the groups the current identity belongs to. The
reconciler only ever asks one question of it, through Authorizer:
"is the current identity a member of group G?".
"""

from abc import ABC, abstractmethod


class AuthorizationError(RuntimeError):
    """Raised when group membership cannot be established.

    This is always fatal for a run: continuing without membership data
    would treat the identity as unauthorized for every mapping and unmount
    all of its drives.
    """


class GroupDirectory(ABC):
    """Abstract base class for group membership sources."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Short source name for logs."""

    @abstractmethod
    def list_groups(self) -> frozenset[str]:
        """List group keys for the current identity.

        Returns:
            Group display names or IDs.

        Raises:
            AuthorizationError: If membership cannot be determined.
        """


class Authorizer:
    """Answers membership questions from a fixed set of groups.

    Group keys are compared case-insensitively; directory group names and
    GUIDs are both case-insensitive.

    Example:
        >>> authorizer = Authorizer(frozenset({"FinanceUsers"}))
        >>> authorizer.is_authorized("financeusers")
        True
    """

    def __init__(self, groups: frozenset[str]) -> None:
        self._groups = frozenset(group.casefold() for group in groups)

    @classmethod
    def from_directory(cls, directory: GroupDirectory) -> "Authorizer":
        """Query a directory once and build an Authorizer from the result.

        Raises:
            AuthorizationError: If the directory query fails.
        """
        return cls(directory.list_groups())

    @property
    def group_count(self) -> int:
        """Number of groups the identity belongs to."""
        return len(self._groups)

    def is_authorized(self, group_key: str) -> bool:
        """Check membership of a group."""
        return bool(group_key) and group_key.strip().casefold() in self._groups

    def __call__(self, group_key: str) -> bool:
        return self.is_authorized(group_key)
