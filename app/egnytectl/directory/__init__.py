"""Group directories for answering membership questions.

This module exports the directory interface, the Authorizer built on it,
and the local and Microsoft Graph implementations.
"""

from egnytectl.directory.base import AuthorizationError, Authorizer, GroupDirectory
from egnytectl.directory.graph import GraphGroupDirectory
from egnytectl.directory.local import LocalGroupDirectory

__all__ = [
    "AuthorizationError",
    "Authorizer",
    "GraphGroupDirectory",
    "GroupDirectory",
    "LocalGroupDirectory",
]
