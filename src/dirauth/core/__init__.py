"""
dirauth Core Module

Provides foundational types and abstractions used across the package.

Components:
- types: Value types (TransportMode, DirectoryEntry, LocalUser, etc.)
- crypto: Random secrets and password hashing
- exceptions: Custom exception types
"""

from dirauth.core.types import (
    TransportMode,
    FailureReason,
    ClientContext,
    DirectoryEntry,
    LocalUser,
    NewUser,
    SUCCESS_TAG,
)
from dirauth.core.exceptions import (
    DirAuthError,
    DirectoryConnectionError,
    InvalidConfiguration,
    BindError,
    DirectoryUnavailable,
)

__all__ = [
    # Types
    "TransportMode",
    "FailureReason",
    "ClientContext",
    "DirectoryEntry",
    "LocalUser",
    "NewUser",
    "SUCCESS_TAG",
    # Exceptions
    "DirAuthError",
    "DirectoryConnectionError",
    "InvalidConfiguration",
    "BindError",
    "DirectoryUnavailable",
]
