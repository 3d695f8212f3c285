"""
dirauth Exception Types

Custom exceptions for directory connection and configuration errors.

Credential failures (unknown email, wrong password, disabled account) are
not exceptions: they are reported through the audit sink and a ``None``
authentication result.
"""

from typing import Optional


class DirAuthError(Exception):
    """Base exception for all dirauth errors."""

    def __init__(self, message: str, code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class DirectoryConnectionError(DirAuthError):
    """
    Error establishing or using the connection to the directory server.

    Parent of every connection-related error so callers can catch the
    whole family at once.
    """

    pass


class InvalidConfiguration(DirectoryConnectionError):
    """
    A configuration value is missing or invalid.

    Raised at construction time, before any connection is attempted.
    Never worth retrying.
    """

    pass


class BindError(DirectoryConnectionError):
    """
    The configuration looks good but the initial browse bind failed.

    Covers wrong browse credentials, an unreachable host, TLS negotiation
    failures and connect timeouts.
    """

    pass


class DirectoryUnavailable(DirectoryConnectionError):
    """
    The directory could not be reached during an authentication call.

    Distinct from a credential failure: the caller should treat it as a
    transient outage, not as a rejected login.
    """

    pass
