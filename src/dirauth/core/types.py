"""
dirauth Core Types

Value types shared by the directory client, the authenticator and the
account/audit collaborators.

Design Principles:
- Immutable: value types use frozen attrs classes
- Validated: type constraints enforced at construction
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

import attrs
from attrs import field, validators


# =============================================================================
# ENUMS
# =============================================================================


class TransportMode(Enum):
    """
    How the LDAP connection is protected.

    Values match the option names accepted by ``LDAPConfig.from_options``.
    """

    NONE = "none"
    SIMPLE_TLS = "simple_tls"  # implicit TLS (LDAPS)
    START_TLS = "start_tls"

    @property
    def is_secure(self) -> bool:
        """Return True if traffic is encrypted."""
        return self is not TransportMode.NONE

    @property
    def default_port(self) -> int:
        """Return the conventional port for this transport."""
        return 636 if self is TransportMode.SIMPLE_TLS else 389


class FailureReason(Enum):
    """
    Why an authentication attempt was rejected.

    The value is the tag written to the audit sink.
    """

    INVALID_EMAIL = "invalid email"
    INVALID_PASSWORD = "(LDAP) invalid password"
    ACCOUNT_DISABLED = "(LDAP) account disabled"

    @property
    def tag(self) -> str:
        return self.value


# Audit tag for a successful directory login.
SUCCESS_TAG = "(LDAP)"


# =============================================================================
# CLIENT CONTEXT
# =============================================================================


@attrs.define(frozen=True, slots=True)
class ClientContext:
    """
    Network context of the caller attempting to log in.

    Forwarded untouched to the audit sink and the activation mailer.
    """

    ip_address: str = field(default="", validator=validators.instance_of(str))
    user_agent: str = field(default="", validator=validators.instance_of(str))

    @classmethod
    def coerce(cls, value: Union[ClientContext, str, None]) -> ClientContext:
        """Accept a ClientContext, a bare IP string, or None."""
        if isinstance(value, ClientContext):
            return value
        if value is None:
            return cls()
        return cls(ip_address=str(value))

    def __str__(self) -> str:
        return self.ip_address


# =============================================================================
# DIRECTORY ENTRIES
# =============================================================================


def _normalize_attributes(raw: Mapping[str, Any]) -> Dict[str, List[Any]]:
    """Force every attribute value into a list."""
    normalized: Dict[str, List[Any]] = {}
    for name, value in raw.items():
        if value is None:
            normalized[name] = []
        elif isinstance(value, (list, tuple)):
            normalized[name] = list(value)
        else:
            normalized[name] = [value]
    return normalized


@attrs.define(frozen=True, slots=True)
class DirectoryEntry:
    """
    One entry returned by a directory search.

    INVARIANT: every attribute maps to a list of values
    """

    dn: str = field(validator=validators.instance_of(str))
    attributes: Dict[str, List[Any]] = field(factory=dict, converter=_normalize_attributes)

    def get(self, name: str) -> List[Any]:
        """Return all values of an attribute, matching the name case-insensitively."""
        if name in self.attributes:
            return self.attributes[name]
        lowered = name.lower()
        for key, values in self.attributes.items():
            if key.lower() == lowered:
                return values
        return []

    def first(self, name: str) -> Optional[Any]:
        """Return the first value of an attribute, or None."""
        values = self.get(name)
        return values[0] if values else None


# =============================================================================
# LOCAL USER RECORDS
# =============================================================================


@attrs.define(frozen=True, slots=True)
class NewUser:
    """
    Attributes for a local user record about to be created.

    The password is a random secret the user never sees; directory users
    always log in through the directory.
    """

    email: str = field(validator=[validators.instance_of(str), validators.min_len(1)])
    password: str = field(repr=False)
    name: Optional[str] = None
    enabled: bool = True
    activated: bool = False
    activated_at: Optional[datetime] = None


@attrs.define(frozen=True, slots=True)
class LocalUser:
    """
    Reference to a local user record owned by the user store.

    The authenticator only reads these fields; it never mutates a record.
    """

    id: int
    email: str
    name: Optional[str] = None
    enabled: bool = True
    activated: bool = False
    activated_at: Optional[datetime] = None

    def __str__(self) -> str:
        return self.email
