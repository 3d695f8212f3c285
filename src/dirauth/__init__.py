"""
dirauth - LDAP-backed authentication for applications with local accounts

Verifies an email/password pair against a directory server, optionally
provisions a local user record the first time a directory user logs in,
and records every success and failure in an audit trail.

Collaborators supplied by the application:
- UserStore: local user lookup/creation and activation emails
- AuditSink: success/failure events
- CaptchaGuard: pauses CAPTCHA checks while a user is provisioned

Example Usage:
    from dirauth import LDAPAuthenticator, InMemoryUserStore, InMemoryAuditLog

    auth = LDAPAuthenticator.from_options(
        {
            "host": "ldap.example.com",
            "port": 389,
            "ssl": "start_tls",
            "base_dn": "dc=example,dc=com",
            "browse_user": "cn=reader,dc=example,dc=com",
            "browse_password": "secret",
            "auto_create": True,
            "auto_activate": True,
        },
        user_store=InMemoryUserStore(),
        audit_sink=InMemoryAuditLog(),
    )

    user = auth.authenticate("jdoe@example.com", "password", "10.0.0.5")
    if user is not None:
        print(f"Authenticated {user.email}")
"""

from dirauth.core.types import ClientContext, FailureReason, LocalUser, TransportMode
from dirauth.core.exceptions import (
    BindError,
    DirectoryConnectionError,
    DirectoryUnavailable,
    InvalidConfiguration,
)
from dirauth.ldap.config import LDAPConfig
from dirauth.ldap.authenticator import LDAPAuthenticator, create_ldap_authenticator
from dirauth.accounts.store import InMemoryUserStore, UserStore
from dirauth.accounts.captcha import CaptchaGuard, NullCaptchaGuard, SwitchCaptchaGuard
from dirauth.monitoring.audit import AuditSink, InMemoryAuditLog, StructlogAuditSink

__version__ = "0.1.0"

__all__ = [
    # Main API
    "LDAPAuthenticator",
    "LDAPConfig",
    "create_ldap_authenticator",
    # Collaborators
    "UserStore",
    "InMemoryUserStore",
    "AuditSink",
    "InMemoryAuditLog",
    "StructlogAuditSink",
    "CaptchaGuard",
    "NullCaptchaGuard",
    "SwitchCaptchaGuard",
    # Types
    "ClientContext",
    "FailureReason",
    "LocalUser",
    "TransportMode",
    # Exceptions
    "DirectoryConnectionError",
    "InvalidConfiguration",
    "BindError",
    "DirectoryUnavailable",
    # Metadata
    "__version__",
]
