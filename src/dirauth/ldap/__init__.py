"""
dirauth LDAP Module

Directory-backed authentication.

Components:
- config: LDAPConfig option validation and transport resolution
- client: DirectoryClient protocol and the ldap3 implementation
- authenticator: LDAPAuthenticator (search, provision, bind-as, audit)

Supports:
- Plain LDAP, LDAPS (implicit TLS) and StartTLS
"""

from dirauth.ldap.config import LDAPConfig
from dirauth.ldap.client import DirectoryClient, Ldap3DirectoryClient
from dirauth.ldap.authenticator import (
    LDAPAuthenticator,
    build_user_filter,
    create_ldap_authenticator,
    open_directory,
)

__all__ = [
    "LDAPConfig",
    "DirectoryClient",
    "Ldap3DirectoryClient",
    "LDAPAuthenticator",
    "build_user_filter",
    "create_ldap_authenticator",
    "open_directory",
]
