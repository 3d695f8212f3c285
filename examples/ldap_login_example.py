#!/usr/bin/env python3
"""
LDAP Login Example

Demonstrates how to authenticate application users against an LDAP
directory with dirauth's LDAPAuthenticator.

Features:
1. Option validation and the initial browse bind
2. Auto-provisioning of local user records
3. Audit trail of every attempt
4. Result-returning verify() for callers that need the failure reason

Uses the public read-only test directory at ldap.forumsys.com, whose
users all have the password "password".
"""

from returns.result import Failure, Success

from dirauth import (
    BindError,
    InMemoryAuditLog,
    InMemoryUserStore,
    InvalidConfiguration,
    SwitchCaptchaGuard,
    create_ldap_authenticator,
)


OPTIONS = {
    "host": "ldap.forumsys.com",
    "port": 389,
    "ssl": False,
    "base_dn": "dc=example,dc=com",
    "browse_user": "cn=read-only-admin,dc=example,dc=com",
    "browse_password": "password",
    "auto_create": True,
    "auto_activate": True,
}


def main():
    """Demonstrate directory logins."""

    print("=" * 70)
    print("dirauth - LDAP Login")
    print("=" * 70)
    print()

    store = InMemoryUserStore()
    audit = InMemoryAuditLog()

    # ==========================================================================
    # EXAMPLE 1: Invalid configuration fails before connecting
    # ==========================================================================
    print("1. Invalid Configuration")
    print("-" * 40)

    try:
        create_ldap_authenticator(store, audit, **{**OPTIONS, "base_dn": ""})
    except InvalidConfiguration as e:
        print(f"   Rejected: {e}")
    print()

    # ==========================================================================
    # EXAMPLE 2: Connect and authenticate
    # ==========================================================================
    print("2. Authenticate")
    print("-" * 40)

    try:
        auth = create_ldap_authenticator(store, audit, captcha_guard=SwitchCaptchaGuard(), **OPTIONS)
    except BindError as e:
        print(f"   Could not reach the directory: {e}")
        return

    with auth:
        print(f"   Connected to {auth.host}:{auth.port} ({auth.ssl.value})")

        for email, password in [
            ("euler@ldap.forumsys.com", "wrong"),
            ("euler@ldap.forumsys.com", "password"),
            ("frankenstein@ldap.forumsys.com", "password"),
        ]:
            user = auth.authenticate(email, password, "127.0.0.1")
            outcome = f"user #{user.id} ({user.name})" if user else "rejected"
            print(f"   {email:<34} {outcome}")
        print()

        # ======================================================================
        # EXAMPLE 3: Failure reasons
        # ======================================================================
        print("3. Verify With Reasons")
        print("-" * 40)

        result = auth.verify("einstein@ldap.forumsys.com", "nope")
        if isinstance(result, Success):
            print(f"   Logged in: {result.unwrap().email}")
        elif isinstance(result, Failure):
            print(f"   Failed: {result.failure().tag}")
        print()

    # ==========================================================================
    # EXAMPLE 4: Audit trail
    # ==========================================================================
    print("4. Audit Trail")
    print("-" * 40)

    for event in audit.events:
        print(f"   {event.event_type.name:<8} {event.subject:<34} {event.tag}")
    print(f"   Statistics: {audit.get_statistics()}")
    print(f"   Local users provisioned: {store.size}")


if __name__ == "__main__":
    main()
