"""
dirauth LDAP Authenticator

Authenticates users by email and password against an LDAP directory.

Flow:
1. Re-bind the shared connection as the browse identity
2. Search for ``(&(objectClass=user)(<email_attribute>=<email>))``
3. On exactly one match, find (or auto-create) the local user record
4. Reject disabled records; otherwise bind as the matched entry with the
   supplied password
5. Everything else is an "invalid email" failure

Every outcome is written to the audit sink. Credential failures return
``None``; only connectivity problems raise.

Concurrency:
- One shared directory connection per authenticator
- Calls on one instance are serialized, since each call changes the bind
  identity of that connection
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, Optional, Union

import attrs
import structlog
from ldap3.utils.conv import escape_filter_chars
from returns.result import Failure, Result, Success

from dirauth.accounts.captcha import CaptchaGuard, NullCaptchaGuard
from dirauth.accounts.store import UserStore
from dirauth.core.crypto import generate_provisioning_secret
from dirauth.core.exceptions import DirectoryUnavailable
from dirauth.core.types import (
    SUCCESS_TAG,
    ClientContext,
    DirectoryEntry,
    FailureReason,
    LocalUser,
    NewUser,
    TransportMode,
)
from dirauth.ldap.client import DirectoryClient, Ldap3DirectoryClient
from dirauth.ldap.config import LDAPConfig
from dirauth.monitoring.audit import AuditSink, AuditSubject


DirectoryFactory = Callable[[LDAPConfig], DirectoryClient]


def open_directory(config: LDAPConfig) -> DirectoryClient:
    """
    Open an ldap3 connection and bind as the browse identity.

    Raises:
        BindError: if the initial bind fails
    """
    client = Ldap3DirectoryClient(config)
    client.connect()
    return client


def build_user_filter(email_attribute: str, email: str) -> str:
    """
    Build the search filter for a user entry with the given email.

    The email is escaped, not normalized: matching rules (including case
    sensitivity) are whatever the directory applies.
    """
    return f"(&(objectClass=user)({email_attribute}={escape_filter_chars(email)}))"


# =============================================================================
# LDAP AUTHENTICATOR
# =============================================================================


@attrs.define
class LDAPAuthenticator:
    """
    Authentication engine backed by an LDAP directory.

    The directory connection is opened (and bound as the browse identity)
    when the authenticator is constructed, so a bad configuration fails
    fast with ``InvalidConfiguration`` or ``BindError``.

    Example:
        authenticator = LDAPAuthenticator.from_options(
            {
                "host": "ldap.example.com",
                "base_dn": "dc=example,dc=com",
                "browse_user": "cn=reader,dc=example,dc=com",
                "browse_password": "secret",
                "auto_create": True,
            },
            user_store=store,
            audit_sink=audit,
        )
        user = authenticator.authenticate("jdoe@example.com", "password", "10.0.0.5")
        if user is not None:
            print(f"Welcome {user.name}")
    """

    config: LDAPConfig
    user_store: UserStore
    audit_sink: AuditSink
    captcha_guard: CaptchaGuard = attrs.Factory(NullCaptchaGuard)
    directory_factory: DirectoryFactory = open_directory

    _directory: Optional[DirectoryClient] = attrs.field(default=None, init=False)
    _lock: threading.RLock = attrs.Factory(threading.RLock)
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    def __attrs_post_init__(self) -> None:
        self._logger.debug(
            "ldap_authenticator_init",
            host=self.config.host,
            port=self.config.port,
            transport=self.config.transport.value,
        )
        self._directory = self.directory_factory(self.config)

    @classmethod
    def from_options(
        cls,
        options: Optional[Mapping[str, Any]],
        user_store: UserStore,
        audit_sink: AuditSink,
        captcha_guard: Optional[CaptchaGuard] = None,
        directory_factory: DirectoryFactory = open_directory,
    ) -> LDAPAuthenticator:
        """
        Validate an option mapping and connect.

        Raises:
            InvalidConfiguration: if an option is missing or invalid
            BindError: if the browse bind fails
        """
        return cls(
            config=LDAPConfig.from_options(options),
            user_store=user_store,
            audit_sink=audit_sink,
            captcha_guard=captcha_guard or NullCaptchaGuard(),
            directory_factory=directory_factory,
        )

    # -------------------------------------------------------------------------
    # Configuration accessors
    # -------------------------------------------------------------------------

    @property
    def host(self) -> str:
        return self.config.host

    @property
    def port(self) -> int:
        return self.config.port

    @property
    def ssl(self) -> TransportMode:
        """Transport protecting the connection."""
        return self.config.transport

    @property
    def base_dn(self) -> str:
        return self.config.base_dn

    @property
    def email_attribute(self) -> str:
        return self.config.email_attribute

    @property
    def directory(self) -> DirectoryClient:
        if self._directory is None:
            raise DirectoryUnavailable("Authenticator has been closed")
        return self._directory

    # -------------------------------------------------------------------------
    # Authentication
    # -------------------------------------------------------------------------

    def authenticate(
        self,
        email: str,
        password: str,
        client_context: Union[ClientContext, str, None] = None,
    ) -> Optional[LocalUser]:
        """
        Authenticate a user against the directory.

        Args:
            email: Email address typed by the user
            password: Directory password
            client_context: ClientContext or the caller's IP address

        Returns:
            The local user record on success, None otherwise. The reason
            for a failure is only available from the audit sink.

        Raises:
            DirectoryUnavailable: if the directory cannot be reached
        """
        return self.verify(email, password, client_context).value_or(None)

    def verify(
        self,
        email: str,
        password: str,
        client_context: Union[ClientContext, str, None] = None,
    ) -> Result[LocalUser, FailureReason]:
        """
        Authenticate and report why a failure happened.

        Same audit side effects as ``authenticate``. A wrong password
        records both "invalid password" and "invalid email"; the Failure
        carries the more specific INVALID_PASSWORD.

        Returns:
            Success(user) or Failure(reason)
        """
        ctx = ClientContext.coerce(client_context)
        search_filter = build_user_filter(self.config.email_attribute, email)

        self._logger.debug("authenticate_start", email=email, client_ip=ctx.ip_address)

        with self._lock:
            self._rebind_browse_user()
            matches = self.directory.search(search_filter)
            reason = FailureReason.INVALID_EMAIL

            if len(matches) == 1:
                user = self.user_store.find_by_email(email)
                if user is None and self.config.auto_create:
                    user = self._provision_user(email, matches[0], ctx)

                if user is not None:
                    if not user.enabled:
                        self._record_failure(user, FailureReason.ACCOUNT_DISABLED, ctx)
                        return Failure(FailureReason.ACCOUNT_DISABLED)

                    if len(self.directory.bind_as(search_filter, password)) == 1:
                        self.audit_sink.record_success(user, SUCCESS_TAG, ctx)
                        self._logger.info(
                            "authenticate_success",
                            email=email,
                            user_id=user.id,
                            client_ip=ctx.ip_address,
                        )
                        return Success(user)

                    self._record_failure(user, FailureReason.INVALID_PASSWORD, ctx)
                    reason = FailureReason.INVALID_PASSWORD
            elif matches:
                self._logger.warning("ldap_ambiguous_email", email=email, matches=len(matches))

            self._record_failure(email, FailureReason.INVALID_EMAIL, ctx)
            return Failure(reason)

    def validate_credentials(
        self,
        email: str,
        password: str,
        client_context: Union[ClientContext, str, None] = None,
    ) -> bool:
        """Return True if the credentials are accepted."""
        return self.authenticate(email, password, client_context) is not None

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def close(self) -> None:
        """Unbind and release the directory connection."""
        with self._lock:
            if self._directory is not None:
                self._directory.close()
                self._directory = None
                self._logger.info("ldap_disconnected", host=self.config.host, port=self.config.port)

    def __enter__(self) -> LDAPAuthenticator:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    # -------------------------------------------------------------------------
    # Internal
    # -------------------------------------------------------------------------

    def _rebind_browse_user(self) -> None:
        """
        Bind the shared connection as the browse identity.

        A previous call may have left it bound as an end user.
        """
        if not self.directory.bind(self.config.browse_user, self.config.browse_password):
            self._logger.error("ldap_rebind_failed", host=self.config.host, port=self.config.port)
            raise DirectoryUnavailable(
                f"Failed to re-bind to {self.config.address} as the browse user."
            )

    def _provision_user(
        self,
        email: str,
        entry: DirectoryEntry,
        ctx: ClientContext,
    ) -> LocalUser:
        """Create the local record for a first-time directory user."""
        activate = self.config.auto_activate
        name = entry.first("name")
        attributes = NewUser(
            email=email,
            password=generate_provisioning_secret(),
            name=str(name) if name is not None else None,
            enabled=True,
            activated=activate,
            activated_at=datetime.now(timezone.utc) if activate else None,
        )

        with self.captcha_guard.paused():
            user = self.user_store.create(attributes)
            if not activate:
                self.user_store.send_activation_email(user, ctx)

        self._logger.info(
            "ldap_user_provisioned",
            email=email,
            user_id=user.id,
            dn=entry.dn,
            activated=activate,
        )
        return user

    def _record_failure(self, subject: AuditSubject, reason: FailureReason, ctx: ClientContext) -> None:
        self.audit_sink.record_failure(subject, reason.tag, ctx)
        self._logger.info(
            "authenticate_failure",
            subject=str(subject),
            reason=reason.name,
            client_ip=ctx.ip_address,
        )


# =============================================================================
# FACTORY FUNCTIONS
# =============================================================================


def create_ldap_authenticator(
    user_store: UserStore,
    audit_sink: AuditSink,
    captcha_guard: Optional[CaptchaGuard] = None,
    **options: Any,
) -> LDAPAuthenticator:
    """
    Create an LDAP authenticator from keyword options.

    Example:
        auth = create_ldap_authenticator(
            store,
            audit,
            host="ldap.example.com",
            port=389,
            ssl="start_tls",
            base_dn="dc=example,dc=com",
            browse_user="cn=reader,dc=example,dc=com",
            browse_password="secret",
        )
    """
    return LDAPAuthenticator.from_options(
        options,
        user_store=user_store,
        audit_sink=audit_sink,
        captcha_guard=captcha_guard,
    )
