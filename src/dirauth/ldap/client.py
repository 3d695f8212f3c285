"""
dirauth LDAP Directory Client

Bind / search / bind-as primitives over LDAP, built on ldap3.

Supports:
- Plain LDAP (port 389)
- Implicit TLS / LDAPS (port 636)
- StartTLS upgrade of a plain connection

Connection model:
- One ldap3 connection, opened and bound as the browse identity by
  ``connect()``
- The connection stays open; a dropped connection is reopened (and
  StartTLS re-issued) before the next bind
- ``bind_as`` leaves the connection bound as the end user, so callers
  must re-bind as the browse identity before the next privileged search
"""

from __future__ import annotations

import ssl
from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

import attrs
import structlog
from ldap3 import NONE, SUBTREE, SYNC, Connection, Server, Tls
from ldap3.core.exceptions import (
    LDAPCommunicationError,
    LDAPException,
    LDAPResponseTimeoutError,
    LDAPStartTLSError,
)

from dirauth.core.exceptions import BindError, DirectoryUnavailable
from dirauth.core.types import DirectoryEntry, TransportMode
from dirauth.ldap.config import LDAPConfig

# ldap3 errors that mean "the server went away", as opposed to a rejected
# operation.
TRANSIENT_ERRORS = (LDAPCommunicationError, LDAPResponseTimeoutError, LDAPStartTLSError)


# =============================================================================
# CLIENT PROTOCOL
# =============================================================================


@runtime_checkable
class DirectoryClient(Protocol):
    """
    What the authenticator needs from a directory connection.

    Implementations own a single session whose bind state changes with
    every ``bind`` and successful ``bind_as``.
    """

    def bind(self, identity: str, secret: str) -> bool:
        """Bind the session as ``identity``; False if the server refuses."""
        ...

    def search(self, search_filter: str) -> List[DirectoryEntry]:
        """Search the base DN with the current bind identity."""
        ...

    def bind_as(self, search_filter: str, secret: str) -> List[DirectoryEntry]:
        """
        Bind as the single entry matching ``search_filter``.

        Returns the entry in a one-element list on success, an empty list
        when nothing, more than one entry, or a wrong secret is found.
        """
        ...

    def close(self) -> None:
        ...


# =============================================================================
# LDAP3 IMPLEMENTATION
# =============================================================================


def _entries_from_response(response: Optional[Sequence[Dict[str, Any]]]) -> List[DirectoryEntry]:
    """Convert an ldap3 raw response into DirectoryEntry objects."""
    entries = []
    for item in response or []:
        # Referrals and search references carry no dn/attributes.
        if item.get("type") != "searchResEntry":
            continue
        entries.append(
            DirectoryEntry(
                dn=item["dn"],
                attributes=dict(item.get("attributes") or {}),
            )
        )
    return entries


@attrs.define
class Ldap3DirectoryClient:
    """
    DirectoryClient backed by a single ldap3 connection.

    Example:
        config = LDAPConfig.from_options({
            "host": "ldap.example.com",
            "base_dn": "dc=example,dc=com",
            "browse_user": "cn=reader,dc=example,dc=com",
            "browse_password": "secret",
        })
        client = Ldap3DirectoryClient(config)
        client.connect()
        entries = client.search("(mail=jdoe@example.com)")

    Tests pass a prepared ``server`` and ``client_strategy=MOCK_SYNC`` to
    run against ldap3's in-memory directory.
    """

    config: LDAPConfig
    extra_attributes: Sequence[str] = ("name",)
    client_strategy: str = SYNC

    _server: Optional[Server] = None
    _connection: Optional[Connection] = None
    _logger: Any = attrs.Factory(lambda: structlog.get_logger())

    @property
    def server(self) -> Server:
        """Get or create the ldap3 Server for this configuration."""
        if self._server is None:
            cfg = self.config
            tls = None
            if cfg.transport.is_secure:
                tls = Tls(
                    validate=ssl.CERT_REQUIRED if cfg.verify_server_cert else ssl.CERT_NONE,
                )
            self._server = Server(
                cfg.host,
                port=cfg.port,
                use_ssl=cfg.use_ssl,
                tls=tls,
                get_info=NONE,
                connect_timeout=cfg.connect_timeout,
            )
        return self._server

    @property
    def is_connected(self) -> bool:
        return self._connection is not None and not self._connection.closed

    @property
    def search_attributes(self) -> List[str]:
        attributes = [self.config.email_attribute]
        attributes.extend(a for a in self.extra_attributes if a not in attributes)
        return attributes

    def connect(self) -> None:
        """
        Open the connection and bind as the browse identity.

        This is the only place transport and TLS parameters are applied.

        Raises:
            BindError: if the host is unreachable, TLS negotiation fails,
                or the browse credentials are rejected
        """
        cfg = self.config
        self._logger.debug(
            "ldap_connecting",
            host=cfg.host,
            port=cfg.port,
            transport=cfg.transport.value,
        )

        try:
            self._connection = Connection(
                self.server,
                user=cfg.browse_user,
                password=cfg.browse_password,
                receive_timeout=cfg.receive_timeout,
                client_strategy=self.client_strategy,
                raise_exceptions=False,
            )
            self._open()
            self._logger.debug("ldap_binding", host=cfg.host, port=cfg.port)
            bound = self._connection.bind()
        except LDAPException as e:
            raise BindError(f"Failed to connect to {cfg.address}: {e}") from e

        if not bound:
            raise BindError(f"Failed to connect to {cfg.address}.")

        self._logger.info("ldap_connected", host=cfg.host, port=cfg.port)

    def bind(self, identity: str, secret: str) -> bool:
        """
        Re-authenticate the existing session as ``identity``.

        Raises:
            DirectoryUnavailable: if the server cannot be reached
        """
        conn = self._require_connection()
        try:
            if conn.closed:
                self._logger.info("ldap_reconnecting", host=self.config.host, port=self.config.port)
                self._open()
            conn.user = identity
            conn.password = secret
            return bool(conn.bind())
        except TRANSIENT_ERRORS as e:
            raise DirectoryUnavailable(f"LDAP host {self.config.address} unavailable: {e}") from e
        except LDAPException as e:
            self._logger.debug("ldap_bind_rejected", identity=identity, error=str(e))
            return False

    def search(self, search_filter: str) -> List[DirectoryEntry]:
        """
        Search below the base DN.

        Raises:
            DirectoryUnavailable: if the server cannot be reached
        """
        conn = self._require_connection()
        try:
            conn.search(
                search_base=self.config.base_dn,
                search_filter=search_filter,
                search_scope=SUBTREE,
                attributes=self.search_attributes,
            )
        except TRANSIENT_ERRORS as e:
            raise DirectoryUnavailable(f"LDAP host {self.config.address} unavailable: {e}") from e

        entries = _entries_from_response(conn.response)
        self._logger.debug("ldap_search", filter=search_filter, matches=len(entries))
        return entries

    def bind_as(self, search_filter: str, secret: str) -> List[DirectoryEntry]:
        entries = self.search(search_filter)
        if len(entries) != 1:
            return []
        # A simple bind with a DN and no password is an unauthenticated
        # bind, which many servers accept.
        if not secret:
            return []
        if self.bind(entries[0].dn, secret):
            return entries
        return []

    def close(self) -> None:
        """Unbind and drop the connection."""
        if self._connection is None:
            return
        try:
            if not self._connection.closed:
                self._connection.unbind()
        except LDAPException as e:
            self._logger.warning("ldap_unbind_error", error=str(e))
        finally:
            self._connection = None
            self._logger.debug("ldap_closed", host=self.config.host, port=self.config.port)

    def _open(self) -> None:
        conn = self._require_connection()
        conn.open()
        if self.config.transport is TransportMode.START_TLS and not conn.start_tls():
            raise LDAPStartTLSError(f"StartTLS negotiation with {self.config.address} failed")

    def _require_connection(self) -> Connection:
        if self._connection is None:
            raise DirectoryUnavailable("LDAP connection is not open - call connect() first")
        return self._connection
