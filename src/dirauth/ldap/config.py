"""
dirauth LDAP Configuration

Validated, immutable settings for one directory authenticator.

Recognized options (``LDAPConfig.from_options``):

host
    The LDAP host name or IP address. (required)
port
    The port to connect to (defaults to 389 for non-ssl and 636 for ssl).
ssl
    Should TLS be used for the connection (recommended, default is true).
    ``"start_tls"`` / ``"simple_tls"`` pick the method explicitly; any other
    truthy value infers it from the port.
base_dn
    The base DN to search within when looking for user accounts. (required)
browse_user
    A user to bind as when looking for user accounts. (required)
browse_password
    The password for the browse_user.
email_attribute
    The attribute to use when looking for user accounts (default is 'mail').
auto_create
    Create a local user the first time a directory user logs in.
auto_activate
    Activate auto-created users immediately. Without it they must go through
    the normal activation email flow. No effect unless auto_create is set.
connect_timeout / receive_timeout
    Seconds to wait for the TCP connection / for each response.
verify_server_cert
    Validate the server certificate when TLS is in use (default true).
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional

import attrs
from attrs import field

from dirauth.core.exceptions import InvalidConfiguration
from dirauth.core.types import TransportMode


DEFAULT_EMAIL_ATTRIBUTE = "mail"
DEFAULT_TIMEOUT = 10.0

RECOGNIZED_OPTIONS = frozenset({
    "host",
    "port",
    "ssl",
    "base_dn",
    "browse_user",
    "browse_password",
    "email_attribute",
    "auto_create",
    "auto_activate",
    "connect_timeout",
    "receive_timeout",
    "verify_server_cert",
})

_FALSE_STRINGS = frozenset({"", "0", "false", "no", "off", "none"})

# RFC 4512 attribute description: a name or numeric OID, plus options.
_ATTRIBUTE_RE = re.compile(r"(?:[A-Za-z][A-Za-z0-9-]*|\d+(?:\.\d+)*)(?:;[A-Za-z0-9-]+)*")


def _blank(value: Any) -> bool:
    return value is None or not str(value).strip()


def coerce_port(value: Any) -> int:
    """
    Coerce a port option to an integer.

    Anything that does not parse as an integer becomes 0, which means
    "use the default port".
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, int):
        return value
    if value is None:
        return 0
    try:
        return int(str(value).strip())
    except ValueError:
        return 0


def ssl_requested(value: Any) -> bool:
    """Return True if the ``ssl`` option asks for an encrypted transport."""
    if isinstance(value, TransportMode):
        return value.is_secure
    if isinstance(value, str):
        return value.strip().lower() not in _FALSE_STRINGS
    return bool(value)


def resolve_transport(value: Any, port: int) -> TransportMode:
    """
    Turn the ``ssl`` option into a TransportMode.

    Explicit "start_tls" / "simple_tls" values win. Any other truthy value
    is inferred from the port: 389 upgrades with StartTLS, everything else
    uses implicit TLS.
    """
    if not ssl_requested(value):
        return TransportMode.NONE
    if isinstance(value, TransportMode):
        return value
    if isinstance(value, str):
        key = value.strip().lower().replace("-", "_")
        if key in ("start_tls", "starttls"):
            return TransportMode.START_TLS
        if key in ("simple_tls", "simpletls", "ldaps"):
            return TransportMode.SIMPLE_TLS
    return TransportMode.START_TLS if port == 389 else TransportMode.SIMPLE_TLS


def _positive_timeout(name: str, value: Any) -> float:
    try:
        timeout = float(value)
    except (TypeError, ValueError):
        raise InvalidConfiguration(f"The value for '{name}' must be a number of seconds.")
    if timeout <= 0:
        raise InvalidConfiguration(f"The value for '{name}' must be greater than zero.")
    return timeout


@attrs.define(frozen=True, slots=True)
class LDAPConfig:
    """
    LDAP authenticator configuration.

    INVARIANT: host, base_dn, browse_user and email_attribute are non-blank
    INVARIANT: email_attribute is a valid LDAP attribute description
    INVARIANT: 1 <= port <= 65535

    A port of 0 is replaced by the transport's conventional port.
    """

    host: str
    base_dn: str
    browse_user: str
    browse_password: str = field(default="", repr=False)
    port: int = 0
    transport: TransportMode = TransportMode.SIMPLE_TLS
    email_attribute: str = DEFAULT_EMAIL_ATTRIBUTE
    auto_create: bool = False
    auto_activate: bool = False
    connect_timeout: float = DEFAULT_TIMEOUT
    receive_timeout: float = DEFAULT_TIMEOUT
    verify_server_cert: bool = True

    def __attrs_post_init__(self) -> None:
        if not isinstance(self.transport, TransportMode):
            raise InvalidConfiguration(f"Unknown transport mode: {self.transport!r}.")

        port = coerce_port(self.port)
        if port == 0:
            port = self.transport.default_port
        object.__setattr__(self, "port", port)

        if _blank(self.host):
            raise InvalidConfiguration("Missing value for 'host' parameter.")
        if not 1 <= self.port <= 65535:
            raise InvalidConfiguration("The value for 'port' must be between 1 and 65535.")
        if _blank(self.base_dn):
            raise InvalidConfiguration("Missing value for 'base_dn' parameter.")
        if _blank(self.email_attribute):
            raise InvalidConfiguration("Missing value for 'email_attribute' parameter.")
        if not isinstance(self.email_attribute, str) or not _ATTRIBUTE_RE.fullmatch(self.email_attribute):
            raise InvalidConfiguration(
                f"The value for 'email_attribute' is not an LDAP attribute name: {self.email_attribute!r}."
            )
        if _blank(self.browse_user):
            raise InvalidConfiguration("Missing value for 'browse_user' parameter.")

        object.__setattr__(self, "connect_timeout", _positive_timeout("connect_timeout", self.connect_timeout))
        object.__setattr__(self, "receive_timeout", _positive_timeout("receive_timeout", self.receive_timeout))
        object.__setattr__(self, "browse_password", self.browse_password or "")

    @property
    def use_ssl(self) -> bool:
        """True for implicit TLS (LDAPS)."""
        return self.transport is TransportMode.SIMPLE_TLS

    @property
    def address(self) -> str:
        return f"{self.host}:{self.port}"

    @classmethod
    def from_options(cls, options: Optional[Mapping[str, Any]] = None) -> LDAPConfig:
        """
        Build a config from a plain option mapping.

        Applies defaults (ssl on, email attribute 'mail'), coerces the port
        and resolves the transport mode before validating.

        Raises:
            InvalidConfiguration: for unknown keys or invalid values
        """
        merged: Dict[str, Any] = {"ssl": True, "email_attribute": DEFAULT_EMAIL_ATTRIBUTE}
        merged.update(options or {})

        unknown = sorted(set(merged) - RECOGNIZED_OPTIONS)
        if unknown:
            raise InvalidConfiguration(f"Unknown option(s): {', '.join(unknown)}.")

        ssl = merged.pop("ssl")
        port = coerce_port(merged.pop("port", None))
        if port == 0:
            port = 636 if ssl_requested(ssl) else 389

        kwargs: Dict[str, Any] = {
            key: merged[key]
            for key in ("browse_password", "connect_timeout", "receive_timeout")
            if merged.get(key) is not None
        }
        for flag in ("auto_create", "auto_activate", "verify_server_cert"):
            if flag in merged and merged[flag] is not None:
                kwargs[flag] = bool(merged[flag])

        return cls(
            host=merged.get("host"),
            base_dn=merged.get("base_dn"),
            browse_user=merged.get("browse_user"),
            port=port,
            transport=resolve_transport(ssl, port),
            email_attribute=merged.get("email_attribute"),
            **kwargs,
        )
