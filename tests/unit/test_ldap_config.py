"""
Unit tests for dirauth.ldap.config module.

Tests option defaults, port coercion, transport resolution and validation.
"""

import attrs
import pytest

from dirauth.core.exceptions import DirectoryConnectionError, InvalidConfiguration
from dirauth.core.types import TransportMode
from dirauth.ldap.config import LDAPConfig, coerce_port, resolve_transport

from tests.fakes import base_options


class TestDefaults:
    """Tests for defaults applied by from_options."""

    def test_ssl_defaults_to_implicit_tls_on_636(self):
        options = base_options()
        del options["ssl"]
        del options["port"]
        config = LDAPConfig.from_options(options)
        assert config.port == 636
        assert config.transport == TransportMode.SIMPLE_TLS

    def test_plain_ldap_defaults_to_389(self):
        config = LDAPConfig.from_options(base_options(port=None, ssl=False))
        assert config.port == 389
        assert config.transport == TransportMode.NONE

    def test_email_attribute_defaults_to_mail(self):
        config = LDAPConfig.from_options(base_options())
        assert config.email_attribute == "mail"

    def test_flags_default_off(self):
        options = base_options()
        del options["auto_create"]
        del options["auto_activate"]
        config = LDAPConfig.from_options(options)
        assert config.auto_create is False
        assert config.auto_activate is False

    def test_browse_password_defaults_to_empty(self):
        options = base_options()
        del options["browse_password"]
        assert LDAPConfig.from_options(options).browse_password == ""

    def test_password_not_in_repr(self):
        config = LDAPConfig.from_options(base_options(browse_password="s3cret"))
        assert "s3cret" not in repr(config)

    def test_config_is_immutable(self, ldap_config):
        with pytest.raises(attrs.exceptions.FrozenInstanceError):
            ldap_config.host = "other"


class TestPortCoercion:
    """Tests for port parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [(389, 389), ("636", 636), (" 10389 ", 10389), ("abc", 0), (None, 0), (True, 0)],
    )
    def test_coerce_port(self, value, expected):
        assert coerce_port(value) == expected

    def test_string_port_accepted(self):
        assert LDAPConfig.from_options(base_options(port="3268")).port == 3268

    def test_zero_port_uses_default(self):
        assert LDAPConfig.from_options(base_options(port=0, ssl=True)).port == 636


class TestTransportResolution:
    """Tests for the ssl option."""

    def test_port_389_infers_start_tls(self):
        config = LDAPConfig.from_options(base_options(port=389, ssl=True))
        assert config.transport == TransportMode.START_TLS

    def test_other_port_infers_implicit_tls(self):
        config = LDAPConfig.from_options(base_options(port=3269, ssl=True))
        assert config.transport == TransportMode.SIMPLE_TLS

    @pytest.mark.parametrize("value", ["start_tls", "START-TLS", "starttls", TransportMode.START_TLS])
    def test_explicit_start_tls(self, value):
        config = LDAPConfig.from_options(base_options(port=636, ssl=value))
        assert config.transport == TransportMode.START_TLS

    @pytest.mark.parametrize("value", ["simple_tls", "ldaps", TransportMode.SIMPLE_TLS])
    def test_explicit_simple_tls(self, value):
        config = LDAPConfig.from_options(base_options(port=389, ssl=value))
        assert config.transport == TransportMode.SIMPLE_TLS

    @pytest.mark.parametrize("value", [False, None, "", "false", "none", TransportMode.NONE])
    def test_disabled(self, value):
        assert resolve_transport(value, 636) == TransportMode.NONE

    def test_unknown_string_is_inferred(self):
        assert resolve_transport("yes", 389) == TransportMode.START_TLS
        assert resolve_transport("yes", 636) == TransportMode.SIMPLE_TLS

    def test_use_ssl_only_for_implicit_tls(self):
        assert LDAPConfig.from_options(base_options(port=636, ssl=True)).use_ssl
        assert not LDAPConfig.from_options(base_options(port=389, ssl=True)).use_ssl


class TestValidation:
    """Tests for InvalidConfiguration."""

    @pytest.mark.parametrize(
        "key,value",
        [
            ("host", None),
            ("host", ""),
            ("host", "   "),
            ("port", -1),
            ("port", 65536),
            ("base_dn", None),
            ("base_dn", ""),
            ("base_dn", "   "),
            ("browse_user", None),
            ("browse_user", ""),
            ("browse_user", "   "),
            ("email_attribute", None),
            ("email_attribute", ""),
            ("email_attribute", "  "),
            ("connect_timeout", 0),
            ("receive_timeout", -5),
            ("receive_timeout", "soon"),
        ],
    )
    def test_invalid_option(self, key, value):
        with pytest.raises(InvalidConfiguration):
            LDAPConfig.from_options(base_options(**{key: value}))

    def test_invalid_configuration_is_connection_error(self):
        with pytest.raises(DirectoryConnectionError):
            LDAPConfig.from_options(base_options(host=""))

    @pytest.mark.parametrize("value", ["my attr", "mail)(uid=*", "1mail", "mail;", "mail\n", 5])
    def test_malformed_email_attribute_rejected(self, value):
        with pytest.raises(InvalidConfiguration, match="email_attribute"):
            LDAPConfig.from_options(base_options(email_attribute=value))

    @pytest.mark.parametrize("value", ["userPrincipalName", "x-mail", "0.9.2342.19200300.100.1.3", "mail;lang-en"])
    def test_email_attribute_forms_accepted(self, value):
        assert LDAPConfig.from_options(base_options(email_attribute=value)).email_attribute == value

    def test_unknown_option_rejected(self):
        with pytest.raises(InvalidConfiguration, match="bogus"):
            LDAPConfig.from_options(base_options(bogus=1))

    def test_empty_options_rejected(self):
        with pytest.raises(InvalidConfiguration):
            LDAPConfig.from_options(None)

    def test_direct_construction_validates(self):
        with pytest.raises(InvalidConfiguration):
            LDAPConfig(host="ldap", base_dn="", browse_user="cn=x")

    def test_direct_construction_defaults_port_from_transport(self):
        config = LDAPConfig(
            host="ldap",
            base_dn="dc=example,dc=com",
            browse_user="cn=x",
            transport=TransportMode.START_TLS,
        )
        assert config.port == 389
        assert config.address == "ldap:389"

    def test_timeouts_are_floats(self):
        config = LDAPConfig.from_options(base_options(connect_timeout="2.5", receive_timeout=3))
        assert config.connect_timeout == 2.5
        assert config.receive_timeout == 3.0
