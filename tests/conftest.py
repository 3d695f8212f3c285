"""
Pytest configuration and shared fixtures for dirauth tests.
"""

import pytest

from dirauth.accounts.captcha import SwitchCaptchaGuard
from dirauth.accounts.store import InMemoryUserStore
from dirauth.core.types import ClientContext
from dirauth.ldap.authenticator import LDAPAuthenticator
from dirauth.ldap.config import LDAPConfig
from dirauth.monitoring.audit import InMemoryAuditLog

from tests.fakes import FakeDirectory, base_options, forumsys_directory


# =============================================================================
# CONFIGURATION FIXTURES
# =============================================================================


@pytest.fixture
def options() -> dict:
    """Valid option mapping (plain LDAP, auto-create and auto-activate on)."""
    return base_options()


@pytest.fixture
def ldap_config(options) -> LDAPConfig:
    return LDAPConfig.from_options(options)


@pytest.fixture
def client_context() -> ClientContext:
    return ClientContext(ip_address="127.0.0.1", user_agent="pytest")


# =============================================================================
# COLLABORATOR FIXTURES
# =============================================================================


@pytest.fixture
def directory() -> FakeDirectory:
    """Fake directory with euler, einstein, newton and two 'twins' entries."""
    return forumsys_directory()


@pytest.fixture
def user_store() -> InMemoryUserStore:
    """User store with a cheap password hash."""
    return InMemoryUserStore(hash_iterations=1_000)


@pytest.fixture
def audit_log() -> InMemoryAuditLog:
    return InMemoryAuditLog()


@pytest.fixture
def captcha_guard() -> SwitchCaptchaGuard:
    return SwitchCaptchaGuard()


# =============================================================================
# AUTHENTICATOR FIXTURES
# =============================================================================


@pytest.fixture
def make_authenticator(directory, user_store, audit_log, captcha_guard):
    """Build an authenticator over the fake directory with option overrides."""

    def _make(**overrides) -> LDAPAuthenticator:
        return LDAPAuthenticator.from_options(
            base_options(**overrides),
            user_store=user_store,
            audit_sink=audit_log,
            captcha_guard=captcha_guard,
            directory_factory=directory.connect,
        )

    return _make


@pytest.fixture
def authenticator(make_authenticator) -> LDAPAuthenticator:
    return make_authenticator()


# =============================================================================
# PYTEST MARKERS
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests requiring a real LDAP server"
    )
