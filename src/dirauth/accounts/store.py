"""
dirauth Local User Store

Interface to the application's local user records, plus an in-memory
implementation for tests and examples.

The authenticator only looks records up by email, asks for new records to
be created, and triggers the activation email for records that were not
activated automatically. Persistence and mail delivery belong to the
embedding application.
"""

from __future__ import annotations

import threading
from datetime import datetime, timezone
from typing import Dict, List, Optional, Protocol, Tuple, runtime_checkable

import attrs
import structlog

from dirauth.core.crypto import PASSWORD_HASH_ITERATIONS, hash_password, verify_password
from dirauth.core.types import ClientContext, LocalUser, NewUser


@runtime_checkable
class UserStore(Protocol):
    """Lookup and creation of local user records."""

    def find_by_email(self, email: str) -> Optional[LocalUser]:
        ...

    def create(self, attributes: NewUser) -> LocalUser:
        ...

    def send_activation_email(self, user: LocalUser, client_context: ClientContext) -> None:
        ...


class DuplicateUserError(ValueError):
    """A record with this email already exists."""


@attrs.define(frozen=True, slots=True)
class ActivationRequest:
    """An activation email the in-memory store was asked to send."""

    email: str
    client_context: ClientContext
    requested_at: datetime


@attrs.define
class InMemoryUserStore:
    """
    Thread-safe, process-local UserStore.

    Emails are matched exactly, the same way the directory search is
    matched. Passwords are kept only as PBKDF2 digests. Activation emails
    are recorded in ``activation_requests`` instead of being sent.

    Example:
        store = InMemoryUserStore()
        user = store.create(NewUser(email="jdoe@example.com", password="x"))
        assert store.find_by_email("jdoe@example.com") == user
    """

    hash_iterations: int = PASSWORD_HASH_ITERATIONS

    _users: Dict[str, LocalUser] = attrs.Factory(dict)
    _passwords: Dict[str, Tuple[bytes, bytes]] = attrs.Factory(dict)
    _activation_requests: List[ActivationRequest] = attrs.Factory(list)
    _next_id: int = 1
    _lock: threading.RLock = attrs.Factory(threading.RLock)
    _logger: structlog.BoundLogger = attrs.Factory(lambda: structlog.get_logger())

    def find_by_email(self, email: str) -> Optional[LocalUser]:
        with self._lock:
            return self._users.get(email)

    def create(self, attributes: NewUser) -> LocalUser:
        """
        Create a local user record.

        Raises:
            DuplicateUserError: if a record with the same email exists
        """
        with self._lock:
            if attributes.email in self._users:
                raise DuplicateUserError(f"User {attributes.email} already exists")

            user = LocalUser(
                id=self._next_id,
                email=attributes.email,
                name=attributes.name,
                enabled=attributes.enabled,
                activated=attributes.activated,
                activated_at=attributes.activated_at,
            )
            self._next_id += 1
            self._users[user.email] = user
            self._passwords[user.email] = hash_password(attributes.password, self.hash_iterations)

            self._logger.debug(
                "user_created",
                user_id=user.id,
                email=user.email,
                activated=user.activated,
            )
            return user

    def send_activation_email(self, user: LocalUser, client_context: ClientContext) -> None:
        with self._lock:
            self._activation_requests.append(
                ActivationRequest(
                    email=user.email,
                    client_context=client_context,
                    requested_at=datetime.now(timezone.utc),
                )
            )
        self._logger.info("activation_email_requested", email=user.email, client_ip=str(client_context))

    def set_enabled(self, email: str, enabled: bool) -> LocalUser:
        """Enable or disable an existing record."""
        with self._lock:
            user = attrs.evolve(self._users[email], enabled=enabled)
            self._users[email] = user
            return user

    def check_password(self, email: str, password: str) -> bool:
        """Check a password against the stored local digest."""
        with self._lock:
            stored = self._passwords.get(email)
        if stored is None:
            return False
        salt, digest = stored
        return verify_password(password, salt, digest, self.hash_iterations)

    @property
    def activation_requests(self) -> List[ActivationRequest]:
        with self._lock:
            return list(self._activation_requests)

    @property
    def size(self) -> int:
        """Current number of user records."""
        with self._lock:
            return len(self._users)
