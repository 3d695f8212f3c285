"""
dirauth CAPTCHA Guard

Scoped suppression of CAPTCHA enforcement.

Auto-provisioning creates a local user record on behalf of someone who has
already proven who they are to the directory, so the application's CAPTCHA
check on user creation is paused for the duration of that block.
"""

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import ContextManager, Iterator, Protocol, runtime_checkable

import attrs
import structlog


@runtime_checkable
class CaptchaGuard(Protocol):
    """Anything that can pause CAPTCHA enforcement for a block of code."""

    def paused(self) -> ContextManager[None]:
        """Context manager; enforcement resumes when the block exits."""
        ...


@attrs.define
class NullCaptchaGuard:
    """Guard for applications without CAPTCHA enforcement."""

    @contextmanager
    def paused(self) -> Iterator[None]:
        yield


@attrs.define
class SwitchCaptchaGuard:
    """
    Process-wide CAPTCHA switch with nestable pauses.

    ``enforcing`` is False while at least one ``paused()`` block is active
    in any thread.

    Example:
        guard = SwitchCaptchaGuard()
        with guard.paused():
            assert not guard.enforcing
        assert guard.enforcing
    """

    _depth: int = 0
    _lock: threading.Lock = attrs.Factory(threading.Lock)
    _logger: structlog.BoundLogger = attrs.Factory(lambda: structlog.get_logger())

    @property
    def enforcing(self) -> bool:
        with self._lock:
            return self._depth == 0

    @contextmanager
    def paused(self) -> Iterator[None]:
        with self._lock:
            self._depth += 1
        self._logger.debug("captcha_paused")
        try:
            yield
        finally:
            with self._lock:
                self._depth -= 1
            self._logger.debug("captcha_resumed")
