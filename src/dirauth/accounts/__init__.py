"""
dirauth Accounts Module

Collaborators that own local user state.

Components:
- store: UserStore protocol and InMemoryUserStore
- captcha: CaptchaGuard protocol, NullCaptchaGuard and SwitchCaptchaGuard
"""

from dirauth.accounts.store import (
    UserStore,
    InMemoryUserStore,
    ActivationRequest,
    DuplicateUserError,
)
from dirauth.accounts.captcha import CaptchaGuard, NullCaptchaGuard, SwitchCaptchaGuard

__all__ = [
    "UserStore",
    "InMemoryUserStore",
    "ActivationRequest",
    "DuplicateUserError",
    "CaptchaGuard",
    "NullCaptchaGuard",
    "SwitchCaptchaGuard",
]
