"""
dirauth Cryptographic Operations

Random secret generation and password hashing for locally provisioned
accounts. Uses established libraries - NO custom cryptographic
implementations.

Security:
- Uses constant-time comparisons where applicable
- Secrets come from the ``secrets`` CSPRNG
"""

from __future__ import annotations

import hmac
import secrets
from typing import Tuple

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC


# Bytes of entropy behind a provisioning secret (384 bits).
PROVISIONING_SECRET_BYTES = 48

PASSWORD_SALT_BYTES = 16
PASSWORD_HASH_ITERATIONS = 390_000


# =============================================================================
# RANDOM SECRETS
# =============================================================================


def generate_provisioning_secret(nbytes: int = PROVISIONING_SECRET_BYTES) -> str:
    """
    Generate a URL-safe random password for an auto-provisioned account.

    The account owner never learns this value; it only exists so the local
    record cannot be logged into with a guessable password.

    Args:
        nbytes: Bytes of randomness (at least 32)

    Returns:
        URL-safe base64 text
    """
    if nbytes < 32:
        raise ValueError(f"Provisioning secrets need at least 32 bytes of entropy, got {nbytes}")
    return secrets.token_urlsafe(nbytes)


# =============================================================================
# PASSWORD HASHING
# =============================================================================


def _derive(password: str, salt: bytes, iterations: int) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=32,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))


def hash_password(
    password: str,
    iterations: int = PASSWORD_HASH_ITERATIONS,
) -> Tuple[bytes, bytes]:
    """
    Hash a password with PBKDF2-HMAC-SHA256 and a fresh salt.

    Returns:
        Tuple of (salt, digest)
    """
    salt = secrets.token_bytes(PASSWORD_SALT_BYTES)
    return salt, _derive(password, salt, iterations)


def verify_password(
    password: str,
    salt: bytes,
    digest: bytes,
    iterations: int = PASSWORD_HASH_ITERATIONS,
) -> bool:
    """Check a password against a stored (salt, digest) pair."""
    return constant_time_compare(_derive(password, salt, iterations), digest)


def constant_time_compare(a: bytes, b: bytes) -> bool:
    """
    Compare two byte strings in constant time.

    Prevents timing attacks on secret comparisons.
    """
    return hmac.compare_digest(a, b)
