"""
Credential hashing and verification.

Accounts store only a bcrypt hash of their password; the services depend on the
``CredentialVerifier`` protocol so the hashing scheme stays swappable.
"""
from __future__ import annotations

from typing import Protocol

import bcrypt


# PUBLIC_INTERFACE
class CredentialVerifier(Protocol):
    """Hashes secrets and checks a plaintext secret against a stored hash."""

    def hash(self, secret: str) -> str:
        ...

    def verify(self, secret: str, hashed: str) -> bool:
        ...


# PUBLIC_INTERFACE
class BcryptCredentialVerifier:
    """bcrypt with a per-hash random salt."""

    def __init__(self, rounds: int = 12) -> None:
        self._rounds = rounds

    def hash(self, secret: str) -> str:
        """Hash a plain text password using bcrypt."""
        salt = bcrypt.gensalt(rounds=self._rounds)
        return bcrypt.hashpw(secret.encode("utf-8"), salt).decode("utf-8")

    def verify(self, secret: str, hashed: str) -> bool:
        """Verify a plain text password against a hashed password."""
        try:
            return bcrypt.checkpw(secret.encode("utf-8"), hashed.encode("utf-8"))
        except ValueError:
            # Stored value is not a bcrypt hash.
            return False
