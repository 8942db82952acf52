"""
auth/passwords.py -- bcrypt password hashing.

Calls the bcrypt package directly; there is no passlib CryptContext layer.

[A07] bcrypt embeds a fresh random salt and the cost factor in every hash, so
two hashes of the same password never match and verification needs nothing
but the stored string. checkpw compares the final digest in constant time.
Plaintext passwords are never compared directly.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import bcrypt

DEFAULT_ROUNDS = 12


class PasswordHasher:
    """Salted, intentionally slow one-way hashing with a configurable cost."""

    def __init__(self, rounds: int = DEFAULT_ROUNDS) -> None:
        if not 4 <= rounds <= 31:
            raise ValueError("bcrypt rounds must be between 4 and 31")
        self.rounds = rounds
        self._dummy_hash: str | None = None

    def hash(self, plain: str) -> str:
        """Return a bcrypt hash of the given plaintext password.

        Raises ValueError for input longer than 72 bytes (bcrypt 5). The
        register rules reject such passwords before they get here.
        """
        return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)).decode("utf-8")

    def verify(self, plain: str, digest: str) -> bool:
        """Return True if the plaintext password matches the bcrypt hash."""
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            # Malformed hash string, or input over 72 bytes (bcrypt 5).
            return False

    @property
    def dummy_hash(self) -> str:
        """Hash at this hasher's cost used to equalize login timing on lookup misses.

        Computed lazily once; warm it at startup so the first login is not
        measurably slower than later ones.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hash("timing-equalization-dummy-0")
        return self._dummy_hash
