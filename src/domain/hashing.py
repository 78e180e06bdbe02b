"""
Code hasher - One-way hashing and constant-time comparison.

Used for both registration passwords and verification codes. bcrypt
carries its own salt inside the digest, so no extra state is stored.
bcrypt.checkpw() compares in constant time.
"""

import bcrypt

from .exceptions import HashingError


class CodeHasher:
    """bcrypt-backed hasher for codes and transient secrets."""

    def __init__(self, rounds: int = 10) -> None:
        """
        Args:
            rounds: bcrypt cost factor (>= 10 outside of tests)
        """
        self._rounds = rounds

    def hash(self, secret: str) -> str:
        try:
            return bcrypt.hashpw(secret.encode(), bcrypt.gensalt(rounds=self._rounds)).decode()
        except (ValueError, TypeError) as e:
            raise HashingError("Failed to hash secret") from e

    def compare(self, secret: str, digest: str) -> bool:
        """Return True if ``secret`` hashes to ``digest``. Malformed digests raise HashingError."""
        try:
            return bcrypt.checkpw(secret.encode(), digest.encode())
        except (ValueError, TypeError) as e:
            raise HashingError("Failed to compare secret") from e
