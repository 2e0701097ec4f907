"""Salted one-way password hashing backed by bcrypt."""

from functools import lru_cache

import bcrypt

# bcrypt only looks at the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


@lru_cache(maxsize=None)
def _dummy_digest(rounds: int) -> str:
    return bcrypt.hashpw(b"afriroots-unknown-account", bcrypt.gensalt(rounds=rounds)).decode("utf-8")


class PasswordHasher:
    """Hash and verify plaintext secrets with a per-call random salt.

    ``rounds`` is the bcrypt cost factor (log2 of the iteration count).
    """

    def __init__(self, rounds: int = 12) -> None:
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        if not plaintext:
            raise ValueError("password must not be empty")
        encoded = plaintext.encode("utf-8")
        if len(encoded) > MAX_PASSWORD_BYTES:
            raise ValueError(f"password exceeds {MAX_PASSWORD_BYTES} bytes")
        salt = bcrypt.gensalt(rounds=self.rounds)
        return bcrypt.hashpw(encoded, salt).decode("utf-8")

    def verify(self, plaintext: str, digest: str) -> bool:
        """Return True iff ``plaintext`` produced ``digest``; never raises on mismatch."""
        if not plaintext or not digest:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), digest.encode("utf-8"))
        except ValueError:
            # malformed digest or over-long input
            return False

    def dummy_digest(self) -> str:
        """Digest at this hasher's cost that no real account owns, computed once per cost."""
        return _dummy_digest(self.rounds)
