"""Password hashing and verification using bcrypt.

bcrypt generates a unique salt per hash and bcrypt.checkpw compares in
constant time.
"""

import secrets
from typing import Optional

import bcrypt

from otpgate.config import get_settings


class PasswordVerifier:
    """Default password collaborator for the coordinator."""

    def __init__(self, rounds: Optional[int] = None):
        self.rounds = rounds if rounds is not None else get_settings().bcrypt_rounds
        self._dummy_hash: Optional[str] = None

    @property
    def dummy_hash(self) -> str:
        """Hash of a random password, checked when no account matches the email."""
        if self._dummy_hash is None:
            self._dummy_hash = self.hash(secrets.token_urlsafe(16))
        return self._dummy_hash

    def hash(self, plain: str) -> str:
        return bcrypt.hashpw(
            plain.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)
        ).decode("utf-8")

    def check(self, plain: str, stored_hash: str) -> bool:
        """Return True if plain matches stored_hash. Malformed hashes never match."""
        if not plain or not stored_hash:
            return False
        try:
            return bcrypt.checkpw(plain.encode("utf-8"), stored_hash.encode("utf-8"))
        except ValueError:
            return False
