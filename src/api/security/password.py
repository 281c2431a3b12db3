"""Credential hashing with argon2."""

from __future__ import annotations

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

# Stored-credential work factor. Changing these makes existing hashes
# report needs_rehash, and they are upgraded on the next successful login.
DEFAULT_TIME_COST = 3
DEFAULT_MEMORY_COST = 65536  # KiB
DEFAULT_PARALLELISM = 4

_DUMMY_PASSWORD = "dummy_password"


class PasswordService:
    """Argon2id hashing for user credentials.

    Each hash embeds its salt and parameters, so a hash made under an
    older work factor still verifies.
    """

    def __init__(
        self,
        time_cost: int = DEFAULT_TIME_COST,
        memory_cost: int = DEFAULT_MEMORY_COST,
        parallelism: int = DEFAULT_PARALLELISM,
    ) -> None:
        self._hasher = PasswordHasher(
            time_cost=time_cost,
            memory_cost=memory_cost,
            parallelism=parallelism,
        )

    def hash(self, password: str) -> str:
        """Hash a plaintext password with a fresh salt."""
        return self._hasher.hash(password)

    def verify(self, hash: str, password: str) -> bool:
        """Check a plaintext password against a stored hash.

        Mismatches and unparseable hashes return ``False`` rather than
        raising.
        """
        try:
            return self._hasher.verify(hash, password)
        except (VerifyMismatchError, VerificationError, InvalidHashError):
            return False

    def verify_or_burn(self, hash: str | None, password: str) -> bool:
        """Like ``verify``, but spend one hash when there is nothing to compare.

        Callers looking up a credential by email pass ``None`` for an
        unknown account so the response time matches a wrong password.
        """
        if hash is None:
            self._hasher.hash(_DUMMY_PASSWORD)
            return False
        return self.verify(hash, password)

    def needs_rehash(self, hash: str) -> bool:
        """Whether ``hash`` was made under a different work factor."""
        try:
            return self._hasher.check_needs_rehash(hash)
        except InvalidHashError:
            return True
