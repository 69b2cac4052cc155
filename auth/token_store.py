"""Valkey-backed token state: refresh-token blacklist and reset tokens.

Raw token values never become keys. Both stores key entries by the token's
SHA-256 digest, so keys stay short and a dump of the cache reveals nothing
that can be replayed.
"""

import hashlib
import secrets
from uuid import UUID

from clients.valkey_client import ValkeyClient


def token_digest(token: str) -> str:
    """Hex SHA-256 of a token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class TokenBlacklist:
    """Refresh tokens that must be rejected despite a valid signature."""

    KEY_PREFIX = "blacklist:"

    def __init__(self, valkey: ValkeyClient):
        self._valkey = valkey

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token_digest(token)}"

    def claim(self, token: str, ttl_seconds: int) -> bool:
        """Blacklist token only if it isn't already.

        Returns True if this call blacklisted it, False if it was already
        blacklisted (the token has been used).
        """
        return self._valkey.set_if_absent(self._key(token), "1", max(ttl_seconds, 1))

    def add(self, token: str, ttl_seconds: int) -> None:
        """Blacklist token (idempotent)."""
        self._valkey.set(self._key(token), "1", expire_seconds=max(ttl_seconds, 1))


class ResetTokenStore:
    """One-time password reset tokens mapped to the owning user."""

    KEY_PREFIX = "password-reset:"

    def __init__(self, valkey: ValkeyClient, ttl_seconds: int):
        self._valkey = valkey
        self._ttl_seconds = ttl_seconds

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token_digest(token)}"

    def issue(self, user_id: UUID) -> str:
        """Generate a 32-byte random token for user and store its digest.

        Returns the raw token. Only the digest is stored.
        """
        token = secrets.token_hex(32)
        self._valkey.set(self._key(token), str(user_id), expire_seconds=self._ttl_seconds)
        return token

    def redeem(self, token: str) -> UUID | None:
        """Consume token and return its user, or None if unknown/expired/used.

        Atomic: of several concurrent redemptions at most one gets the user.
        """
        if not token:
            return None
        value = self._valkey.pop(self._key(token))
        if value is None:
            return None
        return UUID(value)
