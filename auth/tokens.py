"""Signed access/refresh token pairs.

Access and refresh tokens are JWTs signed with different secrets, so a
leaked access secret cannot mint refresh tokens and vice versa. Each token
carries a random jti, which keeps two tokens minted in the same second for
the same user distinct.
"""

import uuid
from datetime import timedelta
from uuid import UUID

import jwt

from auth.config import AuthConfig
from auth.exceptions import InvalidTokenError
from auth.types import TokenPair
from utils.timezone import from_timestamp, now_utc, seconds_until

ACCESS = "access"
REFRESH = "refresh"


class TokenService:
    """Issues and verifies signed, time-limited token pairs."""

    def __init__(self, config: AuthConfig, access_secret: str, refresh_secret: str):
        if not access_secret or not refresh_secret:
            raise ValueError("access_secret and refresh_secret are required")
        if access_secret == refresh_secret:
            raise ValueError("access_secret and refresh_secret must differ")
        self._config = config
        self._secrets = {ACCESS: access_secret, REFRESH: refresh_secret}
        self._lifetimes = {
            ACCESS: timedelta(seconds=config.access_token_seconds),
            REFRESH: timedelta(seconds=config.refresh_token_seconds),
        }

    def _sign(self, user_id: UUID, token_type: str) -> str:
        now = now_utc()
        payload = {
            "id": str(user_id),
            "type": token_type,
            "jti": uuid.uuid4().hex,
            "iat": now,
            "exp": now + self._lifetimes[token_type],
        }
        return jwt.encode(payload, self._secrets[token_type], algorithm=self._config.jwt_algorithm)

    def issue_pair(self, user_id: UUID) -> TokenPair:
        """Sign a fresh access token and refresh token for user."""
        return TokenPair(
            access_token=self._sign(user_id, ACCESS),
            refresh_token=self._sign(user_id, REFRESH),
            expires_in=self._config.access_token_seconds,
        )

    def decode(self, token: str, expected_type: str) -> dict:
        """Verify signature, expiry and type; return the claims.

        Raises:
            InvalidTokenError: If any check fails.
        """
        if expected_type not in self._secrets:
            raise ValueError(f"Unknown token type: {expected_type}")
        if not token:
            raise InvalidTokenError("Invalid token")

        try:
            claims = jwt.decode(
                token,
                self._secrets[expected_type],
                algorithms=[self._config.jwt_algorithm],
                options={"require": ["exp", "iat", "id", "type"]},
            )
        except jwt.ExpiredSignatureError:
            raise InvalidTokenError("Token has expired")
        except jwt.InvalidTokenError:
            raise InvalidTokenError("Invalid token")

        if claims.get("type") != expected_type:
            raise InvalidTokenError("Invalid token type")

        return claims

    def verify(self, token: str, expected_type: str) -> UUID:
        """Verify token and return the user id it was issued for.

        Raises:
            InvalidTokenError: If the signature is invalid, the token expired,
                or its type is not expected_type.
        """
        claims = self.decode(token, expected_type)
        try:
            return UUID(claims["id"])
        except (ValueError, TypeError):
            raise InvalidTokenError("Invalid token subject")

    def remaining_seconds(self, token: str, expected_type: str) -> int:
        """Seconds until a valid token expires (at least 1)."""
        claims = self.decode(token, expected_type)
        return max(seconds_until(from_timestamp(claims["exp"])), 1)
