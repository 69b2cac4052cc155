"""Fixed-window rate limiting per client, stored in Valkey.

The first hit in a window creates the counter and starts its TTL; the
counter disappears when the window ends. A refund decrements the counter,
so successful requests can be excluded from a budget after the fact.
"""

from dataclasses import dataclass

from clients.valkey_client import ValkeyClient
from auth.config import AuthConfig
from auth.exceptions import RateLimitedError


@dataclass(frozen=True)
class RateLimitPolicy:
    """A named request budget."""

    name: str
    limit: int
    window_seconds: int


def api_policy(config: AuthConfig) -> RateLimitPolicy:
    """General budget for every /api/ request."""
    return RateLimitPolicy(
        name="api",
        limit=config.api_rate_limit_requests,
        window_seconds=config.api_rate_limit_window_minutes * 60,
    )


def login_policy(config: AuthConfig) -> RateLimitPolicy:
    """Tight budget for login/register; successful requests are refunded."""
    return RateLimitPolicy(
        name="login",
        limit=config.login_rate_limit_attempts,
        window_seconds=config.login_rate_limit_window_minutes * 60,
    )


class RateLimiter:
    """Per-client request counter for a single policy."""

    KEY_PREFIX = "ratelimit:"

    def __init__(self, valkey: ValkeyClient, policy: RateLimitPolicy):
        self._valkey = valkey
        self.policy = policy

    def _key(self, client_id: str) -> str:
        """Generate rate limit key for client (IP address or 'unknown')."""
        return f"{self.KEY_PREFIX}{self.policy.name}:{client_id}"

    def hit(self, client_id: str) -> int:
        """Count a request and enforce the budget.

        Returns:
            Requests remaining in the current window.

        Raises:
            RateLimitedError: If the budget is exhausted.
        """
        key = self._key(client_id)
        count = self._valkey.incr(key)

        if count == 1:
            # First request in window, start the clock
            self._valkey.expire(key, self.policy.window_seconds)
        elif self._valkey.ttl(key) == -1:
            # Counter outlived a crashed request between INCR and EXPIRE
            self._valkey.expire(key, self.policy.window_seconds)

        if count > self.policy.limit:
            ttl = self._valkey.ttl(key)
            raise RateLimitedError(retry_after_seconds=max(ttl, 1))

        return self.policy.limit - count

    def refund(self, client_id: str) -> None:
        """Give back one request (e.g. after a successful login)."""
        key = self._key(client_id)
        if self._valkey.exists(key) and self._valkey.decr(key) <= 0:
            self._valkey.delete(key)

