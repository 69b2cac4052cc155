"""Utility modules for cross-cutting concerns."""

from utils.timezone import now_utc, from_timestamp, seconds_until
from utils.network import get_client_ip, get_bearer_token
