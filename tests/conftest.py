"""Shared test fixtures for the portal test suite.

Services are built over in-memory stand-ins for Postgres and Valkey, so the
suite runs without infrastructure. Collaborators that only record calls
(security logger, reset notifier) are Mock(spec=...) objects.
"""

import fnmatch
import json
import threading
import time
from pathlib import Path
from unittest.mock import Mock
from uuid import UUID, uuid4

import pytest
from dotenv import load_dotenv

# Load .env file BEFORE any other imports that might use env vars
load_dotenv(Path(__file__).parent.parent / ".env", override=True)

# Reset vault client singleton to pick up env vars
import clients.vault_client as vault_module
vault_module._vault_client_instance = None
vault_module._secret_cache.clear()

from fastapi.testclient import TestClient

from api.app import create_app
from api.cache import ResponseCache
from api.config import APIConfig
from api.users import ProfileService
from auth.config import AuthConfig
from auth.exceptions import ConflictError
from auth.passwords import PasswordHasher
from auth.rate_limiter import RateLimiter, api_policy, login_policy
from auth.security_logger import SecurityLogger
from auth.service import AuthService
from auth.token_store import ResetTokenStore, TokenBlacklist
from auth.tokens import TokenService
from auth.types import User, UserRecord, UserRole
from clients.email_client import PasswordResetNotifier
from clients.postgres_client import PostgresClient
from utils.timezone import now_utc


# =============================================================================
# TEST CONSTANTS
# =============================================================================

TEST_ACCESS_SECRET = "test-access-secret-0123456789abcdef0123456789"
TEST_REFRESH_SECRET = "test-refresh-secret-fedcba9876543210fedcba987"

STRONG_PASSWORD = "Portal2024x"
OTHER_STRONG_PASSWORD = "Gitega2025y"


# =============================================================================
# IN-MEMORY STAND-INS
# =============================================================================


class FakeValkey:
    """Dict-backed ValkeyClient with per-key expiry and a movable clock."""

    def __init__(self):
        self._data: dict[str, str] = {}
        self._expires: dict[str, float] = {}
        self._offset = 0.0
        self._lock = threading.Lock()

    def advance(self, seconds: float) -> None:
        """Move the clock forward, expiring keys whose TTL has passed."""
        self._offset += seconds

    def _now(self) -> float:
        return time.monotonic() + self._offset

    def _purge(self, key: str) -> None:
        deadline = self._expires.get(key)
        if deadline is not None and deadline <= self._now():
            self._data.pop(key, None)
            self._expires.pop(key, None)

    def _live_keys(self) -> list[str]:
        for key in list(self._data):
            self._purge(key)
        return list(self._data)

    def ping(self) -> bool:
        return True

    def get(self, key: str) -> str | None:
        self._purge(key)
        return self._data.get(key)

    def set(self, key: str, value: str, expire_seconds: int | None = None) -> None:
        self._data[key] = str(value)
        if expire_seconds is not None:
            self._expires[key] = self._now() + expire_seconds
        else:
            self._expires.pop(key, None)

    def set_if_absent(self, key: str, value: str, expire_seconds: int) -> bool:
        with self._lock:
            self._purge(key)
            if key in self._data:
                return False
            self.set(key, value, expire_seconds)
            return True

    def pop(self, key: str) -> str | None:
        with self._lock:
            self._purge(key)
            self._expires.pop(key, None)
            return self._data.pop(key, None)

    def delete(self, key: str) -> bool:
        self._purge(key)
        self._expires.pop(key, None)
        return self._data.pop(key, None) is not None

    def delete_pattern(self, pattern: str) -> int:
        matched = [key for key in self._live_keys() if fnmatch.fnmatchcase(key, pattern)]
        for key in matched:
            self.delete(key)
        return len(matched)

    def exists(self, key: str) -> bool:
        self._purge(key)
        return key in self._data

    def ttl(self, key: str) -> int:
        self._purge(key)
        if key not in self._data:
            return -2
        if key not in self._expires:
            return -1
        return max(int(self._expires[key] - self._now()), 0)

    def expire(self, key: str, seconds: int) -> bool:
        self._purge(key)
        if key not in self._data:
            return False
        self._expires[key] = self._now() + seconds
        return True

    def incr(self, key: str) -> int:
        self._purge(key)
        value = int(self._data.get(key, "0")) + 1
        self._data[key] = str(value)
        return value

    def decr(self, key: str) -> int:
        self._purge(key)
        value = int(self._data.get(key, "0")) - 1
        self._data[key] = str(value)
        return value

    def set_json(self, key: str, value: dict | list, expire_seconds: int | None = None) -> None:
        self.set(key, json.dumps(value), expire_seconds)

    def get_json(self, key: str) -> dict | list | None:
        value = self.get(key)
        return None if value is None else json.loads(value)

    def keys(self, pattern: str = "*") -> list[str]:
        return [key for key in self._live_keys() if fnmatch.fnmatchcase(key, pattern)]

    def close(self) -> None:
        pass


class FakeAuthDatabase:
    """In-memory AuthDatabase with the same unique-email rule as the index."""

    def __init__(self):
        self.users: dict[UUID, UserRecord] = {}

    def get_user_by_email(self, email: str) -> UserRecord | None:
        for record in self.users.values():
            if record.email == email.lower():
                return record
        return None

    def get_user_by_id(self, user_id: UUID) -> UserRecord | None:
        return self.users.get(user_id)

    def create_user(
        self,
        email: str,
        password_hash: str,
        phone: str | None = None,
        full_name: str | None = None,
        role: UserRole = UserRole.USER,
    ) -> UserRecord:
        if self.get_user_by_email(email) is not None:
            raise ConflictError("Email already registered")
        record = UserRecord(
            id=uuid4(),
            email=email.lower(),
            password_hash=password_hash,
            phone=phone,
            full_name=full_name,
            role=role,
            preferences={},
            created_at=now_utc(),
        )
        self.users[record.id] = record
        return record

    def update_last_login(self, user_id: UUID) -> None:
        if user_id in self.users:
            self.users[user_id] = self.users[user_id].model_copy(update={"last_login_at": now_utc()})

    def update_password_hash(self, user_id: UUID, password_hash: str) -> bool:
        if user_id not in self.users:
            return False
        self.users[user_id] = self.users[user_id].model_copy(update={"password_hash": password_hash})
        return True

    def update_profile(
        self,
        user_id: UUID,
        phone: str | None = None,
        full_name: str | None = None,
    ) -> User | None:
        record = self.users.get(user_id)
        if record is None:
            return None
        changes = {}
        if phone is not None:
            changes["phone"] = phone
        if full_name is not None:
            changes["full_name"] = full_name
        self.users[user_id] = record.model_copy(update=changes)
        return self.users[user_id].sanitize()

    def merge_preferences(self, user_id: UUID, preferences: dict) -> User | None:
        record = self.users.get(user_id)
        if record is None:
            return None
        merged = {**record.preferences, **preferences}
        self.users[user_id] = record.model_copy(update={"preferences": merged})
        return self.users[user_id].sanitize()


# =============================================================================
# CORE FIXTURES
# =============================================================================


@pytest.fixture
def auth_config() -> AuthConfig:
    """Auth config with the cheapest bcrypt cost."""
    return AuthConfig(bcrypt_rounds=4, app_base_url="https://portal.example.com")


@pytest.fixture
def valkey() -> FakeValkey:
    return FakeValkey()


@pytest.fixture
def auth_db() -> FakeAuthDatabase:
    return FakeAuthDatabase()


@pytest.fixture
def hasher(auth_config) -> PasswordHasher:
    return PasswordHasher(auth_config)


@pytest.fixture
def token_secrets() -> dict[str, str]:
    return {"access": TEST_ACCESS_SECRET, "refresh": TEST_REFRESH_SECRET}


@pytest.fixture
def tokens(auth_config) -> TokenService:
    return TokenService(auth_config, TEST_ACCESS_SECRET, TEST_REFRESH_SECRET)


@pytest.fixture
def blacklist(valkey) -> TokenBlacklist:
    return TokenBlacklist(valkey)


@pytest.fixture
def reset_tokens(valkey, auth_config) -> ResetTokenStore:
    return ResetTokenStore(valkey, auth_config.password_reset_expiry_minutes * 60)


@pytest.fixture
def mock_notifier():
    """Mock reset notifier - records the raw tokens handed out."""
    return Mock(spec=PasswordResetNotifier)


@pytest.fixture
def mock_security_logger():
    return Mock(spec=SecurityLogger)


@pytest.fixture
def auth_service(
    auth_config, auth_db, tokens, blacklist, reset_tokens, hasher, mock_notifier, mock_security_logger
) -> AuthService:
    return AuthService(
        config=auth_config,
        auth_db=auth_db,
        tokens=tokens,
        blacklist=blacklist,
        reset_tokens=reset_tokens,
        hasher=hasher,
        notifier=mock_notifier,
        security_logger=mock_security_logger,
    )


@pytest.fixture
def make_user(auth_db, hasher):
    """Factory that stores a user directly, bypassing registration."""

    def _make(
        email: str = "user@example.com",
        password: str = STRONG_PASSWORD,
        role: UserRole = UserRole.USER,
        full_name: str | None = "Test User",
    ) -> UserRecord:
        return auth_db.create_user(
            email=email,
            password_hash=hasher.hash(password),
            full_name=full_name,
            role=role,
        )

    return _make


# =============================================================================
# APP & CLIENT FIXTURES
# =============================================================================


@pytest.fixture
def api_config() -> APIConfig:
    return APIConfig()


@pytest.fixture
def mock_postgres():
    mock = Mock(spec=PostgresClient)
    mock.ping.return_value = True
    return mock


@pytest.fixture
def app(api_config, auth_config, auth_service, auth_db, valkey, mock_postgres):
    """Fully wired app over in-memory stores."""
    return create_app(
        api_config=api_config,
        auth_service=auth_service,
        profile_service=ProfileService(auth_db),
        cache=ResponseCache(valkey, api_config.cache_ttl_seconds),
        api_limiter=RateLimiter(valkey, api_policy(auth_config)),
        login_limiter=RateLimiter(valkey, login_policy(auth_config)),
        postgres=mock_postgres,
        valkey=valkey,
    )


@pytest.fixture
def client(app):
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture
def bearer(tokens):
    """Authorization header for a stored user."""

    def _bearer(user: UserRecord) -> dict[str, str]:
        return {"Authorization": f"Bearer {tokens.issue_pair(user.id).access_token}"}

    return _bearer
