"""Database operations for authentication and user profiles.

Uses the users table. Emails are stored lower-case and a unique index on
email enforces one account per address even under concurrent registration.
"""

from typing import Any
from uuid import UUID

import psycopg2.errors

from clients.postgres_client import PostgresClient
from auth.exceptions import ConflictError
from auth.types import User, UserRecord, UserRole
from utils.timezone import now_utc

_USER_COLUMNS = (
    "id, email, password_hash, phone, full_name, role, preferences, "
    "last_login_at, created_at"
)


def _to_record(row: dict[str, Any]) -> UserRecord:
    return UserRecord(
        id=UUID(row["id"]) if isinstance(row["id"], str) else row["id"],
        email=row["email"],
        password_hash=row["password_hash"],
        phone=row["phone"],
        full_name=row["full_name"],
        role=UserRole(row["role"]),
        preferences=row["preferences"] or {},
        last_login_at=row["last_login_at"],
        created_at=row["created_at"],
    )


class AuthDatabase:
    """Database operations for authentication."""

    def __init__(self, postgres: PostgresClient):
        self._db = postgres

    def get_user_by_email(self, email: str) -> UserRecord | None:
        """Find user by email (case-insensitive)."""
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE lower(email) = lower(%s)",
            (email,),
        )
        if row is None:
            return None
        return _to_record(row)

    def get_user_by_id(self, user_id: UUID) -> UserRecord | None:
        """Find user by ID."""
        row = self._db.execute_single(
            f"SELECT {_USER_COLUMNS} FROM users WHERE id = %s",
            (user_id,),
        )
        if row is None:
            return None
        return _to_record(row)

    def create_user(
        self,
        email: str,
        password_hash: str,
        phone: str | None = None,
        full_name: str | None = None,
        role: UserRole = UserRole.USER,
    ) -> UserRecord:
        """Insert a new user (email lowercased).

        Raises:
            ConflictError: If the email is already registered.
        """
        try:
            rows = self._db.execute_returning(
                f"""INSERT INTO users (email, password_hash, phone, full_name, role, preferences)
                    VALUES (lower(%s), %s, %s, %s, %s, %s)
                    RETURNING {_USER_COLUMNS}""",
                (email, password_hash, phone, full_name, role.value, {}),
            )
        except psycopg2.errors.UniqueViolation:
            raise ConflictError("Email already registered")
        return _to_record(rows[0])

    def update_last_login(self, user_id: UUID) -> None:
        """Update last_login_at to current time."""
        self._db.execute_returning(
            "UPDATE users SET last_login_at = %s WHERE id = %s RETURNING id",
            (now_utc(), user_id),
        )

    def update_password_hash(self, user_id: UUID, password_hash: str) -> bool:
        """Replace the stored password hash.

        Returns:
            True if user was found and updated, False if not found.
        """
        rows = self._db.execute_returning(
            "UPDATE users SET password_hash = %s, updated_at = %s WHERE id = %s RETURNING id",
            (password_hash, now_utc(), user_id),
        )
        return len(rows) > 0

    def update_profile(
        self,
        user_id: UUID,
        phone: str | None = None,
        full_name: str | None = None,
    ) -> User | None:
        """Update phone and/or full name. Fields left as None are unchanged.

        Returns:
            Updated user, or None if not found.
        """
        rows = self._db.execute_returning(
            f"""UPDATE users
                SET phone = COALESCE(%s, phone),
                    full_name = COALESCE(%s, full_name),
                    updated_at = %s
                WHERE id = %s
                RETURNING {_USER_COLUMNS}""",
            (phone, full_name, now_utc(), user_id),
        )
        if not rows:
            return None
        return _to_record(rows[0]).sanitize()

    def merge_preferences(self, user_id: UUID, preferences: dict[str, Any]) -> User | None:
        """Shallow-merge preferences into the stored map.

        Returns:
            Updated user, or None if not found.
        """
        rows = self._db.execute_returning(
            f"""UPDATE users
                SET preferences = COALESCE(preferences, '{{}}'::jsonb) || %s::jsonb,
                    updated_at = %s
                WHERE id = %s
                RETURNING {_USER_COLUMNS}""",
            (preferences, now_utc(), user_id),
        )
        if not rows:
            return None
        return _to_record(rows[0]).sanitize()
