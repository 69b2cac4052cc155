"""Authentication service - orchestrates the credential/token lifecycle."""

import logging
from typing import Protocol
from uuid import UUID

from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.exceptions import (
    AuthenticationError,
    ConflictError,
    InvalidTokenError,
    NotFoundError,
)
from auth.passwords import PasswordHasher, check_email, normalize_email
from auth.security_logger import SecurityEvent, SecurityLogger
from auth.token_store import ResetTokenStore, TokenBlacklist
from auth.tokens import ACCESS, REFRESH, TokenService
from auth.types import AuthenticatedUser, TokenPair, User
from clients.email_client import EmailGatewayError

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class ResetNotifier(Protocol):
    """Delivers a raw password reset token to the account owner."""

    def send_reset_email(self, email: str, token: str) -> None: ...


class AuthService:
    """Orchestrates registration, login, token rotation and password flows.

    Handles:
    - Registration and login (with enumeration protection)
    - Refresh token rotation with blacklisting
    - Logout
    - Password change and one-time reset tokens

    Every user value returned here is sanitized; password hashes never
    leave this class.
    """

    def __init__(
        self,
        config: AuthConfig,
        auth_db: AuthDatabase,
        tokens: TokenService,
        blacklist: TokenBlacklist,
        reset_tokens: ResetTokenStore,
        hasher: PasswordHasher,
        notifier: ResetNotifier,
        security_logger: SecurityLogger,
    ):
        self._config = config
        self._auth_db = auth_db
        self._tokens = tokens
        self._blacklist = blacklist
        self._reset_tokens = reset_tokens
        self._hasher = hasher
        self._notifier = notifier
        self._security_logger = security_logger

    def register(
        self,
        email: str,
        password: str,
        phone: str | None = None,
        full_name: str | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthenticatedUser:
        """Create an account and sign the user in.

        Raises:
            ValidationError: If email syntax is invalid or password is weak.
            ConflictError: If the email is already registered (any case).
        """
        email = check_email(email)
        self._hasher.check_strength(password)

        if self._auth_db.get_user_by_email(email) is not None:
            raise ConflictError("Email already registered")

        password_hash = self._hasher.hash(password)

        # A concurrent registration can still win the race; the unique index
        # turns that into ConflictError inside create_user.
        record = self._auth_db.create_user(
            email=email,
            password_hash=password_hash,
            phone=phone,
            full_name=full_name,
        )

        tokens = self._tokens.issue_pair(record.id)

        self._security_logger.log(
            SecurityEvent.USER_REGISTERED,
            email=record.email,
            user_id=record.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(f"New user registered: {record.email}")

        return AuthenticatedUser.from_pair(record.sanitize(), tokens)

    def login(
        self,
        email: str,
        password: str,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> AuthenticatedUser:
        """Check credentials and issue a fresh token pair.

        Unknown email and wrong password fail identically.

        Raises:
            AuthenticationError: If credentials don't match.
        """
        email = normalize_email(email or "")
        record = self._auth_db.get_user_by_email(email) if email else None

        if record is None:
            self._hasher.verify_dummy(password or "")
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=email or None,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": "user_not_found"},
            )
            raise AuthenticationError(INVALID_CREDENTIALS)

        if not self._hasher.verify(password or "", record.password_hash):
            self._security_logger.log(
                SecurityEvent.LOGIN_FAILED,
                email=record.email,
                user_id=record.id,
                ip_address=ip_address,
                user_agent=user_agent,
                details={"reason": "wrong_password"},
            )
            raise AuthenticationError(INVALID_CREDENTIALS)

        self._auth_db.update_last_login(record.id)
        tokens = self._tokens.issue_pair(record.id)

        self._security_logger.log(
            SecurityEvent.LOGIN_SUCCEEDED,
            email=record.email,
            user_id=record.id,
            ip_address=ip_address,
            user_agent=user_agent,
        )
        logger.info(f"User logged in: {record.email}")

        # Refresh user to get updated last_login_at
        user = self._auth_db.get_user_by_id(record.id) or record
        return AuthenticatedUser.from_pair(user.sanitize(), tokens)

    def refresh(
        self,
        refresh_token: str,
        ip_address: str | None = None,
    ) -> TokenPair:
        """Exchange a refresh token for a new pair (rotation on use).

        The presented token is blacklisted before the new pair is issued,
        with a set-if-absent write: of two concurrent refreshes of the same
        token only one succeeds.

        Raises:
            AuthenticationError: If the token is invalid, expired, of the
                wrong type, or has already been used or logged out.
        """
        try:
            user_id = self._tokens.verify(refresh_token, REFRESH)
            remaining = self._tokens.remaining_seconds(refresh_token, REFRESH)
        except InvalidTokenError as e:
            self._security_logger.log(
                SecurityEvent.REFRESH_REJECTED,
                ip_address=ip_address,
                details={"reason": e.message},
            )
            raise AuthenticationError("Invalid or expired refresh token")

        if not self._blacklist.claim(refresh_token, remaining):
            self._security_logger.log(
                SecurityEvent.REFRESH_REJECTED,
                user_id=user_id,
                ip_address=ip_address,
                details={"reason": "token_reused"},
            )
            raise AuthenticationError("Invalid or expired refresh token")

        tokens = self._tokens.issue_pair(user_id)

        self._security_logger.log(
            SecurityEvent.TOKEN_REFRESHED,
            user_id=user_id,
            ip_address=ip_address,
        )
        return tokens

    def logout(
        self,
        user_id: UUID,
        refresh_token: str | None,
        ip_address: str | None = None,
    ) -> None:
        """Blacklist the refresh token, if any.

        Safe to call with a missing, invalid or already-blacklisted token.
        """
        if refresh_token:
            try:
                ttl = self._tokens.remaining_seconds(refresh_token, REFRESH)
            except InvalidTokenError:
                # Can't read its expiry; keep it for a full refresh lifetime.
                ttl = self._config.refresh_token_seconds
            self._blacklist.add(refresh_token, ttl)

        self._security_logger.log(
            SecurityEvent.LOGGED_OUT,
            user_id=user_id,
            ip_address=ip_address,
        )
        logger.info(f"User logged out: {user_id}")

    def change_password(
        self,
        user_id: UUID,
        current_password: str,
        new_password: str,
    ) -> None:
        """Replace the password after checking the current one.

        Raises:
            ValidationError: If new_password is weak.
            AuthenticationError: If user is missing or current_password is wrong.
        """
        self._hasher.check_strength(new_password)

        record = self._auth_db.get_user_by_id(user_id)
        if record is None:
            raise AuthenticationError("User not found")

        if not self._hasher.verify(current_password or "", record.password_hash):
            self._security_logger.log(
                SecurityEvent.PASSWORD_CHANGE_FAILED,
                email=record.email,
                user_id=record.id,
                details={"reason": "wrong_password"},
            )
            raise AuthenticationError("Current password is incorrect")

        self._auth_db.update_password_hash(record.id, self._hasher.hash(new_password))

        self._security_logger.log(
            SecurityEvent.PASSWORD_CHANGED,
            email=record.email,
            user_id=record.id,
        )
        logger.info(f"Password changed for user: {user_id}")

    def request_password_reset(
        self,
        email: str,
        ip_address: str | None = None,
    ) -> None:
        """Email a one-time reset token if the account exists.

        Returns the same way whether or not the email is registered, and
        whether or not delivery succeeded, so callers can't probe accounts.
        """
        email = normalize_email(email or "")
        record = self._auth_db.get_user_by_email(email) if email else None

        if record is None:
            logger.info("Password reset requested for unknown email")
            return

        token = self._reset_tokens.issue(record.id)

        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET_REQUESTED,
            email=record.email,
            user_id=record.id,
            ip_address=ip_address,
        )

        try:
            self._notifier.send_reset_email(record.email, token)
        except EmailGatewayError as e:
            logger.error(f"Password reset email to {record.email} failed: {e}")
            self._security_logger.log(
                SecurityEvent.PASSWORD_RESET_FAILED,
                email=record.email,
                user_id=record.id,
                ip_address=ip_address,
                details={"reason": "email_delivery_failed"},
            )

    def reset_password(
        self,
        token: str,
        new_password: str,
        ip_address: str | None = None,
    ) -> None:
        """Redeem a reset token and set a new password.

        Raises:
            ValidationError: If new_password is weak.
            AuthenticationError: If token was never issued, expired, or used.
        """
        self._hasher.check_strength(new_password)
        password_hash = self._hasher.hash(new_password)

        user_id = self._reset_tokens.redeem(token)
        if user_id is None or not self._auth_db.update_password_hash(user_id, password_hash):
            self._security_logger.log(
                SecurityEvent.PASSWORD_RESET_FAILED,
                user_id=user_id,
                ip_address=ip_address,
                details={"reason": "invalid_token"},
            )
            raise InvalidTokenError("Invalid or expired reset token")

        self._security_logger.log(
            SecurityEvent.PASSWORD_RESET_COMPLETED,
            user_id=user_id,
            ip_address=ip_address,
        )
        logger.info(f"Password reset for user: {user_id}")

    def get_profile(self, user_id: UUID) -> User:
        """Current stored profile.

        Raises:
            NotFoundError: If the user no longer exists.
        """
        record = self._auth_db.get_user_by_id(user_id)
        if record is None:
            raise NotFoundError("User")
        return record.sanitize()

    def authenticate(self, access_token: str) -> User:
        """Resolve a bearer access token to its (still existing) user.

        Raises:
            AuthenticationError: If the token is invalid or the user is gone.
        """
        user_id = self._tokens.verify(access_token, ACCESS)
        record = self._auth_db.get_user_by_id(user_id)
        if record is None:
            raise AuthenticationError("User no longer exists")
        return record.sanitize()
