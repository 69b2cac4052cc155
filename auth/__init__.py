"""Authentication and authorization modules."""

from auth.exceptions import (
    AppError,
    ErrorRecord,
    ValidationError,
    AuthenticationError,
    InvalidTokenError,
    AuthorizationError,
    NotFoundError,
    ConflictError,
    RateLimitedError,
)
from auth.types import (
    User,
    UserRecord,
    UserRole,
    TokenPair,
    AuthenticatedUser,
)
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.passwords import PasswordHasher
from auth.tokens import TokenService
from auth.token_store import TokenBlacklist, ResetTokenStore
from auth.rate_limiter import RateLimiter, RateLimitPolicy
from auth.security_logger import SecurityLogger, SecurityEvent
from auth.service import AuthService
from auth.security_middleware import AuthMiddleware, current_user, require_roles
from auth.api import create_auth_router
