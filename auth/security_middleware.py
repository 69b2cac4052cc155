"""Security middleware for FastAPI - bearer token validation and role checks."""

from typing import Callable

from fastapi import Request
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from api.base import error_response, render, request_id_of
from auth.exceptions import AuthenticationError, AuthorizationError
from auth.service import AuthService
from auth.types import User, UserRole
from utils.network import get_bearer_token


def public_auth_paths(api_prefix: str) -> list[str]:
    """Auth endpoints reachable without an access token."""
    return [
        f"{api_prefix}/auth/register",
        f"{api_prefix}/auth/login",
        f"{api_prefix}/auth/refresh",
        f"{api_prefix}/auth/request-password-reset",
        f"{api_prefix}/auth/reset-password",
    ]


class AuthMiddleware(BaseHTTPMiddleware):
    """Middleware that validates the bearer access token.

    For protected routes (everything under protected_root except
    public_paths):
    1. Extracts the token from 'Authorization: Bearer <token>'
    2. Verifies it and loads the user via AuthService
    3. Sets request.state.user for handlers and dependencies

    Paths outside protected_root (health, docs) bypass authentication.
    """

    def __init__(
        self,
        app,
        auth_service: AuthService,
        protected_root: str = "/api/v1",
        public_paths: list[str] | None = None,
    ):
        super().__init__(app)
        self._auth_service = auth_service
        self._protected_root = protected_root
        self._public_paths = public_paths if public_paths is not None else public_auth_paths(protected_root)

    def _is_public_path(self, path: str) -> bool:
        """Check if path skips authentication."""
        if not path.startswith(self._protected_root):
            return True
        path = path.rstrip("/")
        for public_path in self._public_paths:
            if path == public_path or (public_path.endswith("/") and path.startswith(public_path)):
                return True
        return False

    def _unauthorized(self, request: Request, exc: AuthenticationError):
        return render(
            error_response(exc.code, exc.message, request_id=request_id_of(request)),
            status_code=exc.status_code,
            headers={"WWW-Authenticate": "Bearer"},
        )

    async def dispatch(self, request: Request, call_next):
        """Process request through middleware."""
        if self._is_public_path(request.url.path):
            return await call_next(request)

        token = get_bearer_token(request)
        if not token:
            return self._unauthorized(
                request, AuthenticationError("Not authorized to access this route")
            )

        try:
            user = await run_in_threadpool(self._auth_service.authenticate, token)
        except AuthenticationError as exc:
            return self._unauthorized(request, exc)

        request.state.user = user
        return await call_next(request)


def current_user(request: Request) -> User:
    """FastAPI dependency: the user resolved by AuthMiddleware.

    Raises:
        AuthenticationError: If the route was reached without authentication.
    """
    user = getattr(request.state, "user", None)
    if user is None:
        raise AuthenticationError("Not authenticated")
    return user


def require_roles(*roles: UserRole) -> Callable[[Request], User]:
    """FastAPI dependency factory restricting a route to given roles.

    Usage:
        @router.get("/{user_id}", dependencies=[Depends(require_roles(UserRole.ADMIN))])
    """

    def dependency(request: Request) -> User:
        user = current_user(request)
        if user.role not in roles:
            raise AuthorizationError(f"Role {user.role.value} is not authorized")
        return user

    return dependency
