"""Request-scoped middleware for API requests."""

import logging
import time
from uuid import uuid4

from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request

from api.base import error_response, render, request_id_of
from auth.exceptions import RateLimitedError
from auth.rate_limiter import RateLimiter
from utils.network import get_client_ip

logger = logging.getLogger(__name__)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Assigns a unique request ID to every request and logs it."""

    async def dispatch(self, request: Request, call_next):
        request_id = str(uuid4())
        request.state.request_id = request_id
        started = time.monotonic()
        response = await call_next(request)
        elapsed_ms = (time.monotonic() - started) * 1000
        logger.info(
            f"{request.method} {request.url.path} {response.status_code} "
            f"{elapsed_ms:.0f}ms ip={get_client_ip(request)} request_id={request_id}"
        )
        response.headers["X-Request-ID"] = request_id
        return response


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Per-client budgets for the API and for login/register.

    Every request under api_root counts against the general limiter.
    Requests to login_paths also count against the login limiter; those
    that succeed (status < 400) are refunded, so only failures use it up.
    """

    def __init__(
        self,
        app,
        api_limiter: RateLimiter,
        login_limiter: RateLimiter,
        api_root: str = "/api/",
        login_paths: tuple[str, ...] = ("/api/v1/auth/login", "/api/v1/auth/register"),
    ):
        super().__init__(app)
        self._api_limiter = api_limiter
        self._login_limiter = login_limiter
        self._api_root = api_root
        self._login_paths = login_paths

    def _rejected(self, request: Request, exc: RateLimitedError):
        logger.warning(f"Rate limited {get_client_ip(request)} on {request.url.path}")
        return render(
            error_response(
                exc.code,
                "Too many requests from this IP, please try again later.",
                exc.details,
                request_id_of(request),
            ),
            status_code=exc.status_code,
            headers={"Retry-After": str(exc.retry_after_seconds)},
        )

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if not path.startswith(self._api_root):
            return await call_next(request)

        client_id = get_client_ip(request) or "unknown"
        is_login = path.rstrip("/") in self._login_paths

        try:
            remaining = await run_in_threadpool(self._api_limiter.hit, client_id)
            if is_login:
                await run_in_threadpool(self._login_limiter.hit, client_id)
        except RateLimitedError as exc:
            return self._rejected(request, exc)

        response = await call_next(request)

        if is_login and response.status_code < 400:
            await run_in_threadpool(self._login_limiter.refund, client_id)

        response.headers["RateLimit-Limit"] = str(self._api_limiter.policy.limit)
        response.headers["RateLimit-Remaining"] = str(remaining)
        return response
