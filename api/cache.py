"""Response caching for GET endpoints, stored in Valkey.

Handlers opt in by routing their response through ResponseCache.serve().
Only successful responses are stored: if the handler raises, nothing is
written and the error handlers take over. Writes invalidate by key prefix.

Entries hold the message and data of the envelope. The meta block is
rebuilt for every request, so a hit carries its own request id.
"""

import logging
from typing import Callable

from fastapi import Request
from starlette.responses import JSONResponse

from api.base import APIResponse, request_id_of, success_response
from clients.valkey_client import ValkeyClient

logger = logging.getLogger(__name__)


class ResponseCache:
    """Caches successful response payloads by request path and query."""

    KEY_PREFIX = "cache:"

    def __init__(self, valkey: ValkeyClient, default_ttl_seconds: int = 300):
        self._valkey = valkey
        self._default_ttl = default_ttl_seconds

    def key_for(self, request: Request, path: str | None = None) -> str:
        """Cache key for path (default: the request path) plus query string.

        Handlers whose path parameters have more than one spelling pass the
        canonical path, so the key matches what invalidate() is given.
        """
        path = path or request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        return f"{self.KEY_PREFIX}{path}"

    def serve(
        self,
        request: Request,
        produce: Callable[[], APIResponse],
        ttl_seconds: int | None = None,
        path: str | None = None,
    ) -> JSONResponse:
        """Return the cached response for request, or produce and cache it.

        Non-GET requests bypass the cache entirely.
        """
        if request.method != "GET":
            return self._render(produce())

        key = self.key_for(request, path)
        cached = self._valkey.get_json(key)
        if cached is not None:
            logger.debug(f"Cache hit: {key}")
            payload = success_response(cached["data"], cached["message"], request_id_of(request))
            return self._render(payload, cache_status="HIT")

        logger.debug(f"Cache miss: {key}")
        payload = produce()
        content = payload.model_dump(mode="json", by_alias=True, include={"message", "data"})
        self._valkey.set_json(key, content, expire_seconds=ttl_seconds or self._default_ttl)
        return self._render(payload, cache_status="MISS")

    def _render(self, payload: APIResponse, cache_status: str | None = None) -> JSONResponse:
        headers = {"X-Cache": cache_status} if cache_status else None
        return JSONResponse(content=payload.model_dump(mode="json", by_alias=True), headers=headers)

    def invalidate(self, path_prefix: str) -> int:
        """Drop every cached response whose path starts with path_prefix.

        Returns number of entries removed.
        """
        removed = self._valkey.delete_pattern(f"{self.KEY_PREFIX}{path_prefix}*")
        if removed:
            logger.debug(f"Invalidated {removed} cached responses under {path_prefix}")
        return removed
