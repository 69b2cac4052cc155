"""Liveness endpoint reporting datastore and cache reachability."""

import logging
from typing import Callable

from fastapi import APIRouter, Request

from api.base import error_response, request_id_of, success_response, render, ErrorCodes
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from utils.timezone import now_utc

logger = logging.getLogger(__name__)

SERVICE_NAME = "regional-portal"
SERVICE_VERSION = "1.0.0"


def _check(name: str, probe: Callable[[], bool]) -> str:
    try:
        return "ok" if probe() else "unavailable"
    except Exception as e:
        logger.error(f"Health check failed for {name}: {e}")
        return "unavailable"


def create_health_router(postgres: PostgresClient, valkey: ValkeyClient) -> APIRouter:
    """Create health router. Unversioned and public."""
    router = APIRouter(tags=["health"])

    @router.get("/health")
    def health(request: Request):
        """200 when every dependency answers, 503 otherwise."""
        checks = {
            "database": _check("database", postgres.ping),
            "cache": _check("cache", valkey.ping),
        }
        healthy = all(state == "ok" for state in checks.values())
        data = {
            "status": "ok" if healthy else "degraded",
            "service": SERVICE_NAME,
            "version": SERVICE_VERSION,
            "timestamp": now_utc().isoformat(),
            "checks": checks,
        }
        if healthy:
            return render(success_response(data, "Service healthy", request_id_of(request)))

        payload = error_response(ErrorCodes.SERVICE_UNAVAILABLE, "Service degraded", request_id=request_id_of(request))
        payload.data = data
        return render(payload, status_code=503)

    return router
