"""Application factory: wires clients, services, middleware and routers."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from api.cache import ResponseCache
from api.config import APIConfig
from api.errors import register_error_handlers
from api.health import SERVICE_VERSION, create_health_router
from api.middleware import RateLimitMiddleware, RequestIDMiddleware
from api.users import ProfileService, create_users_router
from auth.api import create_auth_router
from auth.config import AuthConfig
from auth.database import AuthDatabase
from auth.passwords import PasswordHasher
from auth.rate_limiter import RateLimiter, api_policy, login_policy
from auth.security_logger import SecurityLogger
from auth.security_middleware import AuthMiddleware
from auth.service import AuthService
from auth.token_store import ResetTokenStore, TokenBlacklist
from auth.tokens import TokenService
from clients.email_client import EmailGatewayClient, PasswordResetNotifier
from clients.postgres_client import PostgresClient
from clients.valkey_client import ValkeyClient
from clients.vault_client import (
    get_database_url,
    get_email_config,
    get_jwt_secrets,
    get_valkey_url,
)

logger = logging.getLogger(__name__)


def create_app(
    api_config: APIConfig,
    auth_service: AuthService,
    profile_service: ProfileService,
    cache: ResponseCache,
    api_limiter: RateLimiter,
    login_limiter: RateLimiter,
    postgres: PostgresClient,
    valkey: ValkeyClient,
) -> FastAPI:
    """Assemble the FastAPI app from already-built services.

    Request order: RequestID -> RateLimit -> Auth -> route. The Postgres pool
    and the Valkey connection are closed on shutdown.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        logger.info("Shutting down: closing datastore connections")
        postgres.close()
        valkey.close()

    prefix = api_config.api_prefix
    app = FastAPI(title="Regional Portal API", version=SERVICE_VERSION, lifespan=lifespan)

    # add_middleware prepends: the last one added runs first
    app.add_middleware(AuthMiddleware, auth_service=auth_service, protected_root=prefix)
    app.add_middleware(
        RateLimitMiddleware,
        api_limiter=api_limiter,
        login_limiter=login_limiter,
        api_root=f"{prefix}/",
        login_paths=(f"{prefix}/auth/login", f"{prefix}/auth/register"),
    )
    app.add_middleware(RequestIDMiddleware)
    register_error_handlers(app, production=api_config.is_production)

    app.include_router(create_auth_router(auth_service), prefix=f"{prefix}/auth")
    app.include_router(create_users_router(profile_service, cache, prefix), prefix=f"{prefix}/users")
    app.include_router(create_health_router(postgres, valkey))

    logger.info(f"App created: environment={api_config.environment} prefix={prefix}")
    return app


def build_app_from_vault(
    api_config: APIConfig | None = None,
    auth_config: AuthConfig | None = None,
) -> FastAPI:
    """Build every client from Vault secrets and return the wired app.

    Fails fast: any missing secret or unreachable datastore raises here.
    """
    api_config = api_config or APIConfig.from_env()
    auth_config = auth_config or AuthConfig()

    postgres = PostgresClient(get_database_url())
    valkey = ValkeyClient(get_valkey_url())

    jwt_secrets = get_jwt_secrets()
    tokens = TokenService(
        auth_config,
        access_secret=jwt_secrets["access_secret"],
        refresh_secret=jwt_secrets["refresh_secret"],
    )

    email = get_email_config()
    notifier = PasswordResetNotifier(
        EmailGatewayClient(
            gateway_url=email["gateway_url"],
            api_key=email["api_key"],
            hmac_secret=email["hmac_secret"],
        ),
        app_url=auth_config.app_base_url,
        app_name=auth_config.app_name,
    )

    auth_db = AuthDatabase(postgres)
    auth_service = AuthService(
        config=auth_config,
        auth_db=auth_db,
        tokens=tokens,
        blacklist=TokenBlacklist(valkey),
        reset_tokens=ResetTokenStore(valkey, auth_config.password_reset_expiry_minutes * 60),
        hasher=PasswordHasher(auth_config),
        notifier=notifier,
        security_logger=SecurityLogger(postgres),
    )

    return create_app(
        api_config=api_config,
        auth_service=auth_service,
        profile_service=ProfileService(auth_db),
        cache=ResponseCache(valkey, api_config.cache_ttl_seconds),
        api_limiter=RateLimiter(valkey, api_policy(auth_config)),
        login_limiter=RateLimiter(valkey, login_policy(auth_config)),
        postgres=postgres,
        valkey=valkey,
    )
