"""FastAPI application entry point.

This module configures the FastAPI application with:
- LINE authentication middleware (challenge + callback)
- API v1 router with the authentication endpoints
- Redis lifecycle management (when the Redis correlation store is used)
- Health check endpoint

Run with:
    uvicorn line_login.main:create_app --factory
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from line_login.api.v1.api import api_router
from line_login.core.config import Settings, settings as default_settings
from line_login.core.redis import RedisConnection
from line_login.middleware.line_auth import LineAuthenticationMiddleware
from line_login.security.correlation import (
    CookieCorrelationStore,
    CorrelationStore,
    RedisCorrelationStore,
)
from line_login.security.sign_in import JWTCookieSignInManager, SignInManager
from line_login.services.line_handler import LineAuthenticationHandler
from line_login.services.oauth import BaseOAuthClient
from line_login.services.options import LineAuthenticationOptions

logger = logging.getLogger(__name__)


def create_correlation_store(
    config: Settings, redis_connection: Optional[RedisConnection] = None
) -> CorrelationStore:
    """Build the correlation store selected by CORRELATION_STORE."""
    if config.CORRELATION_STORE == "redis":
        connection = redis_connection or RedisConnection(
            config.REDIS_URL, config.REDIS_MAX_CONNECTIONS
        )
        return RedisCorrelationStore(connection, ttl=config.CORRELATION_TTL_SECONDS)
    return CookieCorrelationStore(max_age=config.CORRELATION_TTL_SECONDS)


def create_app(
    options: Optional[LineAuthenticationOptions] = None,
    *,
    config: Optional[Settings] = None,
    correlation_store: Optional[CorrelationStore] = None,
    sign_in_manager: Optional[SignInManager] = None,
    client: Optional[BaseOAuthClient] = None,
) -> FastAPI:
    """Build the application.

    Args:
        options: LINE handler options (defaults to options built from settings)
        config: Settings to read (defaults to the global settings)
        correlation_store: Correlation store (defaults to CORRELATION_STORE)
        sign_in_manager: Sign-in machinery (defaults to the JWT cookie manager)
        client: LINE OAuth client (defaults to LineOAuthClient)

    Raises:
        OAuthConfigurationError: If the LINE configuration is invalid
    """
    config = config or default_settings
    options = options or LineAuthenticationOptions.from_settings(config)
    correlation_store = correlation_store or create_correlation_store(config)
    sign_in_manager = sign_in_manager or JWTCookieSignInManager(
        secret_key=config.JWT_SECRET_KEY,
        algorithm=config.JWT_ALGORITHM,
        cookie_name=config.AUTH_COOKIE_NAME,
        expire_minutes=config.AUTH_COOKIE_EXPIRE_MINUTES,
        secure=config.AUTH_COOKIE_SECURE,
    )

    handler = LineAuthenticationHandler(
        options,
        correlation_store=correlation_store,
        sign_in_manager=sign_in_manager,
        client=client,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager for startup/shutdown events."""
        # Startup
        logger.info(f"Starting {config.PROJECT_NAME}...")

        connection = getattr(correlation_store, "connection", None)
        if connection is not None:
            try:
                await connection.connect()
                logger.info("Redis connection pool initialized")
            except Exception as e:
                logger.error(f"Failed to initialize Redis: {e}")

        yield  # Application is running

        # Shutdown
        logger.info(f"Shutting down {config.PROJECT_NAME}...")

        if connection is not None:
            try:
                await connection.close()
                logger.info("Redis connection pool closed")
            except Exception as e:
                logger.error(f"Error during shutdown: {e}")

    app = FastAPI(
        title=config.PROJECT_NAME,
        description="LINE Login external authentication",
        version=config.VERSION,
        lifespan=lifespan,
    )

    app.state.sign_in_manager = sign_in_manager
    app.state.line_authentication_type = options.authentication_type
    app.state.line_handler = handler

    app.add_middleware(LineAuthenticationMiddleware, handler=handler)

    # Include API v1 router
    app.include_router(api_router, prefix=config.API_V1_PREFIX)

    @app.get("/api/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "ok", "service": "line-login"}

    return app
