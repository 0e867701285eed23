"""
Application factory.

``create_app`` wires every long-lived component from one Settings object
and stores them on ``app.state``:
- settings, engine, session_factory
- kv_store, token_service, rate_limiter
- cipher, completion_client

Tests pass their own settings, store and HTTP client; production uses
``brandmind.asgi:app``.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy.ext.asyncio import AsyncEngine

import brandmind
from brandmind.api.routes import admin, auth, chat, content, health
from brandmind.config.settings import Settings
from brandmind.credentials.encryption import CredentialCipher
from brandmind.database.session import create_engine, create_session_factory, create_tables
from brandmind.middleware.rate_limit import DailyRateLimiter
from brandmind.middleware.security_headers import SecurityHeadersMiddleware
from brandmind.platform.errors import ErrorHandlerMiddleware, register_exception_handlers
from brandmind.services.completion_client import CompletionClient
from brandmind.services.key_value_store import KeyValueStore, create_key_value_store
from brandmind.services.token_service import TokenService
from brandmind.services.token_store import RefreshTokenStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await create_tables(app.state.engine)
    logger.info("BrandMind API started", extra={"version": brandmind.__version__})
    try:
        yield
    finally:
        await app.state.completion_client.close()
        await app.state.kv_store.close()
        await app.state.engine.dispose()
        logger.info("BrandMind API stopped")


def create_app(
    settings: Optional[Settings] = None,
    kv_store: Optional[KeyValueStore] = None,
    http_client: Optional[httpx.AsyncClient] = None,
    engine: Optional[AsyncEngine] = None,
) -> FastAPI:
    settings = settings or Settings.from_env()

    app = FastAPI(
        title="BrandMind API",
        version=brandmind.__version__,
        lifespan=lifespan,
    )

    engine = engine or create_engine(settings.database_url)
    kv_store = kv_store or create_key_value_store(settings.redis_url)
    refresh_store = RefreshTokenStore(kv_store, settings.jwt_secret, settings.refresh_token_ttl_seconds)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.kv_store = kv_store
    app.state.token_service = TokenService(settings, refresh_store)
    app.state.rate_limiter = DailyRateLimiter(kv_store, default_limit=settings.default_daily_limit)
    app.state.cipher = CredentialCipher(settings.encryption_key)
    app.state.completion_client = CompletionClient(settings, http_client=http_client)

    register_exception_handlers(app)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(ErrorHandlerMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(admin.router)
    app.include_router(content.router)
    app.include_router(chat.router)
    return app
