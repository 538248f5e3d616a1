"""Gateway OAuth 2.1 Authorization Server."""

import asyncio
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from core.crypto.keys import KeyManager
from core.db.session import DatabaseSessionManager
from core.errors import StoreError
from core.observability.observability import (
    RequestContextMiddleware,
    setup_structlog_json,
)
from core.store.oauth_store import OAuthStore
from core.store.redis_store import RedisEphemeralStore
from core.utils.logging import get_logger
from gateway.config import Settings, settings as default_settings
from gateway.identity.clerk import ClerkIdentityDelegate
from gateway.security.access_token import AccessTokenVerifier
from gateway.services.cleanup_service import run_cleanup_loop, stop_cleanup_task

from .routers.authorize import router as authorize_router
from .routers.register import router as register_router
from .routers.token import router as token_router
from .routers.well_known import router as well_known_router

logger = get_logger(__name__)


def _build_store(settings: Settings) -> OAuthStore:
    db_manager = DatabaseSessionManager(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
    )
    db_manager.init(settings.DATABASE_URL)
    ephemeral = None
    if settings.REDIS_URL:
        ephemeral = RedisEphemeralStore.from_url(
            settings.REDIS_URL,
            max_connections=settings.REDIS_MAX_CONNECTIONS,
            socket_timeout=settings.STORE_TIMEOUT,
        )
    return OAuthStore(db_manager, ephemeral, timeout=settings.STORE_TIMEOUT)


def create_app(
    app_settings: Settings | None = None,
    *,
    key_manager: KeyManager | None = None,
    identity_delegate: ClerkIdentityDelegate | None = None,
) -> FastAPI:
    """Build the application; collaborators are created in the lifespan."""
    settings = app_settings or default_settings
    root_path = settings.APP_ROOT_PATH

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Startup/shutdown hooks."""
        setup_structlog_json(settings.LOG_LEVEL)
        settings.check_required()
        keys = key_manager or KeyManager.from_settings(settings)
        store = _build_store(settings)
        http = httpx.AsyncClient(timeout=settings.IDP_TIMEOUT)
        cleanup_task = None
        try:
            await store.init_schema()
            identity = identity_delegate
            if identity is None and settings.identity_enabled:
                identity = ClerkIdentityDelegate(
                    http,
                    secret_key=settings.CLERK_SECRET_KEY,
                    jwks_url=settings.CLERK_JWKS_URL,
                    timeout=settings.IDP_TIMEOUT,
                )

            app.state.settings = settings
            app.state.keys = keys
            app.state.store = store
            app.state.identity = identity
            app.state.access_token_verifier = AccessTokenVerifier(
                keys, store, issuer=settings.ISSUER, audience=settings.AUDIENCE
            )

            if store.uses_sql_ephemeral and settings.CLEANUP_INTERVAL > 0:
                cleanup_task = asyncio.create_task(
                    run_cleanup_loop(store, settings.CLEANUP_INTERVAL)
                )
            logger.info(
                "oauth.startup",
                issuer=settings.ISSUER,
                kid=keys.kid,
                redis=bool(settings.REDIS_URL),
                identity_provider=identity is not None,
            )
            yield
        finally:
            try:
                await stop_cleanup_task(cleanup_task)
            finally:
                await http.aclose()
                await store.close()

    app = FastAPI(
        title=settings.APP_TITLE,
        version=settings.APP_VERSION,
        openapi_url=f"{root_path}{settings.OPENAPI_URL}",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        root_path=root_path,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_methods=settings.CORS_ALLOW_METHODS,
        allow_headers=settings.CORS_ALLOW_HEADERS,
        allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    )
    app.add_middleware(RequestContextMiddleware)

    app.include_router(well_known_router)
    app.include_router(authorize_router)
    app.include_router(token_router)
    app.include_router(register_router)

    @app.get("/healthz")
    async def health_check():
        """Liveness."""
        return {"status": "ok"}

    @app.get("/readyz")
    async def readiness_check(request: Request):
        """Readiness; the store must answer."""
        try:
            await request.app.state.store.ping()
        except StoreError:
            return ORJSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={"status": "unavailable"},
            )
        return {"status": "ok"}

    @app.exception_handler(RequestValidationError)
    async def malformed_request(request: Request, ex: RequestValidationError):
        """Malformed input is a plain 400."""
        return ORJSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "detail": "malformed request",
                "errors": jsonable_encoder(ex.errors()),
            },
        )

    @app.exception_handler(StoreError)
    async def store_failure(request: Request, ex: StoreError):
        """Persistence failures surface as a generic 500."""
        logger.error("oauth.store_error", path=request.url.path, error=str(ex))
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "server_error"},
        )

    @app.exception_handler(Exception)
    async def log_unhandled_exception(request: Request, ex: Exception):
        """Log unhandled exceptions with request context."""
        logger.exception(
            "unhandled_exception",
            method=request.method,
            path=request.url.path,
        )
        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "server_error"},
        )

    return app


app = create_app()
