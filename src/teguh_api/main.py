"""FastAPI application entry point."""

import logging
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from datetime import date

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError

from teguh_api import __version__
from teguh_api.auth.gate import AuthenticationGate
from teguh_api.auth.tokens import TokenService
from teguh_api.config import Settings, get_settings
from teguh_api.errors.handlers import register_exception_handlers
from teguh_api.middleware.rate_limiter import IPRateLimitMiddleware
from teguh_api.middleware.usage import UsageTrackingMiddleware
from teguh_api.routes import (
    admin_router,
    ai_router,
    api_keys_router,
    auth_router,
    downloads_router,
    health_router,
    system_router,
    user_router,
)
from teguh_api.services.account_service import AccountService
from teguh_api.services.ai_service import AIService
from teguh_api.services.downloader_service import DownloaderService
from teguh_api.services.quota_ledger import QuotaLedger
from teguh_api.services.rate_limit_service import RateLimitService
from teguh_api.services.responder import Responder
from teguh_api.services.usage_recorder import UsageRecorder
from teguh_api.storage.credential_store import CredentialStore
from teguh_api.storage.database import DatabaseManager
from teguh_api.storage.lua_scripts import lua_scripts
from teguh_api.storage.redis_client import RedisManager
from teguh_api.utils.timeutils import utc_today

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def _lifespan(settings: Settings, clock: Callable[[], date]):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """
        Application lifespan handler.

        Handles startup and shutdown events:
        - Startup: open the database, create tables, wire services, connect Redis
        - Shutdown: close Redis and dispose of the engine
        """
        logger.info("Starting Teguh API v%s in %s mode", __version__, settings.api_env.value)

        db = DatabaseManager(settings)
        db.connect()
        await db.create_schema()

        store = CredentialStore(db, clock=clock)
        ledger = QuotaLedger(store, clock=clock)
        recorder = UsageRecorder(store, clock=clock)
        tokens = TokenService(settings)

        # Initialize Redis
        redis_manager = RedisManager(settings)
        if settings.redis_enabled:
            await redis_manager.connect()
            if redis_manager.client is not None:
                try:
                    await lua_scripts.load(redis_manager.client)
                    logger.info("Loaded Lua scripts into Redis")
                except RedisError as e:
                    logger.warning("Lua script load failed: %s", e)

        app.state.db = db
        app.state.redis_manager = redis_manager
        app.state.store = store
        app.state.ledger = ledger
        app.state.usage_recorder = recorder
        app.state.gate = AuthenticationGate(store, ledger, tokens)
        app.state.account_service = AccountService(store, ledger, recorder, tokens, settings)
        app.state.downloader_service = DownloaderService(settings)
        app.state.ai_service = AIService(settings)
        app.state.ip_rate_limiter = RateLimitService(
            limit=settings.ip_rate_limit_per_minute,
            window_seconds=60,
            redis=redis_manager.client,
        )

        yield

        # Shutdown
        logger.info("Shutting down Teguh API")
        await redis_manager.disconnect()
        lua_scripts.reset()
        await db.disconnect()

    return lifespan


def create_app(
    settings: Settings | None = None,
    clock: Callable[[], date] | None = None,
) -> FastAPI:
    """
    Create and configure the FastAPI application.

    Args:
        settings: Overrides the environment settings
        clock: Source of the current UTC date for quota rollover
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Teguh API",
        description=(
            "REST API gateway for social-media downloaders and AI chat.\n\n"
            "## Authentication\n"
            "- Resource endpoints under `/api` take an API key as `?api_key=` or the "
            "`x-api-key` header. Each key has a daily quota that resets at 00:00 UTC.\n"
            "- Account endpoints take `Authorization: Bearer <token>` from `/auth/login`.\n\n"
            "## Plans\n"
            "free (100 requests/day), basic (1000), premium (5000), enterprise (20000)"
        ),
        version=__version__,
        lifespan=_lifespan(settings, clock or utc_today),
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # Needed by the responder before the lifespan has finished (e.g. throttle rejections)
    app.state.settings = settings
    app.state.responder = Responder(settings)

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[
            "X-RateLimit-Limit",
            "X-RateLimit-Remaining",
            "X-RateLimit-Reset",
            "X-Request-ID",
            "Retry-After",
        ],
    )

    # Usage tracking sits inside the IP throttle
    app.add_middleware(UsageTrackingMiddleware)  # type: ignore[arg-type]
    app.add_middleware(IPRateLimitMiddleware)  # type: ignore[arg-type]

    # Register exception handlers
    register_exception_handlers(app)

    # Include routers
    app.include_router(health_router)
    app.include_router(auth_router)
    app.include_router(api_keys_router)
    app.include_router(user_router)
    app.include_router(admin_router)
    app.include_router(system_router, prefix=settings.api_prefix)
    app.include_router(downloads_router, prefix=settings.api_prefix)
    app.include_router(ai_router, prefix=settings.api_prefix)

    return app


# Create application instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "teguh_api.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=settings.api_env.value == "development",
    )
