"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from wadzzo.bounty.router import router as bounty_router
from wadzzo.config import get_settings
from wadzzo.database import close_db, init_db
from wadzzo.game.router import router as game_router
from wadzzo.health.router import router as health_router
from wadzzo.middleware import setup_middleware
from wadzzo.notifications.router import router as notifications_router
from wadzzo.redis_client import close_redis, init_redis


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Wadzzo Game API",
        description="Location-based pin collection, bounties and reward payouts",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(game_router)
    app.include_router(bounty_router)
    app.include_router(notifications_router)

    return app


app = create_app()
