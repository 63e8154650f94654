"""Middleware registration."""

from fastapi import FastAPI

from wadzzo.config import Settings
from wadzzo.middleware.cors import setup_cors
from wadzzo.middleware.error_handler import setup_error_handlers
from wadzzo.middleware.logging import setup_logging
from wadzzo.middleware.rate_limit import RateLimitMiddleware
from wadzzo.middleware.request_id import RequestIdMiddleware


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register all middleware in the correct order.

    Starlette runs middleware in reverse-add order (last added = outermost).
    CORS stays outermost so 429 responses from the rate limiter carry CORS headers.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    app.add_middleware(
        RateLimitMiddleware,
        requests_per_window=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
        strict_paths={"/api/v1/game/locations/consume": settings.rate_limit_consume},
    )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
