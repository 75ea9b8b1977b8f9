"""
Car Rental API - Main Application Entry Point

Fleet catalog, availability search and bookings for a car rental business:
- Availability and booking creation share one overlap rule
- Per-vehicle optimistic locking so two clients can't rent the same car
- Redis caching of the public catalog
- Structured logging with request correlation and Prometheus metrics
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.middleware import RequestLoggingMiddleware
from app.api.router import api_router
from app.core.config import get_settings
from app.core.exceptions import register_exception_handlers
from app.core.logging import get_logger, setup_logging
from app.core.metrics import metrics_endpoint
from app.db.session import engine
from app.services import cache_service

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    logger = get_logger(__name__)
    logger.info(
        "car_rental_api_starting",
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        cache_enabled=settings.REDIS_ENABLED,
    )

    if settings.REDIS_ENABLED and await cache_service.get_redis() is None:
        logger.warning("catalog_cache_offline", detail="vehicle listings will be served from the database")

    try:
        yield
    finally:
        await cache_service.close_redis()
        await engine.dispose()
        logger.info("car_rental_api_stopped")


def create_app() -> FastAPI:
    application = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Car rental API with availability search and double-booking protection",
        lifespan=lifespan,
    )

    # Starlette runs middleware last-added first; request logging wraps CORS
    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["X-Request-ID", "X-Response-Time"],
    )
    application.add_middleware(RequestLoggingMiddleware)

    register_exception_handlers(application)
    application.include_router(api_router)

    @application.get("/health", tags=["Health"])
    async def health():
        return {
            "status": "healthy",
            "version": settings.APP_VERSION,
            "environment": settings.ENVIRONMENT,
            "cache": await cache_service.get_cache_stats(),
        }

    @application.get("/metrics", include_in_schema=False)
    async def metrics():
        return metrics_endpoint()

    @application.get("/", tags=["Root"])
    async def index():
        return {"service": settings.APP_NAME, "version": settings.APP_VERSION, "docs": "/docs"}

    return application


app = create_app()
