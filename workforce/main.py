"""
Workforce Operations API.

Routers live under ``settings.api_prefix``; docs and health probes stay at
the root. Middleware runs CORS first, then correlation IDs, then request
logging.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from workforce.core.config import settings
from workforce.core.error_handlers import register_exception_handlers
from workforce.core.limiter import limiter
from workforce.core.logging import setup_logging
from workforce.core.middleware import CorrelationIdMiddleware, LoggingMiddleware
from workforce.database import init_db
from workforce.routers import health
from workforce.routers.api_router import api_router

setup_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.app_name} v{settings.version} ({settings.environment})")
    try:
        init_db()
    except Exception as e:
        logger.error(f"Database initialization failed: {e}")
        raise
    logger.info("Database ready")

    yield

    logger.info("Shutting down")


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.app_name,
        version=settings.version,
        description="Leave credit ledger, leave request workflow and biometric attendance import",
        lifespan=lifespan,
    )

    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    register_exception_handlers(app)

    # Last added runs first
    app.add_middleware(LoggingMiddleware)
    app.add_middleware(CorrelationIdMiddleware)
    origins = list(settings.cors_origins)
    if settings.environment == "development":
        origins += ["http://localhost", "http://127.0.0.1"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[settings.request_id_header, "X-Process-Time"],
    )

    app.include_router(health.router)
    app.include_router(api_router, prefix=settings.api_prefix)
    return app


app = create_app()
