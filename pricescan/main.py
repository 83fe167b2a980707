from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from pricescan.api.v1.routes_health import router as health_router
from pricescan.api.v1.routes_parse import router as parse_router
from pricescan.application.services.factories import build_price_tag_adapter
from pricescan.core.config import get_settings
from pricescan.core.exceptions import ConfigurationError
from pricescan.core.logging import RequestIdMiddleware, configure_logging, get_logger

# Initialize settings and logging
settings = get_settings()
configure_logging(settings.LOG_LEVEL)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger = get_logger(__name__)
    try:
        app.state.price_tag_adapter = build_price_tag_adapter(settings)
    except ConfigurationError as exc:
        # Surfaced once here; /api/parse answers with the stable code afterwards.
        app.state.price_tag_adapter = None
        logger.error("recognition_not_configured", extra={"error": exc.error_code, "detail": exc.message})
    logger.info(
        "service_startup",
        extra={
            "env": settings.ENV,
            "log_level": settings.LOG_LEVEL,
            "model": settings.GEMINI_MODEL,
        },
    )
    try:
        yield
    finally:
        logger.info("service_shutdown")


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)

# Middlewares
app.add_middleware(RequestIdMiddleware)

# Routers
app.include_router(health_router)
app.include_router(parse_router)
