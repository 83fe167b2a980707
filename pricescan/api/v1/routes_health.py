from fastapi import APIRouter, Request

from pricescan.core.config import get_settings
from pricescan.core.logging import get_logger
from pricescan.models.schemas import HealthResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Liveness check: process is up."""
    settings = get_settings()
    logger = get_logger(__name__)
    logger.info("health", extra={"path": str(request.url.path)})
    return HealthResponse(status="ok", service=settings.APP_NAME)


@router.get("/ready", response_model=HealthResponse)
async def ready(request: Request):
    """Readiness check: degraded when the recognition model is not configured."""
    settings = get_settings()
    logger = get_logger(__name__)
    configured = getattr(request.app.state, "price_tag_adapter", None) is not None
    logger.info("ready", extra={"path": str(request.url.path), "configured": configured})
    return HealthResponse(status="ok" if configured else "degraded", service=settings.APP_NAME)
