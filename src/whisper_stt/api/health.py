"""Service descriptor and health check endpoints."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from .. import __version__
from ..config.settings import Settings
from ..core.lifecycle import ServiceLifecycle
from ..dependencies import get_lifecycle, get_settings
from ..utils.logging import get_logger
from .models import HealthResponse, ServerInfo

logger = get_logger(__name__)
router = APIRouter()

ENDPOINTS = {
    "transcribe": "/transcribe",
    "health": "/health",
}


@router.get(
    "/",
    response_model=ServerInfo,
    summary="Service descriptor",
    description="Service name, version, loaded model and supported languages"
)
async def root(
    settings: Settings = Depends(get_settings),
    lifecycle: ServiceLifecycle = Depends(get_lifecycle)
) -> ServerInfo:
    """Describe the service."""
    return ServerInfo(
        service=settings.app_name,
        version=__version__,
        model=lifecycle.model_name,
        languages=sorted(lifecycle.supported_languages()),
        endpoints=ENDPOINTS,
    )


@router.get(
    "/health",
    response_model=HealthResponse,
    status_code=status.HTTP_200_OK,
    summary="Health check endpoint",
    description="Check if the model is loaded and the service can accept requests",
    responses={503: {"model": HealthResponse}},
)
async def health_check(lifecycle: ServiceLifecycle = Depends(get_lifecycle)):
    """Report healthy only once the model has finished loading."""
    if not lifecycle.is_ready:
        body = HealthResponse(status="unhealthy", model=lifecycle.model_name)
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=body.model_dump(),
        )

    return HealthResponse(status="healthy", model=lifecycle.model_name)
