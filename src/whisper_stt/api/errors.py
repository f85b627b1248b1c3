"""HTTP exception handlers.

Maps typed service exceptions to the transcription envelope with
``success: false`` and the matching status code.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from ..exceptions import (
    DecodeError,
    GatewayError,
    NormalizeError,
    OrchestrationError,
    WhisperSTTError,
)
from ..utils.logging import get_logger
from .metrics import error_count
from .models import error_envelope

logger = get_logger(__name__)

INTERNAL_ERROR_MESSAGE = "Internal server error"


def error_response(status_code: int, message: str) -> JSONResponse:
    """Create a JSON error envelope response."""
    return JSONResponse(status_code=status_code, content=error_envelope(message))


async def _handle_gateway_error(request: Request, exc: GatewayError) -> JSONResponse:
    logger.warning(
        "Request rejected",
        extra={
            "path": request.url.path,
            "error": str(exc),
            "error_type": type(exc).__name__,
            "status": exc.status_code,
        },
    )
    error_count.labels(error_type=type(exc).__name__).inc()
    return error_response(exc.status_code, str(exc))


async def _handle_pipeline_error(request: Request, exc: WhisperSTTError) -> JSONResponse:
    logger.error(
        "Failed to process audio",
        extra={
            "path": request.url.path,
            "error": str(exc),
            "error_type": type(exc).__name__,
        },
    )
    error_count.labels(error_type=type(exc).__name__).inc()
    return error_response(500, str(exc))


def register_error_handlers(app: FastAPI) -> None:
    """Register all exception handlers on the FastAPI app."""
    app.add_exception_handler(GatewayError, _handle_gateway_error)
    app.add_exception_handler(DecodeError, _handle_pipeline_error)
    app.add_exception_handler(NormalizeError, _handle_pipeline_error)
    app.add_exception_handler(OrchestrationError, _handle_pipeline_error)
    app.add_exception_handler(WhisperSTTError, _handle_pipeline_error)
