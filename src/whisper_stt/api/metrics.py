"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import (
    Counter, Histogram, Gauge,
    generate_latest, CONTENT_TYPE_LATEST,
    CollectorRegistry
)

from ..utils.logging import get_logger

logger = get_logger(__name__)

# Create a custom registry to avoid conflicts
registry = CollectorRegistry()

request_count = Counter(
    'whisper_stt_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status'],
    registry=registry
)

request_duration = Histogram(
    'whisper_stt_request_duration_seconds',
    'Request duration in seconds',
    ['method', 'endpoint'],
    registry=registry
)

active_requests = Gauge(
    'whisper_stt_active_requests',
    'Number of active requests',
    registry=registry
)

stt_processing_duration = Histogram(
    'whisper_stt_processing_duration_seconds',
    'Engine processing duration in seconds',
    ['model'],
    registry=registry
)

model_load_time = Gauge(
    'whisper_stt_model_load_time_seconds',
    'Time taken to load the model',
    ['model'],
    registry=registry
)

audio_duration = Histogram(
    'whisper_stt_audio_duration_seconds',
    'Duration of transcribed audio in seconds',
    registry=registry
)

error_count = Counter(
    'whisper_stt_errors_total',
    'Total number of errors',
    ['error_type'],
    registry=registry
)

router = APIRouter()


@router.get(
    "/metrics",
    response_class=Response,
    summary="Prometheus metrics",
    description="Expose metrics in Prometheus format"
)
async def metrics():
    """Return metrics in Prometheus format."""
    return Response(
        content=generate_latest(registry),
        media_type=CONTENT_TYPE_LATEST
    )
