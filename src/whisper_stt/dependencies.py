"""FastAPI dependency injection providers.

Shared instances are created once by ``create_app`` and stored on
``app.state``; routes receive them through ``Depends()`` so tests can
build an app around a stub engine.
"""

from fastapi import Request

from .config.settings import Settings
from .core.lifecycle import ServiceLifecycle
from .core.transcriber import Transcriber


def get_settings(request: Request) -> Settings:
    """Get application settings."""
    return request.app.state.settings


def get_lifecycle(request: Request) -> ServiceLifecycle:
    """Get the model lifecycle manager."""
    return request.app.state.lifecycle


def get_transcriber(request: Request) -> Transcriber:
    """Get the transcription pipeline."""
    return request.app.state.transcriber
