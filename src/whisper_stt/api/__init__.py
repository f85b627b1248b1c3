"""
API module for the whisper STT service.

This module contains the HTTP endpoints, middleware and error handlers
of the speech-to-text gateway.
"""

from . import health, metrics, stt

__all__ = ["health", "metrics", "stt"]
