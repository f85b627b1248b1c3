"""
Audio ingestion for the whisper STT service.

Parses uploaded WAVE containers and converts their 16-bit PCM payload into
the float32 samples the recognition engine consumes.
"""

from .container import AudioContainer, decode_container
from .normalizer import normalize

__all__ = ["AudioContainer", "decode_container", "normalize"]
