"""Whisper speech-to-text HTTP service."""

__version__ = "1.0.0"
