"""Configuration loading for the whisper STT service."""
