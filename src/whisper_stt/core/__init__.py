"""Transcription orchestration and service lifecycle."""
