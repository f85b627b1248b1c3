"""Response models shared by the API routes."""

from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class SegmentResponse(BaseModel):
    """One timed segment of a transcription."""
    start: float = Field(..., description="Segment start in seconds")
    end: float = Field(..., description="Segment end in seconds")
    text: str = Field(..., description="Segment text")


class TranscriptionResponse(BaseModel):
    """Transcription result, also used as the error envelope."""
    success: bool
    transcription: str = ""
    segments: List[SegmentResponse] = Field(default_factory=list)
    language: str = ""
    model: str = ""
    duration: float = 0.0
    error: Optional[str] = None


class ServerInfo(BaseModel):
    """Service descriptor returned at the root path."""
    service: str
    version: str
    model: str
    languages: List[str]
    endpoints: Dict[str, str]


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str
    model: str


def error_envelope(message: str) -> dict:
    """Build the JSON body for a failed transcription."""
    return TranscriptionResponse(success=False, error=message).model_dump(exclude_none=True)
