"""Transcription orchestration over the shared recognition model."""

import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple

import numpy as np

from ..audio.container import decode_container
from ..audio.normalizer import normalize
from ..engine.base import RecognitionModel, Segment
from ..exceptions import (
    ContextUnavailableError,
    ProcessingFailedError,
    SegmentReadFailedError,
)
from ..utils.logging import get_logger
from .lifecycle import ServiceLifecycle

logger = get_logger(__name__)

# Fixed engine parameters applied to every request
ENGINE_THREADS = 4
TRANSLATE = False
WORD_TIMESTAMPS = True
MAX_SEGMENT_LENGTH = 0  # unbounded

EXPECTED_SAMPLE_RATE = 16000


@dataclass(frozen=True, eq=False)
class InferenceRequest:
    """Parameters for a single engine call."""

    samples: np.ndarray
    language: str
    translate: bool = TRANSLATE
    word_timestamps: bool = WORD_TIMESTAMPS
    max_segment_length: int = MAX_SEGMENT_LENGTH
    thread_count: int = ENGINE_THREADS


@dataclass(frozen=True)
class TranscriptionResult:
    """Aggregated engine output for one request."""

    text: str
    segments: Tuple[Segment, ...]
    language: str
    duration: float
    model: str
    processing_time: float = field(default=0.0, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the response body shape."""
        return {
            "success": True,
            "transcription": self.text,
            "segments": [
                {"start": s.start, "end": s.end, "text": s.text} for s in self.segments
            ],
            "language": self.language,
            "model": self.model,
            "duration": self.duration,
        }


def run_inference(
    model: RecognitionModel,
    request: InferenceRequest,
    model_name: str,
) -> TranscriptionResult:
    """Drive one inference context from creation to aggregated result.

    The context is private to this call. Any failure aborts the call and
    nothing collected so far is returned.

    Args:
        model: Shared model handle
        request: Samples and engine parameters
        model_name: Name reported in the result

    Returns:
        Aggregated transcription

    Raises:
        ContextUnavailableError: Context could not be created
        ProcessingFailedError: Engine rejected or failed on the samples
        SegmentReadFailedError: Reading the segment output failed
    """
    start_time = time.time()

    try:
        context = model.new_context()
    except Exception as e:
        raise ContextUnavailableError(str(e)) from e

    context.configure(
        language=request.language,
        translate=request.translate,
        word_timestamps=request.word_timestamps,
        max_segment_length=request.max_segment_length,
        thread_count=request.thread_count,
    )

    try:
        context.process(request.samples)
    except Exception as e:
        raise ProcessingFailedError(str(e)) from e

    segments: List[Segment] = []
    duration = 0.0
    while True:
        try:
            segment = context.next_segment()
        except Exception as e:
            raise SegmentReadFailedError(str(e)) from e
        if segment is None:
            break

        segments.append(Segment(start=segment.start, end=segment.end, text=segment.text.strip()))
        if segment.end > duration:
            duration = segment.end

    return TranscriptionResult(
        text=" ".join(s.text for s in segments),
        segments=tuple(segments),
        language=context.detected_language(),
        duration=duration,
        model=model_name,
        processing_time=time.time() - start_time,
    )


class Transcriber:
    """Runs the decode, normalize and inference pipeline for uploads."""

    def __init__(self, lifecycle: ServiceLifecycle):
        """Initialize transcriber.

        Args:
            lifecycle: Owner of the shared model handle
        """
        self.lifecycle = lifecycle

    @property
    def model_name(self) -> str:
        return self.lifecycle.model_name

    def transcribe(self, samples: np.ndarray, language: str) -> TranscriptionResult:
        """Transcribe normalized samples.

        Args:
            samples: float32 samples
            language: Language code, or "auto" to let the engine detect it

        Returns:
            Aggregated transcription
        """
        request = InferenceRequest(samples=samples, language=language)
        with self.lifecycle.borrow() as model:
            result = run_inference(model, request, self.model_name)

        logger.info(
            "Transcription complete",
            extra={
                "segments": len(result.segments),
                "text_length": len(result.text),
                "language": result.language,
                "duration": result.duration,
                "processing_time": round(result.processing_time, 3),
            },
        )
        return result

    def process_audio(self, audio_bytes: bytes, language: str) -> TranscriptionResult:
        """Transcribe an uploaded WAVE file.

        Args:
            audio_bytes: Complete uploaded file
            language: Language code, or "auto"

        Returns:
            Aggregated transcription
        """
        container = decode_container(audio_bytes)
        if container.sample_rate != EXPECTED_SAMPLE_RATE:
            logger.warning(
                "Audio sample rate differs from what the model expects, not resampling",
                extra={
                    "sample_rate": container.sample_rate,
                    "expected": EXPECTED_SAMPLE_RATE,
                },
            )
        if container.channel_count > 1:
            logger.warning(
                "Multi-channel audio is processed as a single interleaved stream",
                extra={"channels": container.channel_count},
            )

        samples = normalize(container.payload, container.bits_per_sample)

        logger.info(
            "Processing audio",
            extra={
                "size_bytes": len(audio_bytes),
                "samples": len(samples),
                "sample_rate": container.sample_rate,
                "audio_duration": round(container.duration, 3),
                "language": language,
            },
        )
        return self.transcribe(samples, language)
