"""Recognition engine backed by faster-whisper (CTranslate2).

faster-whisper is an optional dependency; the import is guarded and a
missing install surfaces as a model load failure.
"""

from pathlib import Path
from typing import FrozenSet, Iterator, Optional

import numpy as np

from ..exceptions import ModelLoadError
from ..utils.logging import get_logger
from .base import AUTO_LANGUAGE, Segment

try:
    from faster_whisper import WhisperModel
except ImportError:
    WhisperModel = None

logger = get_logger(__name__)

DEFAULT_BEAM_SIZE = 5


class FasterWhisperContext:
    """One transcription call against a shared WhisperModel."""

    def __init__(self, model, cpu_threads: int):
        self._model = model
        self._cpu_threads = cpu_threads
        self._language: Optional[str] = None
        self._task = "transcribe"
        self._word_timestamps = False
        self._segments: Optional[Iterator] = None
        self._info = None

    def configure(
        self,
        language: str,
        translate: bool,
        word_timestamps: bool,
        max_segment_length: int,
        thread_count: int,
    ) -> None:
        self._language = None if language == AUTO_LANGUAGE else language
        self._task = "translate" if translate else "transcribe"
        self._word_timestamps = word_timestamps
        if max_segment_length:
            logger.debug(
                "Segment length limit not supported by faster-whisper, ignoring",
                extra={"max_segment_length": max_segment_length},
            )
        if thread_count != self._cpu_threads:
            # CTranslate2 fixes its thread pool when the model is loaded
            logger.debug(
                "Thread count is fixed at load time",
                extra={"requested": thread_count, "loaded": self._cpu_threads},
            )

    def process(self, samples: np.ndarray) -> None:
        segments, info = self._model.transcribe(
            samples,
            language=self._language,
            task=self._task,
            word_timestamps=self._word_timestamps,
            beam_size=DEFAULT_BEAM_SIZE,
            vad_filter=False,
        )
        self._segments = iter(segments)
        self._info = info

    def next_segment(self) -> Optional[Segment]:
        if self._segments is None:
            raise RuntimeError("process() must be called before reading segments")
        # Segments are decoded lazily as the generator advances
        segment = next(self._segments, None)
        if segment is None:
            return None
        return Segment(start=segment.start, end=segment.end, text=segment.text)

    def detected_language(self) -> str:
        if self._info is None:
            return ""
        return self._info.language


class FasterWhisperModel:
    """Shared faster-whisper model handle."""

    def __init__(self, model, cpu_threads: int):
        self._model = model
        self._cpu_threads = cpu_threads
        self._languages = frozenset(model.supported_languages)

    def supported_languages(self) -> FrozenSet[str]:
        return self._languages

    def new_context(self) -> FasterWhisperContext:
        if self._model is None:
            raise RuntimeError("model has been closed")
        return FasterWhisperContext(self._model, self._cpu_threads)

    def close(self) -> None:
        self._model = None
        logger.info("faster-whisper model released")


def load_model(
    path: Path,
    device: str = "auto",
    compute_type: str = "default",
    cpu_threads: int = 4,
) -> FasterWhisperModel:
    """Load a CTranslate2 Whisper model from its ``model.bin``.

    Args:
        path: Path to the model binary; its directory holds the model
        device: "cpu", "cuda" or "auto"
        compute_type: CTranslate2 compute type
        cpu_threads: Worker threads for the engine's internal decode

    Raises:
        ModelLoadError: faster-whisper missing or the model failed to load
    """
    if WhisperModel is None:
        raise ModelLoadError(
            str(path),
            "faster-whisper is not installed. Install with: pip install whisper-stt[faster-whisper]",
        )

    try:
        model = WhisperModel(
            str(Path(path).parent),
            device=device,
            compute_type=compute_type,
            cpu_threads=cpu_threads,
        )
    except Exception as e:
        raise ModelLoadError(str(path), str(e)) from e

    logger.info(
        "Loaded faster-whisper model",
        extra={
            "path": str(path),
            "device": device,
            "compute_type": compute_type,
            "multilingual": model.model.is_multilingual,
        },
    )
    return FasterWhisperModel(model, cpu_threads)
