"""Recognition engine contract.

The transcription pipeline talks to the speech-recognition engine only
through these protocols. A loaded model is shared by every request; each
request opens its own inference context from it.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Callable, FrozenSet, Optional, Protocol

import numpy as np

AUTO_LANGUAGE = "auto"


@dataclass(frozen=True)
class Segment:
    """A time-bounded span of recognized speech."""

    start: float
    end: float
    text: str


class InferenceContext(Protocol):
    """Per-call, stateful handle into the engine. Never shared between calls."""

    def configure(
        self,
        language: str,
        translate: bool,
        word_timestamps: bool,
        max_segment_length: int,
        thread_count: int,
    ) -> None:
        ...

    def process(self, samples: np.ndarray) -> None:
        """Run inference over the whole sample buffer."""
        ...

    def next_segment(self) -> Optional[Segment]:
        """Return the next segment, or None once the output is exhausted."""
        ...

    def detected_language(self) -> str:
        ...


class RecognitionModel(Protocol):
    """Loaded model shared read-only by concurrent requests."""

    def supported_languages(self) -> FrozenSet[str]:
        ...

    def new_context(self) -> InferenceContext:
        ...

    def close(self) -> None:
        ...


ModelLoader = Callable[[Path], RecognitionModel]
