"""Speech-recognition engine contract and adapters."""

from .base import AUTO_LANGUAGE, InferenceContext, ModelLoader, RecognitionModel, Segment

__all__ = ["AUTO_LANGUAGE", "InferenceContext", "ModelLoader", "RecognitionModel", "Segment"]
