"""Typed exceptions for the whisper STT service.

Hierarchy:
    WhisperSTTError (base)
    +-- DecodeError
    |   +-- TruncatedContainerError
    |   +-- NotAContainerError
    |   +-- NoPayloadChunkError
    |   +-- SizeMismatchError
    |   +-- UnsupportedEncodingError
    +-- NormalizeError
    |   +-- UnsupportedFormatError
    +-- OrchestrationError
    |   +-- ContextUnavailableError
    |   +-- ProcessingFailedError
    |   +-- SegmentReadFailedError
    +-- GatewayError (carries an HTTP status code)
    |   +-- BadFormError
    |   +-- MissingFileError
    |   +-- FileTooLargeError
    |   +-- UnsupportedExtensionError
    |   +-- UnsupportedLanguageError
    |   +-- ModelNotReadyError
    +-- LifecycleError
        +-- ModelLoadError
"""


class WhisperSTTError(Exception):
    """Base for all service exceptions."""


# --- Audio container ---


class DecodeError(WhisperSTTError):
    """Uploaded bytes are not a usable WAVE container."""


class TruncatedContainerError(DecodeError):
    def __init__(self, size: int, minimum: int):
        self.size = size
        self.minimum = minimum
        super().__init__(
            f"invalid WAV file: too short ({size} bytes, need at least {minimum})"
        )


class NotAContainerError(DecodeError):
    def __init__(self):
        super().__init__("invalid WAV file: not a valid WAVE file")


class NoPayloadChunkError(DecodeError):
    def __init__(self):
        super().__init__("invalid WAV file: no data chunk found")


class SizeMismatchError(DecodeError):
    def __init__(self, declared: int, available: int):
        self.declared = declared
        self.available = available
        super().__init__(
            f"invalid WAV file: data chunk declares {declared} bytes "
            f"but only {available} remain"
        )


class UnsupportedEncodingError(DecodeError):
    def __init__(self, audio_format: int):
        self.audio_format = audio_format
        super().__init__(
            f"invalid WAV file: unsupported encoding (format tag 0x{audio_format:04x}, "
            f"only PCM is supported)"
        )


# --- Sample normalization ---


class NormalizeError(WhisperSTTError):
    """PCM payload cannot be converted to float samples."""


class UnsupportedFormatError(NormalizeError):
    def __init__(self, bits_per_sample: int):
        self.bits_per_sample = bits_per_sample
        super().__init__(
            f"unsupported audio format: {bits_per_sample}-bit PCM "
            f"(only 16-bit is supported)"
        )


# --- Transcription ---


class OrchestrationError(WhisperSTTError):
    """Recognition engine failed while serving a request."""


class ContextUnavailableError(OrchestrationError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"failed to create context: {reason}")


class ProcessingFailedError(OrchestrationError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"failed to process audio: {reason}")


class SegmentReadFailedError(OrchestrationError):
    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(f"failed to get segment: {reason}")


# --- HTTP gateway ---


class GatewayError(WhisperSTTError):
    """Request rejected at the HTTP boundary."""

    status_code = 400


class BadFormError(GatewayError):
    def __init__(self, reason: str = ""):
        self.reason = reason
        super().__init__("Failed to parse form")


class MissingFileError(GatewayError):
    def __init__(self):
        super().__init__("No file provided")


class FileTooLargeError(GatewayError):
    status_code = 413

    def __init__(self, size_bytes: int, max_bytes: int):
        self.size_bytes = size_bytes
        self.max_bytes = max_bytes
        super().__init__("File too large")


class UnsupportedExtensionError(GatewayError):
    def __init__(self, filename: str):
        self.filename = filename
        super().__init__("Invalid file type. Only WAV files are supported")


class UnsupportedLanguageError(GatewayError):
    def __init__(self, language: str):
        self.language = language
        super().__init__(f"Unsupported language: {language}")


class ModelNotReadyError(GatewayError):
    status_code = 503

    def __init__(self, state: str):
        self.state = state
        super().__init__(f"Model is not ready (state: {state})")


# --- Lifecycle ---


class LifecycleError(WhisperSTTError):
    """Service could not reach or leave a serving state."""


class ModelLoadError(LifecycleError):
    def __init__(self, model_path: str, reason: str):
        self.model_path = model_path
        self.reason = reason
        super().__init__(f"failed to load model '{model_path}': {reason}")
