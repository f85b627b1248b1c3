"""Shared pytest fixtures for whisper STT tests."""

import struct
import threading
from typing import List, Optional, Sequence, Tuple

import pytest
from fastapi.testclient import TestClient

from whisper_stt.config.settings import APIConfig, ModelConfig, Settings
from whisper_stt.engine.base import AUTO_LANGUAGE, Segment


class StubContext:
    """Inference context that replays canned segments."""

    def __init__(self, model: "StubModel"):
        self.model = model
        self.configured: Optional[dict] = None
        self.processed = None
        self.calls: List[str] = []
        self._index = 0

    def configure(self, language, translate, word_timestamps, max_segment_length, thread_count):
        self.calls.append("configure")
        self.configured = {
            "language": language,
            "translate": translate,
            "word_timestamps": word_timestamps,
            "max_segment_length": max_segment_length,
            "thread_count": thread_count,
        }

    def process(self, samples):
        self.calls.append("process")
        if self.model.barrier is not None:
            self.model.barrier.wait(timeout=5)
        if self.model.process_error is not None:
            raise self.model.process_error
        self.processed = samples

    def next_segment(self):
        self.calls.append("next_segment")
        if self.model.fail_at_segment is not None and self._index == self.model.fail_at_segment:
            raise RuntimeError("segment decode failed")
        if self._index >= len(self.model.segments):
            return None
        segment = self.model.segments[self._index]
        self._index += 1
        return segment

    def detected_language(self):
        self.calls.append("detected_language")
        if self.configured and self.configured["language"] != AUTO_LANGUAGE:
            return self.configured["language"]
        return self.model.detected


class StubModel:
    """Recognition model double that records every context it hands out."""

    def __init__(
        self,
        segments: Sequence[Segment] = (),
        languages: Sequence[str] = ("en", "de", "fr"),
        detected: str = "en",
    ):
        self.segments = list(segments)
        self.languages = frozenset(languages)
        self.detected = detected
        self.contexts: List[StubContext] = []
        self.closed = False
        self.barrier: Optional[threading.Barrier] = None
        self.process_error: Optional[Exception] = None
        self.fail_at_segment: Optional[int] = None
        self.context_error: Optional[Exception] = None
        self._lock = threading.Lock()

    def supported_languages(self):
        return self.languages

    def new_context(self):
        if self.context_error is not None:
            raise self.context_error
        context = StubContext(self)
        with self._lock:
            self.contexts.append(context)
        return context

    def close(self):
        self.closed = True


def build_wav(
    payload: bytes,
    sample_rate: int = 16000,
    channels: int = 1,
    bits_per_sample: int = 16,
    extra_chunks: Sequence[Tuple[bytes, bytes]] = (),
    declared_data_size: Optional[int] = None,
    include_fmt: bool = True,
    audio_format: int = 1,
) -> bytes:
    """Build a RIFF/WAVE file around a PCM payload."""
    chunks = b""
    if include_fmt:
        block_align = channels * bits_per_sample // 8
        fmt = struct.pack(
            "<HHIIHH",
            audio_format,
            channels,
            sample_rate,
            sample_rate * block_align,
            block_align,
            bits_per_sample,
        )
        chunks += b"fmt " + struct.pack("<I", len(fmt)) + fmt
    for chunk_id, body in extra_chunks:
        chunks += chunk_id + struct.pack("<I", len(body)) + body
        if len(body) % 2:
            chunks += b"\x00"
    size = len(payload) if declared_data_size is None else declared_data_size
    chunks += b"data" + struct.pack("<I", size) + payload
    return b"RIFF" + struct.pack("<I", 4 + len(chunks)) + b"WAVE" + chunks


@pytest.fixture
def make_wav():
    """Return the WAV builder."""
    return build_wav


@pytest.fixture
def silence_wav():
    """One second of 16-bit mono silence at 16 kHz."""
    return build_wav(b"\x00\x00" * 16000)


@pytest.fixture
def hello_segments():
    return [Segment(start=0.0, end=1.0, text="hello")]


@pytest.fixture
def make_stub_model():
    """Return the stub engine class for tests that need custom segments."""
    return StubModel


@pytest.fixture
def stub_model(hello_segments):
    """Stub engine that yields a single 'hello' segment."""
    return StubModel(segments=hello_segments)


@pytest.fixture
def test_settings(tmp_path):
    """Settings pointing at a model file that exists."""
    model = ModelConfig(name="base.en", models_dir=tmp_path / "models")
    model.path.parent.mkdir(parents=True)
    model.path.write_bytes(b"stub model")

    return Settings(
        environment="test",
        log_format="console",
        model=model,
        api=APIConfig(host="127.0.0.1", port=8080, shutdown_grace_period=1.0),
    )


@pytest.fixture
def test_app(test_settings, stub_model):
    """FastAPI app wired to the stub engine."""
    from whisper_stt.main import create_app

    return create_app(settings=test_settings, model_loader=lambda path: stub_model)


@pytest.fixture
def test_client(test_app):
    """Return FastAPI test client with the model loaded."""
    with TestClient(test_app) as client:
        yield client
