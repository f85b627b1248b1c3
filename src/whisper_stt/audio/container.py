"""WAVE container parsing."""

import struct
from dataclasses import dataclass

from ..exceptions import (
    NoPayloadChunkError,
    NotAContainerError,
    SizeMismatchError,
    TruncatedContainerError,
    UnsupportedEncodingError,
)
from ..utils.logging import get_logger

logger = get_logger(__name__)

# Canonical RIFF header + fmt chunk + data chunk header
MIN_HEADER_SIZE = 44
CHUNK_HEADER_SIZE = 8
FIRST_CHUNK_OFFSET = 12
MIN_FMT_CHUNK_SIZE = 16

WAVE_FORMAT_PCM = 1
WAVE_FORMAT_EXTENSIBLE = 0xFFFE
PCM_FORMATS = frozenset({WAVE_FORMAT_PCM, WAVE_FORMAT_EXTENSIBLE})

# Assumed when a container has no fmt chunk ahead of its data chunk
DEFAULT_SAMPLE_RATE = 16000
DEFAULT_BITS_PER_SAMPLE = 16
DEFAULT_CHANNELS = 1

_CHUNK_HEADER = struct.Struct("<4sI")
_FMT_FIELDS = struct.Struct("<HHIIHH")


@dataclass(frozen=True)
class AudioContainer:
    """A parsed WAVE container.

    ``data_offset`` and ``data_length`` locate the PCM payload inside
    ``buffer``; the payload always lies fully within the buffer.
    """

    buffer: bytes
    sample_rate: int
    bits_per_sample: int
    channel_count: int
    audio_format: int
    data_offset: int
    data_length: int

    @property
    def payload(self) -> bytes:
        """Raw PCM bytes of the data chunk."""
        return self.buffer[self.data_offset:self.data_offset + self.data_length]

    @property
    def duration(self) -> float:
        """Nominal duration in seconds from the header fields."""
        bytes_per_second = self.sample_rate * self.channel_count * (self.bits_per_sample // 8)
        if bytes_per_second <= 0:
            return 0.0
        return self.data_length / bytes_per_second


def decode_container(buffer: bytes) -> AudioContainer:
    """Parse a RIFF/WAVE buffer and locate its PCM payload.

    Chunks are walked using their declared sizes so a ``data`` tag that
    happens to appear inside another chunk's body is never matched.

    Args:
        buffer: Complete uploaded file

    Returns:
        Parsed container

    Raises:
        TruncatedContainerError: Buffer shorter than a minimal header
        NotAContainerError: RIFF/WAVE tags missing
        NoPayloadChunkError: No data chunk found
        SizeMismatchError: Data chunk runs past the end of the buffer
        UnsupportedEncodingError: fmt chunk declares a non-PCM encoding
    """
    buffer = bytes(buffer)
    if len(buffer) < MIN_HEADER_SIZE:
        raise TruncatedContainerError(len(buffer), MIN_HEADER_SIZE)

    if buffer[0:4] != b"RIFF" or buffer[8:12] != b"WAVE":
        raise NotAContainerError()

    sample_rate = DEFAULT_SAMPLE_RATE
    bits_per_sample = DEFAULT_BITS_PER_SAMPLE
    channel_count = DEFAULT_CHANNELS
    audio_format = WAVE_FORMAT_PCM
    seen_fmt = False

    pos = FIRST_CHUNK_OFFSET
    while pos + CHUNK_HEADER_SIZE <= len(buffer):
        chunk_id, chunk_size = _CHUNK_HEADER.unpack_from(buffer, pos)
        body = pos + CHUNK_HEADER_SIZE
        remaining = len(buffer) - body

        if chunk_id == b"data":
            if chunk_size > remaining:
                raise SizeMismatchError(chunk_size, remaining)
            if audio_format not in PCM_FORMATS:
                raise UnsupportedEncodingError(audio_format)
            if not seen_fmt:
                logger.warning(
                    "No fmt chunk before data chunk, assuming defaults",
                    extra={
                        "sample_rate": sample_rate,
                        "bits_per_sample": bits_per_sample,
                        "channels": channel_count,
                    },
                )
            return AudioContainer(
                buffer=buffer,
                sample_rate=sample_rate,
                bits_per_sample=bits_per_sample,
                channel_count=channel_count,
                audio_format=audio_format,
                data_offset=body,
                data_length=chunk_size,
            )

        if chunk_id == b"fmt " and MIN_FMT_CHUNK_SIZE <= chunk_size <= remaining:
            (
                audio_format,
                channel_count,
                sample_rate,
                _byte_rate,
                _block_align,
                bits_per_sample,
            ) = _FMT_FIELDS.unpack_from(buffer, body)
            seen_fmt = True

        # RIFF chunks are padded to an even length
        pos = body + chunk_size + (chunk_size & 1)

    raise NoPayloadChunkError()
