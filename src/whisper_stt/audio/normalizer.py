"""PCM to float sample conversion."""

import numpy as np

from ..exceptions import UnsupportedFormatError

SUPPORTED_BITS_PER_SAMPLE = 16
INT16_SCALE = 32768.0


def normalize(payload: bytes, bits_per_sample: int) -> np.ndarray:
    """Convert little-endian PCM bytes to float32 samples in [-1.0, 1.0).

    Channels are not de-interleaved: multi-channel payloads come out as one
    flat stream. A trailing byte that does not complete a sample is dropped.

    Args:
        payload: Raw PCM bytes
        bits_per_sample: Sample width declared by the container

    Returns:
        float32 array with ``len(payload) // 2`` samples

    Raises:
        UnsupportedFormatError: Sample width is not 16 bits
    """
    if bits_per_sample != SUPPORTED_BITS_PER_SAMPLE:
        raise UnsupportedFormatError(bits_per_sample)

    sample_count = len(payload) // 2
    pcm = np.frombuffer(payload, dtype="<i2", count=sample_count)
    return pcm.astype(np.float32) / np.float32(INT16_SCALE)
