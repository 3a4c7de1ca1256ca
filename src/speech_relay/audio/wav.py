"""WAV container codec for 16-bit mono PCM.

Speech synthesis returns headerless signed 16-bit little-endian PCM as
base64. Browsers and audio players need a RIFF/WAVE container, so the
samples are wrapped in the canonical 44-byte header:

    offset  size  field
    0       4     "RIFF"
    4       4     total size - 8
    8       4     "WAVE"
    12      4     "fmt "
    16      4     fmt chunk size (16)
    20      2     audio format (1 = PCM)
    22      2     channels (1)
    24      4     sample rate
    28      4     byte rate (sample rate * 2)
    32      2     block align (2)
    34      2     bits per sample (16)
    36      4     "data"
    40      4     data size in bytes
    44      ...   samples
"""

import base64
import binascii
import struct
from typing import Sequence, Tuple, Union

import numpy as np

from ..core.errors import DecodeError

HEADER_SIZE = 44
NUM_CHANNELS = 1
BITS_PER_SAMPLE = 16
SAMPLE_WIDTH = BITS_PER_SAMPLE // 8
PCM_FORMAT = 1

_HEADER_STRUCT = struct.Struct("<4sI4s4sIHHIIHH4sI")

Samples = Union[Sequence[int], np.ndarray]


def _as_int16(samples: Samples) -> np.ndarray:
    """Convert a sample sequence to little-endian int16, rejecting overflow."""
    array = np.asarray(samples)
    if array.size == 0:
        return np.zeros(0, dtype="<i2")
    if array.ndim != 1:
        raise DecodeError(f"Expected mono samples, got array with shape {array.shape}")
    if array.dtype.kind not in "iu":
        raise DecodeError(f"Expected integer samples, got {array.dtype}")
    if array.min() < -32768 or array.max() > 32767:
        raise DecodeError("Sample values must fit in signed 16-bit range")
    return array.astype("<i2", copy=False)


def encode(samples: Samples, sample_rate: int) -> bytes:
    """Encode mono int16 samples into a WAV container.

    Args:
        samples: Signed 16-bit sample values
        sample_rate: Sample rate in Hz

    Returns:
        Header followed by the raw little-endian sample bytes

    Raises:
        DecodeError: If samples are not a flat sequence of int16 values
    """
    if not 0 < sample_rate < 2 ** 32 // SAMPLE_WIDTH:
        raise ValueError(f"Invalid sample rate: {sample_rate}")

    data = _as_int16(samples).tobytes()
    data_size = len(data)

    header = _HEADER_STRUCT.pack(
        b"RIFF",
        HEADER_SIZE + data_size - 8,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        NUM_CHANNELS,
        sample_rate,
        sample_rate * NUM_CHANNELS * SAMPLE_WIDTH,
        NUM_CHANNELS * SAMPLE_WIDTH,
        BITS_PER_SAMPLE,
        b"data",
        data_size,
    )
    return header + data


def decode_base64_pcm(text: str) -> np.ndarray:
    """Decode a base64 payload of headerless int16 LE samples.

    Whitespace, including line breaks, is ignored. Any other character
    outside the base64 alphabet is an error.

    Raises:
        DecodeError: If the payload is not valid base64 or has an odd
            number of bytes
    """
    if not isinstance(text, (str, bytes)):
        raise DecodeError(f"Expected base64 text, got {type(text).__name__}")

    # Line-wrapped payloads (MIME style) are valid; drop the whitespace
    compact = b"".join(text.split()) if isinstance(text, bytes) else "".join(text.split())
    try:
        raw = base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 PCM payload: {e}")

    if len(raw) % SAMPLE_WIDTH:
        raise DecodeError(
            f"PCM payload length {len(raw)} is not a multiple of {SAMPLE_WIDTH} bytes"
        )

    return np.frombuffer(raw, dtype="<i2").copy()


def decode(container: bytes) -> Tuple[np.ndarray, int]:
    """Parse a mono 16-bit PCM WAV container.

    Returns:
        Tuple of (samples, sample_rate)

    Raises:
        DecodeError: If the container is malformed or not mono 16-bit PCM
    """
    if len(container) < HEADER_SIZE:
        raise DecodeError(f"WAV container too short: {len(container)} bytes")

    (riff, _, wave_tag, fmt_tag, fmt_size, audio_format, channels, sample_rate,
     _, _, bits, data_tag, data_size) = _HEADER_STRUCT.unpack_from(container)

    if riff != b"RIFF" or wave_tag != b"WAVE" or fmt_tag != b"fmt ":
        raise DecodeError("Not a RIFF/WAVE container")
    if fmt_size != 16 or data_tag != b"data":
        raise DecodeError("Unsupported WAV layout")
    if audio_format != PCM_FORMAT or channels != NUM_CHANNELS or bits != BITS_PER_SAMPLE:
        raise DecodeError(
            f"Expected mono 16-bit PCM, got format={audio_format} "
            f"channels={channels} bits={bits}"
        )

    data = container[HEADER_SIZE:HEADER_SIZE + data_size]
    if len(data) != data_size or data_size % SAMPLE_WIDTH:
        raise DecodeError("WAV data chunk is truncated")

    return np.frombuffer(data, dtype="<i2").copy(), sample_rate


def pcm_to_wav(payload: str, sample_rate: int) -> bytes:
    """Wrap a base64 PCM payload from a synthesizer in a WAV container."""
    return encode(decode_base64_pcm(payload), sample_rate)
