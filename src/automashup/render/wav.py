"""
Canonical 16-bit PCM RIFF/WAVE encoder.

Byte layout (little-endian):
    "RIFF" | 36 + dataLength | "WAVE"
    "fmt " | 16 | format 1 | channels | sampleRate | byteRate | blockAlign | 16
    "data" | dataLength | interleaved int16 frames

Samples are clamped to [-1, 1] and scaled by 32767 (>= 0) or 32768 (< 0),
then truncated toward zero, so -1.0 maps to -32768 and 1.0 to 32767.
"""

import logging
import struct
from pathlib import Path
from typing import Union

import numpy as np

from ..errors import EncodeError

logger = logging.getLogger(__name__)

HEADER_SIZE = 44
BITS_PER_SAMPLE = 16
PCM_FORMAT = 1
_MAX_RIFF_DATA = 0xFFFFFFFF - 36


def quantize(samples: np.ndarray) -> np.ndarray:
    """Clamp and scale float samples to int16 with the asymmetric PCM range."""
    clamped = np.clip(np.asarray(samples, dtype=np.float64), -1.0, 1.0)
    scaled = np.where(clamped < 0.0, clamped * 32768.0, clamped * 32767.0)
    return np.trunc(scaled).astype("<i2")


def wav_header(channels: int, sample_rate: int, data_length: int) -> bytes:
    """Build the 44-byte canonical header."""
    block_align = channels * (BITS_PER_SAMPLE // 8)
    byte_rate = sample_rate * block_align
    return struct.pack(
        "<4sI4s4sIHHIIHH4sI",
        b"RIFF",
        36 + data_length,
        b"WAVE",
        b"fmt ",
        16,
        PCM_FORMAT,
        channels,
        sample_rate,
        byte_rate,
        block_align,
        BITS_PER_SAMPLE,
        b"data",
        data_length,
    )


def encode_wav(samples: np.ndarray, sample_rate: int) -> bytes:
    """
    Serialize a (channels, frames) float buffer to WAVE bytes.

    Args:
        samples: (channels, frames) array, or a 1-D mono buffer
        sample_rate: Sample rate in Hz

    Returns:
        Complete WAVE file contents

    Raises:
        EncodeError: If the buffer shape or sample rate is invalid
    """
    try:
        buffer = np.asarray(samples, dtype=np.float64)
    except (TypeError, ValueError) as e:
        raise EncodeError(f"Buffer cannot be converted to samples: {e}") from e

    if buffer.ndim == 1:
        buffer = buffer[np.newaxis, :]
    if buffer.ndim != 2 or buffer.shape[0] < 1:
        raise EncodeError(f"Expected (channels, frames) buffer, got shape {buffer.shape}")
    if not isinstance(sample_rate, (int, np.integer)) or sample_rate <= 0:
        raise EncodeError(f"Invalid sample rate: {sample_rate}")

    channels, frames = buffer.shape
    data_length = frames * channels * (BITS_PER_SAMPLE // 8)
    if data_length > _MAX_RIFF_DATA:
        raise EncodeError(f"Data chunk of {data_length} bytes exceeds the RIFF size limit")

    # NaN has no PCM representation; treat it as silence
    buffer = np.nan_to_num(buffer, nan=0.0, posinf=1.0, neginf=-1.0)

    # Frame-major interleave: L0 R0 L1 R1 ...
    data = quantize(buffer.T).tobytes()
    header = wav_header(channels, int(sample_rate), data_length)

    logger.debug(f"Encoded {frames} frames x {channels} channels ({data_length} data bytes)")
    return header + data


def write_wav(path: Union[str, Path], samples: np.ndarray, sample_rate: int) -> Path:
    """Encode and write a WAVE file."""
    path = Path(path)
    blob = encode_wav(samples, sample_rate)
    path.write_bytes(blob)
    logger.info(f"Wrote WAV: {path} ({len(blob)} bytes)")
    return path
