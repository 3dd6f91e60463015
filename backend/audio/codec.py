"""
PCM16 wire codec for the realtime audio stream.

Wire format: PCM16 signed little-endian mono, base64-framed.
Local format: float32 samples in [-1.0, 1.0].

Runtime-safe, transport-agnostic utilities.
No resampling. No channel mixing.
"""

from __future__ import annotations

import base64
import binascii

import numpy as np

from constants import PCM16_NEGATIVE_SCALE, PCM16_POSITIVE_SCALE


class AudioCodecError(ValueError):
    """Raised when a wire frame is not valid base64."""


def float32_to_pcm16le(samples: np.ndarray) -> bytes:
    """
    Convert float samples to PCM16 little-endian bytes.

    Samples are clamped to [-1, 1]; negative values scale by 32768 and
    non-negative values by 32767 so that neither end overflows int16.
    """
    clipped = np.clip(np.asarray(samples, dtype=np.float64).reshape(-1), -1.0, 1.0)
    scaled = np.where(
        clipped < 0,
        clipped * PCM16_NEGATIVE_SCALE,
        clipped * PCM16_POSITIVE_SCALE,
    )
    return scaled.astype("<i2").tobytes()


def pcm16le_to_float32(pcm_bytes: bytes) -> np.ndarray:
    """
    Convert PCM16 little-endian mono bytes to float32 in [-1.0, 1.0).
    """
    if len(pcm_bytes) % 2 != 0:
        # Truncated sample; drop the dangling byte
        pcm_bytes = pcm_bytes[: len(pcm_bytes) - 1]

    audio_i16 = np.frombuffer(pcm_bytes, dtype="<i2")
    return audio_i16.astype(np.float32) / np.float32(PCM16_NEGATIVE_SCALE)


def encode_frame(samples: np.ndarray) -> str:
    """Encode float samples as a base64 PCM16 frame for input_audio_buffer.append."""
    return base64.b64encode(float32_to_pcm16le(samples)).decode("ascii")


def decode_frame(frame: str | bytes) -> np.ndarray:
    """
    Decode a base64 PCM16 frame (e.g. response.audio.delta) to float samples.

    Empty input decodes to an empty array.

    Raises:
        AudioCodecError if the frame is not valid base64.
    """
    if not frame:
        return np.zeros(0, dtype=np.float32)
    try:
        pcm_bytes = base64.b64decode(frame, validate=True)
    except (binascii.Error, ValueError) as e:
        raise AudioCodecError(f"invalid base64 audio frame: {e}") from e
    return pcm16le_to_float32(pcm_bytes)
