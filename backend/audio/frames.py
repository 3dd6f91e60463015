"""
Audio chunk primitives.

Pure data containers only.
No queues, no timing logic, no device access.
"""

from __future__ import annotations

import io
import wave
from dataclasses import dataclass

import numpy as np

from audio.codec import float32_to_pcm16le
from constants import (
    AUDIO_CHANNELS,
    AUDIO_SAMPLE_WIDTH_BYTES,
    REALTIME_SAMPLE_RATE_HZ,
    samples_to_seconds,
)


@dataclass(frozen=True, eq=False)
class AudioChunk:
    """
    One fixed-size slice of captured audio.

    sequence_num:
        Monotonic per capture session, starting at 1.
        Used for ordering checks and debugging only.

    samples:
        float32 mono samples in [-1, 1]. Never mutated after construction.

    ts_ms:
        Wall-clock timestamp (milliseconds) when the chunk reached the loop.
        Observability only.
    """
    sequence_num: int
    samples: np.ndarray
    ts_ms: int
    sample_rate_hz: int = REALTIME_SAMPLE_RATE_HZ

    @property
    def duration_s(self) -> float:
        """Duration of the chunk in seconds."""
        return samples_to_seconds(len(self.samples), self.sample_rate_hz)


@dataclass(frozen=True, eq=False)
class UtteranceAudio:
    """
    Audio captured during one utterance, snapshotted when its
    transcription completed.
    """
    utterance_id: str
    transcript: str
    chunks: tuple[AudioChunk, ...]
    sample_rate_hz: int = REALTIME_SAMPLE_RATE_HZ

    @property
    def samples(self) -> np.ndarray:
        """All chunk samples concatenated in capture order."""
        if not self.chunks:
            return np.zeros(0, dtype=np.float32)
        return np.concatenate([c.samples for c in self.chunks])

    @property
    def duration_s(self) -> float:
        """Total duration of the utterance audio in seconds."""
        return sum(c.duration_s for c in self.chunks)

    def to_wav_bytes(self) -> bytes:
        """Render the utterance as a PCM16 mono WAV file."""
        buf = io.BytesIO()
        with wave.open(buf, "wb") as wav:
            wav.setnchannels(AUDIO_CHANNELS)
            wav.setsampwidth(AUDIO_SAMPLE_WIDTH_BYTES)
            wav.setframerate(self.sample_rate_hz)
            wav.writeframes(float32_to_pcm16le(self.samples))
        return buf.getvalue()
