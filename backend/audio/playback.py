"""
Gapless playback scheduling for synthesized speech.

Responsibilities:
- Lazily open the audio output (24 kHz) on the first chunk
- Place each chunk on the output clock directly after the previous one
- Degrade to a logged no-op when the output is unavailable

Non-responsibilities:
- No decoding (chunks arrive as float samples)
- No mixing or resampling (the output device does that)
- No cancellation of already scheduled audio

Timing rule:
    start_at = max(device_now, next_start_s)
    next_start_s = start_at + chunk_duration

Chunks that arrive faster than they play queue back-to-back; a chunk that
arrives late plays immediately rather than at its ideal wall-clock slot.
"""

from __future__ import annotations

import numpy as np

from audio.devices import AudioOutput, AudioOutputFactory
from constants import REALTIME_SAMPLE_RATE_HZ, samples_to_seconds
from observability.logger import log_event
from realtime.errors import AudioDeviceError


class PlaybackScheduler:
    """
    Single-owner scheduler for one AudioOutput.

    Must only be called from the session's event loop.
    """

    def __init__(
        self,
        *,
        output_factory: AudioOutputFactory,
        sample_rate_hz: int = REALTIME_SAMPLE_RATE_HZ,
        session_id: str | None = None,
    ) -> None:
        self._output_factory = output_factory
        self._sample_rate_hz = sample_rate_hz
        self._session_id = session_id

        self._output: AudioOutput | None = None
        self._next_start_s: float = 0.0
        self._unavailable: bool = False
        self.chunks_scheduled: int = 0
        self.chunks_dropped: int = 0

    # ------------------------------------------------------------------
    # Introspection
    # ------------------------------------------------------------------

    @property
    def next_start_s(self) -> float:
        """Device-clock time at which the next chunk would start."""
        return self._next_start_s

    @property
    def available(self) -> bool:
        """False once the output has failed for this session."""
        return not self._unavailable

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def schedule(self, samples: np.ndarray) -> float | None:
        """
        Schedule a decoded chunk for playback.

        Returns:
            The device-clock start time, or None if the chunk was dropped
            (empty chunk or output unavailable).
        """
        if len(samples) == 0:
            return None

        output = self._ensure_output()
        if output is None:
            self.chunks_dropped += 1
            return None

        start_at = max(output.current_time, self._next_start_s)
        try:
            output.play_at(samples, start_at)
        except AudioDeviceError as e:
            self._mark_unavailable("play_failed", e)
            self.chunks_dropped += 1
            return None

        self._next_start_s = start_at + samples_to_seconds(len(samples), self._sample_rate_hz)
        self.chunks_scheduled += 1
        return start_at

    def close(self) -> None:
        """
        Release the output and reset clock state.

        The next schedule() call reopens the output.
        """
        output = self._output
        self._output = None
        self._next_start_s = 0.0
        self._unavailable = False
        if output is not None:
            output.close()

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _ensure_output(self) -> AudioOutput | None:
        if self._output is not None:
            return self._output
        if self._unavailable:
            return None

        try:
            output = self._output_factory(self._sample_rate_hz)
        except AudioDeviceError as e:
            self._mark_unavailable("open_failed", e)
            return None

        self._output = output
        self._next_start_s = output.current_time
        log_event({
            "event_type": "PLAYBACK_OUTPUT_OPENED",
            "session_id": self._session_id,
            "sample_rate_hz": self._sample_rate_hz,
        })
        return output

    def _mark_unavailable(self, reason: str, error: Exception) -> None:
        self._unavailable = True
        output = self._output
        self._output = None
        if output is not None:
            output.close()
        log_event({
            "event_type": "PLAYBACK_UNAVAILABLE",
            "session_id": self._session_id,
            "reason": reason,
            "error": str(error),
        }, level="WARNING")
