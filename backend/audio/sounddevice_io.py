"""
PortAudio-backed audio devices (sounddevice).

Role in the system:
- SoundDeviceInput implements AudioInput for the capture pipeline.
- SoundDeviceOutput implements AudioOutput for the playback scheduler.

Threading:
- PortAudio invokes stream callbacks on its own thread.
- Input frames are copied and marshalled onto the event loop with
  loop.call_soon_threadsafe; nothing else runs on the PortAudio thread.
- The output callback mixes scheduled chunks under a threading.Lock; the lock
  is the only shared state between the loop and the PortAudio thread.

This module imports sounddevice at import time and therefore requires the
PortAudio shared library. Only the local live entry point imports it.
"""

from __future__ import annotations

import asyncio
import functools
import threading
from typing import Any

import numpy as np
import sounddevice as sd  # pyright: ignore[reportMissingTypeStubs]

from audio.devices import FrameCallback
from constants import AUDIO_CHANNELS, CAPTURE_FRAME_SAMPLES, REALTIME_SAMPLE_RATE_HZ
from observability.logger import log_event
from realtime.errors import AudioDeviceError, MicrophonePermissionError, PlaybackError


_PERMISSION_MARKERS = ("permission", "denied", "not authorized", "not permitted")


def _classify_input_error(exc: Exception) -> AudioDeviceError:
    message = str(exc)
    if any(marker in message.lower() for marker in _PERMISSION_MARKERS):
        return MicrophonePermissionError(message)
    return AudioDeviceError(message)


class SoundDeviceInput:
    """
    Microphone producing CAPTURE_FRAME_SAMPLES-sized float32 frames.
    """

    def __init__(
        self,
        *,
        sample_rate_hz: int = REALTIME_SAMPLE_RATE_HZ,
        frame_samples: int = CAPTURE_FRAME_SAMPLES,
        device: int | str | None = None,
    ) -> None:
        self._sample_rate_hz = sample_rate_hz
        self._frame_samples = frame_samples
        self._device = device
        self._stream: Any = None

    async def open(self, on_frame: FrameCallback) -> None:
        """Open the input stream; frames are delivered on the running loop."""
        if self._stream is not None:
            raise AudioDeviceError("input already open")

        loop = asyncio.get_running_loop()

        def _on_audio_in(indata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:  # pylint: disable=unused-argument
            if status:
                loop.call_soon_threadsafe(
                    functools.partial(
                        log_event,
                        {"event_type": "AUDIO_INPUT_STATUS", "status": str(status)},
                        level="WARNING",
                    )
                )
            # Copy: PortAudio reuses indata after the callback returns
            samples = np.array(indata[:, 0], dtype=np.float32)
            loop.call_soon_threadsafe(on_frame, samples)

        def _start() -> Any:
            stream = sd.InputStream(
                samplerate=self._sample_rate_hz,
                blocksize=self._frame_samples,
                channels=AUDIO_CHANNELS,
                dtype="float32",
                device=self._device,
                callback=_on_audio_in,
            )
            stream.start()
            return stream

        try:
            self._stream = await asyncio.to_thread(_start)
        except (sd.PortAudioError, OSError, ValueError) as e:
            raise _classify_input_error(e) from e

    def close(self) -> None:
        """Stop and close the stream. Idempotent."""
        stream = self._stream
        self._stream = None
        if stream is None:
            return
        try:
            stream.stop()
            stream.close()
        except sd.PortAudioError as e:
            log_event({
                "event_type": "AUDIO_INPUT_CLOSE_FAILED",
                "error": str(e),
            }, level="WARNING")


class SoundDeviceOutput:
    """
    Speaker with a sample-accurate clock.

    current_time counts frames handed to PortAudio, so scheduled start times
    map exactly onto output sample positions.
    """

    def __init__(
        self,
        sample_rate_hz: int = REALTIME_SAMPLE_RATE_HZ,
        *,
        device: int | str | None = None,
    ) -> None:
        self._sample_rate_hz = sample_rate_hz
        self._lock = threading.Lock()
        self._pending: list[tuple[int, np.ndarray]] = []  # (start_frame, samples)
        self._frames_rendered = 0
        self._closed = False

        try:
            self._stream = sd.OutputStream(
                samplerate=sample_rate_hz,
                channels=AUDIO_CHANNELS,
                dtype="float32",
                device=device,
                callback=self._on_audio_out,
            )
            self._stream.start()
        except (sd.PortAudioError, OSError, ValueError) as e:
            raise AudioDeviceError(f"output unavailable: {e}") from e

    @property
    def current_time(self) -> float:
        with self._lock:
            return self._frames_rendered / float(self._sample_rate_hz)

    def play_at(self, samples: np.ndarray, start_at: float) -> None:
        if self._closed:
            raise PlaybackError("output closed")
        start_frame = int(round(start_at * self._sample_rate_hz))
        with self._lock:
            self._pending.append((start_frame, np.asarray(samples, dtype=np.float32)))

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._stream.stop()
            self._stream.close()
        except sd.PortAudioError as e:
            log_event({
                "event_type": "AUDIO_OUTPUT_CLOSE_FAILED",
                "error": str(e),
            }, level="WARNING")
        with self._lock:
            self._pending.clear()

    def _on_audio_out(self, outdata: np.ndarray, frames: int, time_info: Any, status: Any) -> None:  # pylint: disable=unused-argument
        outdata.fill(0)
        with self._lock:
            block_start = self._frames_rendered
            block_end = block_start + frames
            remaining: list[tuple[int, np.ndarray]] = []

            for start, samples in self._pending:
                end = start + len(samples)
                if end <= block_start:
                    continue
                if start >= block_end:
                    remaining.append((start, samples))
                    continue
                lo = max(start, block_start)
                hi = min(end, block_end)
                outdata[lo - block_start:hi - block_start, 0] += samples[lo - start:hi - start]
                if end > block_end:
                    remaining.append((start, samples))

            self._pending = remaining
            self._frames_rendered = block_end
