"""
Microphone capture pipeline.

Responsibilities:
- Acquire and release the AudioInput (single owner)
- Turn each captured frame into:
    (a) a base64 PCM16 frame handed to the session's send_audio
    (b) an AudioChunk appended to the transcript correlator
- Send a final commit when capture stops

Non-responsibilities:
- No connection state checks (send_audio drops frames when not OPEN)
- No utterance correlation logic (correlator owns it)
- No resampling: the input is opened at the wire sample rate
"""

from __future__ import annotations

import functools
from typing import Callable

import numpy as np

from audio.codec import encode_frame
from audio.devices import AudioInput, AudioInputFactory
from audio.frames import AudioChunk
from observability.logger import log_event, now_ms
from realtime.correlator import TranscriptAudioCorrelator
from realtime.errors import AudioDeviceError


class CapturePipeline:
    """
    One capture session at a time.

    A generation counter tags every device opened; frames delivered after
    their device was released (or superseded) are dropped.
    """

    def __init__(
        self,
        *,
        input_factory: AudioInputFactory,
        send_audio: Callable[[str], None],
        commit_audio: Callable[[], None],
        correlator: TranscriptAudioCorrelator,
        session_id: str | None = None,
    ) -> None:
        self._input_factory = input_factory
        self._send_audio = send_audio
        self._commit_audio = commit_audio
        self._correlator = correlator
        self._session_id = session_id

        self._input: AudioInput | None = None
        self._generation = 0
        self._sequence_num = 0

    @property
    def capturing(self) -> bool:
        """True while a device is held."""
        return self._input is not None

    @property
    def frames_captured(self) -> int:
        """Frames delivered in the current (or last) capture session."""
        return self._sequence_num

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """
        Acquire the microphone and begin streaming frames.

        A capture already in progress is stopped first.

        Raises:
            MicrophonePermissionError / AudioDeviceError if the device cannot
            be acquired. Nothing else is affected in that case.
        """
        if self._input is not None:
            self.stop()

        self._generation += 1
        generation = self._generation
        audio_input = self._input_factory()

        try:
            await audio_input.open(functools.partial(self._on_frame, generation))
        except AudioDeviceError as e:
            log_event({
                "event_type": "CAPTURE_START_FAILED",
                "session_id": self._session_id,
                "error_type": type(e).__name__,
                "error": str(e),
            }, level="WARNING")
            raise

        if generation != self._generation:
            # stop() or another start() ran while the device was being acquired
            audio_input.close()
            log_event({
                "event_type": "CAPTURE_START_SUPERSEDED",
                "session_id": self._session_id,
            })
            return

        self._input = audio_input
        self._sequence_num = 0
        self._correlator.begin()

        log_event({
            "event_type": "CAPTURE_STARTED",
            "session_id": self._session_id,
        })

    def stop(self) -> None:
        """
        Release the microphone, flush buffered chunks and commit the turn.

        No-op if capture is not running.
        """
        self._generation += 1
        audio_input = self._input
        if audio_input is None:
            return

        self._input = None
        audio_input.close()
        self._correlator.end()
        self._commit_audio()

        log_event({
            "event_type": "CAPTURE_STOPPED",
            "session_id": self._session_id,
            "frames": self._sequence_num,
        })

    # ------------------------------------------------------------------
    # Frame path
    # ------------------------------------------------------------------

    def _on_frame(self, generation: int, samples: np.ndarray) -> None:
        if generation != self._generation or self._input is None:
            return

        self._sequence_num += 1
        chunk = AudioChunk(
            sequence_num=self._sequence_num,
            samples=np.asarray(samples, dtype=np.float32),
            ts_ms=now_ms(),
        )

        self._send_audio(encode_frame(chunk.samples))
        self._correlator.on_capture_chunk(chunk)
