"""
Transcript-to-audio correlation.

Buffers locally captured chunks and, when the model reports that an
utterance's transcription completed, moves the buffered chunks into that
utterance's audio snapshot.

Invariants:
- Chunk order within the buffer is capture order.
- A chunk is snapshotted at most once (the buffer is cleared on snapshot).
- Snapshots are never mutated or overwritten after creation.
- begin() clears every correlation from a previous capture session.
"""

from __future__ import annotations

from audio.frames import AudioChunk, UtteranceAudio
from constants import REALTIME_SAMPLE_RATE_HZ
from observability.logger import log_event


class TranscriptAudioCorrelator:
    """
    Session-owned buffer + utterance map.

    Mutated only by the capture pipeline (append) and the session's event
    dispatch (snapshot/reset), both on the event loop.
    """

    def __init__(
        self,
        *,
        sample_rate_hz: int = REALTIME_SAMPLE_RATE_HZ,
        session_id: str | None = None,
    ) -> None:
        self._sample_rate_hz = sample_rate_hz
        self._session_id = session_id
        self._buffer: list[AudioChunk] = []
        self._utterances: dict[str, UtteranceAudio] = {}
        self._active = False

    # ------------------------------------------------------------------
    # Capture session boundaries
    # ------------------------------------------------------------------

    @property
    def active(self) -> bool:
        """True while a capture session is running."""
        return self._active

    def begin(self) -> None:
        """Start a capture session: forget the previous one entirely."""
        self.reset()
        self._active = True

    def end(self) -> None:
        """Stop buffering; chunks not yet correlated are discarded."""
        self._active = False
        self._buffer.clear()

    def reset(self) -> None:
        """Clear the live buffer and every utterance snapshot."""
        self._buffer.clear()
        self._utterances.clear()

    # ------------------------------------------------------------------
    # Buffer + snapshot
    # ------------------------------------------------------------------

    def on_capture_chunk(self, chunk: AudioChunk) -> None:
        """Append a captured chunk (ignored outside a capture session)."""
        if not self._active:
            return
        self._buffer.append(chunk)

    def on_transcription_completed(
        self,
        utterance_id: str,
        text: str,
    ) -> UtteranceAudio | None:
        """
        Snapshot the buffered chunks as utterance_id's audio.

        Returns:
            The stored snapshot, or None if nothing was stored (capture
            inactive, empty buffer, or utterance_id already known).
        """
        if not self._active or not self._buffer:
            log_event({
                "event_type": "UTTERANCE_AUDIO_SKIPPED",
                "session_id": self._session_id,
                "utterance_id": utterance_id,
                "reason": "inactive" if not self._active else "empty_buffer",
            }, level="DEBUG")
            return None

        if utterance_id in self._utterances:
            log_event({
                "event_type": "UTTERANCE_AUDIO_DUPLICATE_ID",
                "session_id": self._session_id,
                "utterance_id": utterance_id,
            }, level="WARNING")
            return None

        snapshot = UtteranceAudio(
            utterance_id=utterance_id,
            transcript=text,
            chunks=tuple(self._buffer),
            sample_rate_hz=self._sample_rate_hz,
        )
        self._buffer = []
        self._utterances[utterance_id] = snapshot

        log_event({
            "event_type": "UTTERANCE_AUDIO_CAPTURED",
            "session_id": self._session_id,
            "utterance_id": utterance_id,
            "chunks": len(snapshot.chunks),
            "duration_s": round(snapshot.duration_s, 3),
        })
        return snapshot

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def get_audio_for(self, utterance_id: str) -> UtteranceAudio | None:
        """Return the audio captured for utterance_id, if any."""
        return self._utterances.get(utterance_id)

    def buffered_chunks(self) -> tuple[AudioChunk, ...]:
        """Chunks captured since the last snapshot (observability/tests)."""
        return tuple(self._buffer)

    def utterance_ids(self) -> tuple[str, ...]:
        """Ids with stored audio, in creation order."""
        return tuple(self._utterances)
