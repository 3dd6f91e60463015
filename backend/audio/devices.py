"""
Audio device capability interfaces.

This module defines the *interface only*. Concrete implementations:
- audio/sounddevice_io.py (PortAudio microphone / speakers)
- in-memory fakes in tests

Key invariants:
- The capture pipeline is the only owner of an AudioInput.
- The playback scheduler is the only owner of an AudioOutput.
- Frame callbacks are always invoked on the event loop thread; implementations
  backed by foreign threads must marshal with loop.call_soon_threadsafe.
"""

from __future__ import annotations

from typing import Callable, Protocol

import numpy as np


FrameCallback = Callable[[np.ndarray], None]


class AudioInput(Protocol):
    """
    A microphone producing fixed-size float32 mono frames.

    Contract:
    - open() suspends until the device is acquired, then delivers frames to
      on_frame until close() is called.
    - open() raises MicrophonePermissionError when access is denied and
      AudioDeviceError for any other acquisition failure.
    - close() releases the device and is idempotent.
    """

    async def open(self, on_frame: FrameCallback) -> None:
        """Acquire the device and start delivering frames."""
        ...

    def close(self) -> None:
        """Release the device."""
        ...


class AudioOutput(Protocol):
    """
    A speaker with its own monotonic clock.

    Contract:
    - current_time is in seconds on the device clock and never decreases.
    - play_at() enqueues samples to start at start_at (device clock) and
      returns immediately. Samples scheduled in the past start as soon
      as possible.
    - play_at() raises PlaybackError if the device can no longer play.
    """

    @property
    def current_time(self) -> float:
        """Device clock in seconds."""
        ...

    def play_at(self, samples: np.ndarray, start_at: float) -> None:
        """Schedule samples to begin at start_at."""
        ...

    def close(self) -> None:
        """Release the device."""
        ...


AudioInputFactory = Callable[[], AudioInput]
AudioOutputFactory = Callable[[int], AudioOutput]  # sample_rate_hz -> output
