"""
Error taxonomy for the realtime voice session.

Propagation policy:
- ConfigurationError and HandshakeError are raised from connect().
- MicrophonePermissionError / AudioDeviceError are raised from start_recording()
  and never tear down an existing connection.
- ProtocolError, PlaybackError and MalformedEventError are recorded (state change
  or log) at the event-dispatch boundary and never raised across it.
"""

from __future__ import annotations


class RealtimeError(Exception):
    """Base class for realtime session errors."""


class ConfigurationError(RealtimeError):
    """
    Raised when the session cannot be configured (e.g. missing API key).

    Fatal to connect(); never retried automatically.
    """


class HandshakeError(RealtimeError):
    """
    Raised when the duplex connection cannot be established.

    The session is left in FAILED; the caller may retry with connect().
    """


class TransportClosed(RealtimeError):
    """
    Raised by a transport when the underlying connection is closed.

    code / reason mirror the websocket close frame (1006 when none was received).
    """

    def __init__(self, code: int, reason: str = "") -> None:
        super().__init__(f"connection closed: code={code} reason={reason!r}")
        self.code = code
        self.reason = reason


class ProtocolError(RealtimeError):
    """The remote model sent an `error` event."""


class MalformedEventError(RealtimeError):
    """An inbound message does not have the expected structure."""


class AudioDeviceError(RealtimeError):
    """An audio input or output device is unavailable or failed."""


class MicrophonePermissionError(AudioDeviceError):
    """Access to the microphone was denied."""


class PlaybackError(AudioDeviceError):
    """The audio output rejected or failed to play a chunk."""
