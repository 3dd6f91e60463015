"""
Connection state for a realtime session.

Transitions are owned exclusively by RealtimeSession:

    IDLE -> CONNECTING -> OPEN -> CLOSING -> CLOSED
    CONNECTING -> FAILED   (handshake failure)
    OPEN -> FAILED         (remote error event, unexpected close)
    FAILED / CLOSED -> CONNECTING   (explicit reconnect)
"""

from __future__ import annotations

from enum import Enum


class ConnectionState(str, Enum):
    """
    Lifecycle of the duplex connection to the speech model.

    Independent of capture state: recording can be active or not in any state,
    though audio is only transmitted while OPEN.
    """

    IDLE = "IDLE"              # Never connected
    CONNECTING = "CONNECTING"  # Handshake in flight
    OPEN = "OPEN"              # Configured and usable
    CLOSING = "CLOSING"        # disconnect() in progress
    CLOSED = "CLOSED"          # Closed cleanly (locally or by remote code 1000)
    FAILED = "FAILED"          # Handshake, protocol or transport failure

    @property
    def is_live(self) -> bool:
        """True while a transport may exist for this state."""
        return self in (ConnectionState.CONNECTING, ConnectionState.OPEN)
