"""
Duplex transport to the realtime speech model.

The session talks to a Transport; the websocket implementation below is the
production one, tests substitute an in-memory fake.

Contract:
- send() writes one text message; raises TransportClosed once the
  connection is gone.
- receive() returns the next message; raises TransportClosed (with the
  close code) when the connection ends, cleanly or not.
- close() is idempotent and never raises.

No liveness timeout is configured (ping_interval=None): a silently dead peer
is only noticed when the transport itself reports the close.
"""

from __future__ import annotations

from typing import Awaitable, Callable, Mapping, Protocol

from websockets.asyncio.client import ClientConnection, connect as ws_connect
from websockets.exceptions import ConnectionClosed, InvalidHandshake, InvalidURI

from constants import WS_ABNORMAL_CLOSE_CODE, WS_MAX_MESSAGE_BYTES, WS_NORMAL_CLOSE_CODE
from observability.logger import log_event
from realtime.errors import HandshakeError, TransportClosed


class Transport(Protocol):
    """A connected duplex message channel."""

    async def send(self, payload: str) -> None:
        """Write one message."""
        ...

    async def receive(self) -> str | bytes:
        """Read the next message."""
        ...

    async def close(self, code: int = WS_NORMAL_CLOSE_CODE, reason: str = "") -> None:
        """Close the channel."""
        ...


Connector = Callable[[str, Mapping[str, str]], Awaitable[Transport]]


def _closed_from(exc: ConnectionClosed) -> TransportClosed:
    frame = exc.rcvd
    if frame is None:
        return TransportClosed(WS_ABNORMAL_CLOSE_CODE, "")
    return TransportClosed(frame.code, frame.reason)


class WebSocketTransport:
    """Transport over a websockets client connection."""

    def __init__(self, ws: ClientConnection) -> None:
        self._ws = ws

    async def send(self, payload: str) -> None:
        try:
            await self._ws.send(payload)
        except ConnectionClosed as e:
            raise _closed_from(e) from e

    async def receive(self) -> str | bytes:
        try:
            return await self._ws.recv()
        except ConnectionClosed as e:
            raise _closed_from(e) from e

    async def close(self, code: int = WS_NORMAL_CLOSE_CODE, reason: str = "") -> None:
        try:
            await self._ws.close(code=code, reason=reason)
        except (ConnectionClosed, OSError) as e:
            log_event({
                "event_type": "REALTIME_TRANSPORT_CLOSE_FAILED",
                "error": str(e),
            }, level="DEBUG")


async def connect_websocket(url: str, headers: Mapping[str, str]) -> Transport:
    """
    Open a websocket to the realtime model.

    Raises:
        HandshakeError on any connection or handshake failure.
    """
    try:
        ws = await ws_connect(
            url,
            additional_headers=dict(headers),
            max_size=WS_MAX_MESSAGE_BYTES,
            ping_interval=None,
        )
    except (InvalidHandshake, InvalidURI, OSError, TimeoutError) as e:
        raise HandshakeError(f"{type(e).__name__}: {e}") from e
    return WebSocketTransport(ws)
