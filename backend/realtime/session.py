"""
Realtime duplex session controller.

Responsibilities:
- Own the connection lifecycle (connect / configure / close) and its state
- Serialize outbound commands onto the socket in call order
- Read inbound events in arrival order and route them through dispatch()
- Feed synthesized audio to the playback scheduler
- Feed transcription events to the transcript correlator
- Surface user / assistant conversation messages exactly once
- Own the capture pipeline (start / stop recording)

Non-responsibilities:
- No provider protocol internals beyond the event vocabulary
- No retries or reconnects (callers reconnect explicitly)
- No persistence of conversations or audio

Concurrency:
- Everything runs on one asyncio loop. One reader task and one writer task
  exist per connection; both are cancelled when the connection is torn down.
- Every connection attempt gets a number; a handshake or close that belongs
  to an older attempt is ignored.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Callable, Coroutine, Literal, Mapping
from uuid import uuid4

from audio.capture import CapturePipeline
from audio.codec import AudioCodecError, decode_frame
from audio.devices import AudioInputFactory, AudioOutputFactory
from audio.frames import UtteranceAudio
from audio.playback import PlaybackScheduler
from config import AppConfig
from constants import (
    LOG_PREVIEW_CHARS,
    OUTBOX_DRAIN_TIMEOUT_S,
    REALTIME_PROTOCOL_HEADER,
    REALTIME_VOICES,
    WS_NORMAL_CLOSE_CODE,
)
from observability.logger import log_event, now_ms
from observability.metrics import timed
from realtime.commands import (
    AppendAudio,
    Command,
    CommitAudio,
    CreateResponse,
    CreateTextItem,
    RawCommand,
    SessionConfig,
    SessionUpdate,
)
from realtime.correlator import TranscriptAudioCorrelator
from realtime.errors import (
    AudioDeviceError,
    ConfigurationError,
    HandshakeError,
    MalformedEventError,
    ProtocolError,
    RealtimeError,
    TransportClosed,
)
from realtime.events import (
    AudioDelta,
    ErrorEvent,
    EventType,
    ItemCreated,
    RealtimeEvent,
    ResponseDone,
    TranscriptionCompleted,
    assistant_text,
    decode_message,
    parse_event,
    user_text,
)
from realtime.state import ConnectionState
from realtime.transport import Connector, Transport, connect_websocket


def _new_session_id() -> str:
    return f"rt_{uuid4().hex[:12]}"


def _discard_pending(outbox: asyncio.Queue[str]) -> None:
    while not outbox.empty():
        outbox.get_nowait()
        outbox.task_done()


# ------------------------------------------------------------------
# Surfaced conversation
# ------------------------------------------------------------------

Role = Literal["user", "assistant"]


@dataclass(frozen=True)
class ConversationMessage:
    """One surfaced turn of the live conversation."""
    role: Role
    content: str
    message_id: str
    ts_ms: int


EventListener = Callable[[Mapping[str, Any]], None]
StateListener = Callable[[ConnectionState], None]


# ------------------------------------------------------------------
# RealtimeSession
# ------------------------------------------------------------------

class RealtimeSession:
    """
    One controller == at most one live connection.

    Control surface: connect(), disconnect(), start_recording(),
    stop_recording(), send_text(), send_audio(), commit_audio(), send_raw().

    Read surface: state, error_message, events, transcript, conversation,
    get_audio_for().
    """

    def __init__(
        self,
        *,
        config: AppConfig,
        connector: Connector = connect_websocket,
        audio_input_factory: AudioInputFactory | None = None,
        audio_output_factory: AudioOutputFactory | None = None,
        session_id: str | None = None,
    ) -> None:
        self.session_id = session_id or _new_session_id()
        self._config = config
        self._connector = connector
        self._session_config = SessionConfig(
            voice=config.realtime_voice,
            instructions=config.realtime_instructions,
            transcription_model=config.realtime_transcription_model,
        )

        # Connection
        self._state = ConnectionState.IDLE
        self._error_message = ""
        self._last_error: RealtimeError | None = None
        self._attempt = 0
        self._transport: Transport | None = None
        self._outbox: asyncio.Queue[str] | None = None
        self._reader_task: asyncio.Task[None] | None = None
        self._writer_task: asyncio.Task[None] | None = None
        self._background: set[asyncio.Task[None]] = set()

        # Inbound bookkeeping (per connection)
        self._events: list[Mapping[str, Any]] = []
        self._seen_keys: set[str] = set()
        self._local_key_seq = 0
        self._transcript_parts: list[str] = []
        self._conversation: list[ConversationMessage] = []
        self._last_assistant_text: str | None = None
        self._listeners: list[EventListener] = []
        self._state_listeners: list[StateListener] = []
        self.audio_frames_dropped = 0

        # Audio
        self.correlator = TranscriptAudioCorrelator(session_id=self.session_id)
        self.playback: PlaybackScheduler | None = None
        if audio_output_factory is not None:
            self.playback = PlaybackScheduler(
                output_factory=audio_output_factory,
                session_id=self.session_id,
            )
        self._capture: CapturePipeline | None = None
        if audio_input_factory is not None:
            self._capture = CapturePipeline(
                input_factory=audio_input_factory,
                send_audio=self.send_audio,
                commit_audio=self.commit_audio,
                correlator=self.correlator,
                session_id=self.session_id,
            )

        self._handlers: dict[EventType, Callable[[Any, str], None]] = {
            EventType.ITEM_CREATED: self._on_item_created,
            EventType.RESPONSE_DONE: self._on_response_done,
            EventType.TRANSCRIPTION_COMPLETED: self._on_transcription_completed,
            EventType.AUDIO_DELTA: self._on_audio_delta,
            EventType.ERROR: self._on_error,
        }

    # ------------------------------------------------------------------
    # Read surface
    # ------------------------------------------------------------------

    @property
    def state(self) -> ConnectionState:
        """Current connection state."""
        return self._state

    @property
    def is_connected(self) -> bool:
        """True while the connection is usable."""
        return self._state is ConnectionState.OPEN

    @property
    def error_message(self) -> str:
        """Reason for the last failure ("" when none)."""
        return self._error_message

    @property
    def last_error(self) -> RealtimeError | None:
        """
        The error behind the last failure.

        ProtocolError for a remote `error` event, TransportClosed for an
        unexpected close, HandshakeError for a failed connect().
        """
        return self._last_error

    @property
    def events(self) -> tuple[Mapping[str, Any], ...]:
        """Every accepted inbound event of this connection, in arrival order."""
        return tuple(self._events)

    @property
    def transcript(self) -> str:
        """Completed user transcriptions, space-joined."""
        return " ".join(self._transcript_parts)

    @property
    def conversation(self) -> tuple[ConversationMessage, ...]:
        """Surfaced user / assistant messages, in order."""
        return tuple(self._conversation)

    @property
    def last_user_text(self) -> str | None:
        """Most recent surfaced user message text."""
        for message in reversed(self._conversation):
            if message.role == "user":
                return message.content
        return None

    @property
    def recording(self) -> bool:
        """True while the microphone is captured."""
        return self._capture is not None and self._capture.capturing

    def get_audio_for(self, utterance_id: str) -> UtteranceAudio | None:
        """Audio captured for a transcribed utterance, if any."""
        return self.correlator.get_audio_for(utterance_id)

    def add_listener(self, listener: EventListener) -> None:
        """Receive every accepted inbound event after it has been handled."""
        self._listeners.append(listener)

    def remove_listener(self, listener: EventListener) -> None:
        """Stop receiving events. Unknown listeners are ignored."""
        if listener in self._listeners:
            self._listeners.remove(listener)

    def add_state_listener(self, listener: StateListener) -> None:
        """Be told of every state transition (error_message is already set for FAILED)."""
        self._state_listeners.append(listener)

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> None:
        """
        Open and configure the connection.

        Returns once session.update has been written to the socket; inbound
        events are the real readiness signal.

        Raises:
            ConfigurationError if no API key (or an unsupported voice) is configured.
            HandshakeError if the connection cannot be opened (state FAILED).
        """
        if self._state is not ConnectionState.IDLE:
            await self.disconnect()

        if not self._config.openai_api_key:
            raise ConfigurationError("OPENAI_API_KEY is not configured")
        if self._session_config.voice not in REALTIME_VOICES:
            raise ConfigurationError(f"unsupported realtime voice: {self._session_config.voice}")

        self._attempt += 1
        attempt = self._attempt
        self._reset_connection_bookkeeping()
        self._error_message = ""
        self._last_error = None
        self._set_state(ConnectionState.CONNECTING)

        try:
            with timed("realtime_handshake", session_id=self.session_id):
                transport = await self._connector(
                    self._config.realtime_endpoint,
                    self._headers(),
                )
        except HandshakeError as e:
            if attempt != self._attempt:
                log_event({
                    "event_type": "REALTIME_HANDSHAKE_FAILURE_IGNORED",
                    "session_id": self.session_id,
                    "error": str(e),
                })
                return
            self._fail(str(e), error=e)
            raise

        if attempt != self._attempt or self._state is not ConnectionState.CONNECTING:
            # disconnect() ran while the handshake was in flight
            log_event({
                "event_type": "REALTIME_HANDSHAKE_IGNORED",
                "session_id": self.session_id,
                "state": self._state.value,
            })
            await transport.close()
            return

        outbox: asyncio.Queue[str] = asyncio.Queue()
        self._transport = transport
        self._outbox = outbox
        self._set_state(ConnectionState.OPEN)
        self._writer_task = asyncio.create_task(self._write_loop(transport, outbox, attempt))
        self._reader_task = asyncio.create_task(self._read_loop(transport, attempt))

        self._enqueue(SessionUpdate(config=self._session_config))
        await self.drain()

    async def disconnect(self) -> None:
        """
        Stop capture and close the connection.

        Safe in any state and idempotent. A handshake still in flight is
        abandoned: its eventual result is ignored. Afterwards connect() may
        be called again.
        """
        await self.stop_recording()
        self._attempt += 1
        previous = self._state

        if previous in (ConnectionState.IDLE, ConnectionState.CLOSED) and self._transport is None:
            self._release_audio()
            return

        self._set_state(ConnectionState.CLOSING)

        if previous is ConnectionState.OPEN and self._outbox is not None:
            try:
                await asyncio.wait_for(self.drain(), OUTBOX_DRAIN_TIMEOUT_S)
            except asyncio.TimeoutError:
                log_event({
                    "event_type": "REALTIME_OUTBOX_DRAIN_TIMEOUT",
                    "session_id": self.session_id,
                    "pending": self._outbox.qsize(),
                }, level="WARNING")

        transport = self._detach_transport()
        if transport is not None:
            await transport.close()

        self._release_audio()
        self._set_state(ConnectionState.CLOSED)

    async def drain(self) -> None:
        """Wait until every queued outbound command has been written."""
        outbox = self._outbox
        if outbox is not None:
            await outbox.join()

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    async def start_recording(self) -> None:
        """
        Start microphone capture (restarting it if already running).

        Clears every utterance correlation of the previous recording.

        Raises:
            MicrophonePermissionError / AudioDeviceError; the connection
            is left untouched.
        """
        if self._capture is None:
            raise AudioDeviceError("no audio input configured for this session")
        await self._capture.start()

    async def stop_recording(self) -> None:
        """Stop capture and commit the current utterance. No-op if idle."""
        if self._capture is not None:
            self._capture.stop()

    # ------------------------------------------------------------------
    # Outbound commands
    # ------------------------------------------------------------------

    def send_audio(self, frame: str) -> None:
        """
        Append one base64 PCM16 frame.

        Dropped (not queued) unless OPEN: stale audio would desynchronize
        server-side turn detection.
        """
        if not self._enqueue(AppendAudio(audio=frame)):
            self.audio_frames_dropped += 1

    def commit_audio(self) -> None:
        """Mark a turn boundary. Only has effect while OPEN."""
        self._enqueue(CommitAudio())

    def send_text(self, text: str) -> bool:
        """
        Send a typed user message and request a response.

        Two wire messages, always in this order: conversation.item.create
        then response.create.

        Returns:
            False if the connection is not OPEN (nothing sent).
        """
        if self._state is not ConnectionState.OPEN:
            log_event({
                "event_type": "REALTIME_TEXT_DROPPED",
                "session_id": self.session_id,
                "state": self._state.value,
            }, level="WARNING")
            return False
        self._enqueue(CreateTextItem(text=text))
        self._enqueue(CreateResponse())
        return True

    def send_raw(self, payload: Mapping[str, Any]) -> bool:
        """
        Pass a caller-built command through unchanged.

        Raises:
            ValueError if the payload has no string `type`.
        """
        if not isinstance(payload.get("type"), str):
            raise ValueError("raw command requires a string 'type'")
        return self._enqueue(RawCommand(payload=payload))

    # ------------------------------------------------------------------
    # Inbound dispatch
    # ------------------------------------------------------------------

    def dispatch_raw(self, raw: str | bytes) -> RealtimeEvent | None:
        """Decode one socket message and dispatch it."""
        try:
            message = decode_message(raw)
        except MalformedEventError as e:
            self._log_malformed(e, preview=raw)
            return None
        return self.dispatch(message)

    def dispatch(self, message: Mapping[str, Any]) -> RealtimeEvent | None:
        """
        Single entry point for inbound events.

        Steps:
        1. Drop if the connection is not OPEN
        2. Parse (malformed events are logged and dropped)
        3. De-duplicate by event key
        4. Append to the ordered event log
        5. Run the handler for the event type
        6. Notify listeners

        Returns:
            The accepted event, or None if it was dropped.
        """
        if self._state is not ConnectionState.OPEN:
            log_event({
                "event_type": "REALTIME_EVENT_IGNORED",
                "session_id": self.session_id,
                "state": self._state.value,
            }, level="DEBUG")
            return None

        try:
            event = parse_event(message)
        except MalformedEventError as e:
            self._log_malformed(e, preview=message)
            return None

        key = self._event_key(event)
        if key in self._seen_keys:
            log_event({
                "event_type": "REALTIME_EVENT_DUPLICATE",
                "session_id": self.session_id,
                "key": key,
            }, level="DEBUG")
            return None
        self._seen_keys.add(key)
        self._events.append(event.raw)

        handler = self._handlers.get(event.event_type)
        if handler is not None:
            handler(event, key)

        for listener in tuple(self._listeners):
            listener(event.raw)
        return event

    def _event_key(self, event: RealtimeEvent) -> str:
        if event.event_id:
            return event.event_id
        if event.timestamp is not None:
            return f"{event.wire_type}-{event.timestamp}"
        self._local_key_seq += 1
        return f"{event.wire_type}-local-{self._local_key_seq}"

    # ------------------------------------------------------------------
    # Event handlers (one per handled type)
    # ------------------------------------------------------------------

    def _on_item_created(self, event: ItemCreated, key: str) -> None:
        text = user_text(event)
        if text is None:
            return
        self._surface("user", text, key)

    def _on_response_done(self, event: ResponseDone, key: str) -> None:
        text = assistant_text(event)
        if text is None:
            return
        if text == self._last_assistant_text:
            log_event({
                "event_type": "ASSISTANT_MESSAGE_REPEATED",
                "session_id": self.session_id,
                "key": key,
            }, level="DEBUG")
            return
        self._last_assistant_text = text
        self._surface("assistant", text, key)

    def _on_transcription_completed(self, event: TranscriptionCompleted, key: str) -> None:  # pylint: disable=unused-argument
        text = event.transcript.strip()
        if text:
            self._transcript_parts.append(text)

        utterance_id = event.item_id or f"transcript-{now_ms()}"
        self.correlator.on_transcription_completed(utterance_id, event.transcript)

    def _on_audio_delta(self, event: AudioDelta, key: str) -> None:
        if self.playback is None:
            return
        try:
            samples = decode_frame(event.delta)
        except AudioCodecError as e:
            self._log_malformed(MalformedEventError(str(e)), preview=key)
            return
        self.playback.schedule(samples)

    def _on_error(self, event: ErrorEvent, key: str) -> None:  # pylint: disable=unused-argument
        self._fail(event.message, error=ProtocolError(event.message))
        transport = self._detach_transport()
        if transport is not None:
            self._spawn(transport.close())

    def _surface(self, role: Role, text: str, key: str) -> None:
        self._conversation.append(
            ConversationMessage(role=role, content=text, message_id=key, ts_ms=now_ms())
        )
        log_event({
            "event_type": "CONVERSATION_MESSAGE",
            "session_id": self.session_id,
            "role": role,
            "message_id": key,
            "chars": len(text),
        })

    # ------------------------------------------------------------------
    # Socket loops
    # ------------------------------------------------------------------

    async def _write_loop(
        self,
        transport: Transport,
        outbox: asyncio.Queue[str],
        attempt: int,
    ) -> None:
        try:
            while True:
                payload = await outbox.get()
                try:
                    await transport.send(payload)
                except TransportClosed as e:
                    self._on_transport_closed(attempt, e)
                    return
                finally:
                    outbox.task_done()
        finally:
            _discard_pending(outbox)

    async def _read_loop(self, transport: Transport, attempt: int) -> None:
        while True:
            try:
                raw = await transport.receive()
            except TransportClosed as e:
                self._on_transport_closed(attempt, e)
                return

            if attempt != self._attempt:
                return
            try:
                self.dispatch_raw(raw)
            except Exception as e:  # pylint: disable=broad-exception-caught
                # A faulty handler or listener must not kill the connection
                log_event({
                    "event_type": "REALTIME_DISPATCH_ERROR",
                    "session_id": self.session_id,
                    "exception": type(e).__name__,
                    "error": str(e),
                }, level="ERROR")

    def _on_transport_closed(self, attempt: int, exc: TransportClosed) -> None:
        if attempt != self._attempt or self._state is not ConnectionState.OPEN:
            return

        log_event({
            "event_type": "REALTIME_REMOTE_CLOSED",
            "session_id": self.session_id,
            "code": exc.code,
            "reason": exc.reason,
        })
        if exc.code == WS_NORMAL_CLOSE_CODE:
            self._set_state(ConnectionState.CLOSED)
        else:
            self._fail(f"Connection closed unexpectedly: {exc.reason or 'Unknown error'}", error=exc)

        transport = self._detach_transport()
        if transport is not None:
            self._spawn(transport.close())

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._config.openai_api_key}",
            "OpenAI-Beta": REALTIME_PROTOCOL_HEADER,
        }

    def _enqueue(self, command: Command) -> bool:
        if self._state is not ConnectionState.OPEN or self._outbox is None:
            return False
        self._outbox.put_nowait(json.dumps(command.to_wire()))
        return True

    def _detach_transport(self) -> Transport | None:
        """Cancel socket loops and hand back the transport for closing."""
        transport = self._transport
        self._transport = None

        current = asyncio.current_task()
        for task in (self._reader_task, self._writer_task):
            if task is not None and task is not current and not task.done():
                task.cancel()
        self._reader_task = None
        self._writer_task = None

        if self._outbox is not None:
            _discard_pending(self._outbox)
        return transport

    def _release_audio(self) -> None:
        if self.playback is not None:
            self.playback.close()
        self.correlator.reset()

    def _reset_connection_bookkeeping(self) -> None:
        self._events.clear()
        self._seen_keys.clear()
        self._local_key_seq = 0
        self._transcript_parts.clear()
        self._conversation.clear()
        self._last_assistant_text = None
        self._outbox = None

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    def _set_state(self, new_state: ConnectionState) -> None:
        if new_state is self._state:
            return
        log_event({
            "event_type": "REALTIME_STATE_CHANGED",
            "session_id": self.session_id,
            "from": self._state.value,
            "to": new_state.value,
        })
        self._state = new_state
        for listener in tuple(self._state_listeners):
            listener(new_state)

    def _fail(self, reason: str, *, error: RealtimeError) -> None:
        self._last_error = error
        self._error_message = reason
        log_event({
            "event_type": "REALTIME_FAILED",
            "session_id": self.session_id,
            "reason": reason,
        }, level="ERROR")
        self._set_state(ConnectionState.FAILED)

    def _log_malformed(self, error: MalformedEventError, *, preview: Any) -> None:
        log_event({
            "event_type": "REALTIME_EVENT_MALFORMED",
            "session_id": self.session_id,
            "error": str(error),
            "payload_preview": repr(preview)[:LOG_PREVIEW_CHARS],
        }, level="WARNING")
