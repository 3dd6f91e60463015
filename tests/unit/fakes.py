# pylint: disable=missing-module-docstring,missing-function-docstring,missing-class-docstring

from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any, Mapping

import numpy as np

from realtime.errors import AudioDeviceError, HandshakeError, PlaybackError, TransportClosed


# ---------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------

class FakeTransport:
    """In-memory duplex channel: push() feeds receive(), send() records."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.closed = False
        self.close_code: int | None = None
        self._inbound: asyncio.Queue[Any] = asyncio.Queue()

    async def send(self, payload: str) -> None:
        if self.closed:
            raise TransportClosed(1006, "closed")
        self.sent.append(json.loads(payload))

    async def receive(self) -> str | bytes:
        item = await self._inbound.get()
        if isinstance(item, TransportClosed):
            raise item
        return item

    async def close(self, code: int = 1000, reason: str = "") -> None:
        if self.closed:
            return
        self.closed = True
        self.close_code = code
        # A pending receive() ends the way a real socket's would
        self._inbound.put_nowait(TransportClosed(code, reason))

    def push(self, message: Mapping[str, Any] | str) -> None:
        raw = message if isinstance(message, str) else json.dumps(message)
        self._inbound.put_nowait(raw)

    def push_close(self, code: int, reason: str = "") -> None:
        self._inbound.put_nowait(TransportClosed(code, reason))

    def sent_types(self) -> list[str]:
        return [m["type"] for m in self.sent]


class FakeConnector:
    """
    Connector returning FakeTransports.

    gated=True holds every handshake until release() is called.
    """

    def __init__(
        self,
        *,
        gated: bool = False,
        fail_with: HandshakeError | None = None,
        script: tuple[Mapping[str, Any], ...] = (),
    ) -> None:
        self.calls: list[tuple[str, dict[str, str]]] = []
        self.transports: list[FakeTransport] = []
        self._gated = gated
        self._gate = asyncio.Event()
        self._fail_with = fail_with
        self._script = script

    async def __call__(self, url: str, headers: Mapping[str, str]) -> FakeTransport:
        self.calls.append((url, dict(headers)))
        if self._gated:
            await self._gate.wait()
        if self._fail_with is not None:
            raise self._fail_with

        transport = FakeTransport()
        for message in self._script:
            transport.push(message)
        self.transports.append(transport)
        return transport

    def release(self) -> None:
        self._gate.set()

    @property
    def transport(self) -> FakeTransport:
        return self.transports[-1]


# ---------------------------------------------------------------------
# Audio devices
# ---------------------------------------------------------------------

class FakeAudioInput:
    def __init__(self, *, error: AudioDeviceError | None = None) -> None:
        self.on_frame: Any = None
        self.opened = False
        self.closed = False
        self._error = error

    async def open(self, on_frame: Any) -> None:
        if self._error is not None:
            raise self._error
        self.on_frame = on_frame
        self.opened = True

    def close(self) -> None:
        self.closed = True

    def emit(self, samples: np.ndarray) -> None:
        self.on_frame(samples)


class FakeInputFactory:
    def __init__(self, *, error: AudioDeviceError | None = None) -> None:
        self.inputs: list[FakeAudioInput] = []
        self._error = error

    def __call__(self) -> FakeAudioInput:
        audio_input = FakeAudioInput(error=self._error)
        self.inputs.append(audio_input)
        return audio_input

    @property
    def latest(self) -> FakeAudioInput:
        return self.inputs[-1]


class FakeAudioOutput:
    """Output whose clock is set by the test."""

    def __init__(self, sample_rate_hz: int) -> None:
        self.sample_rate_hz = sample_rate_hz
        self.now = 0.0
        self.played: list[tuple[float, int]] = []  # (start_at, num_samples)
        self.closed = False
        self.fail_play = False

    @property
    def current_time(self) -> float:
        return self.now

    def play_at(self, samples: np.ndarray, start_at: float) -> None:
        if self.fail_play:
            raise PlaybackError("device lost")
        self.played.append((start_at, len(samples)))

    def close(self) -> None:
        self.closed = True


class FakeOutputFactory:
    def __init__(self, *, error: AudioDeviceError | None = None) -> None:
        self.outputs: list[FakeAudioOutput] = []
        self._error = error

    def __call__(self, sample_rate_hz: int) -> FakeAudioOutput:
        if self._error is not None:
            raise self._error
        output = FakeAudioOutput(sample_rate_hz)
        self.outputs.append(output)
        return output

    @property
    def latest(self) -> FakeAudioOutput:
        return self.outputs[-1]


def tone(num_samples: int = 4096, value: float = 0.25) -> np.ndarray:
    return np.full(num_samples, value, dtype=np.float32)


# ---------------------------------------------------------------------
# Provider client
# ---------------------------------------------------------------------

def default_chat_reply(kwargs: Mapping[str, Any]) -> str | None:
    user = kwargs["messages"][-1]["content"]
    if kwargs.get("response_format") == {"type": "json_object"}:
        return json.dumps({"message": f"polished: {user}"})
    return f"reply to: {user}"


class FakeOpenAI:
    """
    Stand-in for openai.AsyncOpenAI covering the calls the services make.

    fail_with is raised from every call when set.
    empty_choices makes chat completions come back with no choices.
    """

    def __init__(
        self,
        *,
        chat_reply: Any = default_chat_reply,
        speech: bytes = b"ID3-fake-mp3",
        transcript: str = "transcribed words",
        fail_with: Exception | None = None,
        empty_choices: bool = False,
    ) -> None:
        self.chat_calls: list[dict[str, Any]] = []
        self.speech_calls: list[dict[str, Any]] = []
        self.transcription_calls: list[dict[str, Any]] = []
        self.fail_with = fail_with
        self.empty_choices = empty_choices
        self._chat_reply = chat_reply
        self._speech = speech
        self._transcript = transcript

        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._chat_create))
        self.audio = SimpleNamespace(
            speech=SimpleNamespace(create=self._speech_create),
            transcriptions=SimpleNamespace(create=self._transcription_create),
        )

    async def _chat_create(self, **kwargs: Any) -> SimpleNamespace:
        self.chat_calls.append(kwargs)
        if self.fail_with is not None:
            raise self.fail_with
        if self.empty_choices:
            return SimpleNamespace(choices=[])
        content = self._chat_reply(kwargs)
        return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])

    async def _speech_create(self, **kwargs: Any) -> SimpleNamespace:
        self.speech_calls.append(kwargs)
        if self.fail_with is not None:
            raise self.fail_with
        return SimpleNamespace(content=self._speech)

    async def _transcription_create(self, **kwargs: Any) -> SimpleNamespace:
        self.transcription_calls.append(kwargs)
        if self.fail_with is not None:
            raise self.fail_with
        return SimpleNamespace(text=self._transcript)
