# pylint: disable=missing-module-docstring,missing-function-docstring

import asyncio
import json

import pytest

from config import AppConfig
from realtime.errors import HandshakeError
from realtime.state import ConnectionState
from session.gateway import SessionGateway

from fakes import FakeConnector


CONFIG = AppConfig(openai_api_key="sk-test")


async def settle() -> None:
    for _ in range(10):
        await asyncio.sleep(0)


def test_connect_reports_session_ready():
    async def scenario():
        gateway = SessionGateway(config=CONFIG, connector=FakeConnector())

        result = await gateway.on_ws_connect()

        assert gateway.session is not None
        assert result.outbound_json == (
            {"type": "session.ready", "session_id": gateway.session.session_id},
        )
        await gateway.on_ws_disconnect(reason="test")
        assert gateway.session.state is ConnectionState.CLOSED

    asyncio.run(scenario())


def test_missing_key_is_reported_to_browser():
    async def scenario():
        gateway = SessionGateway(config=AppConfig(), connector=FakeConnector())

        result = await gateway.on_ws_connect()

        assert result.outbound_json == (
            {"type": "error", "message": "OPENAI_API_KEY is not configured"},
        )

    asyncio.run(scenario())


def test_handshake_failure_is_pushed_once():
    async def scenario():
        connector = FakeConnector(fail_with=HandshakeError("connection refused"))
        gateway = SessionGateway(config=CONFIG, connector=connector)

        result = await gateway.on_ws_connect()

        assert result.outbound_json == ()
        assert await gateway.next_outbound() == {"type": "error", "message": "connection refused"}

    asyncio.run(scenario())


def test_browser_messages_become_realtime_commands():
    async def scenario():
        connector = FakeConnector()
        gateway = SessionGateway(config=CONFIG, connector=connector)
        await gateway.on_ws_connect()

        for message in (
            {"type": "audio", "audio": "AAAA"},
            {"type": "commit"},
            {"type": "text", "text": "How was that?"},
        ):
            result = await gateway.on_json_message(json.dumps(message))
            assert result.outbound_json == ()

        await gateway.on_ws_disconnect()

        assert connector.transport.sent_types() == [
            "session.update",
            "input_audio_buffer.append",
            "input_audio_buffer.commit",
            "conversation.item.create",
            "response.create",
        ]

    asyncio.run(scenario())


def test_bad_browser_messages_get_errors():
    async def scenario():
        gateway = SessionGateway(config=CONFIG, connector=FakeConnector())
        await gateway.on_ws_connect()

        async def reply_to(payload: str) -> str:
            result = await gateway.on_json_message(payload)
            return result.outbound_json[0]["message"]

        assert await reply_to("{nope") == "Invalid JSON message"
        assert await reply_to("[1]") == "Message must be a JSON object"
        assert await reply_to('{"type": "dance"}') == "Unknown message type: dance"
        assert await reply_to('{"type": "audio"}') == "audio message requires base64 'audio'"
        assert await reply_to('{"type": "text", "text": "  "}') == "text message requires 'text'"

        await gateway.on_ws_disconnect()
        assert await reply_to('{"type": "commit"}') == "Realtime session is not connected"

    asyncio.run(scenario())


def test_realtime_events_are_forwarded_unchanged():
    async def scenario():
        connector = FakeConnector()
        gateway = SessionGateway(config=CONFIG, connector=connector)
        await gateway.on_ws_connect()

        event = {"type": "response.audio.delta", "event_id": "evt_1", "delta": "AAAA"}
        connector.transport.push(event)
        await settle()

        assert await gateway.next_outbound() == event

        await gateway.on_ws_disconnect()

    asyncio.run(scenario())


def test_remote_failure_is_pushed_as_error():
    async def scenario():
        connector = FakeConnector()
        gateway = SessionGateway(config=CONFIG, connector=connector)
        await gateway.on_ws_connect()

        connector.transport.push_close(1011, "server overloaded")
        await settle()

        assert await gateway.next_outbound() == {
            "type": "error",
            "message": "Connection closed unexpectedly: server overloaded",
        }

    asyncio.run(scenario())


def test_remote_error_event_reaches_browser_once():
    async def scenario():
        connector = FakeConnector()
        gateway = SessionGateway(config=CONFIG, connector=connector)
        await gateway.on_ws_connect()

        event = {"type": "error", "event_id": "evt_err", "error": {"message": "Invalid API key"}}
        connector.transport.push(event)
        await settle()

        assert gateway.session.state is ConnectionState.FAILED
        assert await gateway.next_outbound() == event
        with pytest.raises(asyncio.TimeoutError):
            await asyncio.wait_for(gateway.next_outbound(), timeout=0.05)

    asyncio.run(scenario())


def test_disconnect_without_session_is_harmless():
    async def scenario():
        gateway = SessionGateway(config=CONFIG, connector=FakeConnector())

        assert (await gateway.on_ws_disconnect()).outbound_json == ()
        assert (await gateway.on_json_message("{}")).outbound_json == ()

    asyncio.run(scenario())
