from unittest.mock import AsyncMock, MagicMock

import pytest

from callbridge.bot.call_session import CallSession
from callbridge.handlers.stream_handlers import (
    STREAM_HANDLERS,
    handle_media,
    handle_stream_start,
    handle_stream_stop,
)
from callbridge.models.twilio_schemas import parse_twilio_message
from callbridge.services.twilio_stream import TwilioMediaStream
from tests.conftest import FakeTwilioWebSocket


@pytest.fixture
def session(settings, fake_client, emitter):
    return CallSession(
        settings,
        TwilioMediaStream(FakeTwilioWebSocket()),
        emitter=emitter,
        client_factory=lambda _settings: fake_client,
    )


def test_handlers_cover_start_media_stop():
    assert set(STREAM_HANDLERS) == {"start", "media", "stop"}


@pytest.mark.asyncio
class TestStreamHandlers:

    async def test_handle_stream_start(self, session):
        message = parse_twilio_message(
            '{"event": "start", "start": {"streamSid": "SS1", "callSid": "CA1",'
            ' "customParameters": {"agencyId": "agency-7", "to": "+15550002222"}}}'
        )

        await handle_stream_start(message, session)

        assert session.stream_sid == "SS1"
        assert session.call_sid == "CA1"
        assert session.agency_id == "agency-7"
        assert session.to_number == "+15550002222"
        assert session.started_at is not None
        assert session.begun
        await session._connect_task

    async def test_handle_stream_start_falls_back_to_top_level_stream_sid(self, session):
        message = parse_twilio_message('{"event": "start", "streamSid": "SS9", "start": {}}')

        await handle_stream_start(message, session)

        assert session.stream_sid == "SS9"
        await session._connect_task

    async def test_second_start_does_not_restart_upstream(self, session, fake_client):
        first = parse_twilio_message('{"event": "start", "start": {"streamSid": "SS1"}}')
        second = parse_twilio_message('{"event": "start", "start": {"streamSid": "SS2"}}')

        await handle_stream_start(first, session)
        started_at = session.started_at
        await handle_stream_start(second, session)
        await session._connect_task

        assert session.stream_sid == "SS1"
        assert session.started_at == started_at
        assert fake_client.kinds().count("session.update") == 1

    async def test_handle_media(self):
        session = MagicMock(spec=CallSession)
        session.relay_caller_audio = AsyncMock()
        message = parse_twilio_message('{"event": "media", "media": {"payload": "AAAA"}}')

        await handle_media(message, session)

        session.relay_caller_audio.assert_awaited_once_with("AAAA")

    async def test_handle_media_without_payload(self):
        session = MagicMock(spec=CallSession)
        session.relay_caller_audio = AsyncMock()
        message = parse_twilio_message('{"event": "media", "media": {"payload": ""}}')

        await handle_media(message, session)

        session.relay_caller_audio.assert_not_called()

    async def test_handle_stream_stop(self):
        session = MagicMock(spec=CallSession)
        session.session_id = "abc"
        session.stream_sid = "SS1"
        session.stop = AsyncMock()

        await handle_stream_stop(parse_twilio_message('{"event": "stop"}'), session)

        session.stop.assert_awaited_once()
