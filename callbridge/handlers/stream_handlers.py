"""
Handles the Twilio Media Streams events for one call.

Each handler receives the decoded message and the call's ``CallSession``:
``start`` captures the stream identifiers and call metadata, ``media`` relays
caller audio, and ``stop`` ends the call.
"""

import logging
from typing import Awaitable, Callable, Dict

from callbridge.bot.call_session import CallSession, extract_metadata
from callbridge.config.constants import (
    LOGGER_NAME,
    TWILIO_EVENT_MEDIA,
    TWILIO_EVENT_START,
    TWILIO_EVENT_STOP,
)
from callbridge.models.twilio_schemas import MediaMessage, StartMessage, StopMessage, TwilioMessage

logger = logging.getLogger(LOGGER_NAME)

HandlerFunc = Callable[[TwilioMessage, CallSession], Awaitable[None]]


async def handle_stream_start(message: StartMessage, session: CallSession) -> None:
    """
    Handle the ``start`` message.

    Records the streamSid, callSid and any customParameters on the session,
    marks the call as started and makes sure the upstream connection is
    underway.
    """
    start = message.start
    session.set_stream_sid(start.streamSid or message.streamSid)

    metadata = extract_metadata(start.customParameters)
    if start.callSid:
        metadata.setdefault("call_sid", start.callSid)

    session.mark_started()
    logger.info(
        f"[{session.session_id}] [start] streamSid={session.stream_sid} callSid={start.callSid}"
    )
    await session.begin(metadata)


async def handle_media(message: MediaMessage, session: CallSession) -> None:
    """
    Handle a ``media`` message by relaying its payload upstream.

    Frames without a payload are ignored.
    """
    payload = message.media.payload
    if not payload:
        return
    await session.relay_caller_audio(payload)


async def handle_stream_stop(message: StopMessage, session: CallSession) -> None:
    logger.info(f"[{session.session_id}] [stop] streamSid={session.stream_sid}")
    await session.stop()


STREAM_HANDLERS: Dict[str, HandlerFunc] = {
    TWILIO_EVENT_START: handle_stream_start,
    TWILIO_EVENT_MEDIA: handle_media,
    TWILIO_EVENT_STOP: handle_stream_stop,
}
