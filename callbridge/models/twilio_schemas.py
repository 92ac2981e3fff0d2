"""
Pydantic models for the Twilio Media Streams WebSocket protocol.

This module defines structured data models for the incoming (start, media, stop)
and outgoing (media, mark) messages exchanged with Twilio, and the decoder used
by the connection manager. Malformed frames decode to ``None`` so that a bad
frame never ends a call.
"""

import json
import logging
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from callbridge.config.constants import (
    KEEPALIVE_MARK_NAME,
    LOGGER_NAME,
    TWILIO_EVENT_MEDIA,
    TWILIO_EVENT_START,
    TWILIO_EVENT_STOP,
)

logger = logging.getLogger(LOGGER_NAME)


class TwilioMessage(BaseModel):
    """Base model for all Twilio Media Streams messages."""

    model_config = ConfigDict(extra="allow")

    event: str = Field(..., description="Event kind")
    streamSid: Optional[str] = Field(None, description="Stream identifier")


# Incoming messages
class StreamStart(BaseModel):
    """Payload of the ``start`` event."""

    model_config = ConfigDict(extra="allow")

    streamSid: Optional[str] = None
    callSid: Optional[str] = None
    accountSid: Optional[str] = None
    customParameters: Dict[str, Any] = Field(default_factory=dict)


class StartMessage(TwilioMessage):
    """Model for the ``start`` message sent once when the stream begins."""

    event: Literal["start"]
    start: StreamStart = Field(default_factory=StreamStart)


class MediaPayload(BaseModel):
    model_config = ConfigDict(extra="allow")

    payload: Optional[str] = Field(None, description="Base64 encoded mu-law audio")
    track: Optional[str] = None
    chunk: Optional[str] = None
    timestamp: Optional[str] = None


class MediaMessage(TwilioMessage):
    """Model for ``media`` messages carrying caller audio."""

    event: Literal["media"]
    media: MediaPayload = Field(default_factory=MediaPayload)


class StopMessage(TwilioMessage):
    """Model for the ``stop`` message sent when the stream ends."""

    event: Literal["stop"]


# Outgoing messages
class OutboundMedia(BaseModel):
    payload: str


class TwilioMediaOut(BaseModel):
    """Agent audio relayed to the caller."""

    event: Literal["media"] = "media"
    streamSid: str
    media: OutboundMedia


class MarkName(BaseModel):
    name: str = KEEPALIVE_MARK_NAME


class TwilioMarkOut(BaseModel):
    """Mark frame used as the application-level keepalive probe."""

    event: Literal["mark"] = "mark"
    streamSid: str
    mark: MarkName = Field(default_factory=MarkName)


IncomingTwilioMessage = Union[StartMessage, MediaMessage, StopMessage, TwilioMessage]

_INCOMING_MODELS = {
    TWILIO_EVENT_START: StartMessage,
    TWILIO_EVENT_MEDIA: MediaMessage,
    TWILIO_EVENT_STOP: StopMessage,
}


def parse_twilio_message(raw: Union[str, bytes]) -> Optional[IncomingTwilioMessage]:
    """Decode one text frame from Twilio.

    Returns the typed message for ``start``/``media``/``stop``, a plain
    ``TwilioMessage`` for any other event kind, or ``None`` when the frame is
    not a valid JSON object with an ``event`` name.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Dropping undecodable Twilio frame")
        return None

    if not isinstance(data, dict) or not isinstance(data.get("event"), str):
        logger.debug("Dropping Twilio frame without an event name")
        return None

    model = _INCOMING_MODELS.get(data["event"], TwilioMessage)
    try:
        return model.model_validate(data)
    except ValidationError as e:
        logger.debug(f"Dropping invalid Twilio {data['event']} frame: {e}")
        return None
