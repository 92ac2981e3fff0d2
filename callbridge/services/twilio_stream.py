"""
Outbound side of the Twilio Media Streams WebSocket.

``TwilioMediaStream`` wraps the FastAPI WebSocket accepted for one call and is
the only thing the session uses to talk to the caller. Sends after the socket
has gone away are dropped instead of raising, since the caller hanging up while
agent audio is in flight is an ordinary race.
"""

import logging
from typing import Optional

from fastapi import WebSocket
from pydantic import BaseModel
from starlette.websockets import WebSocketState

from callbridge.config.constants import CLOSE_CODE_NORMAL, LOGGER_NAME
from callbridge.models.twilio_schemas import OutboundMedia, TwilioMarkOut, TwilioMediaOut

logger = logging.getLogger(LOGGER_NAME)


class TwilioMediaStream:
    """Sends media and keepalive frames to Twilio for one call."""

    def __init__(self, websocket: WebSocket):
        self.websocket = websocket
        self._closed = False

    @property
    def is_open(self) -> bool:
        if self._closed:
            return False
        return (
            self.websocket.client_state == WebSocketState.CONNECTED
            and self.websocket.application_state == WebSocketState.CONNECTED
        )

    def mark_closed(self) -> None:
        """Record that the remote side is gone (disconnect already received)."""
        self._closed = True

    async def send_message(self, message: BaseModel) -> bool:
        if not self.is_open:
            return False
        try:
            await self.websocket.send_text(message.model_dump_json())
            return True
        except Exception as e:
            # Remote closed between the state check and the write
            logger.debug(f"Dropping frame for closed Twilio socket: {e}")
            self._closed = True
            return False

    async def send_media(self, stream_sid: str, payload: str) -> bool:
        return await self.send_message(
            TwilioMediaOut(streamSid=stream_sid, media=OutboundMedia(payload=payload))
        )

    async def send_keepalive(self, stream_sid: str) -> bool:
        return await self.send_message(TwilioMarkOut(streamSid=stream_sid))

    async def close(self, code: int = CLOSE_CODE_NORMAL, reason: Optional[str] = None) -> None:
        """Close the socket once; a no-op if it is already closed."""
        if not self.is_open:
            self._closed = True
            return
        self._closed = True
        try:
            await self.websocket.close(code=code, reason=reason)
        except Exception as e:
            logger.debug(f"Error while closing Twilio socket: {e}")
