"""
WebSocket connection manager for Twilio Media Streams.

This module implements the server side of the Twilio Media Streams protocol:
- Accept the stream WebSocket and create one CallSession per connection
- Decode incoming frames and route them to the start/media/stop handlers
- Send periodic keepalive marks while the connection is open
- Finalize the call and release both sockets on every exit path

A failure inside one call is contained to that call; nothing raised while
serving a connection escapes ``handle_websocket``.
"""

import asyncio
import logging
from typing import Dict, Optional

from fastapi import WebSocket, WebSocketDisconnect

from callbridge.bot.call_session import (
    CallSession,
    ClientFactory,
    default_client_factory,
    extract_metadata,
)
from callbridge.config.constants import (
    CLOSE_CODE_MISSING_CREDENTIAL,
    LOGGER_NAME,
    REASON_TWILIO_CLOSED,
    REASON_TWILIO_ERROR,
)
from callbridge.config.settings import Settings
from callbridge.handlers.stream_handlers import STREAM_HANDLERS, HandlerFunc
from callbridge.models.twilio_schemas import parse_twilio_message
from callbridge.services.report_client import CallReportEmitter
from callbridge.services.twilio_stream import TwilioMediaStream

logger = logging.getLogger(LOGGER_NAME)


class WebSocketManager:
    """Serves Twilio Media Streams connections, one CallSession each.

    Args:
        settings: Process-wide configuration shared by every call
        emitter: Report emitter shared by every call; built from settings
            when omitted
        client_factory: Builds the upstream Realtime client for each call
    """

    def __init__(
        self,
        settings: Settings,
        emitter: Optional[CallReportEmitter] = None,
        client_factory: ClientFactory = default_client_factory,
    ):
        self.settings = settings
        self.emitter = emitter or CallReportEmitter(
            settings.report_url, settings.report_secret, timeout=settings.report_timeout
        )
        self.client_factory = client_factory
        self.active_sessions: Dict[str, CallSession] = {}

        self.handlers: Dict[str, HandlerFunc] = dict(STREAM_HANDLERS)

    async def _keepalive(self, session: CallSession, stream: TwilioMediaStream) -> None:
        """Send a keepalive mark every interval while the socket is open."""
        while stream.is_open and not session.closed:
            await asyncio.sleep(self.settings.keepalive_interval)
            if session.stream_sid and stream.is_open:
                await stream.send_keepalive(session.stream_sid)

    async def handle_websocket(self, websocket: WebSocket) -> None:
        """Handle one Twilio stream connection throughout its lifecycle.

        Args:
            websocket (WebSocket): The FastAPI WebSocket connection object

        The connection stays open until Twilio sends ``stop``, either socket
        closes, or an error occurs. In every case the call is finalized exactly
        once and both connections are released.
        """
        await websocket.accept()
        stream = TwilioMediaStream(websocket)

        if not self.settings.openai_api_key:
            logger.error("Missing OPENAI_API_KEY, rejecting stream connection")
            await stream.close(code=CLOSE_CODE_MISSING_CREDENTIAL, reason="missing_openai_api_key")
            return

        session = CallSession(
            self.settings,
            stream,
            emitter=self.emitter,
            client_factory=self.client_factory,
        )
        self.active_sessions[session.session_id] = session
        logger.info(f"[{session.session_id}] Twilio stream connected")

        reason = REASON_TWILIO_CLOSED
        keepalive_task = asyncio.create_task(self._keepalive(session, stream))
        try:
            await session.begin(extract_metadata(dict(websocket.query_params)))

            while not session.closed:
                data = await websocket.receive_text()
                message = parse_twilio_message(data)
                if message is None:
                    continue

                handler = self.handlers.get(message.event)
                if handler is None:
                    logger.debug(f"[{session.session_id}] Ignoring Twilio event: {message.event}")
                    continue
                await handler(message, session)

        except WebSocketDisconnect as e:
            stream.mark_closed()
            logger.info(f"[{session.session_id}] Twilio WS closed: {e.code}")
        except Exception as e:
            if not session.closed:
                reason = REASON_TWILIO_ERROR
                logger.error(f"[{session.session_id}] Error in Twilio connection: {e}", exc_info=True)
        finally:
            keepalive_task.cancel()
            try:
                await keepalive_task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.warning(f"[{session.session_id}] Keepalive task failed: {e}")

            try:
                await session.terminate(reason)
            except Exception as e:
                logger.error(f"[{session.session_id}] Error during session cleanup: {e}", exc_info=True)
            self.active_sessions.pop(session.session_id, None)
            logger.info(f"[{session.session_id}] Twilio connection handler finished")
