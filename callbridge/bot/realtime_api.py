import asyncio
import logging
import time
from typing import Any, Awaitable, Callable, Dict, Optional

import websockets
from pydantic import BaseModel
from websockets.exceptions import ConnectionClosed, ConnectionClosedError, ConnectionClosedOK

from callbridge.config.constants import (
    DEFAULT_REALTIME_URL,
    LOGGER_NAME,
    REASON_OPENAI_CLOSED,
    REASON_OPENAI_ERROR,
)
from callbridge.models.realtime_schemas import (
    IncomingRealtimeEvent,
    InputAudioBufferAppendMessage,
    InputAudioBufferCommitMessage,
    ResponseCreateMessage,
    ResponseOptions,
    SessionConfig,
    SessionUpdateMessage,
    parse_realtime_event,
)

logger = logging.getLogger(LOGGER_NAME)

CONNECT_TIMEOUT = 30  # seconds
SEND_TIMEOUT = 5.0  # seconds

# Socket options: audio deltas can be large, and a short receive queue keeps
# latency low when the handler falls behind
WS_MAX_SIZE = 16 * 1024 * 1024
WS_MAX_QUEUE = 32
WS_PING_INTERVAL = 20

EventHandler = Callable[[IncomingRealtimeEvent], Awaitable[None]]
ConnectionLostHandler = Callable[[str], Awaitable[None]]


class RealtimeAudioClient:
    """
    Client for one OpenAI Realtime API session over WebSocket.

    The client is single-shot: once the connection is lost it is not reopened.
    Incoming frames are decoded into normalized events and passed to the
    registered event handler; the connection-lost handler receives the
    termination reason unless the close was requested locally.
    """
    def __init__(self, api_key: str, model: str, url: str = DEFAULT_REALTIME_URL):
        self.api_key = api_key
        self.model = model
        self.url = url
        self.ws = None
        self._recv_task: Optional[asyncio.Task] = None
        self._connection_active = False
        self._is_closing = False
        self._event_handler: Optional[EventHandler] = None
        self._connection_lost_handler: Optional[ConnectionLostHandler] = None

    @property
    def connection_active(self) -> bool:
        return self._connection_active

    def set_handlers(self,
                     event_handler: Optional[EventHandler] = None,
                     lost_handler: Optional[ConnectionLostHandler] = None) -> None:
        """
        Register callbacks for decoded server events and connection loss.

        Args:
            event_handler: Async function called with every recognized event
            lost_handler: Async function called with the reason when the
                connection ends without a local close
        """
        self._event_handler = event_handler
        self._connection_lost_handler = lost_handler

    def _connect_options(self) -> Dict[str, Any]:
        return {
            "max_size": WS_MAX_SIZE,
            "max_queue": WS_MAX_QUEUE,
            "ping_interval": WS_PING_INTERVAL,
            "compression": None,
            "additional_headers": {
                "Authorization": f"Bearer {self.api_key}",
                "OpenAI-Beta": "realtime=v1",
            },
        }

    async def connect(self) -> bool:
        """
        Open the Realtime socket and start receiving.

        Returns:
            bool: True once the socket is open, False if it could not be opened
                in time or the client was already closed
        """
        if self._is_closing:
            logger.warning("Realtime client already closed, not connecting")
            return False

        endpoint = f"{self.url}?model={self.model}"
        started = time.monotonic()
        try:
            self.ws = await asyncio.wait_for(
                websockets.connect(endpoint, **self._connect_options()),
                timeout=CONNECT_TIMEOUT,
            )
        except asyncio.TimeoutError:
            logger.error(f"Realtime connect to {self.url} timed out after {CONNECT_TIMEOUT}s")
            return False
        except Exception as e:
            logger.error(f"Realtime connect to {self.url} failed: {e}", exc_info=logger.isEnabledFor(logging.DEBUG))
            return False

        self._connection_active = True
        self._recv_task = asyncio.create_task(self._recv_loop())
        logger.info(f"Realtime socket open for {self.model} in {time.monotonic() - started:.2f}s")
        return True

    async def send_message(self, message: BaseModel) -> bool:
        """
        Send one client event.

        Returns:
            bool: True if the frame was written, False otherwise
        """
        kind = getattr(message, "type", type(message).__name__)
        if not self._connection_active or self.ws is None:
            logger.debug(f"Dropping {kind}, Realtime socket is not open")
            return False

        try:
            await asyncio.wait_for(
                self.ws.send(message.model_dump_json(exclude_none=True)),
                timeout=SEND_TIMEOUT,
            )
            return True
        except asyncio.TimeoutError:
            logger.warning(f"Sending {kind} timed out after {SEND_TIMEOUT}s")
        except ConnectionClosed as e:
            logger.warning(f"Realtime socket closed while sending {kind}: {e}")
            self._connection_active = False
        except Exception as e:
            logger.error(f"Failed to send {kind}: {e}", exc_info=True)
        return False

    async def update_session(self, config: SessionConfig) -> bool:
        return await self.send_message(SessionUpdateMessage(session=config))

    async def create_response(self, instructions: Optional[str] = None) -> bool:
        return await self.send_message(
            ResponseCreateMessage(response=ResponseOptions(instructions=instructions))
        )

    async def append_audio(self, payload: str) -> bool:
        """Append base64 caller audio to the input buffer (no transcoding)."""
        return await self.send_message(InputAudioBufferAppendMessage(audio=payload))

    async def commit_audio(self) -> bool:
        return await self.send_message(InputAudioBufferCommitMessage())

    async def _dispatch(self, raw: str) -> None:
        event = parse_realtime_event(raw)
        if event is None or self._event_handler is None:
            return
        try:
            await self._event_handler(event)
        except Exception as e:
            logger.error(f"Handler failed on {event.source_type}: {e}", exc_info=True)

    async def _recv_loop(self) -> None:
        """
        Receive server frames until the connection ends, then report the reason.
        """
        reason = REASON_OPENAI_CLOSED
        try:
            async for frame in self.ws:
                if isinstance(frame, bytes):
                    logger.debug(f"Skipping {len(frame)}-byte binary frame")
                    continue
                await self._dispatch(frame)
        except asyncio.CancelledError:
            self._connection_active = False
            raise
        except ConnectionClosedOK:
            logger.info("Realtime socket closed by server")
        except ConnectionClosedError as e:
            logger.warning(f"Realtime socket dropped: {e}")
            reason = REASON_OPENAI_ERROR
        except Exception as e:
            logger.error(f"Realtime receive loop failed: {e}", exc_info=True)
            reason = REASON_OPENAI_ERROR

        self._connection_active = False
        logger.info(f"Realtime receive loop finished ({reason})")

        if self._is_closing or self._connection_lost_handler is None:
            return
        try:
            await self._connection_lost_handler(reason)
        except Exception as e:
            logger.error(f"Connection-lost handler failed: {e}", exc_info=True)

    async def close(self) -> None:
        """
        Close the socket and stop receiving. Safe to call repeatedly and from
        inside an event handler.
        """
        if self._is_closing:
            return
        self._is_closing = True
        self._connection_active = False

        task = self._recv_task
        if task is not None and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception as e:
                logger.debug(f"Receive task raised during close: {e}")

        if self.ws is not None:
            try:
                await self.ws.close()
            except Exception as e:
                logger.debug(f"Ignoring error while closing Realtime socket: {e}")

        logger.info("Realtime client closed")
