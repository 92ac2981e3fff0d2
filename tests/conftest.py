import asyncio
import json
import logging
from typing import List, Optional

import pytest
from fastapi import WebSocketDisconnect
from starlette.websockets import WebSocketState

from callbridge.config.settings import Settings
from callbridge.services.report_client import DeliveryResult


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    yield


class FakeTwilioWebSocket:
    """Stands in for the FastAPI WebSocket Twilio connects with.

    Frames are returned in order by receive_text; an Exception instance in the
    list is raised instead. Once the frames run out the remote side hangs up.
    """

    def __init__(self, frames=(), query_params=None):
        self.frames = list(frames)
        self.query_params = query_params or {}
        self.sent: List[dict] = []
        self.client_state = WebSocketState.CONNECTED
        self.application_state = WebSocketState.CONNECTED
        self.accepted = False
        self.close_code: Optional[int] = None
        self.close_calls = 0

    async def accept(self):
        self.accepted = True

    async def receive_text(self):
        await asyncio.sleep(0)
        if not self.frames:
            self.client_state = WebSocketState.DISCONNECTED
            raise WebSocketDisconnect(code=1000)
        frame = self.frames.pop(0)
        if isinstance(frame, WebSocketDisconnect):
            self.client_state = WebSocketState.DISCONNECTED
            raise frame
        if isinstance(frame, Exception):
            raise frame
        if not isinstance(frame, str):
            frame = json.dumps(frame)
        return frame

    async def send_text(self, text):
        self.sent.append(json.loads(text))

    async def close(self, code=1000, reason=None):
        self.close_calls += 1
        self.close_code = code
        self.application_state = WebSocketState.DISCONNECTED


class FakeRealtimeClient:
    """Records what the session sends upstream instead of opening a socket."""

    def __init__(self, connect_result=True):
        self.connect_result = connect_result
        self.sent: List[tuple] = []
        self.connected = False
        self.closed = False
        self.event_handler = None
        self.lost_handler = None

    def set_handlers(self, event_handler=None, lost_handler=None):
        self.event_handler = event_handler
        self.lost_handler = lost_handler

    async def connect(self):
        self.connected = self.connect_result
        return self.connect_result

    async def update_session(self, config):
        self.sent.append(("session.update", config))
        return True

    async def create_response(self, instructions=None):
        self.sent.append(("response.create", instructions))
        return True

    async def append_audio(self, payload):
        if self.closed:
            return False
        self.sent.append(("input_audio_buffer.append", payload))
        return True

    async def commit_audio(self):
        self.sent.append(("input_audio_buffer.commit", None))
        return True

    async def close(self):
        if not self.closed:
            self.sent.append(("close", None))
        self.closed = True

    def kinds(self):
        return [kind for kind, _ in self.sent]

    def appended(self):
        return [payload for kind, payload in self.sent if kind == "input_audio_buffer.append"]


class RecordingEmitter:
    """Report emitter that keeps every report it is asked to deliver."""

    def __init__(self, status="skipped", delay=0.0):
        self.reports = []
        self.completed = 0
        self.status = status
        self.delay = delay

    async def emit(self, report):
        self.reports.append(report)
        await asyncio.sleep(self.delay)
        self.completed += 1
        return DeliveryResult(status=self.status)


@pytest.fixture
def settings():
    return Settings(
        openai_api_key="test-api-key",
        system_prompt="You are a helpful phone agent.",
        pending_audio_limit=200,
        send_greeting=True,
    )


@pytest.fixture
def fake_client():
    return FakeRealtimeClient()


@pytest.fixture
def emitter():
    return RecordingEmitter()
