"""
Pydantic models for OpenAI Realtime API message structures.

Outgoing models cover the client events this bridge sends (session.update,
response.create, input_audio_buffer.append/commit). Incoming server events are
normalized by ``parse_realtime_event``: every historical name for the same
event (audio deltas, transcript deltas, transcription completions) maps to one
internal model, so the session never deals with protocol synonyms.
"""

import json
import logging
from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from callbridge.config.constants import (
    AUDIO_DELTA_EVENTS,
    EVENT_ERROR,
    INPUT_TRANSCRIPTION_COMPLETED_EVENTS,
    LOGGER_NAME,
    TEXT_DELTA_EVENTS,
    TEXT_DONE_EVENTS,
)

logger = logging.getLogger(LOGGER_NAME)


# Outgoing client events
class TurnDetection(BaseModel):
    """Server-side voice activity detection policy."""
    type: Literal["server_vad"] = "server_vad"
    threshold: float = 0.5
    prefix_padding_ms: int = 300
    silence_duration_ms: int = 500
    create_response: bool = True


class InputAudioTranscription(BaseModel):
    model: str


class SessionConfig(BaseModel):
    instructions: str = ""
    voice: str
    input_audio_format: str
    output_audio_format: str
    modalities: List[str] = Field(default_factory=lambda: ["audio", "text"])
    turn_detection: TurnDetection = Field(default_factory=TurnDetection)
    input_audio_transcription: Optional[InputAudioTranscription] = None


class SessionUpdateMessage(BaseModel):
    type: Literal["session.update"] = "session.update"
    session: SessionConfig


class ResponseOptions(BaseModel):
    modalities: List[str] = Field(default_factory=lambda: ["audio", "text"])
    instructions: Optional[str] = None


class ResponseCreateMessage(BaseModel):
    type: Literal["response.create"] = "response.create"
    response: ResponseOptions = Field(default_factory=ResponseOptions)


class InputAudioBufferAppendMessage(BaseModel):
    type: Literal["input_audio_buffer.append"] = "input_audio_buffer.append"
    audio: str


class InputAudioBufferCommitMessage(BaseModel):
    type: Literal["input_audio_buffer.commit"] = "input_audio_buffer.commit"


# Normalized incoming server events
class RealtimeEvent(BaseModel):
    """Base model for normalized server events; ``source_type`` keeps the wire name."""
    source_type: str


class AudioDeltaEvent(RealtimeEvent):
    """A chunk of agent audio, base64 encoded in the negotiated output format."""
    delta: str


class TextDeltaEvent(RealtimeEvent):
    """A partial piece of the assistant's text or audio transcript."""
    delta: str


class TextDoneEvent(RealtimeEvent):
    """The assistant finished the current utterance."""
    text: Optional[str] = None


class InputTranscriptionCompletedEvent(RealtimeEvent):
    """A complete transcription of one caller utterance."""
    transcript: str = ""
    item_id: Optional[str] = None


class SessionErrorEvent(RealtimeEvent):
    """Error reported by the Realtime API; not fatal to the session."""
    error: Dict[str, Any] = Field(default_factory=dict)

    @property
    def message(self) -> str:
        return str(self.error.get("message") or self.error.get("code") or self.error)


IncomingRealtimeEvent = Union[
    AudioDeltaEvent,
    TextDeltaEvent,
    TextDoneEvent,
    InputTranscriptionCompletedEvent,
    SessionErrorEvent,
]


def _nested(data: Dict[str, Any], *path: str) -> Any:
    node: Any = data
    for key in path:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node


def extract_audio_delta(data: Dict[str, Any]) -> Optional[str]:
    """Find the audio payload under any of the field layouts seen on the wire."""
    for path in (
        ("delta",),
        ("audio", "delta"),
        ("response", "audio", "delta"),
        ("response", "output_audio", "delta"),
        ("output_audio", "delta"),
    ):
        value = _nested(data, *path)
        if isinstance(value, str) and value:
            return value
    return None


def parse_realtime_event(raw: Union[str, bytes]) -> Optional[IncomingRealtimeEvent]:
    """Decode one text frame from the Realtime API into a normalized event.

    Returns ``None`` for undecodable frames and for event types the bridge
    does not act on.
    """
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        logger.debug("Dropping undecodable Realtime frame")
        return None

    if not isinstance(data, dict):
        return None
    event_type = data.get("type")
    if not isinstance(event_type, str):
        return None

    if event_type in AUDIO_DELTA_EVENTS:
        delta = extract_audio_delta(data)
        if delta is None:
            logger.debug(f"Audio event {event_type} without payload")
            return None
        return AudioDeltaEvent(source_type=event_type, delta=delta)

    if event_type in TEXT_DELTA_EVENTS:
        delta = data.get("delta")
        if not isinstance(delta, str):
            return None
        return TextDeltaEvent(source_type=event_type, delta=delta)

    if event_type in TEXT_DONE_EVENTS:
        text = data.get("text", data.get("transcript"))
        return TextDoneEvent(
            source_type=event_type, text=text if isinstance(text, str) else None
        )

    if event_type in INPUT_TRANSCRIPTION_COMPLETED_EVENTS:
        transcript = data.get("transcript")
        item_id = data.get("item_id")
        return InputTranscriptionCompletedEvent(
            source_type=event_type,
            transcript=transcript if isinstance(transcript, str) else "",
            item_id=item_id if isinstance(item_id, str) else None,
        )

    if event_type == EVENT_ERROR:
        error = data.get("error")
        if not isinstance(error, dict):
            error = {"message": str(error)} if error is not None else {}
        return SessionErrorEvent(source_type=event_type, error=error)

    return None
