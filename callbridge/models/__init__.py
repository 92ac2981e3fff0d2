"""
Models module for wire schemas and per-call data structures.

Key components:
- twilio_schemas: Pydantic models and the frame decoder for the Twilio Media
  Streams protocol (start, media, stop, outbound media and mark frames).
- realtime_schemas: Outgoing OpenAI Realtime client events and the decoder that
  normalizes incoming server events and their historical synonyms.
- transcript: Incremental assembly of speaker-tagged transcript lines.
- call_report: The terminal CallReport value object and its duration rule.

Usage examples:
```python
from callbridge.models import parse_twilio_message, parse_realtime_event

message = parse_twilio_message('{"event": "media", "media": {"payload": "AAAA"}}')
print(message.media.payload)  # "AAAA"

event = parse_realtime_event('{"type": "response.output_audio.delta", "delta": "BBBB"}')
print(type(event).__name__)  # "AudioDeltaEvent"
```
"""

from callbridge.models.call_report import CallReport, compute_duration_seconds
from callbridge.models.realtime_schemas import (
    AudioDeltaEvent,
    InputAudioBufferAppendMessage,
    InputAudioBufferCommitMessage,
    InputTranscriptionCompletedEvent,
    ResponseCreateMessage,
    SessionConfig,
    SessionErrorEvent,
    SessionUpdateMessage,
    TextDeltaEvent,
    TextDoneEvent,
    TurnDetection,
    parse_realtime_event,
)
from callbridge.models.transcript import TranscriptAssembler, TranscriptLine
from callbridge.models.twilio_schemas import (
    MediaMessage,
    StartMessage,
    StopMessage,
    TwilioMarkOut,
    TwilioMediaOut,
    TwilioMessage,
    parse_twilio_message,
)
