"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the application,
providing a centralized location for wire-level names and tuning values.
"""

# Logger name used throughout the application
LOGGER_NAME = "callbridge"

# Default OpenAI model and endpoint for the Realtime API
DEFAULT_REALTIME_MODEL = "gpt-realtime-2025-08-28"
DEFAULT_REALTIME_URL = "wss://api.openai.com/v1/realtime"
DEFAULT_VOICE = "ballad"
DEFAULT_TRANSCRIPTION_MODEL = "whisper-1"

# Audio format constants (Twilio Media Streams carry 8kHz mu-law)
AUDIO_FORMAT_G711_ULAW = "g711_ulaw"
AUDIO_FORMAT_G711_ALAW = "g711_alaw"
AUDIO_FORMAT_PCM16 = "pcm16"
SUPPORTED_AUDIO_FORMATS = [AUDIO_FORMAT_G711_ULAW, AUDIO_FORMAT_G711_ALAW, AUDIO_FORMAT_PCM16]

# HTTP / WebSocket paths
HEALTH_PATH = "/health"
STREAM_PATH = "/stream"

# Twilio Media Streams event names
TWILIO_EVENT_START = "start"
TWILIO_EVENT_MEDIA = "media"
TWILIO_EVENT_STOP = "stop"
TWILIO_EVENT_MARK = "mark"
KEEPALIVE_MARK_NAME = "keepalive"

# OpenAI Realtime client event types
EVENT_SESSION_UPDATE = "session.update"
EVENT_RESPONSE_CREATE = "response.create"
EVENT_INPUT_AUDIO_APPEND = "input_audio_buffer.append"
EVENT_INPUT_AUDIO_COMMIT = "input_audio_buffer.commit"

# OpenAI Realtime server event types, grouped by meaning
EVENT_ERROR = "error"
AUDIO_DELTA_EVENTS = (
    "response.audio.delta",
    "response.output_audio.delta",
    "output_audio.delta",
)
TEXT_DELTA_EVENTS = (
    "response.text.delta",
    "response.output_text.delta",
    "response.audio_transcript.delta",
    "response.output_audio_transcript.delta",
)
TEXT_DONE_EVENTS = (
    "response.text.done",
    "response.output_text.done",
    "response.audio_transcript.done",
    "response.output_audio_transcript.done",
)
INPUT_TRANSCRIPTION_COMPLETED_EVENTS = (
    "conversation.item.input_audio_transcription.completed",
    "input_audio_transcription.completed",
)

# Close code sent to the telephony side when no voice-model credential is set
CLOSE_CODE_NORMAL = 1000
CLOSE_CODE_MISSING_CREDENTIAL = 4001

# Session termination reasons reported in the call report
REASON_TWILIO_STOP = "twilio_stop"
REASON_TWILIO_CLOSED = "twilio_closed"
REASON_TWILIO_ERROR = "twilio_error"
REASON_OPENAI_CLOSED = "openai_closed"
REASON_OPENAI_ERROR = "openai_error"
REASON_OPENAI_CONNECT_FAILED = "openai_connect_failed"
REASON_INTERNAL_ERROR = "internal_error"

# Header carrying the shared secret on the report callback
REPORT_SECRET_HEADER = "X-Report-Secret"
