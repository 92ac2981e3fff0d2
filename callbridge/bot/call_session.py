"""
Per-call coordinator between the Twilio media stream and the Realtime API.

One ``CallSession`` exists per accepted Twilio WebSocket. It owns the upstream
client and its state, the buffer of caller audio received before the upstream
session is configured, the transcript, and the finalize-once contract: however
many termination signals arrive (stop, either socket closing, an internal
error), exactly one CallReport is built and handed to the emitter.

All methods run on the event loop that serves the Twilio connection, so session
fields are only mutated from one logical sequence.
"""

import asyncio
import logging
import uuid
from collections import deque
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Deque, Dict, Optional

from callbridge.bot.realtime_api import RealtimeAudioClient
from callbridge.config.constants import (
    LOGGER_NAME,
    REASON_INTERNAL_ERROR,
    REASON_OPENAI_CLOSED,
    REASON_OPENAI_CONNECT_FAILED,
    REASON_TWILIO_STOP,
)
from callbridge.config.settings import Settings
from callbridge.models.call_report import CallReport, compute_duration_seconds
from callbridge.models.realtime_schemas import (
    AudioDeltaEvent,
    IncomingRealtimeEvent,
    InputAudioTranscription,
    InputTranscriptionCompletedEvent,
    SessionConfig,
    SessionErrorEvent,
    TextDeltaEvent,
    TextDoneEvent,
    TurnDetection,
)
from callbridge.models.transcript import TranscriptAssembler
from callbridge.services.report_client import CallReportEmitter
from callbridge.services.twilio_stream import TwilioMediaStream

logger = logging.getLogger(LOGGER_NAME)

ClientFactory = Callable[[Settings], RealtimeAudioClient]


class UpstreamState(str, Enum):
    UNCONNECTED = "unconnected"
    CONNECTING = "connecting"
    READY = "ready"
    CLOSED = "closed"
    FAILED = "failed"


TERMINAL_STATES = (UpstreamState.CLOSED, UpstreamState.FAILED)

# Call metadata fields and the query/custom parameter names they are read from
METADATA_KEYS = {
    "call_sid": ("callSid", "callId", "call_sid", "call_id"),
    "from_number": ("from", "From", "from_number"),
    "to_number": ("to", "To", "to_number"),
    "agency_id": ("agencyId", "agency_id"),
}


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def default_client_factory(settings: Settings) -> RealtimeAudioClient:
    return RealtimeAudioClient(
        settings.openai_api_key,
        settings.openai_realtime_model,
        url=settings.openai_realtime_url,
    )


def build_session_config(settings: Settings) -> SessionConfig:
    """The session.update payload declared once at connect time."""
    transcription = None
    if settings.transcription_model:
        transcription = InputAudioTranscription(model=settings.transcription_model)
    return SessionConfig(
        instructions=settings.system_prompt,
        voice=settings.voice,
        input_audio_format=settings.input_audio_format,
        output_audio_format=settings.output_audio_format,
        turn_detection=TurnDetection(
            threshold=settings.vad_threshold,
            prefix_padding_ms=settings.vad_prefix_padding_ms,
            silence_duration_ms=settings.vad_silence_duration_ms,
            create_response=True,
        ),
        input_audio_transcription=transcription,
    )


def extract_metadata(params: Optional[Dict[str, Any]]) -> Dict[str, str]:
    """Map query-string or customParameters names onto session metadata fields."""
    metadata: Dict[str, str] = {}
    if not params:
        return metadata
    for field, names in METADATA_KEYS.items():
        for name in names:
            value = params.get(name)
            if value:
                metadata[field] = str(value)
                break
    return metadata


class CallSession:
    """
    Stateful bridge for one phone call.

    Args:
        settings: Process-wide configuration
        downstream: The caller's media stream
        emitter: Report emitter; built from settings when omitted
        client_factory: Builds the upstream client (injectable for tests)
    """

    def __init__(
        self,
        settings: Settings,
        downstream: TwilioMediaStream,
        emitter: Optional[CallReportEmitter] = None,
        client_factory: ClientFactory = default_client_factory,
    ):
        self.settings = settings
        self.downstream = downstream
        self.emitter = emitter or CallReportEmitter(
            settings.report_url, settings.report_secret, timeout=settings.report_timeout
        )
        self._client_factory = client_factory

        self.session_id = uuid.uuid4().hex[:12]
        self.stream_sid: Optional[str] = None
        self.call_sid: Optional[str] = None
        self.from_number: Optional[str] = None
        self.to_number: Optional[str] = None
        self.agency_id: Optional[str] = None

        self.upstream_state = UpstreamState.UNCONNECTED
        self.client: Optional[RealtimeAudioClient] = None
        self._connect_task: Optional[asyncio.Task] = None

        self.connected_at = utcnow()
        self.started_at: Optional[datetime] = None
        self.ended_at: Optional[datetime] = None
        self.finalized = False
        self.report: Optional[CallReport] = None
        self._report_task: Optional[asyncio.Task] = None
        self._stop_requested = False
        self._closed = False

        self.pending_audio: Deque[str] = deque()
        self.transcript = TranscriptAssembler()

        # Per-session counters
        self.media_frames_received = 0
        self.audio_chunks_sent = 0
        self.agent_chunks_relayed = 0
        self.dropped_audio_chunks = 0
        self.upstream_errors = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def begun(self) -> bool:
        return self.upstream_state != UpstreamState.UNCONNECTED

    def apply_metadata(self, metadata: Optional[Dict[str, str]]) -> None:
        """Fill in call metadata; values already set are never overwritten."""
        if not metadata:
            return
        for field in METADATA_KEYS:
            value = metadata.get(field)
            if value and getattr(self, field) is None:
                setattr(self, field, value)

    def set_stream_sid(self, stream_sid: Optional[str]) -> None:
        if not stream_sid:
            return
        if self.stream_sid is None:
            self.stream_sid = stream_sid
        elif stream_sid != self.stream_sid:
            logger.warning(
                f"[{self.session_id}] Ignoring streamSid change {self.stream_sid} -> {stream_sid}"
            )

    def mark_started(self) -> None:
        if self.started_at is None:
            self.started_at = utcnow()

    def mark_ended(self) -> None:
        if self.ended_at is None:
            self.ended_at = utcnow()

    async def begin(self, metadata: Optional[Dict[str, str]] = None) -> None:
        """
        Start the upstream connection. Idempotent: later calls only merge metadata.
        """
        self.apply_metadata(metadata)
        if self.begun or self._closed:
            return
        self.upstream_state = UpstreamState.CONNECTING
        logger.info(f"[{self.session_id}] Opening OpenAI Realtime connection")
        self._connect_task = asyncio.create_task(self._open_upstream())

    async def _open_upstream(self) -> None:
        try:
            await self._connect_and_configure()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error(f"[{self.session_id}] Error setting up OpenAI session: {e}", exc_info=True)
            self.upstream_state = UpstreamState.FAILED
            self.pending_audio.clear()
            await self.terminate(self._setup_failure_reason(REASON_INTERNAL_ERROR))

    def _setup_failure_reason(self, reason: str) -> str:
        # A stop that arrived while we were connecting is what ended the call
        return REASON_TWILIO_STOP if self._stop_requested else reason

    async def _connect_and_configure(self) -> None:
        client = self._client_factory(self.settings)
        self.client = client
        client.set_handlers(
            event_handler=self.handle_upstream_event,
            lost_handler=self.handle_upstream_closed,
        )

        if not await client.connect():
            logger.error(f"[{self.session_id}] Could not connect to OpenAI Realtime API")
            self.upstream_state = UpstreamState.FAILED
            self.pending_audio.clear()
            await self.terminate(self._setup_failure_reason(REASON_OPENAI_CONNECT_FAILED))
            return

        if self._closed:
            # The caller went away while we were connecting
            await client.close()
            return

        if not await client.update_session(build_session_config(self.settings)):
            logger.error(f"[{self.session_id}] Failed to send session.update")
            self.upstream_state = UpstreamState.FAILED
            self.pending_audio.clear()
            await self.terminate(self._setup_failure_reason(REASON_OPENAI_CONNECT_FAILED))
            return
        logger.info(f"[{self.session_id}] OpenAI session configured")

        await self._drain_pending_audio()
        if self.upstream_state != UpstreamState.CONNECTING:
            return
        self.upstream_state = UpstreamState.READY
        logger.info(f"[{self.session_id}] OpenAI Realtime connection ready")

        if self.settings.send_greeting:
            await client.create_response(self.settings.greeting_instructions)

    async def _drain_pending_audio(self) -> None:
        # Frames arriving while we drain are queued behind the ones being sent,
        # so READY is only set once the queue is empty.
        drained = 0
        while self.pending_audio and self.upstream_state == UpstreamState.CONNECTING:
            payload = self.pending_audio.popleft()
            if await self.client.append_audio(payload):
                self.audio_chunks_sent += 1
                drained += 1
        if drained:
            logger.info(f"[{self.session_id}] Flushed {drained} buffered audio chunks to OpenAI")

    async def relay_caller_audio(self, payload: str) -> None:
        """Send caller audio upstream, or buffer it until the upstream is ready."""
        if not payload:
            return
        self.media_frames_received += 1

        if self.upstream_state == UpstreamState.READY:
            if await self.client.append_audio(payload):
                self.audio_chunks_sent += 1
            return

        if self.upstream_state in TERMINAL_STATES:
            return

        if len(self.pending_audio) >= self.settings.pending_audio_limit:
            self.pending_audio.popleft()
            self.dropped_audio_chunks += 1
            if self.dropped_audio_chunks == 1 or self.dropped_audio_chunks % 50 == 0:
                logger.warning(
                    f"[{self.session_id}] Pre-connect audio buffer full, "
                    f"dropped {self.dropped_audio_chunks} oldest chunks"
                )
        self.pending_audio.append(payload)

    async def relay_agent_audio(self, payload: str) -> None:
        """Forward agent audio to the caller; dropped if the caller is gone."""
        if not self.stream_sid or not self.downstream.is_open:
            return
        if await self.downstream.send_media(self.stream_sid, payload):
            self.agent_chunks_relayed += 1

    async def handle_upstream_event(self, event: IncomingRealtimeEvent) -> None:
        if isinstance(event, AudioDeltaEvent):
            await self.relay_agent_audio(event.delta)
        elif isinstance(event, TextDeltaEvent):
            self.transcript.add_assistant_delta(event.delta)
        elif isinstance(event, TextDoneEvent):
            line = self.transcript.complete_assistant_turn()
            if line:
                logger.debug(f"[{self.session_id}] {line}")
        elif isinstance(event, InputTranscriptionCompletedEvent):
            line = self.transcript.add_caller_utterance(event.transcript)
            if line:
                logger.debug(f"[{self.session_id}] {line}")
        elif isinstance(event, SessionErrorEvent):
            self.upstream_errors += 1
            logger.error(f"[{self.session_id}] OpenAI error: {event.message}")

    async def handle_upstream_closed(self, reason: str = REASON_OPENAI_CLOSED) -> None:
        """The Realtime connection ended on its own; the call cannot continue."""
        if self.upstream_state not in TERMINAL_STATES:
            self.upstream_state = (
                UpstreamState.CLOSED if reason == REASON_OPENAI_CLOSED else UpstreamState.FAILED
            )
        logger.info(f"[{self.session_id}] OpenAI connection ended: {reason}")
        await self.terminate(reason)

    async def stop(self) -> None:
        """Handle Twilio's stop event: commit caller audio, report, tear down."""
        self.mark_ended()
        self._stop_requested = True
        if self._connect_task and not self._connect_task.done():
            await asyncio.wait({self._connect_task})

        if self.client and self.upstream_state == UpstreamState.READY:
            await self.client.commit_audio()
            await self.client.close()
            self.upstream_state = UpstreamState.CLOSED

        await self.terminate(REASON_TWILIO_STOP)

    async def terminate(self, reason: str) -> None:
        """Finalize with ``reason`` and release both connections."""
        self.mark_ended()
        await self.finalize_and_report(reason)
        await self.close()

    async def finalize_and_report(self, reason: str) -> Optional[CallReport]:
        """
        Build and emit the call report. Runs once per session; later calls
        wait for the delivery already in flight and return None.

        Delivery runs in its own task, so cancelling whichever task got here
        first (the upstream receive task, the connect task) cannot abort it.
        """
        if self.finalized:
            await self._wait_for_report()
            return None
        self.finalized = True

        self.mark_ended()
        started_at = self.started_at or self.connected_at
        ended_at = self.ended_at = max(self.ended_at, started_at)
        self.transcript.flush()

        self.report = CallReport(
            session_id=self.session_id,
            call_sid=self.call_sid,
            stream_sid=self.stream_sid,
            agency_id=self.agency_id,
            from_number=self.from_number,
            to_number=self.to_number,
            started_at=started_at,
            ended_at=ended_at,
            duration_seconds=compute_duration_seconds(started_at, ended_at),
            transcript=self.transcript.render(),
            reason=reason,
        )
        logger.info(
            f"[{self.session_id}] Call finalized: reason={reason} "
            f"duration={self.report.duration_seconds}s lines={len(self.transcript)} "
            f"frames_in={self.media_frames_received} sent={self.audio_chunks_sent} "
            f"relayed={self.agent_chunks_relayed} dropped={self.dropped_audio_chunks}"
        )

        self._report_task = asyncio.create_task(self._deliver_report(self.report))
        await asyncio.shield(self._report_task)
        return self.report

    async def _deliver_report(self, report: CallReport) -> None:
        result = await self.emitter.emit(report)
        logger.info(f"[{self.session_id}] Report delivery: {result.status}")

    async def _wait_for_report(self) -> None:
        task = self._report_task
        if task is not None and not task.done():
            await asyncio.shield(task)

    async def close(self) -> None:
        """Release the upstream client and the Twilio socket. Idempotent."""
        if self._closed:
            return
        self._closed = True
        self.pending_audio.clear()

        # The report may be riding on the tasks cancelled below
        await self._wait_for_report()

        task = self._connect_task
        if task and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self.client is not None:
            await self.client.close()
        if self.upstream_state not in TERMINAL_STATES:
            self.upstream_state = UpstreamState.CLOSED

        await self.downstream.close()
        logger.info(f"[{self.session_id}] Session closed (streamSid={self.stream_sid})")
