"""
Bot module bridging Twilio phone calls to the OpenAI Realtime API.

Key components:
- RealtimeAudioClient: Single-shot WebSocket client for one OpenAI Realtime
  session; sends session configuration and caller audio, decodes server events.
- CallSession: Per-call coordinator owning the upstream state machine, the
  pre-connect audio buffer, the transcript and the finalize-once report.

Usage examples:
```python
from callbridge.bot import CallSession
from callbridge.config.settings import get_settings
from callbridge.services.twilio_stream import TwilioMediaStream

async def bridge_call(websocket):
    session = CallSession(get_settings(), TwilioMediaStream(websocket))
    await session.begin({"agency_id": "agency-42"})

    # Caller audio before the upstream is ready is buffered, then flushed
    await session.relay_caller_audio(base64_mulaw_payload)

    # Twilio sent "stop": commit, emit the report and close both sockets
    await session.stop()
```
"""

from callbridge.bot.call_session import CallSession, UpstreamState
from callbridge.bot.realtime_api import RealtimeAudioClient
