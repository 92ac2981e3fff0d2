"""
Call Bridge - Twilio Media Streams to OpenAI Realtime API

This package connects phone calls delivered through Twilio Media Streams to an
OpenAI Realtime voice agent: caller audio is forwarded to the model, the agent's
synthesized audio is streamed back to the caller, and when the call ends a
single call report (metadata, duration, transcript, termination reason) is
posted to an optional collector.

Architecture Overview:
- FastAPI server exposing the ``/stream`` WebSocket for Twilio and ``/health``
- One CallSession per call binding the Twilio socket to one Realtime socket
- Bounded buffering of caller audio until the Realtime session is configured
- Exactly-once finalization regardless of which side ends the call

Key Components:
- bot: Realtime API client and the per-call CallSession coordinator
- config: Constants, logging setup and immutable environment settings
- handlers: Handlers for Twilio start/media/stop events
- models: Wire schemas, transcript assembly and the CallReport
- services: Twilio outbound stream and the report delivery client
- websocket_manager: Accepts Twilio connections and drives each call

Getting Started:
1. Set up environment variables (or a ``.env`` file):
   - OPENAI_API_KEY: Your OpenAI API key
   - SYSTEM_PROMPT / VOICE: Persona of the agent
   - REPORT_URL / REPORT_SECRET: Optional call report collector
   - PORT: Port to run the server on (default 8080)

2. Start the server:
   ```bash
   python run.py
   ```

3. Point a TwiML ``<Connect><Stream url="wss://your-server/stream"/></Connect>``
   at the server.
"""
