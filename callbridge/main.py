"""
FastAPI server bridging Twilio Media Streams to the OpenAI Realtime API.

This module loads configuration, sets up logging and exposes:
- ``GET /health``: plain-text liveness probe
- ``/stream``: the WebSocket Twilio's ``<Stream>`` verb connects to; each
  connection becomes one CallSession
"""

from pathlib import Path

import dotenv
from fastapi import FastAPI, WebSocket
from fastapi.responses import PlainTextResponse

from callbridge.config.constants import HEALTH_PATH, STREAM_PATH
from callbridge.config.logging_config import configure_logging
from callbridge.config.settings import get_settings
from callbridge.websocket_manager import WebSocketManager

# Load environment variables from .env file if it exists
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

logger = configure_logging()
settings = get_settings()

app = FastAPI(
    title="Call Bridge",
    description="Bridge between Twilio Media Streams and the OpenAI Realtime API",
    version="1.0.0",
)

websocket_manager = WebSocketManager(settings)


@app.websocket(STREAM_PATH)
async def stream_endpoint(websocket: WebSocket):
    """WebSocket endpoint for Twilio Media Streams.

    Query parameters ``agencyId``, ``callSid``/``callId``, ``from`` and ``to``
    are recorded as call metadata when present.
    """
    await websocket_manager.handle_websocket(websocket)


@app.get(HEALTH_PATH, response_class=PlainTextResponse)
async def health_check():
    """Health check endpoint for load balancers; always ``ok`` while serving."""
    return "ok"


if __name__ == "__main__":
    import uvicorn

    logger.info(f"Starting server on http://{settings.host}:{settings.port}")
    uvicorn.run(app, host=settings.host, port=settings.port, ws_ping_interval=25)
