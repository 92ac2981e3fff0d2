"""
Run script for starting the call bridge server.

This script configures and starts the FastAPI server with WebSocket settings
suited to streaming call audio between Twilio and OpenAI.

Usage:
    python run.py [--port PORT] [--host HOST] [--log-level LEVEL]
"""

import argparse
import os
import sys
from pathlib import Path

import dotenv
import uvicorn

sys.path.append(str(Path(__file__).parent))

# Load .env before settings are read and cached
env_path = Path(".") / ".env"
if env_path.exists():
    dotenv.load_dotenv(env_path)

from callbridge.config.logging_config import configure_logging
from callbridge.config.settings import get_settings

# Configure logging
logger = configure_logging()


def parse_args(settings):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Start the Twilio to OpenAI Realtime call bridge"
    )
    parser.add_argument(
        "--port",
        type=int,
        default=settings.port,
        help="Port to run the server on (default: 8080 or PORT env var)",
    )
    parser.add_argument(
        "--host",
        default=settings.host,
        help="Host to bind the server to (default: 0.0.0.0 or HOST env var)",
    )
    parser.add_argument(
        "--log-level",
        default="DEBUG" if settings.debug else settings.log_level,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO, LOG_LEVEL env var, or DEBUG when DEBUG is set)",
    )
    return parser.parse_args()


def main():
    """Main entry point for starting the server."""
    settings = get_settings()
    args = parse_args(settings)

    # callbridge.main reconfigures logging on import, so hand the level over via the environment
    os.environ["LOG_LEVEL"] = args.log_level
    configure_logging(args.log_level)

    if not settings.openai_api_key:
        # Calls are still accepted and closed with code 4001
        logger.warning("OPENAI_API_KEY environment variable not set; calls will be rejected")

    logger.info(f"Starting server on http://{args.host}:{args.port}")
    logger.info(f"Log level: {args.log_level}")
    logger.info(f"Realtime model: {settings.openai_realtime_model}")
    logger.info(f"Report delivery configured: {settings.report_configured}")

    uvicorn.run(
        "callbridge.main:app",
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
        http="h11",
        # Transport-level pings on the Twilio socket
        ws_ping_interval=25,
        ws_ping_timeout=20,
        access_log=False,
        reload=os.getenv("ENV", "production").lower() == "development",
    )


if __name__ == "__main__":
    main()
