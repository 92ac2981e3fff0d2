"""
Configuration module for the call bridge.

Key components:
- constants: Application-wide constants such as the logger name, wire event
  types, close codes and session termination reasons.
- logging_config: Console and rotating-file logging setup.
- settings: Process-wide, read-only settings loaded once from the environment.

Usage examples:
```python
from callbridge.config.logging_config import configure_logging
from callbridge.config.settings import get_settings

logger = configure_logging()
settings = get_settings()
logger.info(f"Using realtime model {settings.openai_realtime_model}")
```
"""

# Config module initialization
