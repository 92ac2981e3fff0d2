"""
Handlers for Twilio Media Streams events.

Key components:
- stream_handlers: Handlers for the ``start``, ``media`` and ``stop`` events,
  each taking the decoded message and the call's CallSession.

Usage examples:
```python
from callbridge.handlers.stream_handlers import STREAM_HANDLERS
from callbridge.models import parse_twilio_message

message = parse_twilio_message(frame_text)
handler = STREAM_HANDLERS.get(message.event) if message else None
if handler:
    await handler(message, session)
```
"""

# Handlers module initialization
