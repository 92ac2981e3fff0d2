"""
Services module for the connections this bridge holds to outside systems.

Key components:
- twilio_stream: Outbound side of the Twilio Media Streams WebSocket (agent
  audio and keepalive marks), tolerant of the caller having hung up.
- report_client: Best-effort delivery of CallReports to an HTTP collector with a
  shared-secret header and a bounded timeout.

Usage examples:
```python
from callbridge.services.report_client import CallReportEmitter

emitter = CallReportEmitter("https://collector.example.com/calls", "s3cret", timeout=5.0)
result = await emitter.emit(report)
if not result.ok:
    print(result.status, result.status_code, result.error)
```
"""

# Services module initialization
