"""
The terminal summary of one call, sent to the report collector.
"""

import math
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def compute_duration_seconds(started_at: datetime, ended_at: datetime) -> int:
    """Whole seconds between two instants, rounded half up and never negative.

    ``T`` to ``T + 2.5s`` gives 3.
    """
    seconds = (ended_at - started_at).total_seconds()
    return max(0, int(math.floor(seconds + 0.5)))


class CallReport(BaseModel):
    """Call metadata, timing, transcript and termination reason.

    Serialized with camelCase keys (``model_dump(by_alias=True)``).
    """

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    session_id: str
    call_sid: Optional[str] = None
    stream_sid: Optional[str] = None
    agency_id: Optional[str] = None
    from_number: Optional[str] = None
    to_number: Optional[str] = None
    started_at: datetime
    ended_at: datetime
    duration_seconds: int
    transcript: str = ""
    reason: str
    summary: Optional[str] = None

    def to_payload(self) -> dict:
        """JSON-ready body for the report callback."""
        return self.model_dump(mode="json", by_alias=True)
