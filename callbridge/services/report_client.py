"""
Delivery of call reports to an external collector.

Delivery is best effort: one POST with the shared secret in a header, a bounded
timeout and no retry. A lost report is acceptable, so nothing here raises past
``emit``.
"""

import logging
from typing import Literal, Optional

import httpx
from pydantic import BaseModel

from callbridge.config.constants import LOGGER_NAME, REPORT_SECRET_HEADER
from callbridge.models.call_report import CallReport

logger = logging.getLogger(LOGGER_NAME)

DEFAULT_REPORT_TIMEOUT = 10.0  # seconds
MAX_LOGGED_BODY = 500


class DeliveryResult(BaseModel):
    """Outcome of one report delivery attempt."""
    status: Literal["delivered", "failed", "skipped"]
    status_code: Optional[int] = None
    body: Optional[str] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == "delivered"


class CallReportEmitter:
    """
    Posts CallReports to the configured collector URL.

    Args:
        url: Destination endpoint; delivery is skipped when empty
        secret: Shared secret sent in the ``X-Report-Secret`` header; delivery
            is skipped when empty
        timeout: Upper bound in seconds for the whole request
        transport: Optional httpx transport (used by tests)
    """

    def __init__(
        self,
        url: Optional[str],
        secret: Optional[str],
        timeout: float = DEFAULT_REPORT_TIMEOUT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.secret = secret
        self.timeout = timeout
        self._transport = transport

    @property
    def configured(self) -> bool:
        return bool(self.url and self.secret)

    async def emit(self, report: CallReport) -> DeliveryResult:
        """
        Deliver one report.

        Returns:
            DeliveryResult: ``skipped`` without a destination, ``delivered`` on a
            2xx response, ``failed`` otherwise (including transport errors)
        """
        if not self.configured:
            logger.info(f"[{report.session_id}] Report destination not configured, skipping delivery")
            return DeliveryResult(status="skipped")

        headers = {
            "Content-Type": "application/json",
            REPORT_SECRET_HEADER: self.secret,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.url, json=report.to_payload(), headers=headers)
        except httpx.HTTPError as e:
            logger.error(f"[{report.session_id}] Report delivery failed: {e!r}")
            return DeliveryResult(status="failed", error=repr(e))
        except Exception as e:
            logger.error(f"[{report.session_id}] Unexpected error delivering report: {e}", exc_info=True)
            return DeliveryResult(status="failed", error=repr(e))

        body = response.text[:MAX_LOGGED_BODY]
        if response.is_success:
            logger.info(f"[{report.session_id}] Report delivered ({response.status_code})")
            return DeliveryResult(status="delivered", status_code=response.status_code, body=body)

        logger.warning(
            f"[{report.session_id}] Report rejected with status {response.status_code}: {body}"
        )
        return DeliveryResult(status="failed", status_code=response.status_code, body=body)
