"""Push transport interface."""

import asyncio
import logging
from typing import Protocol

from expiry_tracker.domain.models import EndpointRecord
from expiry_tracker.domain.notifications import DeliveryResult, NotificationMessage

_logger = logging.getLogger(__name__)

GONE_STATUS_CODES = frozenset({404, 410})


class PushTransport(Protocol):
    """Delivers one message to one endpoint.

    Implementations never raise: every underlying error is mapped to a
    permanent failure (the endpoint is gone) or a transient failure.
    """

    async def deliver(
        self, record: EndpointRecord, message: NotificationMessage
    ) -> DeliveryResult:
        """Deliver the message and classify the outcome."""


def classify_status_code(status_code: int | None, detail: str) -> DeliveryResult:
    """Map an HTTP error status to a delivery result."""
    if status_code in GONE_STATUS_CODES:
        return DeliveryResult.permanent(detail)
    return DeliveryResult.transient(detail)


async def deliver_with_timeout(
    transport: PushTransport,
    record: EndpointRecord,
    message: NotificationMessage,
    timeout_seconds: float,
) -> DeliveryResult:
    """Deliver through the transport, bounding the call and absorbing errors."""
    try:
        return await asyncio.wait_for(
            transport.deliver(record, message), timeout=timeout_seconds
        )
    except TimeoutError:
        return DeliveryResult.transient(
            f"delivery timed out after {timeout_seconds}s"
        )
    except Exception as exc:
        _logger.exception("Transport raised for %s", record.identity[:50])
        return DeliveryResult.transient(f"{type(exc).__name__}: {exc}")
