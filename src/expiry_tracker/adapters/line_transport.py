"""Push transport delivering reminders as LINE chat messages."""

from dataclasses import dataclass

import httpx

from expiry_tracker.adapters.line_client import LineClient
from expiry_tracker.domain.models import EndpointRecord
from expiry_tracker.domain.notifications import DeliveryResult, NotificationMessage
from expiry_tracker.services.transport import PushTransport, classify_status_code

FOOTER = "Open the app to check your items!"


@dataclass
class LineTransport(PushTransport):
    """Sends each message as one text push to the endpoint's LINE user."""

    client: LineClient

    async def deliver(
        self, record: EndpointRecord, message: NotificationMessage
    ) -> DeliveryResult:
        """Push the message and classify LINE API failures."""
        if not record.identity:
            return DeliveryResult.permanent("record has no LINE user id")
        text = f"{message.as_text()}\n\n{FOOTER}"
        try:
            await self.client.push_message(record.identity, text)
        except httpx.HTTPStatusError as exc:
            return classify_status_code(
                exc.response.status_code,
                f"LINE push returned {exc.response.status_code}",
            )
        except httpx.HTTPError as exc:
            return DeliveryResult.transient(f"{type(exc).__name__}: {exc}")
        return DeliveryResult.delivered()
