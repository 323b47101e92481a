"""Browser Web Push transport backed by pywebpush."""

import asyncio
import json
import logging
from dataclasses import dataclass

from pywebpush import WebPushException, webpush

from expiry_tracker.domain.models import EndpointRecord
from expiry_tracker.domain.notifications import DeliveryResult, NotificationMessage
from expiry_tracker.services.transport import PushTransport, classify_status_code

_logger = logging.getLogger(__name__)


@dataclass
class WebPushTransport(PushTransport):
    """Delivers JSON payloads to push-service endpoints with VAPID auth."""

    vapid_private_key: str
    vapid_subject: str
    ttl_seconds: int = 86400
    timeout_seconds: float = 10.0

    async def deliver(
        self, record: EndpointRecord, message: NotificationMessage
    ) -> DeliveryResult:
        """Send the payload in a worker thread and classify the outcome."""
        subscription_info = _subscription_info(record)
        if subscription_info is None:
            return DeliveryResult.permanent("record lacks push endpoint or keys")
        data = json.dumps(message.to_payload())
        try:
            await asyncio.to_thread(self._send, subscription_info, data)
        except WebPushException as exc:
            status_code = getattr(exc.response, "status_code", None)
            _logger.info("Web Push rejected with status %s", status_code)
            return classify_status_code(status_code, f"push service: {exc.message}")
        except Exception as exc:
            return DeliveryResult.transient(f"{type(exc).__name__}: {exc}")
        return DeliveryResult.delivered()

    def _send(self, subscription_info: dict[str, object], data: str) -> None:
        webpush(
            subscription_info=subscription_info,
            data=data,
            vapid_private_key=self.vapid_private_key,
            vapid_claims={"sub": self.vapid_subject},
            ttl=self.ttl_seconds,
            timeout=self.timeout_seconds,
        )


def _subscription_info(record: EndpointRecord) -> dict[str, object] | None:
    keys = record.credentials.get("keys")
    if not record.identity or not isinstance(keys, dict):
        return None
    p256dh = keys.get("p256dh")
    auth = keys.get("auth")
    if not p256dh or not auth:
        return None
    return {"endpoint": record.identity, "keys": {"p256dh": p256dh, "auth": auth}}
