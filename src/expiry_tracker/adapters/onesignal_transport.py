"""OneSignal REST API push transport."""

from dataclasses import dataclass

import httpx

from expiry_tracker.domain.models import EndpointRecord
from expiry_tracker.domain.notifications import DeliveryResult, NotificationMessage
from expiry_tracker.services.transport import PushTransport, classify_status_code

_UNSUBSCRIBED_MARKERS = ("not subscribed", "invalid")


@dataclass
class OneSignalTransport(PushTransport):
    """Sends one notification per subscription id through OneSignal."""

    app_id: str
    api_key: str
    http_client: httpx.AsyncClient
    base_url: str = "https://api.onesignal.com"
    timeout_seconds: float = 10.0

    @classmethod
    def create(
        cls,
        app_id: str,
        api_key: str,
        base_url: str,
        timeout_seconds: float = 10.0,
    ) -> "OneSignalTransport":
        """Create a transport with a managed httpx session."""
        return cls(
            app_id=app_id,
            api_key=api_key,
            http_client=httpx.AsyncClient(),
            base_url=base_url,
            timeout_seconds=timeout_seconds,
        )

    async def deliver(
        self, record: EndpointRecord, message: NotificationMessage
    ) -> DeliveryResult:
        """Create a OneSignal notification and classify the response."""
        if not record.identity:
            return DeliveryResult.permanent("record has no subscription id")
        payload: dict[str, object] = {
            "app_id": self.app_id,
            "include_subscription_ids": [record.identity],
            "target_channel": "push",
            "headings": {"en": message.title},
            "contents": {"en": message.body},
            "url": message.url,
        }
        if message.tag is not None:
            payload["collapse_id"] = message.tag
        try:
            response = await self.http_client.post(
                f"{self.base_url}/notifications",
                json=payload,
                headers={"Authorization": f"Key {self.api_key}"},
                timeout=self.timeout_seconds,
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            return classify_status_code(
                exc.response.status_code,
                f"OneSignal returned {exc.response.status_code}",
            )
        except httpx.HTTPError as exc:
            return DeliveryResult.transient(f"{type(exc).__name__}: {exc}")
        return _classify_body(response)

    async def close(self) -> None:
        """Close the underlying HTTP session."""
        await self.http_client.aclose()


def _classify_body(response: httpx.Response) -> DeliveryResult:
    """Interpret a 200 response, which can still report unreachable recipients."""
    try:
        body = response.json()
    except ValueError:
        return DeliveryResult.transient("OneSignal returned a non-JSON body")
    errors = body.get("errors") if isinstance(body, dict) else None
    if not errors:
        return DeliveryResult.delivered()
    if isinstance(errors, dict):
        if errors.get("invalid_player_ids") or errors.get("invalid_subscription_ids"):
            return DeliveryResult.permanent("OneSignal reported invalid subscription")
        return DeliveryResult.transient(f"OneSignal errors: {errors}")
    text = " ".join(str(entry) for entry in errors).lower()
    if any(marker in text for marker in _UNSUBSCRIBED_MARKERS):
        return DeliveryResult.permanent(f"OneSignal errors: {errors}")
    return DeliveryResult.transient(f"OneSignal errors: {errors}")
