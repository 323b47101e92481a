"""Subscribe, unsubscribe and item sync for notification endpoints."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime

from expiry_tracker.domain.models import Channel, EndpointRecord, FoodItem
from expiry_tracker.domain.notifications import DeliveryStatus, NotificationMessage
from expiry_tracker.errors import EndpointNotFound, ValidationError
from expiry_tracker.services.endpoints import EndpointStore, endpoint_key
from expiry_tracker.services.transport import PushTransport, deliver_with_timeout

_logger = logging.getLogger(__name__)

TEST_MESSAGE = NotificationMessage(
    title="🔔 Test Notification",
    body="If you see this, your notifications are working perfectly! 🎉",
    url="/",
    tag="test-notification",
)


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(frozen=True)
class DiagnosticReport:
    """Counts from a diagnostic delivery."""

    sent: int
    total: int


@dataclass
class RegistrationService:
    """Write side of the endpoint store, driven by client requests."""

    store: EndpointStore
    transport: PushTransport
    channel: Channel
    delivery_timeout_seconds: float = 10.0
    clock: Callable[[], datetime] = field(default=_utcnow)

    def key_for(self, identity: str) -> str:
        """Return the store key for an identity on this deployment's channel."""
        return endpoint_key(self.channel, identity)

    def subscribe(
        self, credentials: dict[str, object], items: list[FoodItem] | None = None
    ) -> str:
        """Create or replace the endpoint record and return its key.

        An existing record keeps its creation time, and keeps its items when
        no item list is supplied.
        """
        self._validate_credentials(credentials)
        identity = str(credentials[self.channel.identity_field])
        key = self.key_for(identity)
        existing = self.store.get(key)
        now = self.clock()
        if items is None:
            items = existing.items if existing else []
        record = EndpointRecord(
            channel=self.channel,
            credentials=dict(credentials),
            items=list(items),
            created_at=existing.created_at if existing else now,
            updated_at=now,
            notified_on=existing.notified_on if existing else {},
        )
        self.store.put(key, record)
        _logger.info("Saved subscription %s with %s items", key, len(record.items))
        return key

    def unsubscribe(self, identity: str) -> None:
        """Delete the endpoint record; unknown identities are ignored."""
        if not identity:
            raise ValidationError("Missing endpoint")
        key = self.key_for(identity)
        self.store.delete(key)
        _logger.info("Removed subscription %s", key)

    def sync_items(
        self, identity: str, items: list[FoodItem], create_missing: bool = False
    ) -> EndpointRecord:
        """Replace the item list of an endpoint, keeping its credentials."""
        if not identity:
            raise ValidationError("Missing endpoint")
        key = self.key_for(identity)
        existing = self.store.get(key)
        now = self.clock()
        if existing is None:
            if not create_missing:
                raise EndpointNotFound("Subscription not found")
            existing = self._new_record(identity, now)
        record = existing.with_items(items, now)
        self.store.put(key, record)
        _logger.info("Synced %s items for %s", len(items), key)
        return record

    def register(self, identity: str) -> tuple[EndpointRecord, bool]:
        """Ensure a chat user has a record; return it and whether it was created."""
        if not identity:
            raise ValidationError("Missing user id")
        key = self.key_for(identity)
        existing = self.store.get(key)
        if existing is not None:
            return existing, False
        record = self._new_record(identity, self.clock())
        self.store.put(key, record)
        _logger.info("Registered new %s user %s", self.channel.value, key)
        return record, True

    def get(self, identity: str) -> EndpointRecord | None:
        """Return the record for an identity, if present."""
        return self.store.get(self.key_for(identity))

    async def send_test(self, identity: str | None = None) -> DiagnosticReport:
        """Deliver a synthetic notification to one endpoint or to all of them."""
        if identity:
            record = self.get(identity)
            if record is None:
                raise EndpointNotFound("Subscription not found")
            records = [record]
        else:
            records = [record for _, record in self.store.list_all()]
        if not records:
            raise EndpointNotFound("No subscriptions found")

        outcomes = await asyncio.gather(
            *(
                deliver_with_timeout(
                    self.transport, record, TEST_MESSAGE, self.delivery_timeout_seconds
                )
                for record in records
            )
        )
        sent = 0
        for index, outcome in enumerate(outcomes, start=1):
            if outcome.status is DeliveryStatus.DELIVERED:
                sent += 1
            else:
                _logger.warning(
                    "Test notification %s failed: %s", index, outcome.detail
                )
        return DiagnosticReport(sent=sent, total=len(records))

    def _new_record(self, identity: str, now: datetime) -> EndpointRecord:
        return EndpointRecord(
            channel=self.channel,
            credentials={self.channel.identity_field: identity},
            created_at=now,
            updated_at=now,
        )

    def _validate_credentials(self, credentials: dict[str, object]) -> None:
        identity = credentials.get(self.channel.identity_field)
        if not isinstance(identity, str) or not identity.strip():
            raise ValidationError(
                f"Invalid subscription: missing {self.channel.identity_field}"
            )
        if self.channel is Channel.WEB_PUSH:
            keys = credentials.get("keys")
            if not isinstance(keys, dict) or not all(
                isinstance(keys.get(name), str) and keys.get(name)
                for name in ("p256dh", "auth")
            ):
                raise ValidationError("Invalid subscription: missing keys")
