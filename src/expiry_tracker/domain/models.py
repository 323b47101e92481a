"""Domain models for tracked food and notification endpoints."""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from enum import Enum

from expiry_tracker.domain.expiry import to_calendar_date

_logger = logging.getLogger(__name__)

_RESERVED_FIELDS = {
    "channel",
    "items",
    "foodItems",
    "createdAt",
    "registeredAt",
    "updatedAt",
    "notifiedOn",
}


class Channel(str, Enum):
    """Notification channel an endpoint belongs to."""

    WEB_PUSH = "webpush"
    LINE = "line"
    ONESIGNAL = "onesignal"

    @property
    def identity_field(self) -> str:
        """Credential field carrying the endpoint's primary identity."""
        return _IDENTITY_FIELDS[self]


_IDENTITY_FIELDS = {
    Channel.WEB_PUSH: "endpoint",
    Channel.LINE: "userId",
    Channel.ONESIGNAL: "subscriptionId",
}


@dataclass(frozen=True)
class FoodItem:
    """A tracked perishable item."""

    id: str
    name: str
    expiry_date: date
    created_at: datetime | None = None

    def to_document(self) -> dict[str, object]:
        """Serialize to the client-facing JSON shape."""
        return {
            "id": self.id,
            "name": self.name,
            "expiryDate": self.expiry_date.isoformat(),
            "createdAt": self.created_at.isoformat() if self.created_at else None,
        }

    @classmethod
    def from_document(cls, raw: Mapping[str, object]) -> "FoodItem":
        """Parse a stored item; raises ValueError when required fields are bad."""
        item_id = raw.get("id")
        name = raw.get("name")
        expiry = raw.get("expiryDate")
        if not isinstance(item_id, str) or not item_id:
            raise ValueError("item id is required")
        if not isinstance(name, str) or not name.strip():
            raise ValueError("item name is required")
        if not isinstance(expiry, str):
            raise ValueError("expiryDate must be an ISO date string")
        return cls(
            id=item_id,
            name=name,
            expiry_date=to_calendar_date(expiry),
            created_at=_parse_timestamp(raw.get("createdAt")),
        )


def parse_food_items(raw_items: object) -> list[FoodItem]:
    """Parse stored items, dropping malformed entries instead of failing."""
    if not isinstance(raw_items, list):
        return []
    items: list[FoodItem] = []
    for raw in raw_items:
        if not isinstance(raw, Mapping):
            _logger.warning("Dropping non-object food item: %r", raw)
            continue
        try:
            items.append(FoodItem.from_document(raw))
        except ValueError as exc:
            _logger.warning("Dropping malformed food item %r: %s", raw.get("id"), exc)
    return items


@dataclass(frozen=True)
class EndpointRecord:
    """A notification endpoint with its credentials and current item list."""

    channel: Channel
    credentials: dict[str, object]
    items: list[FoodItem] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    notified_on: dict[str, str] = field(default_factory=dict)

    @property
    def identity(self) -> str:
        """Primary identity of the endpoint within its channel."""
        value = self.credentials.get(self.channel.identity_field)
        return value if isinstance(value, str) else ""

    def with_items(self, items: list[FoodItem], now: datetime) -> "EndpointRecord":
        """Return a copy with the item list replaced."""
        return replace(self, items=list(items), updated_at=now)

    def notified_item_ids(self, day: date) -> frozenset[str]:
        """Ids of items already reminded about on the given day."""
        stamp = day.isoformat()
        return frozenset(
            item_id for item_id, value in self.notified_on.items() if value == stamp
        )

    def with_notified(self, item_ids: Iterable[str], day: date) -> "EndpointRecord":
        """Return a copy marking items as reminded on the given day.

        Entries for items no longer tracked are pruned.
        """
        tracked = {item.id for item in self.items}
        notified = {
            item_id: stamp
            for item_id, stamp in self.notified_on.items()
            if item_id in tracked
        }
        for item_id in item_ids:
            notified[item_id] = day.isoformat()
        return replace(self, notified_on=notified)

    def to_document(self) -> dict[str, object]:
        """Serialize to the flat persisted shape."""
        document: dict[str, object] = dict(self.credentials)
        document["channel"] = self.channel.value
        document["items"] = [item.to_document() for item in self.items]
        document["createdAt"] = self.created_at.isoformat() if self.created_at else None
        document["updatedAt"] = self.updated_at.isoformat() if self.updated_at else None
        if self.notified_on:
            document["notifiedOn"] = dict(self.notified_on)
        return document

    @classmethod
    def from_document(
        cls, document: Mapping[str, object], default_channel: Channel = Channel.WEB_PUSH
    ) -> "EndpointRecord":
        """Parse a persisted document, tolerating legacy field names."""
        channel = Channel(document.get("channel") or default_channel.value)
        raw_items = document.get("items")
        if raw_items is None:
            raw_items = document.get("foodItems")
        notified = document.get("notifiedOn")
        return cls(
            channel=channel,
            credentials={
                key: value
                for key, value in document.items()
                if key not in _RESERVED_FIELDS
            },
            items=parse_food_items(raw_items),
            created_at=_parse_timestamp(
                document.get("createdAt") or document.get("registeredAt")
            ),
            updated_at=_parse_timestamp(document.get("updatedAt")),
            notified_on=(
                {str(key): str(value) for key, value in notified.items()}
                if isinstance(notified, Mapping)
                else {}
            ),
        )


def _parse_timestamp(value: object) -> datetime | None:
    if not isinstance(value, str):
        return None
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None
