"""Admin diagnostics over stored endpoints."""

from dataclasses import dataclass
from datetime import date

from expiry_tracker.domain.expiry import days_remaining, expiry_status, today_in
from expiry_tracker.domain.models import EndpointRecord, FoodItem
from expiry_tracker.services.endpoints import EndpointStore

IDENTITY_PREVIEW_LENGTH = 50


@dataclass
class AdminService:
    """Service for the admin endpoint listing."""

    store: EndpointStore
    timezone_name: str = "UTC"

    def list_endpoints(self, today: date | None = None) -> dict[str, object]:
        """Return every endpoint with item counts and days remaining."""
        reference = today or today_in(self.timezone_name)
        endpoints = [
            _serialize_endpoint(key, record, reference)
            for key, record in self.store.list_all()
        ]
        return {
            "totalEndpoints": len(endpoints),
            "referenceDate": reference.isoformat(),
            "endpoints": endpoints,
        }


def _serialize_endpoint(
    key: str, record: EndpointRecord, today: date
) -> dict[str, object]:
    identity = record.identity
    if len(identity) > IDENTITY_PREVIEW_LENGTH:
        identity = identity[:IDENTITY_PREVIEW_LENGTH] + "..."
    return {
        "key": key,
        "channel": record.channel.value,
        "identity": identity,
        "itemCount": len(record.items),
        "items": [_serialize_item(item, today) for item in record.items],
        "updatedAt": record.updated_at.isoformat() if record.updated_at else None,
    }


def _serialize_item(item: FoodItem, today: date) -> dict[str, object]:
    return {
        "name": item.name,
        "expiryDate": item.expiry_date.isoformat(),
        "daysRemaining": days_remaining(item.expiry_date, today),
        "status": expiry_status(item.expiry_date, today).value,
    }
