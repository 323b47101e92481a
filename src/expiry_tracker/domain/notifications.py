"""Domain models for composed notifications and delivery outcomes."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum


class NotificationPolicy(str, Enum):
    """How expiring items are grouped into notifications."""

    BATCH = "batch"
    PER_ITEM = "per_item"


@dataclass(frozen=True)
class NotificationMessage:
    """A rendered notification ready for a push transport."""

    title: str
    body: str
    url: str = "/"
    tag: str | None = None
    item_ids: tuple[str, ...] = ()

    def to_payload(self) -> dict[str, object]:
        """Return the JSON payload sent to clients."""
        payload: dict[str, object] = {
            "title": self.title,
            "body": self.body,
            "url": self.url,
        }
        if self.tag is not None:
            payload["tag"] = self.tag
        return payload

    def as_text(self) -> str:
        """Render as a single plain-text chat message."""
        return f"{self.title}\n\n{self.body}"


class DeliveryStatus(str, Enum):
    """Classified outcome of a delivery attempt."""

    DELIVERED = "delivered"
    PERMANENT_FAILURE = "permanent_failure"
    TRANSIENT_FAILURE = "transient_failure"


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome of delivering one message to one endpoint."""

    status: DeliveryStatus
    detail: str | None = None

    @classmethod
    def delivered(cls) -> "DeliveryResult":
        return cls(DeliveryStatus.DELIVERED)

    @classmethod
    def permanent(cls, detail: str) -> "DeliveryResult":
        return cls(DeliveryStatus.PERMANENT_FAILURE, detail)

    @classmethod
    def transient(cls, detail: str) -> "DeliveryResult":
        return cls(DeliveryStatus.TRANSIENT_FAILURE, detail)


@dataclass
class DispatchRunResult:
    """Counters gathered during one dispatch run."""

    endpoints_considered: int = 0
    sent: int = 0
    skipped: int = 0
    failed: int = 0
    cleaned: int = 0
    aborted: bool = False
    error: str | None = None
    started_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))

    def abort(self, reason: str) -> None:
        """Mark the run as stopped early, keeping counters gathered so far."""
        self.aborted = True
        self.error = reason

    def to_summary(self) -> dict[str, object]:
        """Return the JSON summary reported by the trigger endpoint."""
        summary: dict[str, object] = {
            "success": not self.aborted,
            "endpointsConsidered": self.endpoints_considered,
            "notificationsSent": self.sent,
            "skipped": self.skipped,
            "failed": self.failed,
            "cleaned": self.cleaned,
            "timestamp": datetime.now(tz=UTC).isoformat(),
        }
        if self.error is not None:
            summary["error"] = self.error
        return summary
