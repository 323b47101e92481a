"""Compose expiry reminders from a user's food items."""

from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

from expiry_tracker.domain.expiry import days_remaining, urgency_text
from expiry_tracker.domain.models import FoodItem
from expiry_tracker.domain.notifications import NotificationMessage, NotificationPolicy

BATCH_TAG = "expiry-reminder"


@dataclass(frozen=True)
class ExpiringItem:
    """A food item paired with its days remaining."""

    item: FoodItem
    days: int


@dataclass
class MessageComposer:
    """Filters expiring items and renders notification messages.

    Items count as expiring when ``0 <= days remaining <= lookahead_days``.
    Batch messages list at most ``max_listed_items`` items.
    """

    lookahead_days: int = 2
    max_listed_items: int = 5
    policy: NotificationPolicy = NotificationPolicy.BATCH
    url: str = "/"

    def expiring_items(
        self,
        items: Iterable[FoodItem],
        today: date,
        exclude_ids: frozenset[str] = frozenset(),
    ) -> list[ExpiringItem]:
        """Return items due within the window, most urgent first."""
        due = []
        for item in items:
            if not item.name.strip() or item.id in exclude_ids:
                continue
            days = days_remaining(item.expiry_date, today)
            if 0 <= days <= self.lookahead_days:
                due.append(ExpiringItem(item=item, days=days))
        due.sort(key=lambda entry: (entry.days, entry.item.id))
        return due

    def compose(
        self,
        items: Iterable[FoodItem],
        today: date,
        exclude_ids: frozenset[str] = frozenset(),
    ) -> list[NotificationMessage]:
        """Return the messages to send; an empty list means skip."""
        due = self.expiring_items(items, today, exclude_ids)
        if not due:
            return []
        if self.policy is NotificationPolicy.PER_ITEM:
            return [self._render_single(entry) for entry in due]
        return [self._render_batch(due)]

    def _render_batch(self, due: list[ExpiringItem]) -> NotificationMessage:
        if len(due) == 1:
            title = f"🚨 {due[0].item.name} expires soon!"
        else:
            title = f"🚨 {len(due)} items expiring soon!"
        lines = [
            f"• {entry.item.name} - {urgency_text(entry.days)}"
            for entry in due[: self.max_listed_items]
        ]
        body = "\n".join(lines)
        hidden = len(due) - self.max_listed_items
        if hidden > 0:
            body += f"\n...and {hidden} more"
        return NotificationMessage(
            title=title,
            body=body,
            url=self.url,
            tag=BATCH_TAG,
            item_ids=tuple(entry.item.id for entry in due),
        )

    def _render_single(self, entry: ExpiringItem) -> NotificationMessage:
        return NotificationMessage(
            title=entry.item.name,
            body=urgency_text(entry.days),
            url=self.url,
            tag=f"expiry-{entry.item.id}",
            item_ids=(entry.item.id,),
        )
