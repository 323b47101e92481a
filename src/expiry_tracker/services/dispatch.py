"""Expiry-driven notification dispatch run."""

import asyncio
import logging
from dataclasses import dataclass
from datetime import date

from expiry_tracker.domain.expiry import today_in
from expiry_tracker.domain.models import EndpointRecord
from expiry_tracker.domain.notifications import DeliveryStatus, DispatchRunResult
from expiry_tracker.errors import StoreUnavailable
from expiry_tracker.services.composer import MessageComposer
from expiry_tracker.services.endpoints import EndpointStore
from expiry_tracker.services.transport import PushTransport, deliver_with_timeout

_logger = logging.getLogger(__name__)


@dataclass
class DispatchService:
    """Walks every endpoint, sends due reminders and forgets dead endpoints."""

    store: EndpointStore
    composer: MessageComposer
    transport: PushTransport
    timezone_name: str = "UTC"
    delivery_timeout_seconds: float = 10.0
    concurrency: int = 8
    suppress_repeat_notifications: bool = False

    async def run(self, today: date | None = None) -> DispatchRunResult:
        """Perform one dispatch pass and return its counters.

        A failing endpoint listing stops the run early. Endpoints already read
        still finish, and the result is marked aborted with the counters
        gathered so far.
        """
        reference = today or today_in(self.timezone_name)
        result = DispatchRunResult()
        semaphore = asyncio.Semaphore(self.concurrency)
        tasks: list[asyncio.Task[None]] = []
        enumeration_error: str | None = None
        try:
            for key, record in self.store.list_all():
                result.endpoints_considered += 1
                tasks.append(
                    asyncio.create_task(
                        self._guarded(semaphore, key, record, reference, result)
                    )
                )
        except StoreUnavailable as exc:
            _logger.error("Endpoint enumeration failed: %s", exc)
            enumeration_error = f"store unavailable: {exc}"
        except Exception as exc:
            _logger.exception("Unexpected error while listing endpoints")
            enumeration_error = f"endpoint listing failed: {exc}"
        if tasks:
            await asyncio.gather(*tasks)
        if enumeration_error is not None:
            result.abort(enumeration_error)
        _logger.info(
            "Dispatch run finished: considered=%s sent=%s skipped=%s failed=%s "
            "cleaned=%s aborted=%s",
            result.endpoints_considered,
            result.sent,
            result.skipped,
            result.failed,
            result.cleaned,
            result.aborted,
        )
        return result

    async def _guarded(
        self,
        semaphore: asyncio.Semaphore,
        key: str,
        record: EndpointRecord,
        today: date,
        result: DispatchRunResult,
    ) -> None:
        async with semaphore:
            if result.aborted:
                return
            try:
                await self.process_endpoint(key, record, today, result)
            except StoreUnavailable as exc:
                _logger.error("Store unavailable while processing %s: %s", key, exc)
                result.abort(f"store unavailable: {exc}")
            except Exception:
                _logger.exception("Unexpected error while processing %s", key)
                result.failed += 1

    async def process_endpoint(
        self,
        key: str,
        record: EndpointRecord,
        today: date,
        result: DispatchRunResult,
    ) -> None:
        """Compose, deliver and reconcile reminders for one endpoint."""
        exclude = (
            record.notified_item_ids(today)
            if self.suppress_repeat_notifications
            else frozenset()
        )
        messages = self.composer.compose(record.items, today, exclude)
        if not messages:
            result.skipped += 1
            return

        delivered_ids: list[str] = []
        for message in messages:
            outcome = await deliver_with_timeout(
                self.transport, record, message, self.delivery_timeout_seconds
            )
            if outcome.status is DeliveryStatus.DELIVERED:
                result.sent += 1
                delivered_ids.extend(message.item_ids)
                continue
            result.failed += 1
            if outcome.status is DeliveryStatus.PERMANENT_FAILURE:
                if self._remove(key, outcome.detail):
                    result.cleaned += 1
                return
            _logger.warning(
                "Transient delivery failure for %s: %s", key, outcome.detail
            )

        if self.suppress_repeat_notifications and delivered_ids:
            self._mark_notified(key, delivered_ids, today)

    def _remove(self, key: str, detail: str | None) -> bool:
        """Delete a dead endpoint; store outages propagate, other errors are logged."""
        _logger.info("Removing invalid endpoint %s: %s", key, detail)
        try:
            self.store.delete(key)
        except StoreUnavailable:
            raise
        except Exception:
            _logger.exception("Failed to remove endpoint %s", key)
            return False
        return True

    def _mark_notified(self, key: str, item_ids: list[str], today: date) -> None:
        """Stamp reminded items onto the latest stored copy of the endpoint.

        Re-reading keeps item syncs that landed during delivery; an endpoint
        removed in the meantime is not recreated.
        """
        current = self.store.get(key)
        if current is None:
            return
        self.store.put(key, current.with_notified(item_ids, today))
