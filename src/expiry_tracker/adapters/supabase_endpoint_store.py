"""Supabase-backed endpoint store."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from expiry_tracker.domain.models import Channel, EndpointRecord
from expiry_tracker.errors import StoreUnavailable
from expiry_tracker.services.endpoints import EndpointStore

_logger = logging.getLogger(__name__)


@contextmanager
def _store_call(action: str) -> Iterator[None]:
    try:
        yield
    except (APIError, httpx.HTTPError) as exc:
        raise StoreUnavailable(f"{action} failed: {exc}") from exc


@dataclass
class SupabaseEndpointStore(EndpointStore):
    """Stores each endpoint as one JSON document keyed by its endpoint key."""

    client: Client
    table: str = "push_endpoints"
    default_channel: Channel = Channel.WEB_PUSH
    page_size: int = 500

    def put(self, key: str, record: EndpointRecord) -> None:
        """Upsert the whole record document."""
        with _store_call("put"):
            self.client.table(self.table).upsert(
                {
                    "key": key,
                    "record": record.to_document(),
                    "updated_at": datetime.now(tz=UTC).isoformat(),
                },
                on_conflict="key",
            ).execute()

    def get(self, key: str) -> EndpointRecord | None:
        """Return the record stored under key, if present."""
        with _store_call("get"):
            response = (
                self.client.table(self.table)
                .select("key, record")
                .eq("key", key)
                .limit(1)
                .execute()
            )
        if not response.data:
            return None
        return self._parse(response.data[0])

    def delete(self, key: str) -> None:
        """Delete the row for key; missing rows are ignored."""
        with _store_call("delete"):
            self.client.table(self.table).delete().eq("key", key).execute()

    def list_all(self) -> Iterator[tuple[str, EndpointRecord]]:
        """Page through every stored record, one range request at a time."""
        start = 0
        while True:
            with _store_call("list"):
                response = (
                    self.client.table(self.table)
                    .select("key, record")
                    .order("key")
                    .range(start, start + self.page_size - 1)
                    .execute()
                )
            rows = response.data or []
            for row in rows:
                record = self._parse(row)
                if record is not None:
                    yield str(row["key"]), record
            if len(rows) < self.page_size:
                return
            start += self.page_size

    def _parse(self, row: dict[str, object]) -> EndpointRecord | None:
        """Decode a row; undecodable documents are logged and treated as absent."""
        document = row.get("record")
        if not isinstance(document, dict):
            document = {}
        try:
            return EndpointRecord.from_document(document, self.default_channel)
        except (ValueError, TypeError) as exc:
            _logger.warning(
                "Skipping undecodable endpoint row %s: %s", row.get("key"), exc
            )
            return None
