"""Endpoint store interface, key derivation and in-memory implementation."""

import base64
import hashlib
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Protocol

from expiry_tracker.domain.models import Channel, EndpointRecord


class EndpointStore(Protocol):
    """Persistence interface for notification endpoints.

    Implementations raise ``StoreUnavailable`` when the backend cannot be
    reached.
    """

    def put(self, key: str, record: EndpointRecord) -> None:
        """Insert or overwrite the whole record stored under key."""

    def get(self, key: str) -> EndpointRecord | None:
        """Return the record stored under key, if any."""

    def delete(self, key: str) -> None:
        """Remove the record under key; absent keys are ignored."""

    def list_all(self) -> Iterator[tuple[str, EndpointRecord]]:
        """Yield every stored (key, record) pair in no particular order."""


def endpoint_key(channel: Channel, identity: str) -> str:
    """Derive the stable store key for an endpoint identity."""
    digest = hashlib.sha256(identity.encode("utf-8")).digest()
    encoded = base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")
    return f"{channel.value}:{encoded}"


@dataclass
class InMemoryEndpointStore(EndpointStore):
    """Dictionary-backed endpoint store for tests and local runs."""

    _records: dict[str, EndpointRecord] = field(default_factory=dict, repr=False)

    def put(self, key: str, record: EndpointRecord) -> None:
        """Store the record, replacing any previous one."""
        self._records[key] = record

    def get(self, key: str) -> EndpointRecord | None:
        """Return the stored record or None."""
        return self._records.get(key)

    def delete(self, key: str) -> None:
        """Forget the record if present."""
        self._records.pop(key, None)

    def list_all(self) -> Iterator[tuple[str, EndpointRecord]]:
        """Yield a snapshot of stored records."""
        yield from list(self._records.items())

    def __len__(self) -> int:
        return len(self._records)

    def __contains__(self, key: object) -> bool:
        return key in self._records
