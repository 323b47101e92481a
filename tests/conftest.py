"""Shared test fixtures."""

from dataclasses import dataclass, field
from datetime import UTC, date, datetime

import pytest

from expiry_tracker.config import Settings
from expiry_tracker.containers import AppContainer
from expiry_tracker.domain.models import Channel, EndpointRecord, FoodItem
from expiry_tracker.domain.notifications import DeliveryResult, NotificationMessage
from expiry_tracker.services.admin import AdminService
from expiry_tracker.services.composer import MessageComposer
from expiry_tracker.services.dispatch import DispatchService
from expiry_tracker.services.endpoints import InMemoryEndpointStore, endpoint_key
from expiry_tracker.services.line_webhook import LineWebhookHandler
from expiry_tracker.services.registration import RegistrationService

TODAY = date(2024, 1, 10)
FIXED_NOW = datetime(2024, 1, 10, 9, 0, tzinfo=UTC)
WEBPUSH_KEYS = {"p256dh": "BPublicKey", "auth": "AuthSecret"}


@dataclass
class FakeTransport:
    """Records deliveries and returns scripted outcomes per identity."""

    outcomes: dict[str, DeliveryResult] = field(default_factory=dict)
    errors: dict[str, Exception] = field(default_factory=dict)
    calls: list[tuple[str, NotificationMessage]] = field(default_factory=list)

    async def deliver(
        self, record: EndpointRecord, message: NotificationMessage
    ) -> DeliveryResult:
        self.calls.append((record.identity, message))
        if record.identity in self.errors:
            raise self.errors[record.identity]
        return self.outcomes.get(record.identity, DeliveryResult.delivered())

    def delivered_to(self) -> list[str]:
        return [identity for identity, _ in self.calls]


@dataclass
class FakeLineClient:
    """Captures LINE API calls."""

    pushed: list[tuple[str, str]] = field(default_factory=list)
    replies: list[tuple[str, str]] = field(default_factory=list)

    async def push_message(self, to: str, text: str) -> None:
        self.pushed.append((to, text))

    async def reply_message(self, reply_token: str, text: str) -> None:
        self.replies.append((reply_token, text))


def make_item(
    item_id: str, name: str, expiry: date | str, created_at: datetime | None = None
) -> FoodItem:
    expiry_date = date.fromisoformat(expiry) if isinstance(expiry, str) else expiry
    return FoodItem(
        id=item_id, name=name, expiry_date=expiry_date, created_at=created_at
    )


def make_record(
    identity: str,
    items: list[FoodItem] | None = None,
    channel: Channel = Channel.WEB_PUSH,
) -> EndpointRecord:
    credentials: dict[str, object] = {channel.identity_field: identity}
    if channel is Channel.WEB_PUSH:
        credentials["keys"] = dict(WEBPUSH_KEYS)
    return EndpointRecord(
        channel=channel,
        credentials=credentials,
        items=list(items or []),
        created_at=FIXED_NOW,
        updated_at=FIXED_NOW,
    )


def store_record(store: InMemoryEndpointStore, record: EndpointRecord) -> str:
    key = endpoint_key(record.channel, record.identity)
    store.put(key, record)
    return key


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_service_key="header.payload.signature",
        admin_token="admin-token",
        vapid_public_key="vapid-public",
        vapid_private_key="vapid-private",
        cron_secret="cron-secret",
    )


@pytest.fixture
def line_settings(settings: Settings) -> Settings:
    return settings.model_copy(
        update={
            "push_channel": Channel.LINE,
            "line_channel_access_token": "line-token",
            "line_channel_secret": "line-secret",
        }
    )


@pytest.fixture
def store() -> InMemoryEndpointStore:
    return InMemoryEndpointStore()


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def line_client() -> FakeLineClient:
    return FakeLineClient()


def build_test_container(
    settings: Settings,
    store: InMemoryEndpointStore,
    transport: FakeTransport,
    line_client: FakeLineClient | None = None,
) -> AppContainer:
    composer = MessageComposer(
        lookahead_days=settings.lookahead_days,
        max_listed_items=settings.max_listed_items,
        policy=settings.notification_policy,
    )
    registration_service = RegistrationService(
        store=store,
        transport=transport,
        channel=settings.push_channel,
        clock=lambda: FIXED_NOW,
    )

    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        store=store,
        transport=transport,
        composer=composer,
        dispatch_service=DispatchService(
            store=store, composer=composer, transport=transport
        ),
        registration_service=registration_service,
        admin_service=AdminService(store),
        close_resources=close_resources,
        line_webhook_handler=(
            LineWebhookHandler(registration_service, line_client)
            if line_client is not None
            else None
        ),
    )


@pytest.fixture
def container(
    settings: Settings,
    store: InMemoryEndpointStore,
    transport: FakeTransport,
) -> AppContainer:
    return build_test_container(settings, store, transport)


@pytest.fixture
def line_container(
    line_settings: Settings,
    store: InMemoryEndpointStore,
    transport: FakeTransport,
    line_client: FakeLineClient,
) -> AppContainer:
    return build_test_container(line_settings, store, transport, line_client)
