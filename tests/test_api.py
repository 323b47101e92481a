"""Tests for the public HTTP API."""

from datetime import timedelta

from fastapi.testclient import TestClient

from expiry_tracker.api.app import create_app
from expiry_tracker.containers import AppContainer
from expiry_tracker.domain.expiry import today_in
from expiry_tracker.domain.models import Channel
from expiry_tracker.domain.notifications import DeliveryResult
from expiry_tracker.errors import StoreUnavailable
from expiry_tracker.services.endpoints import InMemoryEndpointStore, endpoint_key

from tests.conftest import WEBPUSH_KEYS, FakeTransport, make_item, make_record

ENDPOINT = "https://fcm.googleapis.com/fcm/send/abc123"
CRON_HEADERS = {"Authorization": "Bearer cron-secret"}


def _client(container: AppContainer) -> TestClient:
    return TestClient(create_app(container))


def _subscription(**extra: object) -> dict[str, object]:
    return {"endpoint": ENDPOINT, "keys": dict(WEBPUSH_KEYS), **extra}


def test_health(container: AppContainer) -> None:
    response = _client(container).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_check_expiry_requires_cron_secret(container: AppContainer) -> None:
    client = _client(container)

    assert client.get("/api/check-expiry").status_code == 401
    response = client.get(
        "/api/check-expiry", headers={"Authorization": "Bearer wrong"}
    )
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_check_expiry_open_without_configured_secret(
    container: AppContainer,
) -> None:
    container.settings = container.settings.model_copy(update={"cron_secret": None})

    response = _client(container).post("/api/check-expiry")

    assert response.status_code == 200
    assert response.json()["endpointsConsidered"] == 0


def test_check_expiry_reports_summary(
    container: AppContainer,
    store: InMemoryEndpointStore,
    transport: FakeTransport,
) -> None:
    tomorrow = today_in("UTC") + timedelta(days=1)
    far = today_in("UTC") + timedelta(days=30)
    store.put("a", make_record("a", [make_item("1", "Milk", tomorrow)]))
    store.put("b", make_record("b", [make_item("2", "Rice", far)]))
    store.put("c", make_record("c", [make_item("3", "Eggs", tomorrow)]))
    transport.outcomes["c"] = DeliveryResult.permanent("410 Gone")

    response = _client(container).get("/api/check-expiry", headers=CRON_HEADERS)

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["endpointsConsidered"] == 3
    assert body["notificationsSent"] == 1
    assert body["skipped"] == 1
    assert body["failed"] == 1
    assert body["cleaned"] == 1
    assert "timestamp" in body
    assert "c" not in store


def test_check_expiry_store_outage_returns_503(container: AppContainer) -> None:
    class BrokenStore(InMemoryEndpointStore):
        def list_all(self):  # type: ignore[no-untyped-def]
            raise StoreUnavailable("timeout")

    container.dispatch_service.store = BrokenStore()

    response = _client(container).get("/api/check-expiry", headers=CRON_HEADERS)

    assert response.status_code == 503
    body = response.json()
    assert body["success"] is False
    assert "timeout" in body["error"]


def test_subscribe_and_unsubscribe(
    container: AppContainer, store: InMemoryEndpointStore
) -> None:
    client = _client(container)

    response = client.post(
        "/api/subscribe",
        json=_subscription(
            items=[{"id": "1", "name": "Milk", "expiryDate": "2024-01-11"}]
        ),
    )

    assert response.status_code == 200
    key = endpoint_key(Channel.WEB_PUSH, ENDPOINT)
    assert response.json() == {"success": True, "key": key}
    record = store.get(key)
    assert record is not None
    assert [item.name for item in record.items] == ["Milk"]

    response = client.request("DELETE", "/api/subscribe", json={"endpoint": ENDPOINT})

    assert response.status_code == 200
    assert response.json() == {"success": True}
    assert key not in store


def test_subscribe_rejects_missing_keys(
    container: AppContainer, store: InMemoryEndpointStore
) -> None:
    response = _client(container).post("/api/subscribe", json={"endpoint": ENDPOINT})

    assert response.status_code == 400
    assert "error" in response.json()
    assert len(store) == 0


def test_subscribe_rejects_malformed_body(container: AppContainer) -> None:
    response = _client(container).post(
        "/api/subscribe", json={"keys": dict(WEBPUSH_KEYS)}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request"


def test_sync_items_updates_known_endpoint(
    container: AppContainer, store: InMemoryEndpointStore
) -> None:
    client = _client(container)
    client.post("/api/subscribe", json=_subscription())

    response = client.post(
        "/api/sync-items",
        json={
            "endpoint": ENDPOINT,
            "items": [
                {"id": "1", "name": "Milk", "expiryDate": "2024-01-11"},
                {"id": "2", "name": "Eggs", "expiryDate": "2024-01-12"},
            ],
        },
    )

    assert response.status_code == 200
    assert response.json() == {"success": True, "itemCount": 2}
    record = store.get(endpoint_key(Channel.WEB_PUSH, ENDPOINT))
    assert record is not None
    assert record.credentials["keys"] == WEBPUSH_KEYS


def test_sync_items_unknown_endpoint_returns_404(
    container: AppContainer, store: InMemoryEndpointStore
) -> None:
    response = _client(container).post(
        "/api/sync-items", json={"endpoint": ENDPOINT, "items": []}
    )

    assert response.status_code == 404
    assert response.json() == {"error": "Subscription not found"}
    assert len(store) == 0


def test_test_notification_single_and_broadcast(
    container: AppContainer, transport: FakeTransport
) -> None:
    client = _client(container)
    client.post("/api/subscribe", json=_subscription())

    single = client.post("/api/test-notification", json={"endpoint": ENDPOINT})
    broadcast = client.post("/api/test-notification")

    assert single.json() == {"success": True, "sent": 1, "total": 1}
    assert broadcast.json() == {"success": True, "sent": 1, "total": 1}
    assert transport.calls[0][1].title == "🔔 Test Notification"


def test_test_notification_unknown_endpoint(container: AppContainer) -> None:
    response = _client(container).post(
        "/api/test-notification", json={"endpoint": ENDPOINT}
    )

    assert response.status_code == 404


def test_line_routes_hidden_without_line_channel(container: AppContainer) -> None:
    client = _client(container)

    response = client.post("/api/line-sync", json={"userId": "U1", "foodItems": []})

    assert response.status_code == 404
