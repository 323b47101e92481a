"""Tests for reminder composition."""

from expiry_tracker.domain.notifications import NotificationPolicy
from expiry_tracker.services.composer import BATCH_TAG, MessageComposer

from tests.conftest import TODAY, make_item


def test_single_expiring_item_message() -> None:
    composer = MessageComposer()
    items = [
        make_item("1", "Milk", "2024-01-11"),
        make_item("2", "Eggs", "2024-01-20"),
    ]

    messages = composer.compose(items, TODAY)

    assert len(messages) == 1
    message = messages[0]
    assert message.title == "🚨 Milk expires soon!"
    assert message.body == "• Milk - expires tomorrow!"
    assert message.tag == BATCH_TAG
    assert message.url == "/"
    assert message.item_ids == ("1",)


def test_batch_lists_items_most_urgent_first_and_truncates() -> None:
    composer = MessageComposer(max_listed_items=2)
    items = [
        make_item("a", "Yogurt", "2024-01-12"),
        make_item("b", "Milk", "2024-01-10"),
        make_item("c", "Bread", "2024-01-11"),
        make_item("d", "Ham", "2024-01-12"),
    ]

    [message] = composer.compose(items, TODAY)

    assert message.title == "🚨 4 items expiring soon!"
    assert message.body == (
        "• Milk - expires today!\n• Bread - expires tomorrow!\n...and 2 more"
    )
    assert message.item_ids == ("b", "c", "a", "d")


def test_window_excludes_expired_and_distant_items() -> None:
    composer = MessageComposer(lookahead_days=2)
    items = [
        make_item("old", "Cheese", "2024-01-09"),
        make_item("edge", "Butter", "2024-01-12"),
        make_item("far", "Rice", "2024-01-13"),
    ]

    due = composer.expiring_items(items, TODAY)

    assert [(entry.item.id, entry.days) for entry in due] == [("edge", 2)]


def test_no_expiring_items_means_no_messages() -> None:
    composer = MessageComposer()

    assert composer.compose([make_item("1", "Rice", "2024-02-01")], TODAY) == []
    assert composer.compose([], TODAY) == []


def test_excluded_ids_are_not_reported() -> None:
    composer = MessageComposer()
    items = [
        make_item("1", "Milk", "2024-01-10"),
        make_item("2", "Eggs", "2024-01-11"),
    ]

    [message] = composer.compose(items, TODAY, frozenset({"1"}))

    assert message.item_ids == ("2",)
    assert message.title == "🚨 Eggs expires soon!"


def test_per_item_policy_renders_one_message_per_item() -> None:
    composer = MessageComposer(policy=NotificationPolicy.PER_ITEM, url="/pantry")
    items = [
        make_item("1", "Milk", "2024-01-12"),
        make_item("2", "Eggs", "2024-01-10"),
    ]

    messages = composer.compose(items, TODAY)

    assert [(m.title, m.body, m.tag) for m in messages] == [
        ("Eggs", "expires today!", "expiry-2"),
        ("Milk", "expires in 2 days", "expiry-1"),
    ]
    assert {m.url for m in messages} == {"/pantry"}


def test_payload_shape() -> None:
    [message] = MessageComposer().compose(
        [make_item("1", "Milk", "2024-01-10")], TODAY
    )

    assert message.to_payload() == {
        "title": "🚨 Milk expires soon!",
        "body": "• Milk - expires today!",
        "url": "/",
        "tag": BATCH_TAG,
    }
