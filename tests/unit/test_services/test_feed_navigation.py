"""Tests for swipe and keyboard feed navigation."""

import pytest

from reelhome.models.listing import Listing
from reelhome.services.feed_navigation import Direction, FeedNavigator, SwipeAction, classify_drag
from reelhome.services.listing_store import ListingStore
from tests.utils.factories import create_listing_row


def make_store(count: int = 3) -> ListingStore:
    return ListingStore(listings=[Listing.model_validate(create_listing_row()) for _ in range(count)])


@pytest.mark.unit
@pytest.mark.parametrize("offset,velocity,expected", [
    (-60, -10, SwipeAction.ADVANCE),
    (-30, -600, SwipeAction.ADVANCE),
    (-30, -100, SwipeAction.CANCEL),
    (60, 10, SwipeAction.RETREAT),
    (30, 600, SwipeAction.RETREAT),
    (30, 100, SwipeAction.CANCEL),
    (-50, -500, SwipeAction.CANCEL),
])
def test_classify_drag(offset, velocity, expected):
    assert classify_drag(offset, velocity) is expected


@pytest.mark.unit
def test_drag_advances_and_records_direction():
    store = make_store()
    navigator = FeedNavigator(store)

    assert navigator.on_drag_end(-60, 0) is SwipeAction.ADVANCE
    assert store.focus == 1
    assert navigator.direction is Direction.FORWARD

    navigator.on_drag_end(70, 0)
    assert store.focus == 0
    assert navigator.direction is Direction.BACKWARD


@pytest.mark.unit
def test_cancelled_drag_leaves_focus():
    store = make_store()
    navigator = FeedNavigator(store)

    assert navigator.on_drag_end(-30, -100) is SwipeAction.CANCEL
    assert store.focus == 0


@pytest.mark.unit
def test_keyboard_navigation():
    store = make_store()
    navigator = FeedNavigator(store)

    navigator.on_key("ArrowDown")
    navigator.on_key("j")
    assert store.focus == 2
    navigator.on_key("j")
    assert store.focus == 2
    navigator.on_key("k")
    assert store.focus == 1
    assert navigator.direction is Direction.BACKWARD
    assert navigator.on_key("x") is None


@pytest.mark.unit
def test_direction_unchanged_at_bound():
    store = make_store(1)
    navigator = FeedNavigator(store)
    navigator.direction = Direction.BACKWARD

    navigator.on_key("ArrowDown")

    assert navigator.direction is Direction.BACKWARD
