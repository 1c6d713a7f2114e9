"""Feed navigation - turn swipe gestures and key presses into store moves."""

from enum import Enum
from typing import Optional

from reelhome.services.listing_store import ListingStore

SWIPE_DISTANCE_THRESHOLD = 50
SWIPE_VELOCITY_THRESHOLD = 500

RETREAT_KEYS = frozenset({"ArrowUp", "k"})
ADVANCE_KEYS = frozenset({"ArrowDown", "j"})


class SwipeAction(str, Enum):
    ADVANCE = "advance"
    RETREAT = "retreat"
    CANCEL = "cancel"


class Direction(str, Enum):
    """Enter/exit animation direction of the last move."""
    FORWARD = "forward"
    BACKWARD = "backward"


def classify_drag(
    offset_y: float,
    velocity_y: float,
    distance_threshold: float = SWIPE_DISTANCE_THRESHOLD,
    velocity_threshold: float = SWIPE_VELOCITY_THRESHOLD,
) -> SwipeAction:
    """Classify a vertical drag release.

    Upward (negative) drags past the distance threshold or flicked faster
    than the velocity threshold advance; the mirror image retreats;
    anything else is a cancelled gesture.
    """
    if offset_y < -distance_threshold or velocity_y < -velocity_threshold:
        return SwipeAction.ADVANCE
    if offset_y > distance_threshold or velocity_y > velocity_threshold:
        return SwipeAction.RETREAT
    return SwipeAction.CANCEL


class FeedNavigator:
    """Drives a ListingStore from drag releases and key presses."""

    def __init__(
        self,
        store: ListingStore,
        distance_threshold: float = SWIPE_DISTANCE_THRESHOLD,
        velocity_threshold: float = SWIPE_VELOCITY_THRESHOLD,
    ):
        self.store = store
        self.distance_threshold = distance_threshold
        self.velocity_threshold = velocity_threshold
        self.direction = Direction.FORWARD

    def on_drag_end(self, offset_y: float, velocity_y: float) -> SwipeAction:
        action = classify_drag(offset_y, velocity_y, self.distance_threshold, self.velocity_threshold)
        self._apply(action)
        return action

    def on_key(self, key: str) -> Optional[SwipeAction]:
        if key in RETREAT_KEYS:
            action = SwipeAction.RETREAT
        elif key in ADVANCE_KEYS:
            action = SwipeAction.ADVANCE
        else:
            return None
        self._apply(action)
        return action

    def _apply(self, action: SwipeAction) -> None:
        # direction only changes when the store actually moves
        if action is SwipeAction.ADVANCE and self.store.advance():
            self.direction = Direction.FORWARD
        elif action is SwipeAction.RETREAT and self.store.retreat():
            self.direction = Direction.BACKWARD
