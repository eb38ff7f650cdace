"""
Per-field Subscription Bus.

Subscriber ids are assigned monotonically and never reused, so removing an old
listener can never hit a newer one that was added in the same tick.

Delivery rules:
- Synchronous, in subscription order
- Each pass works from the subscriber list as it was when the pass started;
  listeners added mid-pass wait for the next pass, listeners removed mid-pass
  are skipped if they have not run yet
- A raising callback is logged and delivery continues
"""
import logging
from typing import Any, Callable, Dict, List, Tuple

from fieldstate.config import get_engine_config

logger = logging.getLogger(__name__)

Subscriber = Callable[[Any], None]


class SubscriptionBus:
    """Ordered mapping of subscriber id -> callback for one field."""

    def __init__(self, owner: str = ""):
        self._owner = owner
        self._subscribers: Dict[int, Subscriber] = {}  # dict keeps insertion order
        self._next_id = 1

    def subscribe(self, callback: Subscriber) -> int:
        """Register ``callback`` and return its subscriber id."""
        if not callable(callback):
            raise TypeError(f"Subscriber must be callable, got {type(callback).__name__}")
        subscriber_id = self._next_id
        self._next_id += 1
        self._subscribers[subscriber_id] = callback
        logger.debug(f"Subscribed #{subscriber_id} to {self._owner!r}")
        return subscriber_id

    def unsubscribe(self, subscriber_id: int) -> bool:
        """Remove a subscriber. Unknown or already-removed ids are a no-op.

        Returns:
            True if a subscriber was removed.
        """
        if self._subscribers.pop(subscriber_id, None) is None:
            return False
        logger.debug(f"Unsubscribed #{subscriber_id} from {self._owner!r}")
        return True

    def notify(self, payload: Any = None) -> int:
        """Run one delivery pass. Returns the number of callbacks invoked."""
        pass_subscribers: List[Tuple[int, Subscriber]] = list(self._subscribers.items())
        if get_engine_config().debug_notifications:
            logger.info(f"🔔 {self._owner!r}: delivering to {len(pass_subscribers)} subscriber(s)")

        delivered = 0
        for subscriber_id, callback in pass_subscribers:
            # Removed earlier in this pass (e.g. a sibling binding unmounted)
            if self._subscribers.get(subscriber_id) is not callback:
                continue
            delivered += 1
            try:
                callback(payload)
            except Exception as e:
                logger.warning(f"Error in subscriber #{subscriber_id} of {self._owner!r}: {e}", exc_info=True)
        return delivered

    def clear(self) -> None:
        self._subscribers.clear()

    @property
    def subscriber_ids(self) -> List[int]:
        return list(self._subscribers)

    def __contains__(self, subscriber_id: object) -> bool:
        return subscriber_id in self._subscribers

    def __len__(self) -> int:
        return len(self._subscribers)
