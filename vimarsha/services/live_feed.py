"""
Live Feed Registry
Tracks one store subscription per connected socket so each can be cancelled on teardown
"""

import logging
import threading
from typing import Callable, Dict, Iterable

from vimarsha.services.document_store import Subscription

logger = logging.getLogger(__name__)


class LiveFeedRegistry:
    """
    Owns the live store subscriptions opened for browser sockets.

    A socket holds at most one subscription: subscribing again replaces the
    previous one, and ``cancel`` (called on disconnect) stops the store from
    streaming updates to a page that no longer reads them.
    """

    def __init__(self, store):
        self.store = store
        self._subscriptions: Dict[str, Subscription] = {}
        self._lock = threading.Lock()

    def subscribe(self, sid: str, collection: str, callback: Callable,
                  filters: Iterable = (), order_by=None, descending: bool = False) -> Subscription:
        self.cancel(sid)
        subscription = self.store.subscribe(
            collection, callback, filters=filters, order_by=order_by, descending=descending
        )
        with self._lock:
            self._subscriptions[sid] = subscription
        logger.debug(f"Live feed opened for {sid} on {collection}")
        return subscription

    def cancel(self, sid: str) -> bool:
        with self._lock:
            subscription = self._subscriptions.pop(sid, None)
        if subscription is None:
            return False
        subscription.cancel()
        logger.debug(f"Live feed cancelled for {sid}")
        return True

    def cancel_all(self) -> None:
        with self._lock:
            subscriptions = list(self._subscriptions.values())
            self._subscriptions.clear()
        for subscription in subscriptions:
            subscription.cancel()

    def __contains__(self, sid: str) -> bool:
        with self._lock:
            return sid in self._subscriptions

    def __len__(self) -> int:
        with self._lock:
            return len(self._subscriptions)
