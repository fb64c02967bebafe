"""
Change Feed

In-process publish/subscribe registry for live views. A topic is a
(collection, query) pair; subscribers register a callback and get back a
cancel function. Services publish a fresh snapshot after each commit.
"""

import inspect
import itertools
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Awaitable, Callable, Dict, Union


logger = logging.getLogger(__name__)

Callback = Callable[[Any], Union[None, Awaitable[None]]]
Cancel = Callable[[], None]


@dataclass(frozen=True)
class Topic:
    """A live query: a collection plus the filter that scopes it."""
    collection: str
    query: str


# =============================================================================
# Topic builders
# =============================================================================

def pending_requests_topic(owner_id: str) -> Topic:
    return Topic("private_access_requests", f"owner_id={owner_id}&status=pending")


def grants_topic(owner_id: str) -> Topic:
    return Topic("private_access_grants", f"owner_id={owner_id}")


def received_topic(grantee_id: str) -> Topic:
    return Topic("private_access_received", f"grantee_id={grantee_id}")


def entitlements_topic(user_id: str) -> Topic:
    return Topic("user_private_data", f"user_id={user_id}")


class ChangeFeed:
    """
    Registry mapping topics to subscriber callbacks.

    Callbacks may be plain functions or coroutine functions. A failing
    subscriber is logged and does not stop delivery to the others.
    """

    # TODO: back this with Postgres LISTEN/NOTIFY so publishes reach streams
    # served by other worker processes.

    def __init__(self):
        self._subscribers: Dict[Topic, Dict[int, Callback]] = {}
        self._ids = itertools.count(1)

    def subscribe(self, topic: Topic, callback: Callback) -> Cancel:
        """
        Register a callback for a topic.

        Args:
            topic: Topic to listen on
            callback: Invoked with each published payload

        Returns:
            Cancel function; calling it more than once is harmless
        """
        subscriber_id = next(self._ids)
        self._subscribers.setdefault(topic, {})[subscriber_id] = callback
        logger.debug(f"Subscribed #{subscriber_id} to {topic}")

        def cancel() -> None:
            listeners = self._subscribers.get(topic)
            if listeners is None:
                return
            listeners.pop(subscriber_id, None)
            if not listeners:
                self._subscribers.pop(topic, None)

        return cancel

    def has_subscribers(self, topic: Topic) -> bool:
        return bool(self._subscribers.get(topic))

    def subscriber_count(self, topic: Topic) -> int:
        return len(self._subscribers.get(topic, {}))

    async def publish(self, topic: Topic, payload: Any) -> int:
        """
        Deliver a payload to every current subscriber of a topic.

        Returns:
            Number of subscribers that received the payload
        """
        delivered = 0
        for subscriber_id, callback in list(self._subscribers.get(topic, {}).items()):
            try:
                result = callback(payload)
                if inspect.isawaitable(result):
                    await result
                delivered += 1
            except Exception as e:
                logger.error(f"Subscriber #{subscriber_id} on {topic} failed: {e}")
        return delivered


@lru_cache
def get_change_feed() -> ChangeFeed:
    """Process-wide change feed."""
    return ChangeFeed()
