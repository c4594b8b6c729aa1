"""
POSETRACK Tracking Service - Event Broadcaster

Single-subscriber push channel for tick updates.
"""

import asyncio
import logging
from typing import Any, List, Optional

logger = logging.getLogger(__name__)

_CLOSED = object()


class Subscription:
    """
    Bounded mailbox for one subscriber.

    `deliver` never blocks: when the mailbox is full the oldest pending
    update is discarded so a slow consumer cannot stall the producer.
    """

    def __init__(self, maxsize: int = 32, name: str = "subscriber"):
        self.name = name
        self.maxsize = max(1, maxsize)
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=self.maxsize)
        self.closed = False
        self.delivered_count = 0
        self.dropped_count = 0

    def deliver(self, update: Any) -> bool:
        """Queue an update. Returns False if the subscription is closed."""
        if self.closed:
            return False

        if self._queue.full():
            self._queue.get_nowait()
            self.dropped_count += 1

        self._queue.put_nowait(update)
        self.delivered_count += 1
        return True

    def close(self):
        """Stop accepting updates and wake up any pending `get`."""
        if self.closed:
            return
        self.closed = True

        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(_CLOSED)

    async def get(self) -> Optional[Any]:
        """Wait for the next update. Returns None once closed."""
        item = await self._queue.get()
        if item is _CLOSED:
            # Keep the marker so later readers also see the end
            self._queue.put_nowait(_CLOSED)
            return None
        return item

    def drain(self) -> List[Any]:
        """Take every pending update without waiting."""
        items = []
        while not self._queue.empty():
            item = self._queue.get_nowait()
            if item is _CLOSED:
                self._queue.put_nowait(_CLOSED)
                break
            items.append(item)
        return items

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def __aiter__(self):
        return self

    async def __anext__(self) -> Any:
        item = await self.get()
        if item is None:
            raise StopAsyncIteration
        return item


class EventBroadcaster:
    """
    Holds at most one subscription.

    Callers are expected to serialize attach/detach/publish through the
    session lock; none of these methods awaits.
    """

    def __init__(self):
        self._subscriber: Optional[Subscription] = None
        self._published_count = 0
        self._dropped_count = 0

    @property
    def subscriber(self) -> Optional[Subscription]:
        return self._subscriber

    def attach(self, subscription: Subscription):
        """Attach a subscriber, replacing (and closing) the current one."""
        previous = self._subscriber
        self._subscriber = subscription

        if previous is not None and previous is not subscription:
            previous.close()
            logger.info(f"🔁 Subscriber '{previous.name}' replaced by '{subscription.name}'")
        else:
            logger.info(f"👂 Subscriber '{subscription.name}' attached")

    def detach(self, subscription: Optional[Subscription] = None) -> bool:
        """
        Detach the current subscriber.

        With `subscription` given, only detaches if it is still the current
        one. Returns True if something was detached.
        """
        current = self._subscriber
        if current is None:
            return False
        if subscription is not None and subscription is not current:
            return False

        self._subscriber = None
        current.close()
        logger.info(f"🔇 Subscriber '{current.name}' detached")
        return True

    def publish(self, update: Any) -> bool:
        """Hand an update to the subscriber, or drop it if there is none."""
        subscriber = self._subscriber
        if subscriber is None or not subscriber.deliver(update):
            self._dropped_count += 1
            return False

        self._published_count += 1
        return True

    def get_stats(self) -> dict:
        subscriber = self._subscriber
        return {
            "subscriber": subscriber.name if subscriber else None,
            "published": self._published_count,
            "dropped_without_subscriber": self._dropped_count,
            "pending": subscriber.pending if subscriber else 0,
            "dropped_slow_consumer": subscriber.dropped_count if subscriber else 0,
        }
