"""
Simple Async Pub/Sub Event Bus

This module provides a lightweight publish/subscribe utility built on top of
asyncio queues. The poll scheduler publishes token events and every WebSocket
handler subscribes and consumes them independently.

Topics:
    - new_tokens:     payload is a list of TokenRecord dicts first seen this cycle
    - price_changes:  payload is a list of TokenRecord dicts with price_change_pct

Messages are envelopes: {"event": <topic>, "data": <payload>}
"""

import asyncio
from typing import Any, DefaultDict, Set, Tuple
from collections import defaultdict

from core.logging import get_logger


NEW_TOKENS = "new_tokens"
PRICE_CHANGES = "price_changes"
INITIAL_DATA = "initial_data"

TOKEN_TOPICS: Tuple[str, ...] = (NEW_TOKENS, PRICE_CHANGES)


class EventBus:
    """
    Async event bus with topic-based pub/sub.

    - Each subscriber gets its own asyncio.Queue and will not block publishers.
    - One queue may follow several topics; messages keep their topic in the envelope.
    - Unsubscribing is important to avoid queue leaks when clients disconnect.
    """

    def __init__(self, max_queue_size: int = 1000) -> None:
        self._topics: DefaultDict[str, Set[asyncio.Queue]] = defaultdict(set)
        self._max_queue_size = max_queue_size
        self._lock = asyncio.Lock()
        self._logger = get_logger(__name__)

    async def subscribe(self, *topics: str) -> asyncio.Queue:
        """
        Subscribe to one or more topics. Returns a single asyncio.Queue fed by all of them.
        """
        if not topics:
            raise ValueError("subscribe() needs at least one topic")
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._max_queue_size)
        async with self._lock:
            for topic in topics:
                self._topics[topic].add(queue)
        self._logger.debug(f"Subscriber added to {', '.join(topics)}. total={self.subscriber_count(topics[0])}")
        return queue

    async def unsubscribe(self, queue: asyncio.Queue, *topics: str) -> None:
        """
        Remove a queue from the given topics (all topics when none are given).
        """
        async with self._lock:
            for topic in topics or tuple(self._topics.keys()):
                self._topics.get(topic, set()).discard(queue)
            while not queue.empty():
                queue.get_nowait()
        self._logger.debug(f"Subscriber removed from {', '.join(topics) or 'all topics'}")

    async def publish(self, topic: str, payload: Any) -> int:
        """
        Publish a payload to a topic. Drops the event for subscribers whose queue is full.

        Returns:
            Number of subscribers the event was delivered to
        """
        subscribers = list(self._topics.get(topic, set()))
        if not subscribers:
            return 0

        message = {"event": topic, "data": payload}
        delivered = 0
        for q in subscribers:
            try:
                q.put_nowait(message)
                delivered += 1
            except asyncio.QueueFull:
                self._logger.warning(f"Dropping event for topic '{topic}' due to full queue")
        return delivered

    def subscriber_count(self, topic: str) -> int:
        return len(self._topics.get(topic, set()))


def create_bus() -> EventBus:
    from core.config import settings

    return EventBus(max_queue_size=settings.event_queue_size)


# Singleton event bus for the application
bus = create_bus()
