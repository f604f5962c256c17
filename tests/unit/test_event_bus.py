"""
Unit Tests for the Event Bus

Run with:
    pytest tests/unit/test_event_bus.py -v
"""

import asyncio

import pytest

from services.event_bus import EventBus, NEW_TOKENS, PRICE_CHANGES, TOKEN_TOPICS


class TestPublishSubscribe:

    @pytest.mark.asyncio
    async def test_one_queue_receives_every_subscribed_topic(self):
        bus = EventBus()
        queue = await bus.subscribe(*TOKEN_TOPICS)

        await bus.publish(NEW_TOKENS, [{"token_address": "A"}])
        await bus.publish(PRICE_CHANGES, [{"token_address": "B", "price_change_pct": 0.1}])

        first = queue.get_nowait()
        second = queue.get_nowait()
        assert first == {"event": "new_tokens", "data": [{"token_address": "A"}]}
        assert second["event"] == "price_changes"

    @pytest.mark.asyncio
    async def test_each_subscriber_gets_its_own_copy(self):
        bus = EventBus()
        q1 = await bus.subscribe(NEW_TOKENS)
        q2 = await bus.subscribe(NEW_TOKENS)

        delivered = await bus.publish(NEW_TOKENS, [])

        assert delivered == 2
        assert q1.qsize() == q2.qsize() == 1

    @pytest.mark.asyncio
    async def test_publish_without_subscribers_is_noop(self):
        assert await EventBus().publish(NEW_TOKENS, []) == 0

    @pytest.mark.asyncio
    async def test_full_queue_drops_instead_of_blocking(self):
        bus = EventBus(max_queue_size=1)
        queue = await bus.subscribe(NEW_TOKENS)

        await bus.publish(NEW_TOKENS, [1])
        delivered = await asyncio.wait_for(bus.publish(NEW_TOKENS, [2]), timeout=1)

        assert delivered == 0
        assert queue.get_nowait()["data"] == [1]

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_delivery(self):
        bus = EventBus()
        queue = await bus.subscribe(*TOKEN_TOPICS)

        await bus.unsubscribe(queue, *TOKEN_TOPICS)
        await bus.publish(NEW_TOKENS, [])

        assert queue.empty()
        assert bus.subscriber_count(NEW_TOKENS) == 0

    @pytest.mark.asyncio
    async def test_subscribe_requires_topic(self):
        with pytest.raises(ValueError):
            await EventBus().subscribe()
