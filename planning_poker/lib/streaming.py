"""Live status fan-out for the planning poker service.

Provides the broadcast hub, per-subscriber delivery queues and the SSE
formatting of status events.
"""

import asyncio
import logging
from typing import AsyncIterator
from uuid import uuid4

from sse_starlette.sse import ServerSentEvent

from planning_poker.lib.models import StatusEvent, StatusUpdate

logger = logging.getLogger(__name__)


# =============================================================================
# Event Types
# =============================================================================


class EventType:
    """SSE event type constants."""

    # Sent on subscribe and after every state change
    STATUS = "status"

    # Sent once per reveal, carrying the revealed ledger
    REVEAL = "reveal"


def build_event(update: StatusUpdate, event_type: str = EventType.STATUS) -> StatusEvent:
    """Wrap a status snapshot for delivery, reusing its sequence number."""
    return StatusEvent(event_type=event_type, sequence=update.sequence, data=update)


# =============================================================================
# SSE Formatter
# =============================================================================


def to_sse(event: StatusEvent, retry_ms: int | None = None) -> ServerSentEvent:
    """Format a StatusEvent for transmission."""
    return ServerSentEvent(
        data=event.data.model_dump_json(),
        event=event.event_type,
        id=str(event.sequence),
        retry=retry_ms,
    )


# =============================================================================
# Subscription
# =============================================================================


class Subscription:
    """
    One subscriber's delivery channel.

    Supports:
    - Non-blocking offers from the hub (False when full or closed)
    - Async iteration until closed
    - Prompt release of queued events on close
    """

    def __init__(self, maxsize: int = 32, participant_id: str | None = None):
        self.subscription_id = str(uuid4())
        self.participant_id = participant_id
        self._queue: asyncio.Queue[StatusEvent | None] = asyncio.Queue(maxsize=maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def pending(self) -> int:
        """Number of events waiting to be read."""
        return self._queue.qsize()

    def offer(self, event: StatusEvent) -> bool:
        """Queue an event without waiting."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            return False
        return True

    def close(self) -> None:
        """Close the subscription, discard pending events and wake the reader."""
        if self._closed:
            return
        self._closed = True
        while True:
            try:
                self._queue.get_nowait()
            except asyncio.QueueEmpty:
                break
        self._queue.put_nowait(None)  # Signal end

    async def get(self) -> StatusEvent | None:
        """Wait for the next event; None once the subscription is closed."""
        if self._closed and self._queue.empty():
            return None
        return await self._queue.get()

    def __aiter__(self) -> AsyncIterator[StatusEvent]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[StatusEvent]:
        while True:
            event = await self.get()
            if event is None:
                break
            yield event


# =============================================================================
# Broadcast Hub
# =============================================================================


class BroadcastHub:
    """
    Fans status events out to every live subscription.

    Publishing never waits: a subscriber whose queue is full is dropped and
    has to resubscribe, which hands it a fresh full snapshot. Events older
    than the last one published are discarded so each subscriber sees states
    in order.
    """

    def __init__(self, queue_size: int = 32):
        self.queue_size = queue_size
        self._subscribers: dict[str, Subscription] = {}
        self._last_sequence = -1

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(
        self,
        initial: StatusEvent,
        participant_id: str | None = None,
    ) -> Subscription:
        """
        Register a new subscriber.

        Args:
            initial: Current snapshot, delivered first so the subscriber
                never starts blank
            participant_id: Participant the stream belongs to, if any

        Returns:
            The subscription to iterate
        """
        subscription = Subscription(self.queue_size, participant_id=participant_id)
        subscription.offer(initial)
        self._subscribers[subscription.subscription_id] = subscription
        self._last_sequence = max(self._last_sequence, initial.sequence)
        logger.info(
            f"Subscriber {subscription.subscription_id} connected "
            f"({self.subscriber_count} live)"
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove a subscriber. Safe to call more than once."""
        removed = self._subscribers.pop(subscription.subscription_id, None)
        subscription.close()
        if removed is not None:
            logger.info(
                f"Subscriber {subscription.subscription_id} disconnected "
                f"({self.subscriber_count} live)"
            )

    def publish(self, event: StatusEvent) -> int:
        """
        Deliver an event to every subscriber.

        Returns:
            Number of subscribers the event was queued for
        """
        if event.sequence < self._last_sequence:
            logger.debug(
                f"Discarding stale event {event.sequence} "
                f"(last published {self._last_sequence})"
            )
            return 0
        self._last_sequence = event.sequence

        delivered = 0
        for subscription in list(self._subscribers.values()):
            if subscription.offer(event):
                delivered += 1
                continue
            logger.warning(
                f"Dropping subscriber {subscription.subscription_id}: "
                f"{subscription.pending()} events pending"
            )
            self.unsubscribe(subscription)

        logger.debug(
            f"Published {event.event_type} #{event.sequence} to {delivered} subscribers"
        )
        return delivered

    def close_all(self) -> None:
        """Close every subscription (shutdown)."""
        for subscription in list(self._subscribers.values()):
            self.unsubscribe(subscription)
