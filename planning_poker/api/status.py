"""Live status endpoints (SSE stream and polling)."""

import logging
from typing import AsyncIterator

from fastapi import APIRouter, Depends
from sse_starlette.sse import EventSourceResponse, ServerSentEvent

from planning_poker.lib.models import StatusUpdate
from planning_poker.lib.streaming import to_sse
from planning_poker.session.coordinator import SessionCoordinator, get_coordinator

router = APIRouter()
logger = logging.getLogger(__name__)


async def status_events(
    coordinator: SessionCoordinator,
    participant_id: str | None = None,
) -> AsyncIterator[ServerSentEvent]:
    """
    Yield SSE events for one stream.

    The subscription is opened on first iteration and released when the
    generator finishes, so a client that disconnects before the first event
    leaves nothing behind.
    """
    retry_ms = coordinator.settings.reconnect_delay_ms
    subscription = await coordinator.subscribe(participant_id)
    try:
        async for event in subscription:
            yield to_sse(event, retry_ms)
    finally:
        logger.info(f"Status stream {subscription.subscription_id} closed")
        await coordinator.release(subscription)


@router.get("/status")
async def status_stream(
    participant_id: str | None = None,
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> EventSourceResponse:
    """
    Stream status snapshots via SSE.

    The first event is always the full current snapshot. Passing
    `participant_id` ties that participant to the stream: when the stream
    closes the participant leaves the session. Clients reconnect after the
    advertised `retry` delay and get a fresh snapshot, never a replay.
    """
    return EventSourceResponse(
        status_events(coordinator, participant_id),
        ping=coordinator.settings.sse_ping_interval,
    )


@router.get("/status-poll", response_model=StatusUpdate)
async def status_poll(
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> StatusUpdate:
    """Current snapshot for clients that cannot hold a stream open."""
    return await coordinator.status()
