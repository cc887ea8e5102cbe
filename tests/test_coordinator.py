"""Tests for the session coordinator."""

import asyncio

import pytest

from planning_poker.config import Settings
from planning_poker.lib.exceptions import (
    InvalidPhaseError,
    NothingToRevealError,
    UnknownParticipantError,
    ValidationError,
)
from planning_poker.lib.models import Phase, StatusEvent
from planning_poker.lib.streaming import BroadcastHub, EventType, Subscription
from planning_poker.session.coordinator import SessionCoordinator
from planning_poker.session.ledger import VoteLedger
from planning_poker.session.state import SessionStateMachine


async def _next(subscription: Subscription) -> StatusEvent:
    event = await asyncio.wait_for(subscription.get(), timeout=1)
    assert event is not None
    return event


async def test_register_publishes_exactly_once(coordinator: SessionCoordinator):
    sub = await coordinator.subscribe()
    await _next(sub)

    await coordinator.register("alice")

    event = await _next(sub)
    assert event.data.total_players == 1
    assert [p.name for p in event.data.connected_players] == ["alice"]
    assert sub.pending() == 0


async def test_register_strips_and_validates_names(coordinator: SessionCoordinator):
    pid = await coordinator.register("  alice  ")
    assert coordinator.state.ledger.get(pid).name == "alice"

    with pytest.raises(ValidationError) as exc_info:
        await coordinator.register("   ")
    assert exc_info.value.field == "name"

    with pytest.raises(ValidationError):
        await coordinator.register("x" * 17)


async def test_failed_operations_publish_nothing(coordinator: SessionCoordinator):
    pid = await coordinator.register("alice")
    sub = await coordinator.subscribe()
    await _next(sub)

    with pytest.raises(InvalidPhaseError):
        await coordinator.cast_vote(pid, 3)
    with pytest.raises(NothingToRevealError):
        await coordinator.reveal()

    await coordinator.start_voting()
    await _next(sub)
    with pytest.raises(UnknownParticipantError):
        await coordinator.cast_vote("nobody", 3)

    assert sub.pending() == 0
    assert coordinator.state.ledger.votes_cast() == 0


async def test_full_round(coordinator: SessionCoordinator):
    ids = {name: await coordinator.register(name) for name in "ABCD"}

    started = await coordinator.start_voting("PROJ-101")
    assert started.phase == Phase.VOTING
    assert started.issue_number == "PROJ-101"

    for name, value in zip("ABCD", [1, 3, 5, "?"]):
        ack = await coordinator.cast_vote(ids[name], value)
        assert ack.success

    result = await coordinator.reveal()
    assert result.issue_number == "PROJ-101"
    assert [(v.player_name, v.vote) for v in result.votes] == [
        ("A", 1),
        ("B", 3),
        ("C", 5),
        ("D", "?"),
    ]
    stats = result.statistics
    assert stats.votes_cast == 4
    assert stats.average == 3.0
    assert stats.median == 3.0
    assert stats.min == 1
    assert stats.max == 5


async def test_reveal_is_broadcast_once_as_reveal_event(coordinator: SessionCoordinator):
    pid = await coordinator.register("alice")
    await coordinator.start_voting()
    await coordinator.cast_vote(pid, 8)
    sub = await coordinator.subscribe()
    await _next(sub)

    await coordinator.reveal()

    event = await _next(sub)
    assert event.event_type == EventType.REVEAL
    assert event.data.phase == Phase.REVEALED
    assert event.data.results is not None
    assert event.data.results.statistics.average == 8.0
    assert sub.pending() == 0


async def test_late_subscriber_sees_revealed_snapshot(coordinator: SessionCoordinator):
    pid = await coordinator.register("alice")
    await coordinator.start_voting()
    await coordinator.cast_vote(pid, "13")
    await coordinator.reveal()

    sub = await coordinator.subscribe()
    event = await _next(sub)
    assert event.data.phase == Phase.REVEALED
    assert event.data.results is not None
    assert event.data.results.votes[0].vote == "13"


async def test_resubscribe_gets_fresh_full_snapshot(coordinator: SessionCoordinator):
    first = await coordinator.subscribe()
    await _next(first)
    await coordinator.release(first)

    await coordinator.register("alice")
    await coordinator.start_voting("PROJ-5")

    second = await coordinator.subscribe()
    event = await _next(second)
    assert event.data.phase == Phase.VOTING
    assert event.data.issue_number == "PROJ-5"
    assert event.data.total_players == 1
    assert coordinator.hub.subscriber_count == 1


async def test_concurrent_votes_are_not_lost(coordinator: SessionCoordinator):
    count = 50
    ids = await asyncio.gather(*(coordinator.register(f"p{i}") for i in range(count)))
    await coordinator.start_voting()

    acks = await asyncio.gather(
        *(coordinator.cast_vote(pid, i % 8) for i, pid in enumerate(ids))
    )

    assert all(ack.success for ack in acks)
    status = await coordinator.status()
    assert status.votes_cast == count
    assert status.total_players == count


async def test_subscribers_observe_states_in_order(coordinator: SessionCoordinator):
    sub = await coordinator.subscribe()
    pid = await coordinator.register("alice")
    await coordinator.start_voting()
    await coordinator.cast_vote(pid, 2)

    sequences = [(await _next(sub)).sequence for _ in range(4)]
    assert sequences == sorted(sequences)
    assert len(set(sequences)) == 4


async def test_release_unregisters_bound_participant(coordinator: SessionCoordinator):
    pid = await coordinator.register("alice")
    watcher = await coordinator.subscribe()
    await _next(watcher)

    bound = await coordinator.subscribe(participant_id=pid)
    assert bound.participant_id == pid

    await coordinator.release(bound)

    assert pid not in coordinator.state.ledger
    event = await _next(watcher)
    assert event.data.total_players == 0
    assert coordinator.hub.subscriber_count == 1


async def test_unknown_participant_stream_is_anonymous(coordinator: SessionCoordinator):
    sub = await coordinator.subscribe(participant_id="gone")
    assert sub.participant_id is None
    await coordinator.release(sub)
    assert coordinator.hub.subscriber_count == 0


async def test_unregister_unknown_publishes_nothing(coordinator: SessionCoordinator):
    sub = await coordinator.subscribe()
    await _next(sub)
    assert await coordinator.unregister("nobody") is False
    assert sub.pending() == 0


async def test_reset_and_status(coordinator: SessionCoordinator):
    await coordinator.register("alice")
    await coordinator.start_voting("PROJ-1")
    ack = await coordinator.reset()
    assert ack.phase == Phase.IDLE
    status = await coordinator.status()
    assert status.phase == Phase.IDLE
    assert status.issue_number is None
    assert status.total_players == 1


async def test_close_ends_open_streams(coordinator: SessionCoordinator):
    sub = await coordinator.subscribe()
    await coordinator.close()
    assert [event async for event in sub] == []


async def test_release_survives_cancellation_while_lock_is_busy(
    coordinator: SessionCoordinator,
):
    pid = await coordinator.register("alice")
    bound = await coordinator.subscribe(participant_id=pid)

    await coordinator._lock.acquire()
    releasing = asyncio.create_task(coordinator.release(bound))
    for _ in range(3):
        await asyncio.sleep(0)
    releasing.cancel()
    coordinator._lock.release()

    with pytest.raises(asyncio.CancelledError):
        await releasing
    for _ in range(5):
        await asyncio.sleep(0)

    assert coordinator.hub.subscriber_count == 0
    assert pid not in coordinator.state.ledger


async def test_close_waits_for_pending_cleanup(coordinator: SessionCoordinator):
    pid = await coordinator.register("alice")
    bound = await coordinator.subscribe(participant_id=pid)

    await coordinator._lock.acquire()
    releasing = asyncio.create_task(coordinator.release(bound))
    for _ in range(3):
        await asyncio.sleep(0)
    releasing.cancel()
    coordinator._lock.release()

    await coordinator.close()
    with pytest.raises(asyncio.CancelledError):
        await releasing

    assert pid not in coordinator.state.ledger


async def test_retract_vote_publishes_exactly_once(coordinator: SessionCoordinator):
    pid = await coordinator.register("alice")
    await coordinator.start_voting()
    await coordinator.cast_vote(pid, 5)
    sub = await coordinator.subscribe()
    await _next(sub)

    ack = await coordinator.retract_vote(pid)

    assert ack.success
    assert ack.message == "Vote retracted"
    event = await _next(sub)
    assert event.data.votes_cast == 0
    assert event.data.connected_players[0].has_voted is False
    assert sub.pending() == 0


async def test_retract_vote_outside_voting_publishes_nothing(
    coordinator: SessionCoordinator,
):
    pid = await coordinator.register("alice")
    sub = await coordinator.subscribe()
    await _next(sub)

    with pytest.raises(InvalidPhaseError):
        await coordinator.retract_vote(pid)
    await coordinator.start_voting()
    await _next(sub)
    with pytest.raises(UnknownParticipantError):
        await coordinator.retract_vote("nobody")

    assert sub.pending() == 0


def test_injected_collaborators_are_kept(settings: Settings):
    state = SessionStateMachine(ledger=VoteLedger())
    hub = BroadcastHub(queue_size=2)
    coordinator = SessionCoordinator(settings=settings, state=state, hub=hub)
    assert coordinator.settings is settings
    assert coordinator.state is state
    assert coordinator.hub is hub
