"""Session coordinator.

The single entry point the API uses. Each mutating operation runs inside one
short critical section that also builds the snapshot to broadcast; the
fan-out happens after the lock is released.
"""

import asyncio
import logging
from typing import Any

from planning_poker.config import Settings, get_settings
from planning_poker.lib.exceptions import ValidationError
from planning_poker.lib.models import (
    AckResponse,
    RevealResponse,
    StartVotingResponse,
    StatusUpdate,
    VoteValue,
)
from planning_poker.lib.streaming import (
    BroadcastHub,
    EventType,
    Subscription,
    build_event,
)
from planning_poker.session.state import SessionStateMachine

logger = logging.getLogger(__name__)


class SessionCoordinator:
    """
    Facade over the state machine and the broadcast hub.

    Features:
    - One asyncio.Lock guarding every mutation, no I/O while held
    - Exactly one publish per successful mutation, none on failure
    - Subscriptions taken under the lock, so there is no missed-event window
    - Streams bound to a participant unregister it when they close
    """

    def __init__(
        self,
        settings: Settings | None = None,
        state: SessionStateMachine | None = None,
        hub: BroadcastHub | None = None,
    ):
        self.settings = settings if settings is not None else get_settings()
        if state is None:
            state = SessionStateMachine(
                default_duration_secs=self.settings.default_duration_secs
            )
        self.state = state
        if hub is None:
            hub = BroadcastHub(queue_size=self.settings.subscriber_queue_size)
        self.hub = hub
        self._lock = asyncio.Lock()
        self._cleanup_tasks: set[asyncio.Task] = set()

    # -------------------------------------------------------------------------
    # Participants
    # -------------------------------------------------------------------------

    def _clean_name(self, name: str) -> str:
        cleaned = name.strip()
        if not cleaned:
            raise ValidationError("Name must not be empty", field="name", value=name)
        if len(cleaned) > self.settings.max_name_length:
            raise ValidationError(
                f"Name longer than {self.settings.max_name_length} characters",
                field="name",
                value=name,
            )
        return cleaned

    async def register(self, name: str) -> str:
        """
        Register a participant.

        Args:
            name: Display name; surrounding whitespace is stripped

        Returns:
            The new participant id

        Raises:
            ValidationError: If the name is empty or too long
        """
        cleaned = self._clean_name(name)
        async with self._lock:
            participant_id = self.state.register(cleaned)
            update = self.state.status_update()
        self.hub.publish(build_event(update))
        logger.info(f"Registered participant {participant_id} ({cleaned})")
        return participant_id

    async def unregister(self, participant_id: str) -> bool:
        """
        Remove a participant.

        Returns:
            True if someone was removed; unknown ids publish nothing
        """
        async with self._lock:
            removed = self.state.unregister(participant_id)
            update = self.state.status_update() if removed else None
        if update is not None:
            self.hub.publish(build_event(update))
            logger.info(f"Unregistered participant {participant_id}")
        return removed

    # -------------------------------------------------------------------------
    # Round Operations
    # -------------------------------------------------------------------------

    async def start_voting(
        self,
        issue_number: str | None = None,
        duration_secs: int | None = None,
    ) -> StartVotingResponse:
        """Open a new round. Always legal."""
        async with self._lock:
            self.state.start_voting(issue_number, duration_secs)
            update = self.state.status_update()
        self.hub.publish(build_event(update))
        return StartVotingResponse(
            message="Voting started",
            phase=update.phase,
            issue_number=update.issue_number,
        )

    async def cast_vote(self, participant_id: str, value: VoteValue) -> AckResponse:
        """
        Cast or replace a vote.

        Raises:
            InvalidPhaseError: If voting is not open
            UnknownParticipantError: If the participant is not registered
        """
        async with self._lock:
            self.state.cast_vote(participant_id, value)
            update = self.state.status_update()
        self.hub.publish(build_event(update))
        return AckResponse(message="Vote recorded", phase=update.phase)

    async def retract_vote(self, participant_id: str) -> AckResponse:
        """
        Take back a participant's vote while voting is open.

        Raises:
            InvalidPhaseError: If voting is not open
            UnknownParticipantError: If the participant is not registered
        """
        async with self._lock:
            self.state.retract_vote(participant_id)
            update = self.state.status_update()
        self.hub.publish(build_event(update))
        return AckResponse(message="Vote retracted", phase=update.phase)

    async def reveal(self) -> RevealResponse:
        """
        Reveal the round.

        Raises:
            NothingToRevealError: If no round has been started
        """
        async with self._lock:
            self.state.reveal()
            update = self.state.status_update()
            results = self.state.reveal_response()
        self.hub.publish(build_event(update, EventType.REVEAL))
        return results

    async def reset(self) -> AckResponse:
        """Return the session to idle."""
        async with self._lock:
            self.state.reset()
            update = self.state.status_update()
        self.hub.publish(build_event(update))
        return AckResponse(message="Session reset", phase=update.phase)

    async def status(self) -> StatusUpdate:
        """Current snapshot, without publishing."""
        async with self._lock:
            return self.state.status_update()

    # -------------------------------------------------------------------------
    # Subscriptions
    # -------------------------------------------------------------------------

    async def subscribe(self, participant_id: str | None = None) -> Subscription:
        """
        Open a status subscription, primed with the current snapshot.

        A participant id that is not registered yields an anonymous
        subscription rather than an error, so a reconnecting client always
        gets a stream.
        """
        async with self._lock:
            if participant_id is not None and participant_id not in self.state.ledger:
                logger.info(
                    f"Stream for unknown participant {participant_id}, subscribing anonymously"
                )
                participant_id = None
            return self.hub.subscribe(
                build_event(self.state.status_update()),
                participant_id=participant_id,
            )

    async def release(self, subscription: Subscription) -> None:
        """
        Drop a subscription and unregister the participant it was bound to.

        Called from stream teardown, which is usually already cancelled. The
        unregister runs as its own shielded task so it still completes when
        the caller is cancelled while waiting for the lock.
        """
        self.hub.unsubscribe(subscription)
        if subscription.participant_id is None:
            return
        task = asyncio.ensure_future(self.unregister(subscription.participant_id))
        self._cleanup_tasks.add(task)
        task.add_done_callback(self._cleanup_tasks.discard)
        await asyncio.shield(task)

    async def close(self) -> None:
        """Close every open stream (shutdown) and wait for pending cleanups."""
        self.hub.close_all()
        if self._cleanup_tasks:
            await asyncio.gather(*self._cleanup_tasks, return_exceptions=True)

    def get_stats(self) -> dict[str, Any]:
        """Diagnostics for logging."""
        return {
            "phase": self.state.phase.value,
            "participants": len(self.state.ledger),
            "subscribers": self.hub.subscriber_count,
        }


# =============================================================================
# Module-level coordinator instance
# =============================================================================


_default_coordinator: SessionCoordinator | None = None


async def get_coordinator() -> SessionCoordinator:
    """Get the process-wide coordinator instance."""
    global _default_coordinator
    if _default_coordinator is None:
        _default_coordinator = SessionCoordinator()
    return _default_coordinator


async def close_coordinator() -> None:
    """Close the process-wide coordinator."""
    global _default_coordinator
    if _default_coordinator:
        await _default_coordinator.close()
        _default_coordinator = None
