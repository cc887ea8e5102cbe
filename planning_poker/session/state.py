"""Session state machine.

Phases move idle -> voting -> revealed -> voting -> ... ; `reset` is the only
way back to idle. Phase policy lives here rather than in the ledger.
"""

import logging
from datetime import datetime

from planning_poker.lib.exceptions import InvalidPhaseError, NothingToRevealError
from planning_poker.lib.models import (
    ConnectedPlayer,
    Phase,
    RevealResponse,
    StatusUpdate,
    VoteDetail,
    VoteValue,
    utcnow,
)
from planning_poker.session import statistics
from planning_poker.session.ledger import VoteLedger

logger = logging.getLogger(__name__)


class SessionStateMachine:
    """
    Owns the phase, the round metadata and the vote ledger.

    Not thread- or task-safe on its own; the coordinator serializes access.
    Every successful mutation bumps `version`, which is stamped on snapshots
    so subscribers can order them.
    """

    def __init__(
        self,
        ledger: VoteLedger | None = None,
        default_duration_secs: int | None = None,
    ):
        self.ledger = ledger if ledger is not None else VoteLedger()
        self.default_duration_secs = default_duration_secs
        self.phase = Phase.IDLE
        self.issue_number: str | None = None
        self.voting_started_at: datetime | None = None
        self.voting_duration_secs: int | None = None
        self.version = 0

    def _bump(self) -> None:
        self.version += 1

    # -------------------------------------------------------------------------
    # Participants
    # -------------------------------------------------------------------------

    def register(self, name: str) -> str:
        """Add a participant. Legal in every phase."""
        participant_id = self.ledger.register(name)
        self._bump()
        return participant_id

    def unregister(self, participant_id: str) -> bool:
        """Remove a participant; returns False (and changes nothing) if unknown."""
        removed = self.ledger.unregister(participant_id)
        if removed:
            self._bump()
        return removed

    # -------------------------------------------------------------------------
    # Transitions
    # -------------------------------------------------------------------------

    def start_voting(
        self,
        issue_number: str | None = None,
        duration_secs: int | None = None,
    ) -> None:
        """
        Open a new round from any phase.

        Clears every vote and replaces the issue number; an omitted issue
        number clears the previous one.
        """
        previous = self.phase
        self.ledger.clear_votes()
        self.issue_number = issue_number
        self.voting_started_at = utcnow()
        self.voting_duration_secs = (
            duration_secs if duration_secs is not None else self.default_duration_secs
        )
        self.phase = Phase.VOTING
        self._bump()
        logger.info(
            f"Voting started (from {previous.value}), issue={issue_number!r}"
        )

    def cast_vote(self, participant_id: str, value: VoteValue) -> None:
        """
        Record a vote for the open round.

        Raises:
            InvalidPhaseError: If the phase is not voting
            UnknownParticipantError: If the participant is not registered
        """
        self._require_voting("vote")
        self.ledger.cast_vote(participant_id, value)
        self._bump()

    def retract_vote(self, participant_id: str) -> None:
        """
        Take back a vote in the open round.

        Raises:
            InvalidPhaseError: If the phase is not voting
            UnknownParticipantError: If the participant is not registered
        """
        self._require_voting("retract a vote")
        self.ledger.retract_vote(participant_id)
        self._bump()

    def _require_voting(self, action: str) -> None:
        if self.phase != Phase.VOTING:
            raise InvalidPhaseError(
                f"Cannot {action} while session is {self.phase.value}",
                expected_phase=Phase.VOTING.value,
                actual_phase=self.phase.value,
            )

    def reveal(self) -> None:
        """
        Freeze the vote set.

        Revealing an already revealed round is allowed and changes nothing but
        the version.

        Raises:
            NothingToRevealError: If no round has been started
        """
        if self.phase == Phase.IDLE:
            raise NothingToRevealError()
        self.phase = Phase.REVEALED
        self._bump()
        logger.info(
            f"Votes revealed: {self.ledger.votes_cast()}/{len(self.ledger)} cast"
        )

    def reset(self) -> None:
        """Return to idle, dropping votes and round metadata but keeping participants."""
        self.ledger.clear_votes()
        self.issue_number = None
        self.voting_started_at = None
        self.voting_duration_secs = None
        self.phase = Phase.IDLE
        self._bump()
        logger.info("Session reset to idle")

    # -------------------------------------------------------------------------
    # Snapshots
    # -------------------------------------------------------------------------

    def reveal_response(self) -> RevealResponse:
        """Revealed votes and fresh statistics for the current ledger."""
        snapshot = self.ledger.snapshot()
        return RevealResponse(
            issue_number=self.issue_number,
            votes=[
                VoteDetail(player_name=p.name, vote=p.vote) for p in snapshot.values()
            ],
            statistics=statistics.compute(snapshot),
        )

    def status_update(self) -> StatusUpdate:
        """Snapshot for subscribers; vote values only appear once revealed."""
        snapshot = self.ledger.snapshot()
        players = [
            ConnectedPlayer(name=p.name, has_voted=p.has_voted)
            for p in snapshot.values()
        ]
        return StatusUpdate(
            phase=self.phase,
            issue_number=self.issue_number,
            connected_players=players,
            votes_cast=sum(1 for p in players if p.has_voted),
            total_players=len(players),
            voting_started_at=self.voting_started_at,
            voting_duration_secs=self.voting_duration_secs,
            sequence=self.version,
            results=self.reveal_response() if self.phase == Phase.REVEALED else None,
        )
