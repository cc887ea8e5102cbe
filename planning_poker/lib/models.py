"""Pydantic models for the planning poker service."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, StrictStr

# A vote is a number or a free-form card label such as "?" or "coffee".
# Strict types keep JSON booleans from being coerced into numeric votes.
VoteValue = Union[StrictInt, StrictFloat, StrictStr]


def utcnow() -> datetime:
    """Timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


# =============================================================================
# Enums
# =============================================================================


class Phase(str, Enum):
    """Lifecycle phase of the estimation round."""

    IDLE = "idle"
    VOTING = "voting"
    REVEALED = "revealed"


# =============================================================================
# Ledger Entries
# =============================================================================


class ParticipantSnapshot(BaseModel):
    """Immutable copy of a participant handed out to readers."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(description="Stable participant identifier")
    name: str = Field(description="Display name given at registration")
    vote: VoteValue | None = Field(default=None, description="Current vote, None if not cast")
    joined_at: datetime = Field(default_factory=utcnow)

    @property
    def has_voted(self) -> bool:
        return self.vote is not None


# =============================================================================
# Statistics
# =============================================================================


class StatisticsSnapshot(BaseModel):
    """Aggregate statistics over a revealed ledger."""

    model_config = ConfigDict(frozen=True)

    total_voters: int = Field(default=0, description="Participants in the round")
    votes_cast: int = Field(default=0, description="Participants with any vote, cards included")
    numeric_votes: int = Field(default=0, description="Votes that count toward the numbers")
    average: float | None = Field(default=None)
    median: float | None = Field(default=None)
    min: float | None = Field(default=None)
    max: float | None = Field(default=None)
    mode: float | None = Field(default=None, description="Most frequent numeric vote")


# =============================================================================
# Status & Reveal Payloads
# =============================================================================


class ConnectedPlayer(BaseModel):
    """A participant as shown in the live status bar."""

    name: str
    has_voted: bool = False


class VoteDetail(BaseModel):
    """A single revealed vote."""

    player_name: str
    vote: VoteValue | None = None


class RevealResponse(BaseModel):
    """Revealed ledger together with its statistics."""

    success: bool = True
    issue_number: str | None = None
    votes: list[VoteDetail] = Field(default_factory=list)
    statistics: StatisticsSnapshot = Field(default_factory=StatisticsSnapshot)


class StatusUpdate(BaseModel):
    """Point-in-time session snapshot pushed to subscribers.

    Vote values are never included while voting is open; `results` is only
    populated once the round has been revealed.
    """

    phase: Phase
    issue_number: str | None = None
    connected_players: list[ConnectedPlayer] = Field(default_factory=list)
    votes_cast: int = 0
    total_players: int = 0
    voting_started_at: datetime | None = None
    voting_duration_secs: int | None = None
    sequence: int = Field(default=0, description="Monotonic state version")
    results: RevealResponse | None = None


class StatusEvent(BaseModel):
    """An event queued for delivery to one subscriber."""

    model_config = ConfigDict(frozen=True)

    event_type: str = Field(description="SSE event name")
    sequence: int = Field(description="Monotonic counter for ordering")
    data: StatusUpdate
    timestamp: datetime = Field(default_factory=utcnow)


# =============================================================================
# API Request/Response Models
# =============================================================================


class StartVotingRequest(BaseModel):
    """Request to open a new voting round."""

    issue_number: str | None = Field(default=None, description="Opaque ticket tag")
    duration_secs: int | None = Field(
        default=None, ge=1, description="Advisory countdown override"
    )


class AckResponse(BaseModel):
    """Acknowledgement for a mutating operation."""

    success: bool = True
    message: str = ""
    phase: Phase | None = None


class StartVotingResponse(AckResponse):
    """Acknowledgement echoing the new phase."""

    issue_number: str | None = None


class RegisterRequest(BaseModel):
    """Request to join the session."""

    name: str = Field(description="Display name")


class RegisterResponse(BaseModel):
    """Response after joining the session."""

    participant_id: str
    name: str


class CastVoteRequest(BaseModel):
    """Request to cast or replace a vote."""

    participant_id: str
    value: VoteValue = Field(description="Numeric estimate or card label")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = "ok"
    version: str = "0.1.0"


class ConfigResponse(BaseModel):
    """Client-facing configuration."""

    card_deck: list[str]
    default_duration_secs: int | None
    reconnect_delay_secs: float


class ErrorResponse(BaseModel):
    """Shape of error bodies returned by the exception handlers."""

    detail: str
    error: str
    details: dict[str, Any] = Field(default_factory=dict)
