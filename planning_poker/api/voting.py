"""Round control and voting endpoints."""

from fastapi import APIRouter, Depends

from planning_poker.lib.models import (
    AckResponse,
    CastVoteRequest,
    RevealResponse,
    StartVotingRequest,
    StartVotingResponse,
)
from planning_poker.session.coordinator import SessionCoordinator, get_coordinator

router = APIRouter()


@router.post("/start-voting", response_model=StartVotingResponse)
async def start_voting(
    request: StartVotingRequest | None = None,
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> StartVotingResponse:
    """
    Open a new voting round, discarding any previous votes.

    The body is optional; an empty request starts an untagged round.
    """
    request = request or StartVotingRequest()
    return await coordinator.start_voting(
        issue_number=request.issue_number,
        duration_secs=request.duration_secs,
    )


@router.post("/reveal", response_model=RevealResponse)
async def reveal_votes(
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> RevealResponse:
    """Reveal every vote with its statistics."""
    return await coordinator.reveal()


@router.post("/vote", response_model=AckResponse)
async def cast_vote(
    request: CastVoteRequest,
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> AckResponse:
    """Cast or replace a participant's vote while voting is open."""
    return await coordinator.cast_vote(request.participant_id, request.value)


@router.post("/reset", response_model=AckResponse)
async def reset_session(
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> AckResponse:
    """Return the session to idle, keeping participants."""
    return await coordinator.reset()


@router.delete("/vote/{participant_id}", response_model=AckResponse)
async def retract_vote(
    participant_id: str,
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> AckResponse:
    """Take back a participant's vote while voting is open."""
    return await coordinator.retract_vote(participant_id)
