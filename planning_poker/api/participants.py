"""Participant registration endpoints."""

from fastapi import APIRouter, Depends

from planning_poker.lib.exceptions import UnknownParticipantError
from planning_poker.lib.models import AckResponse, RegisterRequest, RegisterResponse
from planning_poker.session.coordinator import SessionCoordinator, get_coordinator

router = APIRouter()


@router.post("/participants", response_model=RegisterResponse)
async def register_participant(
    request: RegisterRequest,
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> RegisterResponse:
    """Join the session and receive a participant id."""
    participant_id = await coordinator.register(request.name)
    return RegisterResponse(participant_id=participant_id, name=request.name.strip())


@router.delete("/participants/{participant_id}", response_model=AckResponse)
async def leave_session(
    participant_id: str,
    coordinator: SessionCoordinator = Depends(get_coordinator),
) -> AckResponse:
    """Leave the session explicitly."""
    if not await coordinator.unregister(participant_id):
        raise UnknownParticipantError(participant_id)
    return AckResponse(message="Participant removed")
