"""API router aggregating all route modules."""

from fastapi import APIRouter

from planning_poker.api.participants import router as participants_router
from planning_poker.api.status import router as status_router
from planning_poker.api.voting import router as voting_router

router = APIRouter()

# Include all sub-routers
router.include_router(voting_router, tags=["Voting"])
router.include_router(participants_router, tags=["Participants"])
router.include_router(status_router, tags=["Status"])
