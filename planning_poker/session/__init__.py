"""Session package - owns the estimation round."""

from planning_poker.session.coordinator import (
    SessionCoordinator,
    close_coordinator,
    get_coordinator,
)
from planning_poker.session.ledger import VoteLedger
from planning_poker.session.state import SessionStateMachine
from planning_poker.session.statistics import compute, parse_numeric

__all__ = [
    # Coordinator
    "SessionCoordinator",
    "close_coordinator",
    "get_coordinator",
    # State
    "SessionStateMachine",
    "VoteLedger",
    # Statistics
    "compute",
    "parse_numeric",
]
