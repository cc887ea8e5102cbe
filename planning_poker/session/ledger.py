"""Vote ledger for the current estimation round.

Holds the registered participants in registration order together with each
one's vote. The ledger knows nothing about phases; the state machine decides
when votes may be cast.
"""

import logging
from types import MappingProxyType
from typing import Mapping
from uuid import uuid4

from planning_poker.lib.exceptions import UnknownParticipantError
from planning_poker.lib.models import ParticipantSnapshot, VoteValue

logger = logging.getLogger(__name__)


class VoteLedger:
    """
    Participant registry and vote store.

    Entries are frozen `ParticipantSnapshot` models, so mutations replace an
    entry instead of editing it in place and a snapshot taken earlier never
    changes underneath its reader.
    """

    def __init__(self) -> None:
        self._participants: dict[str, ParticipantSnapshot] = {}

    def __len__(self) -> int:
        return len(self._participants)

    def __contains__(self, participant_id: object) -> bool:
        return participant_id in self._participants

    def register(self, name: str) -> str:
        """
        Add a participant with no vote.

        Duplicate names are allowed; participants are told apart by id only.

        Args:
            name: Display name

        Returns:
            The new participant id
        """
        participant_id = str(uuid4())
        self._participants[participant_id] = ParticipantSnapshot(
            id=participant_id, name=name
        )
        logger.debug(f"Ledger registered {participant_id} ({name})")
        return participant_id

    def unregister(self, participant_id: str) -> bool:
        """
        Remove a participant.

        Returns:
            True if a participant was removed, False if the id was unknown
        """
        return self._participants.pop(participant_id, None) is not None

    def get(self, participant_id: str) -> ParticipantSnapshot:
        """
        Look up a participant.

        Raises:
            UnknownParticipantError: If the id is not registered
        """
        try:
            return self._participants[participant_id]
        except KeyError:
            raise UnknownParticipantError(participant_id) from None

    def cast_vote(self, participant_id: str, value: VoteValue) -> None:
        """
        Record or overwrite a participant's vote.

        Raises:
            UnknownParticipantError: If the id is not registered
        """
        participant = self.get(participant_id)
        self._participants[participant_id] = participant.model_copy(
            update={"vote": value}
        )

    def retract_vote(self, participant_id: str) -> None:
        """
        Take back a participant's vote; a participant with no vote is left as is.

        Raises:
            UnknownParticipantError: If the id is not registered
        """
        participant = self.get(participant_id)
        self._participants[participant_id] = participant.model_copy(
            update={"vote": None}
        )

    def clear_votes(self) -> None:
        """Reset every participant's vote to None."""
        for participant_id, participant in self._participants.items():
            if participant.vote is not None:
                self._participants[participant_id] = participant.model_copy(
                    update={"vote": None}
                )

    def votes_cast(self) -> int:
        """Number of participants holding a vote."""
        return sum(1 for p in self._participants.values() if p.vote is not None)

    def snapshot(self) -> Mapping[str, ParticipantSnapshot]:
        """Read-only id -> participant view, in registration order."""
        return MappingProxyType(dict(self._participants))
