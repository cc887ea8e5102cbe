"""Statistics over a revealed vote ledger."""

import math
import statistics
from typing import Any, Mapping

from planning_poker.lib.models import ParticipantSnapshot, StatisticsSnapshot


def parse_numeric(value: Any) -> float | None:
    """
    Interpret a vote as a real number.

    Handles values that might be:
    - Integers or floats
    - Numeric strings like "3" or " 0.5 "
    - Card labels like "?", "∞" or "coffee"

    Args:
        value: The raw vote

    Returns:
        The vote as a float, or None for card votes and non-finite numbers

    Examples:
        >>> parse_numeric(3)
        3.0
        >>> parse_numeric("0.5")
        0.5
        >>> parse_numeric("?") is None
        True
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float)):
            number = float(value)
        elif isinstance(value, str):
            number = float(value.strip())
        else:
            return None
    except (ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def compute(snapshot: Mapping[str, ParticipantSnapshot]) -> StatisticsSnapshot:
    """
    Compute vote statistics for a ledger snapshot.

    Card votes count toward `votes_cast` but are left out of every numeric
    field. Numeric fields are None when no numeric vote was cast.
    """
    cast = [p.vote for p in snapshot.values() if p.vote is not None]
    numbers = sorted(n for n in (parse_numeric(v) for v in cast) if n is not None)

    if not numbers:
        return StatisticsSnapshot(
            total_voters=len(snapshot),
            votes_cast=len(cast),
        )

    return StatisticsSnapshot(
        total_voters=len(snapshot),
        votes_cast=len(cast),
        numeric_votes=len(numbers),
        average=statistics.fmean(numbers),
        median=statistics.median(numbers),
        min=numbers[0],
        max=numbers[-1],
        # multimode keeps first-seen order; sorted input makes ties pick the smallest
        mode=statistics.multimode(numbers)[0],
    )
