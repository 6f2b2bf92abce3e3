"""Rating engine domain modules."""

from domain.ratings.common import (
    MarginInputs,
    MatchOutcome,
    MatchParticipant,
    PlayerRatingRecord,
    RatedParticipant,
    RatingHistoryEntry,
    RatingUpdateResult,
    RoomCandidate,
    StreakState,
)
from domain.ratings.protocol import Ladder, PlayerRatingStore, RoomStatus, RoomStore

__all__ = [
    "Ladder",
    "MarginInputs",
    "MatchOutcome",
    "MatchParticipant",
    "PlayerRatingRecord",
    "PlayerRatingStore",
    "RatedParticipant",
    "RatingHistoryEntry",
    "RatingUpdateResult",
    "RoomCandidate",
    "RoomStatus",
    "RoomStore",
    "StreakState",
]
