"""Rating and matchmaking domain modules."""

from domain.ratings.common import MatchOutcome, MatchParticipant
from domain.ratings.protocol import Ladder, RoomStatus

__all__ = ["Ladder", "MatchOutcome", "MatchParticipant", "RoomStatus"]
