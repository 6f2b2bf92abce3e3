"""ORM models."""

from models.base import Base
from models.player_rating import PlayerRating
from models.rating_history import RatingHistory
from models.room import Room, RoomPlayer

__all__ = [
    "Base",
    "PlayerRating",
    "RatingHistory",
    "Room",
    "RoomPlayer",
]
