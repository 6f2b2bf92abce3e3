"""Database repository helpers."""

from repositories.player_rating_repository import SqlPlayerRatingStore
from repositories.room_repository import SqlRoomStore

__all__ = [
    "SqlPlayerRatingStore",
    "SqlRoomStore",
]
