"""Shared protocols and enums for the rating engine's collaborators."""

from __future__ import annotations

from collections.abc import Sequence
from enum import Enum
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from domain.ratings.common import PlayerRatingRecord, RatingHistoryEntry, RoomCandidate


class Ladder(str, Enum):
    """Which rating pool a match counts toward."""

    RANKED = "ranked"
    CASUAL = "casual"


class RoomStatus(str, Enum):
    """Lifecycle state of a game room, owned by room management."""

    WAITING = "waiting"
    ACTIVE = "active"
    FINISHED = "finished"


@runtime_checkable
class PlayerRatingStore(Protocol):
    """Durable per-player record store with an append-only history log."""

    def get_record(
        self,
        player_id: str,
        ladder: Ladder,
        *,
        timeout: float | None = None,
    ) -> PlayerRatingRecord:
        """Return the current record or raise RecordNotFoundError."""
        ...

    def save_record(
        self,
        record: PlayerRatingRecord,
        history: RatingHistoryEntry,
        *,
        timeout: float | None = None,
    ) -> PlayerRatingRecord:
        """Write `record` if its version is still current and append `history`.

        Raises PersistenceConflictError when the stored version moved on.
        """
        ...

    def list_history(
        self,
        player_id: str,
        ladder: Ladder,
        *,
        limit: int = 50,
    ) -> list[RatingHistoryEntry]: ...


@runtime_checkable
class RoomStore(Protocol):
    """Read access to room snapshots plus delegated room creation."""

    def list_rooms(
        self,
        *,
        is_ranked: bool,
        statuses: Sequence[RoomStatus],
    ) -> list[RoomCandidate]: ...

    def create_room(
        self,
        *,
        host_player_id: str,
        host_rating: int,
        is_ranked: bool = True,
    ) -> str: ...


__all__ = [
    "Ladder",
    "PlayerRatingStore",
    "RoomStatus",
    "RoomStore",
]
