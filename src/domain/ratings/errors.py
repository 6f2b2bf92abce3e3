"""Error kinds raised by the rating engine."""

from __future__ import annotations

from enum import Enum
from typing import ClassVar


class ErrorKind(str, Enum):
    """Stable identifiers for engine failures, reported per player."""

    INVALID_INPUT = "invalid_input"
    RECORD_NOT_FOUND = "record_not_found"
    PERSISTENCE_CONFLICT = "persistence_conflict"
    PERSISTENCE_TIMEOUT = "persistence_timeout"
    PERSISTENCE_ERROR = "persistence_error"


class RatingEngineError(Exception):
    """Base exception for rating and matchmaking failures."""

    kind: ClassVar[ErrorKind]
    retryable: ClassVar[bool] = False


class InvalidInputError(RatingEngineError, ValueError):
    """Raised for malformed outcomes or calculator inputs."""

    kind = ErrorKind.INVALID_INPUT


class RecordNotFoundError(RatingEngineError, LookupError):
    """Raised by a store when a player has no rating record on a ladder yet."""

    kind = ErrorKind.RECORD_NOT_FOUND

    def __init__(self, player_id: str, ladder: str) -> None:
        self.player_id = player_id
        self.ladder = ladder
        super().__init__(f"No {ladder} rating record for player_id={player_id}")


class PersistenceConflictError(RatingEngineError):
    """Raised when a conditional write loses a race on one player's record."""

    kind = ErrorKind.PERSISTENCE_CONFLICT
    retryable = True


class DuplicateRatingUpdateError(PersistenceConflictError):
    """Raised when a history row for the same match/player/ladder already exists."""

    retryable = False

    def __init__(self, match_id: str, player_id: str, ladder: str) -> None:
        self.match_id = match_id
        self.player_id = player_id
        self.ladder = ladder
        super().__init__(
            f"match_id={match_id} was already applied to player_id={player_id} on {ladder}"
        )


class PersistenceTimeoutError(RatingEngineError):
    """Raised when a storage call exceeds its deadline."""

    kind = ErrorKind.PERSISTENCE_TIMEOUT
    retryable = True


class PersistenceError(RatingEngineError):
    """Raised for any other storage failure, such as a dropped connection.

    Not retried within the call, but the failed write was rolled back and the
    history key rejects replays, so the player can be retried later.
    """

    kind = ErrorKind.PERSISTENCE_ERROR
    retryable = True


__all__ = [
    "DuplicateRatingUpdateError",
    "ErrorKind",
    "InvalidInputError",
    "PersistenceConflictError",
    "PersistenceError",
    "PersistenceTimeoutError",
    "RatingEngineError",
    "RecordNotFoundError",
]
