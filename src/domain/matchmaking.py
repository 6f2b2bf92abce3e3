"""Rating-proximity room selection for quick join and room browsing."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from domain.ratings.common import RoomCandidate
from domain.ratings.protocol import RoomStatus, RoomStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MatchmakingParameters:
    neutral_rating: float = 1000.0
    browse_tolerance: float = 200.0
    default_countdown_seconds: float = 30.0
    default_capacity: int = 12


@dataclass(frozen=True)
class RoomAssignment:
    room_id: str
    created: bool


def _utcnow() -> datetime:
    return datetime.now(UTC).replace(tzinfo=None)


def mean_room_rating(room: RoomCandidate, params: MatchmakingParameters) -> float:
    """Mean participant rating; empty rooms and unrated players count as neutral."""
    if not room.player_ratings:
        return params.neutral_rating
    ratings = [params.neutral_rating if rating is None else float(rating) for rating in room.player_ratings]
    return sum(ratings) / float(len(ratings))


def has_space(room: RoomCandidate) -> bool:
    return room.occupancy < room.capacity


def countdown_elapsed(room: RoomCandidate, now: datetime, params: MatchmakingParameters) -> bool:
    if room.countdown_started_at is None:
        return False
    duration = room.countdown_duration
    if duration is None:
        duration = params.default_countdown_seconds
    return now >= room.countdown_started_at + timedelta(seconds=duration)


def is_joinable(room: RoomCandidate, now: datetime, params: MatchmakingParameters) -> bool:
    return (
        room.status == RoomStatus.WAITING
        and has_space(room)
        and not countdown_elapsed(room, now, params)
    )


def select_closest_room(
    rooms: Iterable[RoomCandidate],
    rating: float,
    *,
    now: datetime,
    params: MatchmakingParameters,
) -> RoomCandidate | None:
    """Closest joinable room by mean rating; the first one wins ties."""
    best: RoomCandidate | None = None
    best_distance = 0.0
    for room in rooms:
        if not is_joinable(room, now, params):
            logger.debug(
                "Skipping room %s: occupancy=%s/%s status=%s countdown_started_at=%s",
                room.room_id,
                room.occupancy,
                room.capacity,
                room.status.value,
                room.countdown_started_at,
            )
            continue
        distance = abs(mean_room_rating(room, params) - rating)
        if best is None or distance < best_distance:
            best = room
            best_distance = distance
    return best


def filter_browsable_rooms(
    rooms: Iterable[RoomCandidate],
    rating: float,
    *,
    now: datetime,
    params: MatchmakingParameters,
    include_active: bool = True,
) -> list[RoomCandidate]:
    """Joinable rooms within the tolerance window, fullest first.

    Active rooms bypass the filters so their players can rejoin.
    """
    visible: list[RoomCandidate] = []
    for room in rooms:
        if room.status == RoomStatus.ACTIVE:
            if include_active:
                visible.append(room)
            continue
        if not is_joinable(room, now, params):
            continue
        distance = abs(mean_room_rating(room, params) - rating)
        if distance > params.browse_tolerance:
            logger.debug(
                "Hiding room %s: rating gap %.0f exceeds %.0f",
                room.room_id,
                distance,
                params.browse_tolerance,
            )
            continue
        visible.append(room)
    return sorted(visible, key=lambda room: room.occupancy, reverse=True)


class RoomSelector:
    """Find a ranked room close to a player's rating, or ask for a new one."""

    def __init__(
        self,
        room_store: RoomStore,
        params: MatchmakingParameters | None = None,
        *,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.room_store = room_store
        self.params = params or MatchmakingParameters()
        self.clock = clock or _utcnow

    def find_room(self, rating: float, *, now: datetime | None = None) -> str | None:
        """Quick-join search; None means the caller should create a room."""
        rooms = self.room_store.list_rooms(is_ranked=True, statuses=(RoomStatus.WAITING,))
        selected = select_closest_room(
            rooms,
            rating,
            now=now or self.clock(),
            params=self.params,
        )
        if selected is None:
            logger.info("No joinable ranked room among %s candidates (rating=%s)", len(rooms), rating)
            return None

        logger.info(
            "Selected room %s (mean rating %.0f, players %s/%s) for rating=%s",
            selected.room_id,
            mean_room_rating(selected, self.params),
            selected.occupancy,
            selected.capacity,
            rating,
        )
        return selected.room_id

    def find_or_create_room(self, player_id: str, rating: int) -> RoomAssignment:
        room_id = self.find_room(rating)
        if room_id is not None:
            return RoomAssignment(room_id=room_id, created=False)

        room_id = self.room_store.create_room(host_player_id=player_id, host_rating=rating, is_ranked=True)
        logger.info("Created ranked room %s for player_id=%s (rating=%s)", room_id, player_id, rating)
        return RoomAssignment(room_id=room_id, created=True)

    def browse_rooms(
        self,
        rating: float,
        *,
        include_active: bool = True,
        now: datetime | None = None,
    ) -> list[RoomCandidate]:
        statuses: Sequence[RoomStatus] = (
            (RoomStatus.WAITING, RoomStatus.ACTIVE) if include_active else (RoomStatus.WAITING,)
        )
        rooms = self.room_store.list_rooms(is_ranked=True, statuses=statuses)
        return filter_browsable_rooms(
            rooms,
            rating,
            now=now or self.clock(),
            params=self.params,
            include_active=include_active,
        )


__all__ = [
    "MatchmakingParameters",
    "RoomAssignment",
    "RoomSelector",
    "countdown_elapsed",
    "filter_browsable_rooms",
    "has_space",
    "is_joinable",
    "mean_room_rating",
    "select_closest_room",
]
