"""SQLAlchemy room store used by matchmaking."""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Callable, Sequence
from datetime import datetime
from uuid import uuid4

from sqlalchemy import insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from db import create_session_factory
from domain.ratings.common import RoomCandidate
from domain.ratings.errors import InvalidInputError
from domain.ratings.protocol import RoomStatus
from models.room import Room, RoomPlayer
from repositories.common import ensure_tables, utcnow


class SqlRoomStore:
    """RoomStore backed by `rooms` and `room_players`.

    Stands in for the room-management service: matchmaking only reads
    snapshots and asks for new rooms, the remaining writers exist for the CLI
    and for tests.
    """

    def __init__(
        self,
        engine: Engine,
        session_factory: sessionmaker[Session] | None = None,
        *,
        default_capacity: int = 12,
        id_factory: Callable[[], str] | None = None,
    ) -> None:
        self.engine = engine
        self.session_factory = session_factory or create_session_factory(engine)
        self.default_capacity = default_capacity
        self.id_factory = id_factory or (lambda: uuid4().hex)

    def ensure_schema(self) -> None:
        ensure_tables(self.engine, Room, RoomPlayer)

    def list_rooms(
        self,
        *,
        is_ranked: bool,
        statuses: Sequence[RoomStatus],
    ) -> list[RoomCandidate]:
        """Room snapshots in creation order."""
        status_values = [status.value for status in statuses]
        with self.session_factory() as session:
            rooms = session.execute(
                select(Room)
                .where(Room.is_ranked == is_ranked, Room.status.in_(status_values))
                .order_by(Room.created_at, Room.id)
            ).scalars().all()
            if not rooms:
                return []

            ratings_by_room: dict[str, list[float | None]] = defaultdict(list)
            member_rows = session.execute(
                select(RoomPlayer.room_id, RoomPlayer.rating)
                .where(RoomPlayer.room_id.in_([room.id for room in rooms]))
                .order_by(RoomPlayer.joined_at, RoomPlayer.id)
            )
            for room_id, rating in member_rows:
                ratings_by_room[room_id].append(None if rating is None else float(rating))

            return [
                RoomCandidate(
                    room_id=room.id,
                    is_ranked=bool(room.is_ranked),
                    status=RoomStatus(room.status),
                    capacity=int(room.capacity),
                    player_ratings=tuple(ratings_by_room.get(room.id, ())),
                    countdown_started_at=room.countdown_started_at,
                    countdown_duration=room.countdown_duration,
                )
                for room in rooms
            ]

    def create_room(
        self,
        *,
        host_player_id: str,
        host_rating: int,
        is_ranked: bool = True,
        capacity: int | None = None,
    ) -> str:
        """Create a waiting room with the host as its only occupant."""
        room_id = self.id_factory()
        created_at = utcnow()
        with self.session_factory() as session:
            try:
                session.execute(
                    insert(Room).values(
                        id=room_id,
                        host_player_id=host_player_id,
                        is_ranked=is_ranked,
                        status=RoomStatus.WAITING.value,
                        capacity=capacity or self.default_capacity,
                        created_at=created_at,
                    )
                )
                session.execute(
                    insert(RoomPlayer).values(
                        room_id=room_id,
                        player_id=host_player_id,
                        rating=host_rating,
                        joined_at=created_at,
                    )
                )
                session.commit()
            except Exception:
                session.rollback()
                raise
        return room_id

    def join_room(self, room_id: str, player_id: str, rating: int | None) -> None:
        with self.session_factory() as session:
            try:
                session.execute(
                    insert(RoomPlayer).values(
                        room_id=room_id,
                        player_id=player_id,
                        rating=rating,
                        joined_at=utcnow(),
                    )
                )
                session.commit()
            except IntegrityError as exc:
                session.rollback()
                raise InvalidInputError(f"player_id={player_id} cannot join room_id={room_id}") from exc

    def set_status(self, room_id: str, status: RoomStatus) -> None:
        self._update_room(room_id, status=status.value)

    def start_countdown(self, room_id: str, started_at: datetime, duration_seconds: float | None = None) -> None:
        self._update_room(room_id, countdown_started_at=started_at, countdown_duration=duration_seconds)

    def _update_room(self, room_id: str, **values: object) -> None:
        with self.session_factory() as session:
            try:
                result = session.execute(update(Room).where(Room.id == room_id).values(**values))
                if result.rowcount != 1:
                    raise InvalidInputError(f"Unknown room_id={room_id}")
                session.commit()
            except Exception:
                session.rollback()
                raise


__all__ = ["SqlRoomStore"]
