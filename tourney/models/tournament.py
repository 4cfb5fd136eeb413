"""Tournament and participant models.

Tournament lifecycle: upcoming -> ongoing -> finished, with cancelled
reachable from upcoming or ongoing. Joins are accepted only while upcoming
or ongoing.
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from tourney.models.base import Base, TimestampMixin, UUIDMixin, enum_values, utc_now
from tourney.models.wallet import Bucket


class TournamentType(str, Enum):
    """Team format."""

    SOLO = "solo"
    DUO = "duo"
    SQUAD = "squad"


class TournamentStatus(str, Enum):
    """Tournament lifecycle states."""

    UPCOMING = "upcoming"
    ONGOING = "ongoing"
    FINISHED = "finished"
    CANCELLED = "cancelled"

    @property
    def is_joinable(self) -> bool:
        return self in JOINABLE_STATUSES

    def can_transition_to(self, target: "TournamentStatus") -> bool:
        return target in STATUS_TRANSITIONS[self]


# A user holds at most one participant row per tournament
PARTICIPANT_UNIQUE_KEY = "uq_participant_tournament_user"

JOINABLE_STATUSES = frozenset({TournamentStatus.UPCOMING, TournamentStatus.ONGOING})

STATUS_TRANSITIONS: dict[TournamentStatus, frozenset[TournamentStatus]] = {
    TournamentStatus.UPCOMING: frozenset({TournamentStatus.ONGOING, TournamentStatus.CANCELLED}),
    TournamentStatus.ONGOING: frozenset({TournamentStatus.FINISHED, TournamentStatus.CANCELLED}),
    TournamentStatus.FINISHED: frozenset(),
    TournamentStatus.CANCELLED: frozenset(),
}


def validate_priority(value: list[str] | tuple[str, ...]) -> list[Bucket]:
    """Parse a spend order. It must name each bucket exactly once."""
    try:
        buckets = [Bucket(name) for name in value]
    except (TypeError, ValueError) as exc:
        raise ValueError(f"Unknown wallet bucket in priority {value!r}") from exc
    if len(buckets) != len(Bucket) or set(buckets) != set(Bucket):
        raise ValueError(
            f"Priority must list {[b.value for b in Bucket]} exactly once, got {value!r}"
        )
    return buckets


class Tournament(Base, UUIDMixin, TimestampMixin):
    """Tournament record.

    current_players is raised only by the join coordinator, with a conditional
    UPDATE inside the transaction that debits the entrant's wallet. That
    UPDATE also bumps the version, so admin edits racing a join are retried.
    """

    __tablename__ = "tournaments"

    name: Mapped[str] = mapped_column(String(200), nullable=False)
    tournament_type: Mapped[TournamentType] = mapped_column(
        SQLEnum(TournamentType, values_callable=enum_values, native_enum=False),
        default=TournamentType.SOLO,
        nullable=False,
    )
    game: Mapped[str | None] = mapped_column(String(100), nullable=True)
    map_name: Mapped[str | None] = mapped_column(String(100), nullable=True)

    entry_fee: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    prize_pool: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    per_kill: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    max_players: Mapped[int] = mapped_column(Integer, nullable=False)
    current_players: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    status: Mapped[TournamentStatus] = mapped_column(
        SQLEnum(TournamentStatus, values_callable=enum_values, native_enum=False),
        default=TournamentStatus.UPCOMING,
        nullable=False,
        index=True,
    )
    # Tournament-specific spend order; None falls back to app settings
    join_fee_priority: Mapped[list[str] | None] = mapped_column(JSON, nullable=True)

    start_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    end_time: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    created_by: Mapped[str] = mapped_column(String(128), nullable=False)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint("entry_fee >= 0", name="ck_tournaments_entry_fee_non_negative"),
        CheckConstraint("prize_pool >= 0", name="ck_tournaments_prize_pool_non_negative"),
        CheckConstraint("max_players > 0", name="ck_tournaments_max_players_positive"),
        CheckConstraint(
            "current_players >= 0 AND current_players <= max_players",
            name="ck_tournaments_occupancy_bounds",
        ),
    )

    @validates("entry_fee", "prize_pool", "per_kill")
    def _validate_money(self, key: str, value: int) -> int:
        if value is None or int(value) != value or value < 0:
            raise ValueError(f"{key} must be a non-negative integer, got {value!r}")
        return int(value)

    @validates("max_players")
    def _validate_max_players(self, key: str, value: int) -> int:
        if value is None or int(value) != value or value <= 0:
            raise ValueError(f"max_players must be a positive integer, got {value!r}")
        return int(value)

    @validates("status")
    def _validate_status(self, key: str, value: TournamentStatus | str) -> TournamentStatus:
        return TournamentStatus(value)

    @validates("tournament_type")
    def _validate_type(self, key: str, value: TournamentType | str) -> TournamentType:
        return TournamentType(value)

    @validates("join_fee_priority")
    def _validate_priority(self, key: str, value: list[str] | None) -> list[str] | None:
        if value is None:
            return None
        return [bucket.value for bucket in validate_priority(value)]

    @property
    def is_full(self) -> bool:
        return self.current_players >= self.max_players

    @property
    def spots_left(self) -> int:
        return max(self.max_players - self.current_players, 0)

    def __repr__(self) -> str:
        return (
            f"<Tournament {self.name!r} {self.status.value} "
            f"{self.current_players}/{self.max_players}>"
        )


class TournamentParticipant(Base, UUIDMixin):
    """A user's single commitment to a tournament."""

    __tablename__ = "tournament_participants"

    tournament_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("tournaments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    status: Mapped[str] = mapped_column(String(20), default="active", nullable=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=False,
    )

    # Entry fee breakdown by bucket
    paid_deposit: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    paid_winning: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    paid_bonus: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)

    __table_args__ = (
        UniqueConstraint("tournament_id", "user_id", name=PARTICIPANT_UNIQUE_KEY),
    )

    @property
    def amount_paid(self) -> int:
        return self.paid_deposit + self.paid_winning + self.paid_bonus

    def __repr__(self) -> str:
        return f"<TournamentParticipant tournament={self.tournament_id} user={self.user_id}>"
