"""Wallet and ledger models.

- Bucket: the three independently tracked sub-balances
- Wallet: one per user, version-checked on every update
- TransactionType / TransactionStatus
- WalletTransaction: append-only ledger entry with a single status transition
"""

from datetime import datetime
from enum import Enum

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, validates

from tourney.models.base import Base, TimestampMixin, UUIDMixin, enum_values


class Bucket(str, Enum):
    """Wallet sub-balances."""

    DEPOSIT = "deposit"
    WINNING = "winning"
    BONUS = "bonus"


class TransactionType(str, Enum):
    """Ledger entry types."""

    TOURNAMENT_JOIN = "tournament_join"
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    TOURNAMENT_WIN = "tournament_win"


class TransactionStatus(str, Enum):
    """Ledger entry status. Only PENDING may change, and only once."""

    PENDING = "pending"
    COMPLETED = "completed"
    REJECTED = "rejected"


class Wallet(Base, UUIDMixin, TimestampMixin):
    """Per-user balance record with three buckets.

    The version column makes every UPDATE conditional on the version that was
    read, so two sessions debiting the same wallet cannot both commit.
    """

    __tablename__ = "wallets"

    user_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="CASCADE"),
        unique=True,
        nullable=False,
    )
    deposit: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    winning: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    bonus: Mapped[int] = mapped_column(BigInteger, default=0, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint("deposit >= 0", name="ck_wallets_deposit_non_negative"),
        CheckConstraint("winning >= 0", name="ck_wallets_winning_non_negative"),
        CheckConstraint("bonus >= 0", name="ck_wallets_bonus_non_negative"),
    )

    @validates("deposit", "winning", "bonus")
    def _validate_bucket(self, key: str, value: int) -> int:
        if value is None or int(value) != value or value < 0:
            raise ValueError(f"Wallet bucket {key} must be a non-negative integer, got {value!r}")
        return int(value)

    def balances(self) -> dict[Bucket, int]:
        """Snapshot of the bucket balances."""
        return {bucket: getattr(self, bucket.value) for bucket in Bucket}

    @property
    def total(self) -> int:
        return self.deposit + self.winning + self.bonus

    def credit(self, bucket: Bucket, amount: int) -> None:
        if amount <= 0:
            raise ValueError("Credit amount must be positive")
        setattr(self, bucket.value, getattr(self, bucket.value) + amount)

    def debit(self, bucket: Bucket, amount: int) -> None:
        # The bucket validator rejects a negative result
        setattr(self, bucket.value, getattr(self, bucket.value) - amount)

    def to_dict(self) -> dict[str, int]:
        return {
            "deposit": self.deposit,
            "winning": self.winning,
            "bonus": self.bonus,
            "total": self.total,
        }

    def __repr__(self) -> str:
        return (
            f"<Wallet user={self.user_id} deposit={self.deposit} "
            f"winning={self.winning} bonus={self.bonus}>"
        )


class WalletTransaction(Base, UUIDMixin, TimestampMixin):
    """Ledger entry.

    created_at is the entry timestamp. processed_at is written once by the
    approve/reject action that moves the entry out of PENDING.
    """

    __tablename__ = "wallet_transactions"

    user_id: Mapped[str] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    tx_type: Mapped[TransactionType] = mapped_column(
        SQLEnum(TransactionType, values_callable=enum_values, native_enum=False),
        nullable=False,
        index=True,
    )
    status: Mapped[TransactionStatus] = mapped_column(
        SQLEnum(TransactionStatus, values_callable=enum_values, native_enum=False),
        default=TransactionStatus.PENDING,
        nullable=False,
        index=True,
    )
    amount: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tournament_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("tournaments.id", ondelete="SET NULL"),
        nullable=True,
    )
    description: Mapped[str | None] = mapped_column(String(500), nullable=True)
    processed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}
    __table_args__ = (
        CheckConstraint("amount > 0", name="ck_wallet_transactions_amount_positive"),
    )

    @validates("amount")
    def _validate_amount(self, key: str, value: int) -> int:
        if value is None or int(value) != value or value <= 0:
            raise ValueError(f"Transaction amount must be a positive integer, got {value!r}")
        return int(value)

    @validates("tx_type")
    def _validate_type(self, key: str, value: TransactionType | str) -> TransactionType:
        return TransactionType(value)

    @validates("status")
    def _validate_status(self, key: str, value: TransactionStatus | str) -> TransactionStatus:
        return TransactionStatus(value)

    @property
    def is_pending(self) -> bool:
        return self.status == TransactionStatus.PENDING

    def __repr__(self) -> str:
        return (
            f"<WalletTransaction {self.id[:8]}... "
            f"type={self.tx_type.value} amount={self.amount} status={self.status.value}>"
        )
