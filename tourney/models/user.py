"""User model."""

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from tourney.models.base import Base, TimestampMixin, utc_now


class User(Base, TimestampMixin):
    """Platform user.

    The primary key is the subject issued by the identity provider. The wallet
    lives in its own row (see Wallet) so balance updates never contend with
    profile edits.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String(128), primary_key=True)
    username: Mapped[str] = mapped_column(String(50), nullable=False)
    email: Mapped[str] = mapped_column(
        String(255),
        unique=True,
        nullable=False,
        index=True,
    )
    referral_code: Mapped[str] = mapped_column(
        String(16),
        unique=True,
        nullable=False,
        index=True,
    )
    # Written at most once, never overwritten
    referred_by: Mapped[str | None] = mapped_column(
        String(128),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    last_login: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        default=utc_now,
        nullable=True,
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    @validates("username")
    def _validate_username(self, key: str, value: str) -> str:
        value = (value or "").strip()
        if not value:
            raise ValueError("username must not be empty")
        return value

    def __repr__(self) -> str:
        return f"<User {self.username}>"
