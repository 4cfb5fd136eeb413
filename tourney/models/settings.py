"""Process-wide application settings (single row)."""

from sqlalchemy import JSON, Boolean, String
from sqlalchemy.orm import Mapped, mapped_column, validates

from tourney.models.base import Base, TimestampMixin
from tourney.models.tournament import validate_priority

APP_SETTINGS_ID = "app-settings"


class AppSettings(Base, TimestampMixin):
    """Admin-editable switches and defaults.

    Only one row exists, keyed by APP_SETTINGS_ID.
    """

    __tablename__ = "app_settings"

    id: Mapped[str] = mapped_column(String(32), primary_key=True, default=APP_SETTINGS_ID)
    app_name: Mapped[str] = mapped_column(String(100), default="Tourney", nullable=False)

    maintenance_mode: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    deposit_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    withdrawal_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    default_join_fee_priority: Mapped[list[str]] = mapped_column(
        JSON,
        default=lambda: ["winning", "bonus", "deposit"],
        nullable=False,
    )
    admin_uids: Mapped[list[str]] = mapped_column(JSON, default=list, nullable=False)

    # Support links
    whatsapp_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    facebook_url: Mapped[str | None] = mapped_column(String(500), nullable=True)
    youtube_url: Mapped[str | None] = mapped_column(String(500), nullable=True)

    @validates("default_join_fee_priority")
    def _validate_priority(self, key: str, value: list[str]) -> list[str]:
        return [bucket.value for bucket in validate_priority(value)]

    @validates("admin_uids")
    def _validate_admin_uids(self, key: str, value: list[str]) -> list[str]:
        if not isinstance(value, (list, tuple)) or not all(isinstance(v, str) for v in value):
            raise ValueError("admin_uids must be a list of user ids")
        return list(value)

    def to_dict(self) -> dict:
        return {
            "app_name": self.app_name,
            "maintenance_mode": self.maintenance_mode,
            "deposit_enabled": self.deposit_enabled,
            "withdrawal_enabled": self.withdrawal_enabled,
            "default_join_fee_priority": list(self.default_join_fee_priority),
            "admin_uids": list(self.admin_uids),
            "whatsapp_url": self.whatsapp_url,
            "facebook_url": self.facebook_url,
            "youtube_url": self.youtube_url,
        }
