"""App settings service.

Reads and updates the single AppSettings row. When the row does not exist yet
the process configuration supplies the defaults.
"""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from tourney.config import Settings, get_settings
from tourney.logging_config import get_logger
from tourney.models.settings import APP_SETTINGS_ID, AppSettings
from tourney.models.wallet import Bucket
from tourney.models.tournament import Tournament, validate_priority
from tourney.utils.errors import InvalidRequestError

logger = get_logger(__name__)

UPDATABLE_FIELDS = frozenset(
    {
        "app_name",
        "maintenance_mode",
        "deposit_enabled",
        "withdrawal_enabled",
        "default_join_fee_priority",
        "admin_uids",
        "whatsapp_url",
        "facebook_url",
        "youtube_url",
    }
)


class SettingsService:
    """Access to AppSettings within a caller-provided session."""

    def __init__(self, session: AsyncSession, config: Settings | None = None) -> None:
        self.session = session
        self.config = config or get_settings()

    async def get(self) -> AppSettings:
        """Return the settings row, or an unsaved row built from defaults."""
        row = await self.session.get(AppSettings, APP_SETTINGS_ID)
        if row is None:
            row = self._defaults()
        return row

    async def update(self, changes: dict[str, Any]) -> AppSettings:
        """Apply ``changes`` to the settings row, creating it when missing."""
        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise InvalidRequestError(
                "Unknown settings fields",
                details={"fields": sorted(unknown)},
            )

        row = await self.session.get(AppSettings, APP_SETTINGS_ID)
        if row is None:
            row = self._defaults()
            self.session.add(row)

        try:
            for key, value in changes.items():
                setattr(row, key, value)
        except ValueError as exc:
            raise InvalidRequestError(str(exc)) from exc

        await self.session.flush()
        logger.info("app_settings_updated", fields=sorted(changes))
        return row

    async def is_admin(self, user_id: str, has_admin_claim: bool = False) -> bool:
        """Admin if the token carries the claim or the id is allow-listed."""
        if has_admin_claim:
            return True
        row = await self.get()
        return user_id in (row.admin_uids or [])

    async def join_fee_priority(self, tournament: Tournament | None = None) -> list[Bucket]:
        """Effective spend order: tournament override, then settings default."""
        if tournament is not None and tournament.join_fee_priority:
            return validate_priority(tournament.join_fee_priority)
        row = await self.get()
        return validate_priority(row.default_join_fee_priority)

    def _defaults(self) -> AppSettings:
        return AppSettings(
            id=APP_SETTINGS_ID,
            app_name="Tourney",
            maintenance_mode=False,
            deposit_enabled=True,
            withdrawal_enabled=True,
            default_join_fee_priority=list(self.config.default_join_fee_priority),
            admin_uids=[],
        )
