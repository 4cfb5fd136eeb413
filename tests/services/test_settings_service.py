"""App settings service tests."""

import pytest

from tourney.models import APP_SETTINGS_ID, AppSettings, Bucket, Tournament
from tourney.services.settings import SettingsService
from tourney.utils.errors import InvalidRequestError


class TestGet:
    @pytest.mark.asyncio
    async def test_defaults_without_row(self, test_db, test_settings):
        row = await SettingsService(test_db, test_settings).get()

        assert row.maintenance_mode is False
        assert row.deposit_enabled is True
        assert row.withdrawal_enabled is True
        assert row.default_join_fee_priority == ["winning", "bonus", "deposit"]
        assert await test_db.get(AppSettings, APP_SETTINGS_ID) is None

    @pytest.mark.asyncio
    async def test_stored_row(self, test_db, test_settings, save_app_settings):
        await save_app_settings(maintenance_mode=True, app_name="Arena")

        row = await SettingsService(test_db, test_settings).get()

        assert row.maintenance_mode is True
        assert row.app_name == "Arena"


class TestUpdate:
    @pytest.mark.asyncio
    async def test_creates_row(self, session_factory, test_settings):
        async with session_factory() as session:
            async with session.begin():
                await SettingsService(session, test_settings).update(
                    {"withdrawal_enabled": False, "youtube_url": "https://youtube.com/x"}
                )

        async with session_factory() as session:
            row = await session.get(AppSettings, APP_SETTINGS_ID)
        assert row.withdrawal_enabled is False
        assert row.youtube_url == "https://youtube.com/x"
        assert row.deposit_enabled is True

    @pytest.mark.asyncio
    async def test_unknown_field(self, test_db, test_settings):
        with pytest.raises(InvalidRequestError) as exc_info:
            await SettingsService(test_db, test_settings).update({"id": "other"})

        assert exc_info.value.details == {"fields": ["id"]}

    @pytest.mark.asyncio
    async def test_invalid_priority(self, test_db, test_settings):
        with pytest.raises(InvalidRequestError):
            await SettingsService(test_db, test_settings).update(
                {"default_join_fee_priority": ["winning", "winning", "bonus"]}
            )


class TestAdmin:
    @pytest.mark.asyncio
    async def test_claim_grants_admin(self, test_db, test_settings):
        assert await SettingsService(test_db, test_settings).is_admin("u", has_admin_claim=True)

    @pytest.mark.asyncio
    async def test_allow_list(self, test_db, test_settings, save_app_settings):
        await save_app_settings(admin_uids=["boss"])
        service = SettingsService(test_db, test_settings)

        assert await service.is_admin("boss")
        assert not await service.is_admin("player")


class TestJoinFeePriority:
    @pytest.mark.asyncio
    async def test_override_wins(self, test_db, test_settings, save_app_settings):
        await save_app_settings(default_join_fee_priority=["deposit", "winning", "bonus"])
        tournament = Tournament(
            name="x",
            max_players=2,
            created_by="a",
            join_fee_priority=["bonus", "deposit", "winning"],
        )

        priority = await SettingsService(test_db, test_settings).join_fee_priority(tournament)

        assert priority == [Bucket.BONUS, Bucket.DEPOSIT, Bucket.WINNING]

    @pytest.mark.asyncio
    async def test_settings_default(self, test_db, test_settings, save_app_settings):
        await save_app_settings(default_join_fee_priority=["deposit", "winning", "bonus"])

        priority = await SettingsService(test_db, test_settings).join_fee_priority()

        assert priority == [Bucket.DEPOSIT, Bucket.WINNING, Bucket.BONUS]

    @pytest.mark.asyncio
    async def test_config_default(self, test_db, test_settings):
        config = test_settings.model_copy(
            update={"default_join_fee_priority": ["bonus", "winning", "deposit"]}
        )

        priority = await SettingsService(test_db, config).join_fee_priority()

        assert priority == [Bucket.BONUS, Bucket.WINNING, Bucket.DEPOSIT]
