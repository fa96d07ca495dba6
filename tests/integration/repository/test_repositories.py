"""
Repository SQL against a real PostgreSQL database.

Set TEST_DATABASE_URL (postgresql+asyncpg://...) to run these. Every test
works inside one transaction that is rolled back afterwards.
"""

import os
from datetime import date, timedelta
from uuid import uuid4

import pytest

from isyourdayok.core.service.achievement.models import MintState
from isyourdayok.core.service.activity.models import ActivityKind
from isyourdayok.infra.database import DatabaseManager
from isyourdayok.infra.repository.achievement_repository import AchievementRepository
from isyourdayok.infra.repository.daily_activity_repository import DailyActivityRepository
from isyourdayok.infra.repository.user_repository import UserRepository

TEST_DATABASE_URL = os.getenv("TEST_DATABASE_URL")
DAY = date(2025, 3, 6)
NFT_CONTRACT = "0x1111111111111111111111111111111111111111"

pytestmark = pytest.mark.skipif(not TEST_DATABASE_URL, reason="TEST_DATABASE_URL is not set")


@pytest.fixture
async def db_session():
    manager = DatabaseManager(TEST_DATABASE_URL)
    await manager.create_tables()
    session_factory = manager.get_session_factory()
    async with session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()
    await manager.close()


@pytest.fixture
async def db_user(db_session):
    return await UserRepository(db_session).get_or_create_user("0x" + uuid4().hex + "00000000", username="alice")


async def test_activity_recorded_once_per_day(db_session, db_user):
    ledger = DailyActivityRepository(db_session)

    assert await ledger.record_activity(db_user.id, DAY, ActivityKind.JOURNAL) is True
    assert await ledger.record_activity(db_user.id, DAY, ActivityKind.JOURNAL) is False
    assert await ledger.record_activity(db_user.id, DAY, ActivityKind.MOOD) is True

    activity = await ledger.get_activity(db_user.id, DAY)
    assert activity.journal_done is True
    assert activity.mood_log_done is True
    assert activity.meditation_done is False

    assert await ledger.record_activity(db_user.id, DAY + timedelta(days=1), ActivityKind.JOURNAL) is True


async def test_untouched_day_reads_all_false(db_session, db_user):
    activity = await DailyActivityRepository(db_session).get_activity(db_user.id, DAY)
    assert (activity.mood_log_done, activity.journal_done, activity.meditation_done) == (False, False, False)


async def test_streak_bumps_at_most_once_per_day(db_session, db_user):
    users = UserRepository(db_session)

    assert await users.bump_streak(db_user.id, ActivityKind.JOURNAL, DAY) is True
    assert await users.bump_streak(db_user.id, ActivityKind.JOURNAL, DAY) is False
    assert await users.bump_streak(db_user.id, ActivityKind.JOURNAL, DAY - timedelta(days=1)) is False
    assert await users.bump_streak(db_user.id, ActivityKind.JOURNAL, DAY + timedelta(days=1)) is True
    assert await users.bump_streak(db_user.id, ActivityKind.MEDITATION, DAY) is True

    user = await users.get_by_id(db_user.id)
    assert user.journal_streak == 2
    assert user.meditation_streak == 1
    assert user.last_journal_date == DAY + timedelta(days=1)


async def test_points_accumulate(db_session, db_user):
    users = UserRepository(db_session)

    assert await users.award_points(db_user.id, 10) == 10
    assert await users.award_points(db_user.id, 5) == 15
    assert (await users.get_by_id(db_user.id)).points == 15
    assert await users.award_points(uuid4(), 5) is None


async def test_pending_record_guards_and_failed_retry(db_session, db_user):
    achievements = AchievementRepository(db_session)

    record = await achievements.upsert_pending(db_user.id, "journal-7", 7, 50)
    assert record.status == MintState.PENDING
    assert await achievements.upsert_pending(db_user.id, "journal-7", 7, 60) is None

    failed = await achievements.mark_failed(record.id, "Mint transaction was not confirmed")
    assert failed.status == MintState.FAILED

    retried = await achievements.upsert_pending(db_user.id, "journal-7", 7, 70)
    assert retried.id == record.id
    assert retried.status == MintState.PENDING
    assert retried.improvement_rating == 70
    assert retried.last_error is None

    minted = await achievements.mark_minted(record.id, "42", NFT_CONTRACT, "0x" + "ab" * 32)
    assert minted.status == MintState.MINTED
    assert await achievements.upsert_pending(db_user.id, "journal-7", 7, 80) is None
    assert await achievements.mark_failed(record.id, "late failure") is None
    assert (await achievements.get(db_user.id, "journal-7")).status == MintState.MINTED


async def test_minted_cache_row_inserted_once(db_session, db_user):
    achievements = AchievementRepository(db_session)

    restored = await achievements.insert_minted(db_user.id, "meditation-7", 7, "0", NFT_CONTRACT)
    assert restored.status == MintState.MINTED
    assert restored.token_id == "0"
    assert restored.improvement_rating is None

    assert await achievements.insert_minted(db_user.id, "meditation-7", 7, "0", NFT_CONTRACT) is None
    assert [r.type for r in await achievements.list_for_user(db_user.id, state=MintState.MINTED)] == ["meditation-7"]
