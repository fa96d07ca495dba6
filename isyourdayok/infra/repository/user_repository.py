"""
User repository using SQLAlchemy ORM
"""

from datetime import date, datetime, timezone
from typing import Dict, List, Optional
from uuid import UUID
from sqlalchemy import select, update, func, or_
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from isyourdayok.core.service.activity.models import ActivityKind, ChainUserData, User
from isyourdayok.infra.models import (
    UserModel,
    JournalEntryModel,
    MoodLogModel,
    MeditationSessionModel,
    AchievementModel,
)
from isyourdayok.core.logger.logger import get_logger

logger = get_logger(__name__)

_STREAK_COLUMNS = {
    ActivityKind.JOURNAL: ("journal_streak", "last_journal_date"),
    ActivityKind.MEDITATION: ("meditation_streak", "last_meditation_date"),
}


class UserRepository:
    """Repository for user rows, points and streak counters"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_or_create_user(
        self,
        wallet_address: str,
        farcaster_fid: Optional[str] = None,
        username: Optional[str] = None,
        profile_image: Optional[str] = None
    ) -> User:
        """
        Idempotent upsert keyed by wallet address.

        Profile fields are only overwritten when a non-empty value is given,
        so reconnecting a wallet never clears what the user already set.
        """
        wallet_address = wallet_address.lower()
        profile = {
            key: value for key, value in (
                ("farcaster_fid", farcaster_fid),
                ("username", username),
                ("profile_image", profile_image),
            ) if value
        }

        stmt = (
            insert(UserModel)
            .values(wallet_address=wallet_address, points=0, journal_streak=0, meditation_streak=0, **profile)
            .on_conflict_do_update(
                index_elements=[UserModel.wallet_address],
                set_={**profile, "updated_at": datetime.now(timezone.utc)}
            )
            .returning(UserModel)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        user_model = result.scalar_one()

        logger.debug(
            "User upserted",
            extra={"wallet_address": wallet_address, "user_id": str(user_model.id)}
        )
        return User.model_validate(user_model)

    async def get_by_wallet(self, wallet_address: str) -> Optional[User]:
        stmt = select(UserModel).where(UserModel.wallet_address == wallet_address.lower())
        result = await self.session.execute(stmt)
        user_model = result.scalar_one_or_none()
        return User.model_validate(user_model) if user_model else None

    async def get_by_id(self, user_id: UUID) -> Optional[User]:
        user_model = await self.session.get(UserModel, user_id, populate_existing=True)
        return User.model_validate(user_model) if user_model else None

    async def update_profile(
        self,
        user_id: UUID,
        username: Optional[str] = None,
        profile_image: Optional[str] = None
    ) -> Optional[User]:
        values = {}
        if username is not None:
            values["username"] = username
        if profile_image is not None:
            values["profile_image"] = profile_image
        if not values:
            return await self.get_by_id(user_id)

        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(**values, updated_at=datetime.now(timezone.utc))
            .returning(UserModel)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        user_model = result.scalar_one_or_none()
        return User.model_validate(user_model) if user_model else None

    async def award_points(self, user_id: UUID, amount: int) -> Optional[int]:
        """
        Atomically add points and return the new total.
        Not idempotent: every call adds `amount`. None when the user is missing.
        """
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(points=UserModel.points + amount, updated_at=datetime.now(timezone.utc))
            .returning(UserModel.points)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def bump_streak(self, user_id: UUID, kind: ActivityKind, day: date) -> bool:
        """
        Increment the streak for `kind` at most once per `day`.

        The guard on last_<kind>_date makes a repeated call for the same day a
        no-op, so concurrent double submits cannot double-count.
        """
        streak_column, date_column = _STREAK_COLUMNS[kind]
        streak_col = getattr(UserModel, streak_column)
        date_col = getattr(UserModel, date_column)

        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id, or_(date_col.is_(None), date_col < day))
            .values({streak_column: streak_col + 1, date_column: day, "updated_at": datetime.now(timezone.utc)})
            .returning(streak_col)
        )
        result = await self.session.execute(stmt)
        new_value = result.scalar_one_or_none()

        logger.debug(
            "Streak bump",
            extra={"user_id": str(user_id), "kind": kind.value, "day": day.isoformat(), "streak": new_value}
        )
        return new_value is not None

    async def overwrite_stats(self, user_id: UUID, chain_data: ChainUserData) -> Optional[User]:
        """Replace the local points/streak mirror with the chain's values"""
        stmt = (
            update(UserModel)
            .where(UserModel.id == user_id)
            .values(
                points=chain_data.total_points,
                journal_streak=chain_data.journal_streak,
                meditation_streak=chain_data.meditation_streak,
                updated_at=datetime.now(timezone.utc)
            )
            .returning(UserModel)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        user_model = result.scalar_one_or_none()
        return User.model_validate(user_model) if user_model else None

    async def list_with_counts(self) -> List[Dict]:
        """All users newest first, with per-user entry and achievement counts"""

        def count_of(model):
            return (
                select(func.count(model.id))
                .where(model.user_id == UserModel.id)
                .correlate(UserModel)
                .scalar_subquery()
            )

        stmt = (
            select(
                UserModel,
                count_of(JournalEntryModel).label("journals"),
                count_of(MoodLogModel).label("mood_logs"),
                count_of(MeditationSessionModel).label("meditations"),
                count_of(AchievementModel).label("achievements"),
            )
            .order_by(UserModel.created_at.desc())
        )
        result = await self.session.execute(stmt)

        return [
            {
                "user": User.model_validate(row.UserModel),
                "counts": {
                    "journals": row.journals,
                    "mood_logs": row.mood_logs,
                    "meditations": row.meditations,
                    "achievements": row.achievements,
                },
            }
            for row in result.all()
        ]
