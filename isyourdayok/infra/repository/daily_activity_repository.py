"""
Daily activity ledger repository
"""

import uuid
from datetime import date
from uuid import UUID
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from isyourdayok.core.service.activity.models import ActivityKind, DailyActivity, DAILY_ACTIVITY_COLUMNS
from isyourdayok.infra.models import DailyActivityModel
from isyourdayok.core.logger.logger import get_logger

logger = get_logger(__name__)


class DailyActivityRepository:
    """One row per (user, date) holding three completion flags"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record_activity(self, user_id: UUID, day: date, kind: ActivityKind) -> bool:
        """
        Mark `kind` done for the user's day, creating the row if absent.

        Only the column for `kind` is written. Returns True when the flag went
        from false to true, False when it was already set.
        """
        column = DAILY_ACTIVITY_COLUMNS[kind]
        flag = getattr(DailyActivityModel, column)

        stmt = (
            insert(DailyActivityModel)
            .values(id=uuid.uuid4(), user_id=user_id, date=day, **{column: True})
            .on_conflict_do_update(
                index_elements=[DailyActivityModel.user_id, DailyActivityModel.date],
                set_={column: True},
                where=flag.is_(False)
            )
            .returning(DailyActivityModel.id)
        )
        result = await self.session.execute(stmt)
        recorded = result.scalar_one_or_none() is not None

        logger.debug(
            "Daily activity recorded" if recorded else "Daily activity already recorded",
            extra={"user_id": str(user_id), "date": day.isoformat(), "kind": kind.value}
        )
        return recorded

    async def get_activity(self, user_id: UUID, day: date) -> DailyActivity:
        """Flags for the day; all false when nothing was recorded"""
        stmt = select(DailyActivityModel).where(
            DailyActivityModel.user_id == user_id,
            DailyActivityModel.date == day
        )
        result = await self.session.execute(stmt)
        activity = result.scalar_one_or_none()

        if activity is None:
            return DailyActivity(date=day)
        return DailyActivity.model_validate(activity)
