"""
Append-only wellness entries: journal entries, mood logs, meditation sessions
"""

from typing import List, Optional
from uuid import UUID
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from isyourdayok.core.service.activity.models import JournalEntry, MoodLog, MeditationSession
from isyourdayok.infra.models import JournalEntryModel, MoodLogModel, MeditationSessionModel
from isyourdayok.core.logger.logger import get_logger

logger = get_logger(__name__)


class EntryRepository:
    """Repository for per-user activity event records"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _add(self, model):
        self.session.add(model)
        await self.session.flush()
        await self.session.refresh(model)
        return model

    async def create_journal(self, user_id: UUID, content: str, points: int) -> JournalEntry:
        model = await self._add(JournalEntryModel(user_id=user_id, content=content, points=points))
        return JournalEntry.model_validate(model)

    async def create_mood_log(self, user_id: UUID, mood: str, rating: int, points: int) -> MoodLog:
        model = await self._add(MoodLogModel(user_id=user_id, mood=mood, rating=rating, points=points))
        return MoodLog.model_validate(model)

    async def create_meditation(self, user_id: UUID, duration: int, completed: bool, points: int) -> MeditationSession:
        model = await self._add(
            MeditationSessionModel(user_id=user_id, duration=duration, completed=completed, points=points)
        )
        return MeditationSession.model_validate(model)

    async def list_journals(self, user_id: UUID, limit: Optional[int] = None) -> List[JournalEntry]:
        stmt = (
            select(JournalEntryModel)
            .where(JournalEntryModel.user_id == user_id)
            .order_by(JournalEntryModel.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [JournalEntry.model_validate(m) for m in result.scalars().all()]

    async def list_mood_logs(self, user_id: UUID, limit: Optional[int] = 30) -> List[MoodLog]:
        stmt = (
            select(MoodLogModel)
            .where(MoodLogModel.user_id == user_id)
            .order_by(MoodLogModel.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [MoodLog.model_validate(m) for m in result.scalars().all()]

    async def list_meditations(self, user_id: UUID, limit: Optional[int] = 30) -> List[MeditationSession]:
        stmt = (
            select(MeditationSessionModel)
            .where(MeditationSessionModel.user_id == user_id)
            .order_by(MeditationSessionModel.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return [MeditationSession.model_validate(m) for m in result.scalars().all()]

    async def get_meditation(self, session_id: UUID) -> Optional[MeditationSession]:
        model = await self.session.get(MeditationSessionModel, session_id)
        return MeditationSession.model_validate(model) if model else None

    async def set_meditation_completed(self, session_id: UUID, completed: bool) -> Optional[MeditationSession]:
        """The completed flag is the only mutable field on any entry"""
        stmt = (
            update(MeditationSessionModel)
            .where(MeditationSessionModel.id == session_id)
            .values(completed=completed)
            .returning(MeditationSessionModel)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return MeditationSession.model_validate(model) if model else None
