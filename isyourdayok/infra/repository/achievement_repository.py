"""
Achievement repository: local cache of NFT mint state per (user, type)
"""

import uuid
from datetime import datetime, timezone
from typing import List, Optional
from uuid import UUID
from sqlalchemy import select, update
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from isyourdayok.core.service.achievement.models import Achievement, MintState
from isyourdayok.infra.models import AchievementModel
from isyourdayok.core.logger.logger import get_logger

logger = get_logger(__name__)


class AchievementRepository:
    """Repository for nft_achievements rows"""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: UUID, achievement_type: str) -> Optional[Achievement]:
        stmt = select(AchievementModel).where(
            AchievementModel.user_id == user_id,
            AchievementModel.type == achievement_type
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return Achievement.model_validate(model) if model else None

    async def list_for_user(self, user_id: UUID, state: Optional[MintState] = None) -> List[Achievement]:
        stmt = select(AchievementModel).where(AchievementModel.user_id == user_id)
        if state is not None:
            stmt = stmt.where(AchievementModel.status == state.value)
        stmt = stmt.order_by(AchievementModel.created_at.desc())
        result = await self.session.execute(stmt)
        return [Achievement.model_validate(m) for m in result.scalars().all()]

    async def upsert_pending(
        self,
        user_id: UUID,
        achievement_type: str,
        days: int,
        improvement_rating: int
    ) -> Optional[Achievement]:
        """
        Create the record in PENDING, or move a FAILED one back to PENDING.

        Returns None when a row exists in PENDING or MINTED, i.e. another
        attempt owns it or the mint already happened.
        """
        now = datetime.now(timezone.utc)
        stmt = (
            insert(AchievementModel)
            .values(
                id=uuid.uuid4(),
                user_id=user_id,
                type=achievement_type,
                days=days,
                improvement_rating=improvement_rating,
                status=MintState.PENDING.value,
                created_at=now,
                updated_at=now
            )
            .on_conflict_do_update(
                index_elements=[AchievementModel.user_id, AchievementModel.type],
                set_={
                    "improvement_rating": improvement_rating,
                    "status": MintState.PENDING.value,
                    "last_error": None,
                    "updated_at": now,
                },
                where=AchievementModel.status == MintState.FAILED.value
            )
            .returning(AchievementModel)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return Achievement.model_validate(model) if model else None

    async def insert_minted(
        self,
        user_id: UUID,
        achievement_type: str,
        days: int,
        token_id: str,
        contract_address: str
    ) -> Optional[Achievement]:
        """Cache a mint found on chain with no local row; None if a row appeared meanwhile"""
        now = datetime.now(timezone.utc)
        stmt = (
            insert(AchievementModel)
            .values(
                id=uuid.uuid4(),
                user_id=user_id,
                type=achievement_type,
                days=days,
                status=MintState.MINTED.value,
                token_id=token_id,
                contract_address=contract_address,
                minted_at=now,
                created_at=now,
                updated_at=now
            )
            .on_conflict_do_nothing(index_elements=[AchievementModel.user_id, AchievementModel.type])
            .returning(AchievementModel)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()
        return Achievement.model_validate(model) if model else None

    async def mark_minted(
        self,
        achievement_id: UUID,
        token_id: Optional[str],
        contract_address: str,
        transaction_hash: Optional[str]
    ) -> Optional[Achievement]:
        now = datetime.now(timezone.utc)
        stmt = (
            update(AchievementModel)
            .where(AchievementModel.id == achievement_id)
            .values(
                status=MintState.MINTED.value,
                token_id=token_id,
                contract_address=contract_address,
                transaction_hash=transaction_hash,
                last_error=None,
                minted_at=now,
                updated_at=now
            )
            .returning(AchievementModel)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        logger.info(
            "Achievement marked minted",
            extra={"achievement_id": str(achievement_id), "token_id": token_id, "transaction_hash": transaction_hash}
        )
        return Achievement.model_validate(model) if model else None

    async def mark_failed(self, achievement_id: UUID, error: str) -> Optional[Achievement]:
        stmt = (
            update(AchievementModel)
            .where(
                AchievementModel.id == achievement_id,
                AchievementModel.status == MintState.PENDING.value
            )
            .values(status=MintState.FAILED.value, last_error=error[:1000], updated_at=datetime.now(timezone.utc))
            .returning(AchievementModel)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        model = result.scalar_one_or_none()

        logger.warning(
            "Achievement marked failed",
            extra={"achievement_id": str(achievement_id), "error": error}
        )
        return Achievement.model_validate(model) if model else None

    async def set_transaction_hash(self, achievement_id: UUID, transaction_hash: str) -> None:
        stmt = (
            update(AchievementModel)
            .where(AchievementModel.id == achievement_id)
            .values(transaction_hash=transaction_hash, updated_at=datetime.now(timezone.utc))
        )
        await self.session.execute(stmt)
