"""
Chat message repository
"""

from typing import List, Optional
from uuid import UUID
from sqlalchemy import select, delete
from sqlalchemy.ext.asyncio import AsyncSession

from isyourdayok.core.service.chat.models import ChatMessage, ChatMessageType
from isyourdayok.infra.models import ChatMessageModel


class ChatMessageRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create(self, message_type: ChatMessageType, content: str, user_id: Optional[UUID] = None) -> ChatMessage:
        model = ChatMessageModel(type=message_type.value, content=content, user_id=user_id)
        self.session.add(model)
        await self.session.flush()
        await self.session.refresh(model)
        return ChatMessage.model_validate(model)

    async def latest(self, limit: int) -> List[ChatMessage]:
        """Newest `limit` messages, returned oldest first"""
        stmt = select(ChatMessageModel).order_by(ChatMessageModel.created_at.desc()).limit(limit)
        result = await self.session.execute(stmt)
        messages = [ChatMessage.model_validate(m) for m in result.scalars().all()]
        messages.reverse()
        return messages

    async def delete(self, message_id: UUID) -> bool:
        result = await self.session.execute(
            delete(ChatMessageModel).where(ChatMessageModel.id == message_id)
        )
        return result.rowcount > 0
