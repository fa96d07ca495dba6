from typing import List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from isyourdayok.core.exceptions.handler import NotFound
from isyourdayok.core.logger.logger import get_logger
from isyourdayok.core.service.access.policy import AccessPolicy, Permission
from isyourdayok.core.service.chat.models import ChatMessage, ChatMessageType
from isyourdayok.infra.config.settings import get_settings
from isyourdayok.infra.repository.chat_message_repository import ChatMessageRepository
from isyourdayok.infra.repository.user_repository import UserRepository

logger = get_logger(__name__)


class ChatService:
    """Community feed: admin announcements and milestone messages"""

    def __init__(self, session: AsyncSession, access_policy: Optional[AccessPolicy] = None):
        settings = get_settings()
        self.session = session
        self.messages = ChatMessageRepository(session)
        self.users = UserRepository(session)
        self.policy = access_policy or AccessPolicy(session)
        self.default_limit = settings.CHAT_DEFAULT_LIMIT
        self.max_limit = settings.CHAT_MAX_LIMIT

    async def latest(self, limit: Optional[int] = None) -> List[ChatMessage]:
        limit = max(1, min(limit or self.default_limit, self.max_limit))
        return await self.messages.latest(limit)

    async def post(self, wallet_address: str, message_type: ChatMessageType, content: str) -> ChatMessage:
        await self.policy.require(wallet_address, Permission.CHAT_POST)

        author = await self.users.get_by_wallet(wallet_address)
        message = await self.messages.create(
            message_type,
            content.strip(),
            user_id=author.id if author else None
        )
        await self.session.commit()

        logger.info(
            "Chat message posted",
            extra={"wallet_address": wallet_address, "message_id": str(message.id), "type": message_type.value}
        )
        return message

    async def delete(self, wallet_address: str, message_id: UUID) -> None:
        await self.policy.require(wallet_address, Permission.CHAT_DELETE)

        if not await self.messages.delete(message_id):
            raise NotFound("Chat message not found")
        await self.session.commit()

        logger.info("Chat message deleted", extra={"wallet_address": wallet_address, "message_id": str(message_id)})
