from typing import List, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status

from isyourdayok.api.middleware.authentication.jwt_bearer import get_current_wallet
from isyourdayok.api.models.request_models import ChatMessageRequestDTO
from isyourdayok.core.dependencies import get_chat_service
from isyourdayok.core.service.chat.chat_service import ChatService
from isyourdayok.core.service.chat.models import ChatMessage

router = APIRouter(prefix="/chat", tags=["Chat"])


@router.get("", response_model=List[ChatMessage])
async def list_messages(
    limit: Optional[int] = Query(None, ge=1),
    chat_service: ChatService = Depends(get_chat_service)
):
    """Latest messages, oldest first"""
    return await chat_service.latest(limit)


@router.post("", response_model=ChatMessage, status_code=status.HTTP_201_CREATED)
async def post_message(
    request: ChatMessageRequestDTO,
    wallet_address: str = Depends(get_current_wallet),
    chat_service: ChatService = Depends(get_chat_service)
):
    return await chat_service.post(wallet_address, request.type, request.content)


@router.delete("/{message_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_message(
    message_id: UUID,
    wallet_address: str = Depends(get_current_wallet),
    chat_service: ChatService = Depends(get_chat_service)
):
    await chat_service.delete(wallet_address, message_id)
