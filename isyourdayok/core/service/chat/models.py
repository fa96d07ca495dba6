from datetime import datetime
from enum import Enum
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class ChatMessageType(str, Enum):
    ADMIN = "admin"
    SYSTEM = "system"
    MILESTONE = "milestone"


class ChatMessage(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    type: ChatMessageType
    content: str
    user_id: Optional[UUID] = None
    created_at: datetime

