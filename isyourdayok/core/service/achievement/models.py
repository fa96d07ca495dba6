"""Achievement catalogue and mint state models."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from isyourdayok.core.service.activity.models import ActivityKind


class AchievementStatus(str, Enum):
    """Displayed status derived by the evaluator"""
    LOCKED = "locked"
    IN_PROGRESS = "in-progress"
    UNLOCKED = "unlocked"
    MINTED = "minted"


class MintState(str, Enum):
    """Persisted lifecycle of a local achievement record (NONE = no row)"""
    PENDING = "pending"
    MINTED = "minted"
    FAILED = "failed"


@dataclass(frozen=True)
class AchievementType:
    id: str
    code: int  # enum value understood by the NFT contract
    kind: ActivityKind
    days: int
    title: str
    description: str

    def metadata_uri(self, base_url: str) -> str:
        return f"{base_url.rstrip('/')}/nft-metadata/{self.id}.json"


ACHIEVEMENT_TYPES: Dict[str, AchievementType] = {
    t.id: t for t in (
        AchievementType("journal-7", 0, ActivityKind.JOURNAL, 7,
                        "7-Day Journal Streak", "Complete 7 consecutive days of journaling"),
        AchievementType("journal-30", 1, ActivityKind.JOURNAL, 30,
                        "30-Day Journal Streak", "Complete 30 consecutive days of journaling"),
        AchievementType("meditation-7", 2, ActivityKind.MEDITATION, 7,
                        "7-Day Meditation Streak", "Complete 7 consecutive days of meditation"),
        AchievementType("meditation-30", 3, ActivityKind.MEDITATION, 30,
                        "30-Day Meditation Streak", "Complete 30 consecutive days of meditation"),
    )
}

MIN_IMPROVEMENT_RATING = 1
MAX_IMPROVEMENT_RATING = 100
UNKNOWN_TOKEN_ID = "0"


def get_achievement_type(type_id: str) -> Optional[AchievementType]:
    return ACHIEVEMENT_TYPES.get(type_id)


class Achievement(BaseModel):
    """Local cache of a mint for (user, type); the NFT contract is authoritative"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    type: str
    days: int
    improvement_rating: Optional[int] = None
    status: MintState
    token_id: Optional[str] = None
    contract_address: Optional[str] = None
    transaction_hash: Optional[str] = None
    last_error: Optional[str] = None
    minted_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def minted(self) -> bool:
        return self.status == MintState.MINTED


class AchievementProgress(BaseModel):
    type: str
    title: str
    description: str
    kind: ActivityKind
    status: AchievementStatus
    current: int
    target: int


class MintReceipt(BaseModel):
    """Outcome of a mined mintAchievement transaction"""
    transaction_hash: str
    token_id: str
    contract_address: str
    block_number: Optional[int] = None
    reverted: bool = False


class MintResult(BaseModel):
    success: bool = True
    achievement_type: str
    token_id: str
    transaction_hash: str
    contract_address: str
