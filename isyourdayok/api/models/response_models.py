"""
Response DTOs for API endpoints.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from isyourdayok.core.service.activity.models import (
    JournalEntry,
    MeditationSession,
    MoodLog,
    User,
)
from isyourdayok.core.service.achievement.models import Achievement, AchievementProgress


class ChallengeResponseDTO(BaseModel):
    nonce: str
    message: str = Field(..., description="Message to be signed with personal_sign")
    expires_in: int = Field(..., description="Seconds until the challenge expires")


class AuthResponseDTO(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int
    user: User


class TokenRefreshResponseDTO(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class LogoutResponseDTO(BaseModel):
    success: bool = True
    revoked_tokens: int


class UserProfileResponseDTO(BaseModel):
    user: User
    journals: List[JournalEntry]
    mood_logs: List[MoodLog]
    meditations: List[MeditationSession]
    achievements: List[Achievement]


class CanMeditateResponseDTO(BaseModel):
    can_meditate: bool


class AchievementListResponseDTO(BaseModel):
    achievements: List[AchievementProgress]
    records: List[Achievement]


class ReconcileResponseDTO(BaseModel):
    reconciled: List[Achievement]


class AdminUserDTO(BaseModel):
    user: User
    counts: Dict[str, int]


class RoleGrantResponseDTO(BaseModel):
    wallet_address: str
    role: str
    granted: bool


class HealthCheckResponseDTO(BaseModel):
    status: str
    services: Dict[str, Any]
    version: str
    timestamp: datetime
    chain_id: Optional[int] = None
