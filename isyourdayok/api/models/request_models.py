"""
Request DTOs for API endpoints.
"""

import re
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from isyourdayok.core.service.activity.models import (
    DEFAULT_MEDITATION_SECONDS,
    MAX_MOOD_RATING,
    MIN_MOOD_RATING,
    MoodLabel,
)
from isyourdayok.core.service.achievement.models import MAX_IMPROVEMENT_RATING, MIN_IMPROVEMENT_RATING
from isyourdayok.core.service.chat.models import ChatMessageType

EVM_ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")


def _evm_address(v: str) -> str:
    v = (v or "").strip()
    if not EVM_ADDRESS_PATTERN.match(v):
        raise ValueError("Invalid EVM address format")
    return v


class ChallengeRequestDTO(BaseModel):
    wallet_address: str = Field(..., description="EVM wallet address to authenticate")

    @field_validator("wallet_address")
    @classmethod
    def validate_wallet_address(cls, v):
        return _evm_address(v)


class VerifyRequestDTO(BaseModel):
    wallet_address: str = Field(..., description="Wallet address that signed the challenge")
    signature: str = Field(..., min_length=1, description="Hex-encoded personal_sign signature")

    @field_validator("wallet_address")
    @classmethod
    def validate_wallet_address(cls, v):
        return _evm_address(v)

    @field_validator("signature")
    @classmethod
    def validate_signature(cls, v):
        if not v.strip():
            raise ValueError("Signature cannot be empty")
        return v.strip()


class RefreshTokenRequestDTO(BaseModel):
    refresh_token: str = Field(..., min_length=1)


class LogoutRequestDTO(BaseModel):
    refresh_token: Optional[str] = Field(None, description="Refresh token to revoke along with the access token")


class CreateUserRequestDTO(BaseModel):
    wallet_address: str
    username: Optional[str] = Field(None, max_length=64)
    profile_image: Optional[str] = Field(None, max_length=2048)
    farcaster_fid: Optional[str] = Field(None, max_length=64)

    @field_validator("wallet_address")
    @classmethod
    def validate_wallet_address(cls, v):
        return _evm_address(v)


class UpdateProfileRequestDTO(BaseModel):
    """Points and streaks are deliberately absent: they are not client-writable"""
    username: Optional[str] = Field(None, min_length=1, max_length=64)
    profile_image: Optional[str] = Field(None, max_length=2048)


class MoodLogRequestDTO(BaseModel):
    mood: MoodLabel
    rating: int = Field(..., ge=MIN_MOOD_RATING, le=MAX_MOOD_RATING)


class JournalRequestDTO(BaseModel):
    content: str = Field(..., min_length=1, max_length=10000)


class MeditationRequestDTO(BaseModel):
    duration: int = Field(default=DEFAULT_MEDITATION_SECONDS, gt=0, description="Session length in seconds")
    completed: bool = True


class MeditationUpdateRequestDTO(BaseModel):
    completed: bool


class MintRequestDTO(BaseModel):
    achievement_type: str = Field(..., description="journal-7, journal-30, meditation-7 or meditation-30")
    improvement_rating: int = Field(..., ge=MIN_IMPROVEMENT_RATING, le=MAX_IMPROVEMENT_RATING)


class ChatMessageRequestDTO(BaseModel):
    type: ChatMessageType = Field(default=ChatMessageType.ADMIN)
    content: str = Field(..., min_length=1, max_length=2000)


class GrantRoleRequestDTO(BaseModel):
    wallet_address: str
    role: str = Field(..., min_length=1)

    @field_validator("wallet_address")
    @classmethod
    def validate_wallet_address(cls, v):
        return _evm_address(v)
