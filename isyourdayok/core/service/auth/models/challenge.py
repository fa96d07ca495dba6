from datetime import datetime, timezone
from enum import Enum
from pydantic import BaseModel, ConfigDict, Field


class ChallengeStatus(str, Enum):
    PENDING = "pending"
    EXPIRED = "expired"
    VERIFIED = "verified"
    INVALID = "invalid"


class Challenge(BaseModel):
    """Sign-in challenge for an EVM wallet"""
    model_config = ConfigDict(json_schema_extra={
        "example": {
            "nonce": "0x1234567890abcdef",
            "wallet_address": "0x742d35Cc6634C0532925a3b844Bc454e4438f44e",
            "timestamp": "2025-03-06T10:00:00Z",
            "expires_at": "2025-03-06T10:05:00Z",
            "status": "pending",
            "message": "Sign in to IsYourDayOk\nNonce: 0x1234567890abcdef"
        }
    })

    nonce: str = Field(..., description="Unique nonce for the challenge")
    wallet_address: str = Field(..., description="EVM wallet address")
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    expires_at: datetime
    status: ChallengeStatus = Field(default=ChallengeStatus.PENDING)
    message: str = Field(..., description="Challenge message to be signed")

    def is_expired(self) -> bool:
        return datetime.now(timezone.utc) > self.expires_at
