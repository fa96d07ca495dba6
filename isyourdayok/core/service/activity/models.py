"""
Domain models for users and daily wellness activities
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class ActivityKind(str, Enum):
    """The three trackable daily activities"""
    MOOD = "mood"
    JOURNAL = "journal"
    MEDITATION = "meditation"


class MoodLabel(str, Enum):
    HAPPY = "happy"
    CALM = "calm"
    NEUTRAL = "neutral"
    NOT_GREAT = "not-great"
    SAD = "sad"


# Points awarded per completed activity
ACTIVITY_POINTS = {
    ActivityKind.MOOD: 10,
    ActivityKind.JOURNAL: 20,
    ActivityKind.MEDITATION: 30,
}

# Activities that carry a streak counter
STREAK_KINDS = (ActivityKind.JOURNAL, ActivityKind.MEDITATION)

MIN_JOURNAL_LENGTH = 10
MIN_MOOD_RATING = 1
MAX_MOOD_RATING = 10
DEFAULT_MEDITATION_SECONDS = 60


class User(BaseModel):
    """User keyed by wallet address"""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    wallet_address: str
    farcaster_fid: Optional[str] = None
    username: Optional[str] = None
    profile_image: Optional[str] = None
    points: int = Field(default=0, ge=0)
    journal_streak: int = Field(default=0, ge=0)
    meditation_streak: int = Field(default=0, ge=0)
    last_journal_date: Optional[date] = None
    last_meditation_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def streak_for(self, kind: ActivityKind) -> int:
        if kind == ActivityKind.JOURNAL:
            return self.journal_streak
        if kind == ActivityKind.MEDITATION:
            return self.meditation_streak
        return 0


class DailyActivity(BaseModel):
    """Which activities a user completed on a calendar date"""
    model_config = ConfigDict(from_attributes=True)

    date: date
    mood_log_done: bool = False
    journal_done: bool = False
    meditation_done: bool = False

    def is_done(self, kind: ActivityKind) -> bool:
        return getattr(self, DAILY_ACTIVITY_COLUMNS[kind])


DAILY_ACTIVITY_COLUMNS = {
    ActivityKind.MOOD: "mood_log_done",
    ActivityKind.JOURNAL: "journal_done",
    ActivityKind.MEDITATION: "meditation_done",
}


class JournalEntry(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    content: str
    points: int
    created_at: datetime


class MoodLog(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    mood: str
    rating: int
    points: int
    created_at: datetime


class MeditationSession(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    user_id: UUID
    duration: int
    completed: bool
    points: int
    created_at: datetime


class ChainUserData(BaseModel):
    """Snapshot of the points contract's getUserData(address)"""
    total_points: int
    journal_streak: int
    meditation_streak: int
    last_journal_date: int  # unix seconds, 0 when never
    last_meditation_date: int


class UserStats(BaseModel):
    """Displayed stats; chain values win over the database mirror when present"""
    wallet_address: str
    points: int
    journal_streak: int
    meditation_streak: int
    source: str  # "chain" or "database"
    today: DailyActivity


class ActivityResult(BaseModel):
    """Outcome of completing one daily activity"""
    kind: ActivityKind
    date: date
    entry_id: UUID
    points_awarded: int
    total_points: int
    journal_streak: int
    meditation_streak: int
    chain_call: Optional[Dict[str, Any]] = None


class UserProfile(BaseModel):
    user: User
    journals: List[JournalEntry]
    mood_logs: List[MoodLog]
    meditations: List[MeditationSession]
