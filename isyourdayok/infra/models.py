"""
SQLAlchemy ORM models for database tables
"""

from datetime import datetime, timezone
from sqlalchemy import Column, String, Integer, DateTime, Date, Boolean, Text, ForeignKey, Index
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func
import uuid

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UserModel(Base):
    """SQLAlchemy ORM model for users table"""

    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    wallet_address = Column(String(255), nullable=False)
    farcaster_fid = Column(String(64), nullable=True)
    username = Column(String(100), nullable=True)
    profile_image = Column(String(1024), nullable=True)
    points = Column(Integer, default=0, nullable=False)
    journal_streak = Column(Integer, default=0, nullable=False)
    meditation_streak = Column(Integer, default=0, nullable=False)
    last_journal_date = Column(Date, nullable=True)
    last_meditation_date = Column(Date, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_users_wallet', 'wallet_address', unique=True),
        Index('idx_users_created', 'created_at'),
    )

    def __repr__(self):
        return f"<User(wallet_address='{self.wallet_address}', points={self.points})>"


class DailyActivityModel(Base):
    """SQLAlchemy ORM model for daily_activities table"""

    __tablename__ = "daily_activities"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    date = Column(Date, nullable=False)
    mood_log_done = Column(Boolean, default=False, nullable=False)
    journal_done = Column(Boolean, default=False, nullable=False)
    meditation_done = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    __table_args__ = (
        Index('idx_daily_activities_user_date', 'user_id', 'date', unique=True),
    )

    def __repr__(self):
        return (
            f"<DailyActivity(user_id='{self.user_id}', date='{self.date}', mood={self.mood_log_done}, "
            f"journal={self.journal_done}, meditation={self.meditation_done})>"
        )


class JournalEntryModel(Base):
    """SQLAlchemy ORM model for journal_entries table"""

    __tablename__ = "journal_entries"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    content = Column(Text, nullable=False)
    points = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index('idx_journal_entries_user_created', 'user_id', 'created_at'),
    )


class MoodLogModel(Base):
    """SQLAlchemy ORM model for mood_logs table"""

    __tablename__ = "mood_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    mood = Column(String(32), nullable=False)
    rating = Column(Integer, nullable=False)
    points = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index('idx_mood_logs_user_created', 'user_id', 'created_at'),
    )


class MeditationSessionModel(Base):
    """SQLAlchemy ORM model for meditation_sessions table"""

    __tablename__ = "meditation_sessions"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    duration = Column(Integer, nullable=False)  # seconds
    completed = Column(Boolean, default=True, nullable=False)
    points = Column(Integer, nullable=False)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index('idx_meditation_sessions_user_created', 'user_id', 'created_at'),
    )


class AchievementModel(Base):
    """SQLAlchemy ORM model for nft_achievements table"""

    __tablename__ = "nft_achievements"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=False)
    type = Column(String(32), nullable=False)
    days = Column(Integer, nullable=False)
    improvement_rating = Column(Integer, nullable=True)  # unknown for mints restored from the chain
    status = Column(String(16), nullable=False)
    token_id = Column(String(78), nullable=True)
    contract_address = Column(String(255), nullable=True)
    transaction_hash = Column(String(255), nullable=True)
    last_error = Column(Text, nullable=True)
    minted_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        Index('idx_nft_achievements_user_type', 'user_id', 'type', unique=True),
        Index('idx_nft_achievements_status', 'status'),
    )

    def __repr__(self):
        return f"<Achievement(user_id='{self.user_id}', type='{self.type}', status='{self.status}')>"


class ChatMessageModel(Base):
    """SQLAlchemy ORM model for chat_messages table"""

    __tablename__ = "chat_messages"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    type = Column(String(16), nullable=False)
    content = Column(Text, nullable=False)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id"), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index('idx_chat_messages_created', 'created_at'),
    )


class RoleAssignmentModel(Base):
    """SQLAlchemy ORM model for role_assignments table"""

    __tablename__ = "role_assignments"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    wallet_address = Column(String(255), nullable=False)
    role = Column(String(32), nullable=False)
    granted_by = Column(String(255), nullable=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)

    __table_args__ = (
        Index('idx_role_assignments_wallet_role', 'wallet_address', 'role', unique=True),
    )
