"""
Wellness activity service.

Completing an activity touches the daily ledger, the entry tables, the points
total and (for journal and meditation) the streak counter in one database
transaction. The day slot is claimed first, so a second completion of the same
kind on the same day is rejected before anything else is written.
"""

from datetime import date, datetime, timezone
from typing import Awaitable, Callable, List, Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from isyourdayok.core.exceptions.handler import (
    Conflict,
    NotFound,
    ServiceErrorCode,
    ValidationFailed,
)
from isyourdayok.core.logger.logger import get_logger
from isyourdayok.core.service.activity.models import (
    ACTIVITY_POINTS,
    STREAK_KINDS,
    MAX_MOOD_RATING,
    MIN_JOURNAL_LENGTH,
    MIN_MOOD_RATING,
    ActivityKind,
    ActivityResult,
    DailyActivity,
    JournalEntry,
    MeditationSession,
    MoodLabel,
    MoodLog,
    User,
    UserProfile,
    UserStats,
)
from isyourdayok.core.service.chain.points_contract import PointsContractClient
from isyourdayok.core.service.chain.provider import to_checksum
from isyourdayok.infra.repository.daily_activity_repository import DailyActivityRepository
from isyourdayok.infra.repository.entry_repository import EntryRepository
from isyourdayok.infra.repository.user_repository import UserRepository

logger = get_logger(__name__)

PROFILE_RECENT_LIMIT = 10
LIST_LIMIT = 30


def utc_today() -> date:
    return datetime.now(timezone.utc).date()


class WellnessService:
    """Users, daily activities, points and streaks"""

    def __init__(
        self,
        session: AsyncSession,
        points_contract: Optional[PointsContractClient] = None,
        clock: Callable[[], date] = utc_today
    ):
        self.session = session
        self.users = UserRepository(session)
        self.activities = DailyActivityRepository(session)
        self.entries = EntryRepository(session)
        self.points_contract = points_contract or PointsContractClient()
        self.clock = clock

    # Users

    async def get_or_create_user(
        self,
        wallet_address: str,
        farcaster_fid: Optional[str] = None,
        username: Optional[str] = None,
        profile_image: Optional[str] = None
    ) -> User:
        try:
            to_checksum(wallet_address)
        except ValueError:
            raise ValidationFailed("Invalid wallet address", code=ServiceErrorCode.INVALID_ADDRESS)

        user = await self.users.get_or_create_user(wallet_address, farcaster_fid, username, profile_image)
        await self.session.commit()
        return user

    async def require_user(self, wallet_address: str) -> User:
        user = await self.users.get_by_wallet(wallet_address)
        if user is None:
            raise NotFound("User not found", code=ServiceErrorCode.USER_NOT_FOUND)
        return user

    async def get_profile(self, user: User) -> UserProfile:
        return UserProfile(
            user=user,
            journals=await self.entries.list_journals(user.id, PROFILE_RECENT_LIMIT),
            mood_logs=await self.entries.list_mood_logs(user.id, PROFILE_RECENT_LIMIT),
            meditations=await self.entries.list_meditations(user.id, PROFILE_RECENT_LIMIT),
        )

    async def get_user_by_id(self, user_id: UUID) -> User:
        user = await self.users.get_by_id(user_id)
        if user is None:
            raise NotFound("User not found", code=ServiceErrorCode.USER_NOT_FOUND)
        return user

    async def update_profile(self, wallet_address: str, username: Optional[str], profile_image: Optional[str]) -> User:
        user = await self.require_user(wallet_address)
        updated = await self.users.update_profile(user.id, username=username, profile_image=profile_image)
        await self.session.commit()
        return updated

    # Activities

    async def log_mood(self, wallet_address: str, mood: str, rating: int) -> ActivityResult:
        try:
            mood = MoodLabel(mood).value
        except ValueError:
            raise ValidationFailed(
                f"Unknown mood '{mood}'",
                details={"allowed": [m.value for m in MoodLabel]}
            )
        if not MIN_MOOD_RATING <= rating <= MAX_MOOD_RATING:
            raise ValidationFailed(f"Rating must be between {MIN_MOOD_RATING} and {MAX_MOOD_RATING}")

        user = await self.require_user(wallet_address)
        return await self._complete_activity(
            user,
            ActivityKind.MOOD,
            lambda points: self.entries.create_mood_log(user.id, mood, rating, points)
        )

    async def submit_journal(self, wallet_address: str, content: str) -> ActivityResult:
        content = (content or "").strip()
        if len(content) < MIN_JOURNAL_LENGTH:
            raise ValidationFailed(f"Journal entry must be at least {MIN_JOURNAL_LENGTH} characters")

        user = await self.require_user(wallet_address)
        return await self._complete_activity(
            user,
            ActivityKind.JOURNAL,
            lambda points: self.entries.create_journal(user.id, content, points)
        )

    async def complete_meditation(self, wallet_address: str, duration: int, completed: bool = True):
        """
        Record a meditation session. A session cancelled before the timer ran
        out is stored without credit and leaves the ledger untouched.
        """
        if duration <= 0:
            raise ValidationFailed("Duration must be a positive number of seconds")

        user = await self.require_user(wallet_address)
        if not completed:
            session = await self.entries.create_meditation(user.id, duration, completed=False, points=0)
            await self.session.commit()
            return session

        return await self._complete_activity(
            user,
            ActivityKind.MEDITATION,
            lambda points: self.entries.create_meditation(user.id, duration, completed=True, points=points)
        )

    async def set_meditation_completed(self, wallet_address: str, session_id: UUID, completed: bool) -> MeditationSession:
        user = await self.require_user(wallet_address)
        existing = await self.entries.get_meditation(session_id)
        if existing is None or existing.user_id != user.id:
            raise NotFound("Meditation session not found")

        updated = await self.entries.set_meditation_completed(session_id, completed)
        await self.session.commit()
        return updated

    async def _complete_activity(
        self,
        user: User,
        kind: ActivityKind,
        create_entry: Callable[[int], Awaitable]
    ) -> ActivityResult:
        day = self.clock()
        points = ACTIVITY_POINTS[kind]

        try:
            if not await self.activities.record_activity(user.id, day, kind):
                raise Conflict(
                    ServiceErrorCode.ACTIVITY_ALREADY_COMPLETED,
                    f"{kind.value.capitalize()} already completed today",
                    details={"date": day.isoformat(), "kind": kind.value}
                )

            entry = await create_entry(points)
            total_points = await self.users.award_points(user.id, points)
            if kind in STREAK_KINDS:
                await self.users.bump_streak(user.id, kind, day)

            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        refreshed = await self.users.get_by_id(user.id)

        logger.info(
            "Activity completed",
            extra={
                "wallet_address": user.wallet_address,
                "kind": kind.value,
                "date": day.isoformat(),
                "points_awarded": points,
                "total_points": total_points
            }
        )

        return ActivityResult(
            kind=kind,
            date=day,
            entry_id=entry.id,
            points_awarded=points,
            total_points=total_points,
            journal_streak=refreshed.journal_streak,
            meditation_streak=refreshed.meditation_streak,
            chain_call=self.points_contract.activity_call(kind)
        )

    # Reads

    async def list_journals(self, wallet_address: str) -> List[JournalEntry]:
        user = await self.require_user(wallet_address)
        return await self.entries.list_journals(user.id)

    async def list_mood_logs(self, wallet_address: str) -> List[MoodLog]:
        user = await self.require_user(wallet_address)
        return await self.entries.list_mood_logs(user.id, LIST_LIMIT)

    async def list_meditations(self, wallet_address: str) -> List[MeditationSession]:
        user = await self.require_user(wallet_address)
        return await self.entries.list_meditations(user.id, LIST_LIMIT)

    async def get_daily_activity(self, wallet_address: str, day: Optional[date] = None) -> DailyActivity:
        user = await self.require_user(wallet_address)
        return await self.activities.get_activity(user.id, day or self.clock())

    async def get_stats(self, wallet_address: str) -> UserStats:
        """Chain values are displayed when readable, the database mirror otherwise"""
        user = await self.require_user(wallet_address)
        today = await self.activities.get_activity(user.id, self.clock())
        chain_data = await self.points_contract.get_user_data(user.wallet_address)

        if chain_data is not None:
            return UserStats(
                wallet_address=user.wallet_address,
                points=chain_data.total_points,
                journal_streak=chain_data.journal_streak,
                meditation_streak=chain_data.meditation_streak,
                source="chain",
                today=today
            )

        return UserStats(
            wallet_address=user.wallet_address,
            points=user.points,
            journal_streak=user.journal_streak,
            meditation_streak=user.meditation_streak,
            source="database",
            today=today
        )

    async def can_meditate_today(self, wallet_address: str) -> bool:
        user = await self.require_user(wallet_address)
        on_chain = await self.points_contract.can_meditate_today(user.wallet_address)
        if on_chain is not None:
            return on_chain
        today = await self.activities.get_activity(user.id, self.clock())
        return not today.meditation_done

    async def sync_user(self, wallet_address: str) -> UserStats:
        """
        Re-derive the local points/streak mirror from the points contract.
        A no-op when the chain cannot be read.
        """
        user = await self.require_user(wallet_address)
        chain_data = await self.points_contract.get_user_data(user.wallet_address)

        if chain_data is not None and (
            chain_data.total_points != user.points
            or chain_data.journal_streak != user.journal_streak
            or chain_data.meditation_streak != user.meditation_streak
        ):
            await self.users.overwrite_stats(user.id, chain_data)
            await self.session.commit()
            logger.info(
                "Local stats reconciled from chain",
                extra={
                    "wallet_address": user.wallet_address,
                    "db_points": user.points,
                    "chain_points": chain_data.total_points
                }
            )

        return await self.get_stats(wallet_address)
