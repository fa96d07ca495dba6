"""
Shared fixtures: in-memory repositories, Redis and chain doubles.

Services build their repositories from the session; tests swap those
attributes for the in-memory versions below.
"""

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Dict, List, Optional, Set, Tuple
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from isyourdayok.core.service.access.policy import AccessPolicy
from isyourdayok.core.service.achievement.mint_coordinator import MintCoordinator
from isyourdayok.core.service.achievement.models import Achievement, MintReceipt, MintState
from isyourdayok.core.service.activity.models import (
    DAILY_ACTIVITY_COLUMNS,
    ActivityKind,
    ChainUserData,
    DailyActivity,
    JournalEntry,
    MeditationSession,
    MoodLog,
    User,
)
from isyourdayok.core.service.activity.wellness_service import WellnessService
from isyourdayok.core.service.chat.chat_service import ChatService
from isyourdayok.core.service.chat.models import ChatMessage

WALLET = "0x742d35cc6634c0532925a3b844bc454e4438f44e"
NFT_CONTRACT = "0x1111111111111111111111111111111111111111"
TX_HASH = "0x" + "ab" * 32
TODAY = date(2025, 3, 6)

_STREAK_FIELDS = {
    ActivityKind.JOURNAL: ("journal_streak", "last_journal_date"),
    ActivityKind.MEDITATION: ("meditation_streak", "last_meditation_date"),
}


def _now() -> datetime:
    return datetime.now(timezone.utc)


class FakeUserRepository:

    def __init__(self):
        self.users: Dict[UUID, User] = {}

    async def get_or_create_user(self, wallet_address, farcaster_fid=None, username=None, profile_image=None):
        profile = {
            key: value for key, value in (
                ("farcaster_fid", farcaster_fid),
                ("username", username),
                ("profile_image", profile_image),
            ) if value
        }
        existing = await self.get_by_wallet(wallet_address)
        if existing:
            self.users[existing.id] = existing.model_copy(update=profile)
            return self.users[existing.id]

        user = User(id=uuid4(), wallet_address=wallet_address.lower(), created_at=_now(), **profile)
        self.users[user.id] = user
        return user

    async def get_by_wallet(self, wallet_address):
        return next((u for u in self.users.values() if u.wallet_address == wallet_address.lower()), None)

    async def get_by_id(self, user_id):
        return self.users.get(user_id)

    async def update_profile(self, user_id, username=None, profile_image=None):
        values = {k: v for k, v in (("username", username), ("profile_image", profile_image)) if v is not None}
        self.users[user_id] = self.users[user_id].model_copy(update=values)
        return self.users[user_id]

    async def award_points(self, user_id, amount):
        user = self.users.get(user_id)
        if user is None:
            return None
        self.users[user_id] = user.model_copy(update={"points": user.points + amount})
        return self.users[user_id].points

    async def bump_streak(self, user_id, kind, day):
        streak_field, date_field = _STREAK_FIELDS[kind]
        user = self.users[user_id]
        last = getattr(user, date_field)
        if last is not None and last >= day:
            return False
        self.users[user_id] = user.model_copy(update={streak_field: getattr(user, streak_field) + 1, date_field: day})
        return True

    async def overwrite_stats(self, user_id, chain_data: ChainUserData):
        self.users[user_id] = self.users[user_id].model_copy(update={
            "points": chain_data.total_points,
            "journal_streak": chain_data.journal_streak,
            "meditation_streak": chain_data.meditation_streak,
        })
        return self.users[user_id]

    async def list_with_counts(self):
        return [
            {"user": u, "counts": {"journals": 0, "mood_logs": 0, "meditations": 0, "achievements": 0}}
            for u in self.users.values()
        ]


class FakeDailyActivityRepository:

    def __init__(self):
        self.days: Dict[Tuple[UUID, date], DailyActivity] = {}

    async def record_activity(self, user_id, day, kind):
        column = DAILY_ACTIVITY_COLUMNS[kind]
        current = self.days.get((user_id, day), DailyActivity(date=day))
        if getattr(current, column):
            return False
        self.days[(user_id, day)] = current.model_copy(update={column: True})
        return True

    async def get_activity(self, user_id, day):
        return self.days.get((user_id, day), DailyActivity(date=day))


class FakeEntryRepository:

    def __init__(self):
        self.journals: List[JournalEntry] = []
        self.mood_logs: List[MoodLog] = []
        self.meditations: List[MeditationSession] = []

    async def create_journal(self, user_id, content, points):
        entry = JournalEntry(id=uuid4(), user_id=user_id, content=content, points=points, created_at=_now())
        self.journals.append(entry)
        return entry

    async def create_mood_log(self, user_id, mood, rating, points):
        entry = MoodLog(id=uuid4(), user_id=user_id, mood=mood, rating=rating, points=points, created_at=_now())
        self.mood_logs.append(entry)
        return entry

    async def create_meditation(self, user_id, duration, completed, points):
        entry = MeditationSession(
            id=uuid4(), user_id=user_id, duration=duration, completed=completed, points=points, created_at=_now()
        )
        self.meditations.append(entry)
        return entry

    @staticmethod
    def _newest(entries, user_id, limit):
        owned = [e for e in reversed(entries) if e.user_id == user_id]
        return owned[:limit] if limit is not None else owned

    async def list_journals(self, user_id, limit=None):
        return self._newest(self.journals, user_id, limit)

    async def list_mood_logs(self, user_id, limit=30):
        return self._newest(self.mood_logs, user_id, limit)

    async def list_meditations(self, user_id, limit=30):
        return self._newest(self.meditations, user_id, limit)

    async def get_meditation(self, session_id):
        return next((m for m in self.meditations if m.id == session_id), None)

    async def set_meditation_completed(self, session_id, completed):
        for i, m in enumerate(self.meditations):
            if m.id == session_id:
                self.meditations[i] = m.model_copy(update={"completed": completed})
                return self.meditations[i]
        return None


class FakeAchievementRepository:

    def __init__(self):
        self.records: Dict[Tuple[UUID, str], Achievement] = {}

    def _key_for(self, achievement_id):
        return next(k for k, v in self.records.items() if v.id == achievement_id)

    async def get(self, user_id, achievement_type):
        return self.records.get((user_id, achievement_type))

    async def list_for_user(self, user_id, state=None):
        return [
            r for (owner, _), r in self.records.items()
            if owner == user_id and (state is None or r.status == state)
        ]

    async def upsert_pending(self, user_id, achievement_type, days, improvement_rating):
        existing = self.records.get((user_id, achievement_type))
        if existing is not None and existing.status != MintState.FAILED:
            return None
        record = Achievement(
            id=existing.id if existing else uuid4(),
            user_id=user_id,
            type=achievement_type,
            days=days,
            improvement_rating=improvement_rating,
            status=MintState.PENDING,
            created_at=_now()
        )
        self.records[(user_id, achievement_type)] = record
        return record

    async def insert_minted(self, user_id, achievement_type, days, token_id, contract_address):
        if (user_id, achievement_type) in self.records:
            return None
        record = Achievement(
            id=uuid4(),
            user_id=user_id,
            type=achievement_type,
            days=days,
            status=MintState.MINTED,
            token_id=token_id,
            contract_address=contract_address,
            minted_at=_now(),
            created_at=_now()
        )
        self.records[(user_id, achievement_type)] = record
        return record

    async def mark_minted(self, achievement_id, token_id, contract_address, transaction_hash):
        key = self._key_for(achievement_id)
        self.records[key] = self.records[key].model_copy(update={
            "status": MintState.MINTED,
            "token_id": token_id,
            "contract_address": contract_address,
            "transaction_hash": transaction_hash,
            "last_error": None,
            "minted_at": _now(),
        })
        return self.records[key]

    async def mark_failed(self, achievement_id, error):
        key = self._key_for(achievement_id)
        if self.records[key].status != MintState.PENDING:
            return None
        self.records[key] = self.records[key].model_copy(update={"status": MintState.FAILED, "last_error": error})
        return self.records[key]

    async def set_transaction_hash(self, achievement_id, transaction_hash):
        key = self._key_for(achievement_id)
        self.records[key] = self.records[key].model_copy(update={"transaction_hash": transaction_hash})


class FakeChatMessageRepository:

    def __init__(self):
        self.messages: List[ChatMessage] = []

    async def create(self, message_type, content, user_id=None):
        message = ChatMessage(id=uuid4(), type=message_type, content=content, user_id=user_id, created_at=_now())
        self.messages.append(message)
        return message

    async def latest(self, limit):
        return self.messages[-limit:]

    async def delete(self, message_id):
        before = len(self.messages)
        self.messages = [m for m in self.messages if m.id != message_id]
        return len(self.messages) < before


class FakeRoleRepository:

    def __init__(self):
        self.assignments: Dict[str, Set[str]] = {}

    async def roles_for(self, wallet_address):
        return set(self.assignments.get(wallet_address.lower(), set()))

    async def grant(self, wallet_address, role, granted_by=None):
        roles = self.assignments.setdefault(wallet_address.lower(), set())
        if role in roles:
            return False
        roles.add(role)
        return True

    async def holders(self, role):
        return [w for w, roles in self.assignments.items() if role in roles]


class FakeRedis:
    """Subset of redis.asyncio.Redis used by the app; TTLs are recorded, not enforced"""

    def __init__(self):
        self.data: Dict[str, str] = {}
        self.ttls: Dict[str, Optional[int]] = {}

    async def set(self, key, value, nx=False, ex=None):
        if nx and key in self.data:
            return None
        self.data[key] = value
        self.ttls[key] = ex
        return True

    async def setex(self, key, ttl, value):
        self.data[key] = value
        self.ttls[key] = ttl
        return True

    async def get(self, key):
        return self.data.get(key)

    async def delete(self, *keys):
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
        return removed

    async def exists(self, key):
        return int(key in self.data)

    async def eval(self, script, numkeys, *keys_and_args):
        # only the compare-and-delete lock release script is supported
        key, token = keys_and_args[0], keys_and_args[1]
        if self.data.get(key) != token:
            return 0
        return await self.delete(key)

    async def ping(self):
        return True


class FakeClock:

    def __init__(self, today: date = TODAY):
        self.today = today

    def __call__(self) -> date:
        return self.today

    def advance(self, days: int = 1) -> None:
        self.today += timedelta(days=days)


@pytest.fixture
def store():
    return SimpleNamespace(
        users=FakeUserRepository(),
        activities=FakeDailyActivityRepository(),
        entries=FakeEntryRepository(),
        achievements=FakeAchievementRepository(),
        chat_messages=FakeChatMessageRepository(),
        roles=FakeRoleRepository(),
    )


@pytest.fixture
def session():
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    return session


@pytest.fixture
def redis_client():
    return FakeRedis()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def points_contract():
    """Unconfigured points contract: every read falls back to the database"""
    contract = MagicMock()
    contract.get_user_data = AsyncMock(return_value=None)
    contract.can_meditate_today = AsyncMock(return_value=None)
    contract.activity_call = MagicMock(return_value=None)
    return contract


@pytest.fixture
def minting_authority():
    authority = MagicMock()
    authority.contract_address = NFT_CONTRACT
    authority.has_minted = AsyncMock(return_value=False)
    authority.send_mint = AsyncMock(return_value=TX_HASH)
    authority.wait_for_mint = AsyncMock(return_value=MintReceipt(
        transaction_hash=TX_HASH,
        token_id="42",
        contract_address=NFT_CONTRACT,
        block_number=100
    ))
    authority.lookup_mint = AsyncMock(return_value=None)
    return authority


@pytest.fixture
def wellness_service(session, store, points_contract, clock):
    service = WellnessService(session, points_contract, clock=clock)
    service.users = store.users
    service.activities = store.activities
    service.entries = store.entries
    return service


@pytest.fixture
def mint_coordinator(session, store, redis_client, minting_authority, points_contract):
    coordinator = MintCoordinator(session, redis_client, minting_authority, points_contract)
    coordinator.users = store.users
    coordinator.achievements = store.achievements
    coordinator.chat_messages = store.chat_messages
    return coordinator


@pytest.fixture
def access_policy(session, store):
    policy = AccessPolicy(session)
    policy.roles = store.roles
    return policy


@pytest.fixture
def chat_service(session, store, access_policy):
    service = ChatService(session, access_policy)
    service.messages = store.chat_messages
    service.users = store.users
    return service


@pytest.fixture
async def user(store):
    return await store.users.get_or_create_user(WALLET, username="alice")


@pytest.fixture
def set_streaks(store):
    def _set(user_id, journal=0, meditation=0):
        store.users.users[user_id] = store.users.users[user_id].model_copy(
            update={"journal_streak": journal, "meditation_streak": meditation}
        )
    return _set
