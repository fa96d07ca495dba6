"""
Achievement mint coordination.

The NFT contract decides whether a wallet holds an achievement; the local
nft_achievements row only tracks the attempt. Every path that leaves a row in
PENDING is followed by a reconciliation against the contract.
"""

import secrets
from typing import List, Optional

from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from isyourdayok.core.exceptions.handler import (
    Conflict,
    NotFound,
    ServiceError,
    ServiceErrorCode,
    ValidationFailed,
)
from isyourdayok.core.logger.logger import get_logger
from isyourdayok.core.service.achievement.evaluator import evaluate, evaluate_all
from isyourdayok.core.service.achievement.models import (
    ACHIEVEMENT_TYPES,
    MAX_IMPROVEMENT_RATING,
    MIN_IMPROVEMENT_RATING,
    Achievement,
    AchievementProgress,
    AchievementStatus,
    AchievementType,
    MintResult,
    MintState,
    UNKNOWN_TOKEN_ID,
    get_achievement_type,
)
from isyourdayok.core.service.activity.models import ActivityKind, User
from isyourdayok.core.service.chain.minting_authority import MintingAuthority
from isyourdayok.core.service.chain.points_contract import PointsContractClient
from isyourdayok.core.service.chat.models import ChatMessageType
from isyourdayok.infra.config.settings import get_settings
from isyourdayok.infra.repository.achievement_repository import AchievementRepository
from isyourdayok.infra.repository.chat_message_repository import ChatMessageRepository
from isyourdayok.infra.repository.user_repository import UserRepository

logger = get_logger(__name__)

# Deletes the lock only while it still holds the caller's token
RELEASE_LOCK_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""


class MintCoordinator:
    """Drives one achievement from eligibility to a confirmed mint"""

    LOCK_KEY_PREFIX = "mint:lock:"

    def __init__(
        self,
        session: AsyncSession,
        redis_client: Redis,
        minting_authority: Optional[MintingAuthority] = None,
        points_contract: Optional[PointsContractClient] = None
    ):
        settings = get_settings()
        self.session = session
        self.redis = redis_client
        self.users = UserRepository(session)
        self.achievements = AchievementRepository(session)
        self.chat_messages = ChatMessageRepository(session)
        self.authority = minting_authority or MintingAuthority()
        self.points_contract = points_contract or PointsContractClient()
        self.app_url = settings.APP_URL
        self.lock_ttl = settings.MINT_LOCK_TTL_SECONDS

    def _lock_key(self, wallet_address: str, achievement_type: str) -> str:
        return f"{self.LOCK_KEY_PREFIX}{wallet_address.lower()}:{achievement_type}"

    async def _require_user(self, wallet_address: str) -> User:
        user = await self.users.get_by_wallet(wallet_address)
        if user is None:
            raise NotFound("User not found", code=ServiceErrorCode.USER_NOT_FOUND)
        return user

    async def _displayed_streaks(self, user: User):
        chain_data = await self.points_contract.get_user_data(user.wallet_address)
        if chain_data is not None:
            return chain_data.journal_streak, chain_data.meditation_streak
        return user.journal_streak, user.meditation_streak

    async def mint(self, wallet_address: str, achievement_type: str, improvement_rating: int) -> MintResult:
        achievement = get_achievement_type(achievement_type)
        if achievement is None:
            raise ValidationFailed(
                f"Unknown achievement type '{achievement_type}'",
                code=ServiceErrorCode.INVALID_ACHIEVEMENT_TYPE
            )
        if not MIN_IMPROVEMENT_RATING <= improvement_rating <= MAX_IMPROVEMENT_RATING:
            raise ValidationFailed(
                f"Improvement rating must be between {MIN_IMPROVEMENT_RATING} and {MAX_IMPROVEMENT_RATING}",
                code=ServiceErrorCode.INVALID_RATING
            )

        user = await self._require_user(wallet_address)

        if await self.authority.has_minted(user.wallet_address, achievement.code):
            raise Conflict(ServiceErrorCode.ALREADY_MINTED, "Achievement already minted")

        journal_streak, meditation_streak = await self._displayed_streaks(user)
        streak = journal_streak if achievement.kind == ActivityKind.JOURNAL else meditation_streak
        progress = evaluate(streak, achievement)
        if progress.status != AchievementStatus.UNLOCKED:
            raise Conflict(
                ServiceErrorCode.ACHIEVEMENT_LOCKED,
                "Achievement is not unlocked yet",
                details={"current": progress.current, "target": progress.target}
            )

        lock_key = self._lock_key(user.wallet_address, achievement.id)
        lock_token = secrets.token_hex(16)
        if not await self.redis.set(lock_key, lock_token, nx=True, ex=self.lock_ttl):
            raise Conflict(ServiceErrorCode.MINT_IN_PROGRESS, "A mint for this achievement is already in progress")

        try:
            return await self._mint_locked(user, achievement, improvement_rating)
        finally:
            await self._release_lock(lock_key, lock_token)

    async def _release_lock(self, lock_key: str, lock_token: str) -> None:
        released = await self.redis.eval(RELEASE_LOCK_SCRIPT, 1, lock_key, lock_token)
        if not released:
            logger.warning("Mint lock expired before release", extra={"lock_key": lock_key})

    async def _mint_locked(self, user: User, achievement: AchievementType, improvement_rating: int) -> MintResult:
        record = await self.achievements.upsert_pending(user.id, achievement.id, achievement.days, improvement_rating)
        if record is None:
            await self.session.rollback()
            existing = await self.achievements.get(user.id, achievement.id)
            if existing is not None and existing.minted:
                raise Conflict(ServiceErrorCode.ALREADY_MINTED, "Achievement already minted")
            raise Conflict(ServiceErrorCode.MINT_IN_PROGRESS, "A mint for this achievement is already in progress")
        await self.session.commit()

        logger.info(
            "Mint started",
            extra={
                "wallet_address": user.wallet_address,
                "achievement_type": achievement.id,
                "improvement_rating": improvement_rating,
                "achievement_id": str(record.id)
            }
        )

        tx_hash = None
        try:
            tx_hash = await self.authority.send_mint(
                user.wallet_address,
                achievement.code,
                improvement_rating,
                achievement.metadata_uri(self.app_url)
            )
            await self.achievements.set_transaction_hash(record.id, tx_hash)
            await self.session.commit()

            receipt = await self.authority.wait_for_mint(tx_hash)
            minted = await self.achievements.mark_minted(
                record.id,
                token_id=receipt.token_id,
                contract_address=receipt.contract_address,
                transaction_hash=receipt.transaction_hash
            )
            await self.chat_messages.create(
                ChatMessageType.MILESTONE,
                f"{user.username or user.wallet_address} earned the {achievement.title} achievement!",
                user_id=user.id
            )
            await self.session.commit()
        except Exception as e:
            await self.session.rollback()
            try:
                await self._reconcile_record(user, record, tx_hash=tx_hash, error=e)
            except Exception as reconcile_error:
                logger.error(
                    "Reconciliation after failed mint did not complete",
                    extra={"achievement_id": str(record.id), "error": str(reconcile_error)},
                    exc_info=True
                )
            raise e

        logger.info(
            "Achievement minted",
            extra={
                "wallet_address": user.wallet_address,
                "achievement_type": achievement.id,
                "token_id": minted.token_id,
                "transaction_hash": minted.transaction_hash
            }
        )

        return MintResult(
            achievement_type=achievement.id,
            token_id=minted.token_id,
            transaction_hash=minted.transaction_hash,
            contract_address=minted.contract_address
        )

    async def _reconcile_record(
        self,
        user: User,
        record: Achievement,
        tx_hash: Optional[str] = None,
        error: Optional[Exception] = None
    ) -> Optional[Achievement]:
        """
        Settle a PENDING record against the contract.

        A record whose transaction is still unmined stays PENDING, as does one
        whose state cannot be read from the chain.
        """
        achievement = get_achievement_type(record.type)
        if achievement is None:
            return None

        tx_hash = tx_hash or record.transaction_hash
        receipt = None
        try:
            minted = await self.authority.has_minted(user.wallet_address, achievement.code)
            if not minted and tx_hash:
                receipt = await self.authority.lookup_mint(tx_hash)
                if receipt is None:
                    logger.info(
                        "Mint transaction not mined yet, record stays pending",
                        extra={"achievement_id": str(record.id), "transaction_hash": tx_hash}
                    )
                    return None
                minted = not receipt.reverted
        except ServiceError as e:
            logger.warning(
                "Reconciliation skipped, minting authority unreachable",
                extra={"achievement_id": str(record.id), "error": str(e)}
            )
            return None

        try:
            if minted:
                token_id = receipt.token_id if receipt is not None else record.token_id
                settled = await self.achievements.mark_minted(
                    record.id,
                    token_id=token_id or UNKNOWN_TOKEN_ID,
                    contract_address=self.authority.contract_address,
                    transaction_hash=tx_hash
                )
            else:
                if error is not None:
                    reason = str(error)
                elif receipt is not None:
                    reason = "Mint transaction reverted"
                else:
                    reason = "Mint not found on chain"
                settled = await self.achievements.mark_failed(record.id, reason)
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Achievement reconciled",
            extra={
                "achievement_id": str(record.id),
                "achievement_type": record.type,
                "state": MintState.MINTED.value if minted else MintState.FAILED.value
            }
        )
        return settled

    async def _restore_from_chain(
        self,
        user: User,
        achievement: AchievementType,
        record: Optional[Achievement]
    ) -> Optional[Achievement]:
        """Cache a mint the contract knows about but the local table does not"""
        try:
            minted = await self.authority.has_minted(user.wallet_address, achievement.code)
        except ServiceError as e:
            logger.warning(
                "Cache restore skipped, minting authority unreachable",
                extra={"wallet_address": user.wallet_address, "achievement_type": achievement.id, "error": str(e)}
            )
            return None
        if not minted:
            return None

        try:
            if record is not None:
                restored = await self.achievements.mark_minted(
                    record.id,
                    token_id=record.token_id or UNKNOWN_TOKEN_ID,
                    contract_address=self.authority.contract_address,
                    transaction_hash=record.transaction_hash
                )
            else:
                restored = await self.achievements.insert_minted(
                    user.id,
                    achievement.id,
                    achievement.days,
                    UNKNOWN_TOKEN_ID,
                    self.authority.contract_address
                )
            await self.session.commit()
        except Exception:
            await self.session.rollback()
            raise

        logger.info(
            "Achievement restored from chain",
            extra={"wallet_address": user.wallet_address, "achievement_type": achievement.id}
        )
        return restored

    async def reconcile(self, user: User) -> List[Achievement]:
        """
        Bring the local cache in line with the contract for every catalogue
        type; returns the rows that changed.

        Types with a mint lock held are skipped, the attempt owning the lock
        settles its own row.
        """
        if not self.authority.contract_address:
            return []

        records = {record.type: record for record in await self.achievements.list_for_user(user.id)}
        settled = []
        for achievement in ACHIEVEMENT_TYPES.values():
            record = records.get(achievement.id)
            if record is not None and record.minted:
                continue
            if await self.redis.exists(self._lock_key(user.wallet_address, achievement.id)):
                continue

            if record is not None and record.status == MintState.PENDING:
                result = await self._reconcile_record(user, record)
            else:
                result = await self._restore_from_chain(user, achievement, record)
            if result is not None:
                settled.append(result)
        return settled

    async def reconcile_wallet(self, wallet_address: str) -> List[Achievement]:
        return await self.reconcile(await self._require_user(wallet_address))

    async def list_progress(self, wallet_address: str) -> List[AchievementProgress]:
        user = await self._require_user(wallet_address)
        await self.reconcile(user)
        journal_streak, meditation_streak = await self._displayed_streaks(user)
        records = await self.achievements.list_for_user(user.id)
        return evaluate_all(journal_streak, meditation_streak, records)

    async def list_achievements(self, wallet_address: str) -> List[Achievement]:
        user = await self._require_user(wallet_address)
        return await self.achievements.list_for_user(user.id)
