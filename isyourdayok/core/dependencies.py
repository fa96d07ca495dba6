"""
FastAPI dependency injection functions.
"""

from functools import lru_cache

from fastapi import Depends
from redis.asyncio import Redis
from sqlalchemy.ext.asyncio import AsyncSession

from isyourdayok.infra.config.redis import get_redis
from isyourdayok.infra.database import get_async_session
from isyourdayok.core.service.access.admin_service import AdminService
from isyourdayok.core.service.access.policy import AccessPolicy
from isyourdayok.core.service.achievement.mint_coordinator import MintCoordinator
from isyourdayok.core.service.activity.wellness_service import WellnessService
from isyourdayok.core.service.auth.cache.challenge_store import ChallengeStore
from isyourdayok.core.service.auth.cache.token_store import TokenStore
from isyourdayok.core.service.auth.challenge_service import ChallengeService
from isyourdayok.core.service.auth.jwt_service import JWTService
from isyourdayok.core.service.chain.minting_authority import MintingAuthority
from isyourdayok.core.service.chain.points_contract import PointsContractClient
from isyourdayok.core.service.chat.chat_service import ChatService


async def get_redis_client() -> Redis:
    return await get_redis()


@lru_cache()
def get_minting_authority() -> MintingAuthority:
    """Process-wide, so every mint shares one nonce lock for the minter key"""
    return MintingAuthority()


@lru_cache()
def get_points_contract() -> PointsContractClient:
    return PointsContractClient()


async def get_token_store(redis_client: Redis = Depends(get_redis_client)) -> TokenStore:
    return TokenStore(redis_client)


async def get_jwt_service(token_store: TokenStore = Depends(get_token_store)) -> JWTService:
    return JWTService(token_store)


async def get_challenge_service(redis_client: Redis = Depends(get_redis_client)) -> ChallengeService:
    return ChallengeService(ChallengeStore(redis_client))


async def get_wellness_service(
    session: AsyncSession = Depends(get_async_session),
    points_contract: PointsContractClient = Depends(get_points_contract)
) -> WellnessService:
    return WellnessService(session, points_contract)


async def get_mint_coordinator(
    session: AsyncSession = Depends(get_async_session),
    redis_client: Redis = Depends(get_redis_client),
    minting_authority: MintingAuthority = Depends(get_minting_authority),
    points_contract: PointsContractClient = Depends(get_points_contract)
) -> MintCoordinator:
    return MintCoordinator(session, redis_client, minting_authority, points_contract)


async def get_access_policy(session: AsyncSession = Depends(get_async_session)) -> AccessPolicy:
    return AccessPolicy(session)


async def get_chat_service(
    session: AsyncSession = Depends(get_async_session),
    access_policy: AccessPolicy = Depends(get_access_policy)
) -> ChatService:
    return ChatService(session, access_policy)


async def get_admin_service(
    session: AsyncSession = Depends(get_async_session),
    access_policy: AccessPolicy = Depends(get_access_policy)
) -> AdminService:
    return AdminService(session, access_policy)
