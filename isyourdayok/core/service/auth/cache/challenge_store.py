import json
from datetime import datetime, timezone
from typing import Optional

import redis.asyncio as redis

from isyourdayok.core.service.auth.models.challenge import Challenge
from isyourdayok.core.logger.logger import get_logger

logger = get_logger(__name__)


class ChallengeStore:
    """Redis store for wallet sign-in challenges"""

    def __init__(self, redis_client: redis.Redis):
        self.redis = redis_client
        self.key_prefix = "auth:challenge:"

    def _get_key(self, wallet_address: str) -> str:
        return f"{self.key_prefix}{wallet_address.lower()}"

    async def save_challenge(self, challenge: Challenge) -> None:
        """Save challenge with a TTL matching its expiry"""
        key = self._get_key(challenge.wallet_address)
        ttl = int((challenge.expires_at - datetime.now(timezone.utc)).total_seconds())
        if ttl <= 0:
            logger.warning(
                "Attempted to save expired challenge",
                extra={"wallet_address": challenge.wallet_address, "status": challenge.status.value}
            )
            return

        try:
            await self.redis.setex(key, ttl, json.dumps(challenge.model_dump(mode="json")))
        except Exception as e:
            logger.error(
                "Error saving challenge",
                extra={"wallet_address": challenge.wallet_address, "error": str(e)}
            )
            raise

        logger.debug(
            "Saved challenge",
            extra={"wallet_address": challenge.wallet_address, "status": challenge.status.value, "ttl": ttl}
        )

    async def get_challenge(self, wallet_address: str) -> Optional[Challenge]:
        try:
            data = await self.redis.get(self._get_key(wallet_address))
        except Exception as e:
            logger.error("Error getting challenge", extra={"wallet_address": wallet_address, "error": str(e)})
            raise

        if not data:
            return None

        challenge = Challenge.model_validate(json.loads(data))
        if challenge.is_expired():
            await self.delete_challenge(wallet_address)
            return None
        return challenge

    async def delete_challenge(self, wallet_address: str) -> None:
        try:
            await self.redis.delete(self._get_key(wallet_address))
        except Exception as e:
            logger.error("Error deleting challenge", extra={"wallet_address": wallet_address, "error": str(e)})
            raise
