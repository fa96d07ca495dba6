from datetime import datetime, timedelta, timezone
from typing import Optional

from redis.asyncio import Redis

from isyourdayok.core.logger.logger import get_logger
from isyourdayok.core.service.auth.models.token import TokenBlacklist
from isyourdayok.infra.config.settings import get_settings

logger = get_logger(__name__)


class TokenStore:
    """Redis-based store for revoked token ids"""

    def __init__(self, redis_client: Redis):
        self.redis = redis_client
        self.key_prefix = "blacklist:token:"
        self.margin_minutes = get_settings().TOKEN_BLACKLIST_EXPIRE_MARGIN_MINUTES

    async def add_to_blacklist(self, jti: str, exp: datetime, reason: Optional[str] = None) -> None:
        """
        Blacklist a token id. The entry expires with the token (plus margin),
        so an already expired token is not stored at all.
        """
        ttl = exp - datetime.now(timezone.utc) + timedelta(minutes=self.margin_minutes)
        ttl_seconds = int(ttl.total_seconds())
        if ttl_seconds <= 0:
            logger.info("Skipping blacklist for expired token", extra={"jti": jti})
            return

        entry = TokenBlacklist(jti=jti, exp=exp, reason=reason)
        try:
            await self.redis.setex(f"{self.key_prefix}{jti}", ttl_seconds, entry.model_dump_json())
        except Exception as e:
            logger.error("Failed to blacklist token", extra={"jti": jti, "error": str(e)})
            raise

        logger.info("Token blacklisted", extra={"jti": jti, "expires_in": ttl_seconds, "reason": reason})

    async def is_blacklisted(self, jti: str) -> bool:
        try:
            exists = await self.redis.exists(f"{self.key_prefix}{jti}")
        except Exception as e:
            # fail-open: an unreachable Redis must not lock every user out
            logger.warning(
                "Failed to check token blacklist, allowing token",
                extra={"jti": jti, "error": str(e), "error_type": type(e).__name__}
            )
            return False

        if exists:
            logger.info("Blacklisted token access attempt", extra={"jti": jti})
        return bool(exists)
