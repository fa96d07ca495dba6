import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional

from isyourdayok.core.exceptions.handler import ServiceError, ServiceErrorCode, ValidationFailed
from isyourdayok.core.logger.logger import get_logger
from isyourdayok.core.service.auth.cache.challenge_store import ChallengeStore
from isyourdayok.core.service.auth.models.challenge import Challenge, ChallengeStatus
from isyourdayok.core.service.auth.signature_verification import SignatureVerificationService
from isyourdayok.infra.config.settings import get_settings

logger = get_logger(__name__)


class ChallengeService:
    """Issues and verifies wallet sign-in challenges"""

    NONCE_BYTES = 32

    def __init__(
        self,
        challenge_store: ChallengeStore,
        signature_service: Optional[SignatureVerificationService] = None
    ):
        settings = get_settings()
        self.store = challenge_store
        self.signature_service = signature_service or SignatureVerificationService()
        self.expiry_seconds = settings.CHALLENGE_EXPIRY_SECONDS
        self.app_name = settings.APP_NAME

    def _generate_nonce(self) -> str:
        return "0x" + secrets.token_hex(self.NONCE_BYTES)

    async def create_challenge(self, wallet_address: str) -> Challenge:
        """Reuses a pending challenge for the wallet when one is still live"""
        is_valid, error_msg = self.signature_service.validate_address(wallet_address)
        if not is_valid:
            raise ValidationFailed(error_msg, code=ServiceErrorCode.INVALID_ADDRESS)

        existing = await self.get_active_challenge(wallet_address)
        if existing:
            logger.info("Active challenge exists", extra={"wallet_address": wallet_address})
            return existing

        nonce = self._generate_nonce()
        challenge = Challenge(
            nonce=nonce,
            wallet_address=wallet_address,
            expires_at=datetime.now(timezone.utc) + timedelta(seconds=self.expiry_seconds),
            message=self.signature_service.create_challenge_message(self.app_name, nonce)
        )
        await self.store.save_challenge(challenge)

        logger.info("Created new challenge", extra={"wallet_address": wallet_address})
        return challenge

    async def get_active_challenge(self, wallet_address: str) -> Optional[Challenge]:
        challenge = await self.store.get_challenge(wallet_address)
        if challenge is None or challenge.status != ChallengeStatus.PENDING:
            return None
        return challenge

    async def verify_challenge(self, wallet_address: str, signature: str) -> Challenge:
        """
        Check the signature against the wallet's pending challenge.
        A challenge is single-use: it is consumed whether or not the signature matches.
        """
        challenge = await self.get_active_challenge(wallet_address)
        if challenge is None:
            logger.warning("No active challenge found", extra={"wallet_address": wallet_address})
            raise ServiceError(
                code=ServiceErrorCode.CHALLENGE_NOT_FOUND,
                message="No active challenge found",
                status_code=401
            )

        is_valid, error = self.signature_service.verify_signature(
            claimed_address=wallet_address,
            signature=signature,
            message=challenge.message
        )
        await self.store.delete_challenge(wallet_address)

        if not is_valid:
            logger.warning(
                "Challenge verification failed",
                extra={"wallet_address": wallet_address, "error": error}
            )
            raise ServiceError(
                code=ServiceErrorCode.INVALID_SIGNATURE,
                message=f"Invalid signature: {error}",
                status_code=401
            )

        challenge.status = ChallengeStatus.VERIFIED
        logger.info("Challenge verified", extra={"wallet_address": wallet_address})
        return challenge
