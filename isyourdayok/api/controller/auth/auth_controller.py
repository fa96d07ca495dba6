"""
Wallet sign-in: challenge, verify, refresh, logout.
"""

from fastapi import APIRouter, Depends
from fastapi.security import HTTPAuthorizationCredentials

from isyourdayok.api.middleware.authentication.jwt_bearer import bearer_scheme, get_current_wallet
from isyourdayok.api.models.request_models import (
    ChallengeRequestDTO,
    LogoutRequestDTO,
    RefreshTokenRequestDTO,
    VerifyRequestDTO,
)
from isyourdayok.api.models.response_models import (
    AuthResponseDTO,
    ChallengeResponseDTO,
    LogoutResponseDTO,
    TokenRefreshResponseDTO,
)
from isyourdayok.core.dependencies import get_challenge_service, get_jwt_service, get_wellness_service
from isyourdayok.core.logger.logger import get_logger
from isyourdayok.core.service.activity.wellness_service import WellnessService
from isyourdayok.core.service.auth.challenge_service import ChallengeService
from isyourdayok.core.service.auth.jwt_service import JWTService

logger = get_logger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/challenge", response_model=ChallengeResponseDTO)
async def create_challenge(
    request: ChallengeRequestDTO,
    challenge_service: ChallengeService = Depends(get_challenge_service)
):
    """
    Create a sign-in challenge for a wallet address.

    The returned message must be signed with personal_sign and posted to /auth/verify.
    """
    challenge = await challenge_service.create_challenge(request.wallet_address)
    return ChallengeResponseDTO(
        nonce=challenge.nonce,
        message=challenge.message,
        expires_in=int((challenge.expires_at - challenge.timestamp).total_seconds())
    )


@router.post("/verify", response_model=AuthResponseDTO)
async def verify_challenge(
    request: VerifyRequestDTO,
    challenge_service: ChallengeService = Depends(get_challenge_service),
    jwt_service: JWTService = Depends(get_jwt_service),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    """Verify the signed challenge, upsert the user and issue a token pair"""
    await challenge_service.verify_challenge(request.wallet_address, request.signature)

    user = await wellness_service.get_or_create_user(request.wallet_address)
    tokens = jwt_service.create_tokens(user.wallet_address)

    logger.info("Authentication successful", extra={"wallet_address": user.wallet_address})

    return AuthResponseDTO(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in,
        user=user
    )


@router.post("/refresh", response_model=TokenRefreshResponseDTO)
async def refresh_token(
    request: RefreshTokenRequestDTO,
    jwt_service: JWTService = Depends(get_jwt_service)
):
    """Rotate a refresh token into a new token pair"""
    tokens = await jwt_service.refresh_tokens(request.refresh_token.strip())
    return TokenRefreshResponseDTO(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.expires_in
    )


@router.post("/logout", response_model=LogoutResponseDTO)
async def logout(
    request: LogoutRequestDTO,
    wallet_address: str = Depends(get_current_wallet),
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    jwt_service: JWTService = Depends(get_jwt_service)
):
    await jwt_service.revoke_token(credentials.credentials, reason="Logout")
    revoked = 1
    if request.refresh_token:
        await jwt_service.revoke_token(request.refresh_token.strip(), reason="Logout")
        revoked += 1

    logger.info("Logout", extra={"wallet_address": wallet_address, "revoked_tokens": revoked})
    return LogoutResponseDTO(revoked_tokens=revoked)
