from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from isyourdayok.api.middleware.authentication.jwt_bearer import get_current_wallet
from isyourdayok.api.models.request_models import CreateUserRequestDTO, UpdateProfileRequestDTO
from isyourdayok.api.models.response_models import UserProfileResponseDTO
from isyourdayok.core.dependencies import get_mint_coordinator, get_wellness_service
from isyourdayok.core.exceptions.handler import Forbidden, ServiceErrorCode, ValidationFailed
from isyourdayok.core.service.achievement.mint_coordinator import MintCoordinator
from isyourdayok.core.service.activity.models import User
from isyourdayok.core.service.activity.wellness_service import WellnessService

router = APIRouter(prefix="/users", tags=["Users"])


async def _profile_response(
    user: User,
    wellness_service: WellnessService,
    mint_coordinator: MintCoordinator
) -> UserProfileResponseDTO:
    profile = await wellness_service.get_profile(user)
    return UserProfileResponseDTO(
        user=profile.user,
        journals=profile.journals,
        mood_logs=profile.mood_logs,
        meditations=profile.meditations,
        achievements=await mint_coordinator.list_achievements(user.wallet_address)
    )


@router.post("", response_model=User)
async def create_user(
    request: CreateUserRequestDTO,
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    """Idempotent upsert of the signed-in wallet's user record"""
    if request.wallet_address.lower() != wallet_address.lower():
        raise Forbidden("Cannot create a user for another wallet")
    return await wellness_service.get_or_create_user(
        request.wallet_address,
        farcaster_fid=request.farcaster_fid,
        username=request.username,
        profile_image=request.profile_image
    )


@router.get("", response_model=UserProfileResponseDTO)
async def get_user_by_wallet(
    wallet_address: Optional[str] = Query(None),
    wellness_service: WellnessService = Depends(get_wellness_service),
    mint_coordinator: MintCoordinator = Depends(get_mint_coordinator)
):
    if not wallet_address:
        raise ValidationFailed("wallet_address is required", code=ServiceErrorCode.MISSING_FIELD)
    user = await wellness_service.require_user(wallet_address)
    return await _profile_response(user, wellness_service, mint_coordinator)


@router.get("/me", response_model=UserProfileResponseDTO)
async def get_me(
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service),
    mint_coordinator: MintCoordinator = Depends(get_mint_coordinator)
):
    user = await wellness_service.require_user(wallet_address)
    return await _profile_response(user, wellness_service, mint_coordinator)


@router.patch("/me", response_model=User)
async def update_me(
    request: UpdateProfileRequestDTO,
    wallet_address: str = Depends(get_current_wallet),
    wellness_service: WellnessService = Depends(get_wellness_service)
):
    return await wellness_service.update_profile(wallet_address, request.username, request.profile_image)


@router.get("/{user_id}", response_model=UserProfileResponseDTO)
async def get_user_by_id(
    user_id: UUID,
    wellness_service: WellnessService = Depends(get_wellness_service),
    mint_coordinator: MintCoordinator = Depends(get_mint_coordinator)
):
    user = await wellness_service.get_user_by_id(user_id)
    return await _profile_response(user, wellness_service, mint_coordinator)
