from fastapi import APIRouter, Depends

from isyourdayok.api.middleware.authentication.jwt_bearer import get_current_wallet
from isyourdayok.api.models.request_models import MintRequestDTO
from isyourdayok.api.models.response_models import AchievementListResponseDTO, ReconcileResponseDTO
from isyourdayok.core.dependencies import get_mint_coordinator
from isyourdayok.core.service.achievement.mint_coordinator import MintCoordinator
from isyourdayok.core.service.achievement.models import MintResult

router = APIRouter(prefix="/achievements", tags=["Achievements"])


@router.get("", response_model=AchievementListResponseDTO)
async def list_achievements(
    wallet_address: str = Depends(get_current_wallet),
    mint_coordinator: MintCoordinator = Depends(get_mint_coordinator)
):
    """Catalogue progress for the signed-in wallet; pending mints are reconciled first"""
    progress = await mint_coordinator.list_progress(wallet_address)
    records = await mint_coordinator.list_achievements(wallet_address)
    return AchievementListResponseDTO(achievements=progress, records=records)


@router.post("/mint", response_model=MintResult)
async def mint_achievement(
    request: MintRequestDTO,
    wallet_address: str = Depends(get_current_wallet),
    mint_coordinator: MintCoordinator = Depends(get_mint_coordinator)
):
    """
    Mint an unlocked achievement NFT to the signed-in wallet.

    Blocks until the transaction is confirmed.
    """
    return await mint_coordinator.mint(wallet_address, request.achievement_type, request.improvement_rating)


@router.post("/reconcile", response_model=ReconcileResponseDTO)
async def reconcile_achievements(
    wallet_address: str = Depends(get_current_wallet),
    mint_coordinator: MintCoordinator = Depends(get_mint_coordinator)
):
    return ReconcileResponseDTO(reconciled=await mint_coordinator.reconcile_wallet(wallet_address))
