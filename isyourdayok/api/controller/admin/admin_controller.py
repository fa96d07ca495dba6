from typing import List

from fastapi import APIRouter, Depends

from isyourdayok.api.middleware.authentication.jwt_bearer import get_current_wallet
from isyourdayok.api.models.request_models import GrantRoleRequestDTO
from isyourdayok.api.models.response_models import AdminUserDTO, RoleGrantResponseDTO
from isyourdayok.core.dependencies import get_admin_service
from isyourdayok.core.service.access.admin_service import AdminService

router = APIRouter(prefix="/admin", tags=["Admin"])


@router.get("/users", response_model=List[AdminUserDTO])
async def list_users(
    wallet_address: str = Depends(get_current_wallet),
    admin_service: AdminService = Depends(get_admin_service)
):
    """All users with journal, mood, meditation and achievement counts"""
    return await admin_service.list_users(wallet_address)


@router.post("/roles", response_model=RoleGrantResponseDTO)
async def grant_role(
    request: GrantRoleRequestDTO,
    wallet_address: str = Depends(get_current_wallet),
    admin_service: AdminService = Depends(get_admin_service)
):
    granted = await admin_service.grant_role(wallet_address, request.wallet_address, request.role)
    return RoleGrantResponseDTO(wallet_address=request.wallet_address.lower(), role=request.role, granted=granted)
