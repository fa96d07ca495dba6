from typing import Dict, List

from sqlalchemy.ext.asyncio import AsyncSession

from isyourdayok.core.service.access.policy import AccessPolicy, Permission
from isyourdayok.infra.repository.user_repository import UserRepository


class AdminService:
    """Admin views over all users"""

    def __init__(self, session: AsyncSession, access_policy: AccessPolicy = None):
        self.users = UserRepository(session)
        self.policy = access_policy or AccessPolicy(session)

    async def list_users(self, wallet_address: str) -> List[Dict]:
        await self.policy.require(wallet_address, Permission.USERS_READ)
        return await self.users.list_with_counts()

    async def grant_role(self, wallet_address: str, target_wallet: str, role: str) -> bool:
        await self.policy.require(wallet_address, Permission.ROLES_MANAGE)
        return await self.policy.grant(target_wallet, role, granted_by=wallet_address)
