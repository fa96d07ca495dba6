"""
Role assignment repository backing the access policy
"""

from typing import List, Optional, Set
from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from isyourdayok.infra.models import RoleAssignmentModel


class RoleRepository:

    def __init__(self, session: AsyncSession):
        self.session = session

    async def roles_for(self, wallet_address: str) -> Set[str]:
        stmt = select(RoleAssignmentModel.role).where(
            RoleAssignmentModel.wallet_address == wallet_address.lower()
        )
        result = await self.session.execute(stmt)
        return set(result.scalars().all())

    async def grant(self, wallet_address: str, role: str, granted_by: Optional[str] = None) -> bool:
        """Returns False when the role was already held"""
        stmt = (
            insert(RoleAssignmentModel)
            .values(wallet_address=wallet_address.lower(), role=role, granted_by=granted_by)
            .on_conflict_do_nothing(index_elements=[RoleAssignmentModel.wallet_address, RoleAssignmentModel.role])
            .returning(RoleAssignmentModel.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def holders(self, role: str) -> List[str]:
        stmt = select(RoleAssignmentModel.wallet_address).where(RoleAssignmentModel.role == role)
        result = await self.session.execute(stmt)
        return list(result.scalars().all())
