"""
Role based access policy.

Roles are granted per wallet in the role_assignments table; permissions are
fixed per role here. Admin wallets listed in settings are seeded on startup.
"""

from typing import Dict, FrozenSet, Iterable, Set

from sqlalchemy.ext.asyncio import AsyncSession

from isyourdayok.core.exceptions.handler import Forbidden, ServiceErrorCode, ValidationFailed
from isyourdayok.core.logger.logger import get_logger
from isyourdayok.core.service.auth.signature_verification import SignatureVerificationService
from isyourdayok.infra.repository.role_repository import RoleRepository

logger = get_logger(__name__)


class Permission:
    CHAT_POST = "chat:post"
    CHAT_DELETE = "chat:delete"
    USERS_READ = "users:read"
    ROLES_MANAGE = "roles:manage"


class Role:
    ADMIN = "admin"
    MODERATOR = "moderator"


ROLE_PERMISSIONS: Dict[str, FrozenSet[str]] = {
    Role.ADMIN: frozenset({
        Permission.CHAT_POST,
        Permission.CHAT_DELETE,
        Permission.USERS_READ,
        Permission.ROLES_MANAGE,
    }),
    Role.MODERATOR: frozenset({
        Permission.CHAT_POST,
        Permission.CHAT_DELETE,
    }),
}


def permissions_for(roles: Iterable[str]) -> Set[str]:
    granted = set()
    for role in roles:
        granted |= ROLE_PERMISSIONS.get(role, frozenset())
    return granted


class AccessPolicy:

    def __init__(self, session: AsyncSession):
        self.session = session
        self.roles = RoleRepository(session)

    async def permissions(self, wallet_address: str) -> Set[str]:
        return permissions_for(await self.roles.roles_for(wallet_address))

    async def can(self, wallet_address: str, permission: str) -> bool:
        return permission in await self.permissions(wallet_address)

    async def require(self, wallet_address: str, permission: str) -> None:
        if not await self.can(wallet_address, permission):
            logger.warning(
                "Permission denied",
                extra={"wallet_address": wallet_address, "permission": permission}
            )
            raise Forbidden(f"Missing permission '{permission}'")

    async def grant(self, wallet_address: str, role: str, granted_by: str) -> bool:
        if role not in ROLE_PERMISSIONS:
            raise ValidationFailed(f"Unknown role '{role}'", details={"allowed": sorted(ROLE_PERMISSIONS)})
        is_valid, error = SignatureVerificationService.validate_address(wallet_address)
        if not is_valid:
            raise ValidationFailed(error, code=ServiceErrorCode.INVALID_ADDRESS)

        granted = await self.roles.grant(wallet_address, role, granted_by=granted_by.lower())
        await self.session.commit()

        logger.info(
            "Role granted" if granted else "Role already held",
            extra={"wallet_address": wallet_address.lower(), "role": role, "granted_by": granted_by.lower()}
        )
        return granted

    async def seed_admins(self, wallet_addresses: Iterable[str]) -> int:
        """Grant the admin role to configured wallets; returns how many were new"""
        seeded = 0
        for wallet_address in wallet_addresses:
            is_valid, error = SignatureVerificationService.validate_address(wallet_address)
            if not is_valid:
                logger.warning(
                    "Skipping invalid admin wallet from settings",
                    extra={"wallet_address": wallet_address, "error": error}
                )
                continue
            if await self.roles.grant(wallet_address, Role.ADMIN, granted_by="settings"):
                seeded += 1
        await self.session.commit()

        if seeded:
            logger.info("Seeded admin roles", extra={"count": seeded})
        return seeded
