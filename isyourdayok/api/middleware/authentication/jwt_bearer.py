from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from isyourdayok.core.dependencies import get_jwt_service
from isyourdayok.core.service.auth.jwt_service import JWTService
from isyourdayok.core.service.auth.models.token import TokenType

bearer_scheme = HTTPBearer(auto_error=False)


async def get_current_wallet(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    jwt_service: JWTService = Depends(get_jwt_service)
) -> str:
    """Wallet address of the bearer access token; the acting user for writes"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"}
        )

    payload = await jwt_service.verify_token(credentials.credentials, TokenType.ACCESS)
    return payload.wallet_address
