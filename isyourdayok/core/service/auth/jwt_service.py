import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple

import jwt
from fastapi import HTTPException, status
from jwt.exceptions import ExpiredSignatureError, InvalidTokenError

from isyourdayok.core.logger.logger import get_logger
from isyourdayok.core.service.auth.cache.token_store import TokenStore
from isyourdayok.core.service.auth.models.token import TokenPayload, TokenResponse, TokenType
from isyourdayok.infra.config.settings import get_settings

logger = get_logger(__name__)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


class JWTService:
    """Issues, verifies and rotates access/refresh token pairs"""

    def __init__(self, token_store: TokenStore):
        settings = get_settings()
        self.secret_key = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.access_token_expire_minutes = settings.ACCESS_TOKEN_EXPIRE_MINUTES
        self.refresh_token_expire_days = settings.REFRESH_TOKEN_EXPIRE_DAYS
        self.token_store = token_store

    def _create_token(
        self,
        wallet_address: str,
        token_type: TokenType,
        expires_delta: Optional[timedelta] = None
    ) -> Tuple[str, datetime]:
        if expires_delta is None:
            if token_type == TokenType.ACCESS:
                expires_delta = timedelta(minutes=self.access_token_expire_minutes)
            else:
                expires_delta = timedelta(days=self.refresh_token_expire_days)

        issued_at = datetime.now(timezone.utc)
        expires_at = issued_at + expires_delta

        payload = TokenPayload(
            wallet_address=wallet_address.lower(),
            exp=expires_at,
            iat=issued_at,
            type=token_type,
            jti=str(uuid.uuid4())
        )
        encoded = jwt.encode(payload.model_dump(), self.secret_key, algorithm=self.algorithm)
        return encoded, expires_at

    def create_tokens(self, wallet_address: str) -> TokenResponse:
        access_token, access_exp = self._create_token(wallet_address, TokenType.ACCESS)
        refresh_token, _ = self._create_token(wallet_address, TokenType.REFRESH)

        return TokenResponse(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_in=int((access_exp - datetime.now(timezone.utc)).total_seconds())
        )

    async def verify_token(self, token: str, expected_type: TokenType) -> TokenPayload:
        """Decode and validate a token; raises 401 on any problem"""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
            token_data = TokenPayload(**payload)
        except ExpiredSignatureError:
            logger.info("Token expired", extra={"token_type": expected_type.value})
            raise _unauthorized("Token has expired")
        except (InvalidTokenError, ValueError) as e:
            logger.warning("Invalid token", extra={"token_type": expected_type.value, "error": str(e)})
            raise _unauthorized("Invalid token")

        if token_data.type != expected_type:
            logger.warning(
                "Token type mismatch",
                extra={
                    "expected_type": expected_type.value,
                    "actual_type": token_data.type.value,
                    "wallet_address": token_data.wallet_address
                }
            )
            raise _unauthorized("Invalid token type")

        if await self.token_store.is_blacklisted(token_data.jti):
            raise _unauthorized("Token has been revoked")

        return token_data

    async def refresh_tokens(self, refresh_token: str) -> TokenResponse:
        """New token pair for a valid refresh token; the used refresh token is revoked"""
        token_data = await self.verify_token(refresh_token, TokenType.REFRESH)
        new_tokens = self.create_tokens(token_data.wallet_address)
        await self.token_store.add_to_blacklist(
            jti=token_data.jti,
            exp=token_data.exp,
            reason="Refresh token rotation"
        )
        return new_tokens

    async def revoke_token(self, token: str, reason: Optional[str] = None) -> None:
        """Blacklist a token, even one that has already expired"""
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                options={"verify_exp": False}
            )
            token_data = TokenPayload(**payload)
        except (InvalidTokenError, ValueError) as e:
            logger.warning("Failed to revoke token", extra={"error": str(e)})
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid token format")

        await self.token_store.add_to_blacklist(jti=token_data.jti, exp=token_data.exp, reason=reason)
