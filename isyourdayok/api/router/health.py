from datetime import datetime, timezone
from typing import Dict

from fastapi import APIRouter, status

from isyourdayok.api.models.response_models import HealthCheckResponseDTO
from isyourdayok.core.service.chain.provider import get_web3
from isyourdayok.infra.config.redis import get_redis
from isyourdayok.infra.config.settings import get_settings
from isyourdayok.infra.database import get_database_manager

router = APIRouter(tags=["Health"])


async def check_database_health() -> Dict[str, str]:
    try:
        await get_database_manager().ping()
        return {"status": "healthy", "message": "Connected"}
    except Exception as e:
        return {"status": "unhealthy", "message": f"Connection failed: {str(e)}"}


async def check_redis_health() -> Dict[str, str]:
    try:
        redis_client = await get_redis()
        await redis_client.ping()
        return {"status": "healthy", "message": "Connected"}
    except Exception as e:
        return {"status": "unhealthy", "message": f"Connection failed: {str(e)}"}


async def check_chain_health() -> Dict[str, str]:
    """The app degrades to database values without the chain, so this never reports unhealthy"""
    settings = get_settings()
    if not (settings.NFT_CONTRACT_ADDRESS or settings.POINTS_CONTRACT_ADDRESS):
        return {"status": "not_configured", "message": "No contract addresses configured"}
    try:
        block = await get_web3().eth.block_number
        return {"status": "healthy", "message": f"Latest block {block}"}
    except Exception as e:
        return {"status": "degraded", "message": f"RPC unreachable: {str(e)}"}


@router.get("/health", response_model=HealthCheckResponseDTO, status_code=status.HTTP_200_OK)
async def health_check():
    settings = get_settings()
    services = {
        "database": await check_database_health(),
        "redis": await check_redis_health(),
        "chain": await check_chain_health(),
    }

    statuses = [s["status"] for s in services.values()]
    if "unhealthy" in statuses:
        overall = "unhealthy"
    elif "degraded" in statuses:
        overall = "degraded"
    else:
        overall = "healthy"

    return HealthCheckResponseDTO(
        status=overall,
        services=services,
        version=settings.APP_VERSION,
        timestamp=datetime.now(timezone.utc),
        chain_id=settings.CHAIN_ID
    )
