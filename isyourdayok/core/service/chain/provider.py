from functools import lru_cache

from web3 import AsyncWeb3
from eth_utils import is_address

from isyourdayok.infra.config.settings import get_settings
from isyourdayok.core.logger.logger import get_logger

logger = get_logger(__name__)


@lru_cache()
def get_web3() -> AsyncWeb3:
    """Shared async web3 client for the configured RPC endpoint"""
    settings = get_settings()
    logger.info("Creating web3 client", extra={"rpc_url": settings.RPC_URL, "chain_id": settings.CHAIN_ID})
    return AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(settings.RPC_URL))


def to_checksum(address: str) -> str:
    """Checksum an EVM address, raising ValueError when it is not one"""
    if not address or not is_address(address):
        raise ValueError(f"Invalid EVM address: {address}")
    return AsyncWeb3.to_checksum_address(address)
