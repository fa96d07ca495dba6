"""
Client for the on-chain points/streak contract.

The contract credits msg.sender, so the backend never writes to it: it reads
user data and hands the wallet an unsigned call to submit itself.
"""

from typing import Dict, Optional

from web3 import AsyncWeb3

from isyourdayok.core.logger.logger import get_logger
from isyourdayok.core.service.activity.models import ActivityKind, ChainUserData
from isyourdayok.core.service.chain.abis import POINTS_CONTRACT_ABI
from isyourdayok.core.service.chain.provider import get_web3, to_checksum
from isyourdayok.infra.config.settings import get_settings

logger = get_logger(__name__)

ACTIVITY_FUNCTIONS = {
    ActivityKind.MOOD: "logMood",
    ActivityKind.JOURNAL: "submitJournal",
    ActivityKind.MEDITATION: "completeMeditation",
}


class PointsContractClient:

    def __init__(self, web3: Optional[AsyncWeb3] = None, contract_address: Optional[str] = None):
        settings = get_settings()
        self.contract_address = contract_address or settings.POINTS_CONTRACT_ADDRESS
        self.chain_id = settings.CHAIN_ID
        self._web3 = web3

    @property
    def web3(self) -> AsyncWeb3:
        if self._web3 is None:
            self._web3 = get_web3()
        return self._web3

    @property
    def configured(self) -> bool:
        return bool(self.contract_address)

    def _contract(self):
        return self.web3.eth.contract(address=to_checksum(self.contract_address), abi=POINTS_CONTRACT_ABI)

    async def get_user_data(self, wallet_address: str) -> Optional[ChainUserData]:
        """
        getUserData(address) snapshot, or None when the contract is not
        configured or cannot be read. Callers fall back to the database.
        """
        if not self.configured:
            return None
        try:
            data = await self._contract().functions.getUserData(to_checksum(wallet_address)).call()
        except Exception as e:
            logger.warning(
                "getUserData call failed, falling back to database",
                extra={"wallet_address": wallet_address, "error": str(e)}
            )
            return None

        if not isinstance(data, (list, tuple)) or len(data) != 5:
            logger.warning("Unexpected getUserData result", extra={"wallet_address": wallet_address, "result": data})
            return None

        return ChainUserData(
            total_points=int(data[0]),
            journal_streak=int(data[1]),
            meditation_streak=int(data[2]),
            last_journal_date=int(data[3]),
            last_meditation_date=int(data[4])
        )

    async def can_meditate_today(self, wallet_address: str) -> Optional[bool]:
        """None when the chain cannot answer"""
        if not self.configured:
            return None
        try:
            return bool(await self._contract().functions.canMeditateToday(to_checksum(wallet_address)).call())
        except Exception as e:
            logger.warning(
                "canMeditateToday call failed",
                extra={"wallet_address": wallet_address, "error": str(e)}
            )
            return None

    def activity_call(self, kind: ActivityKind) -> Optional[Dict[str, object]]:
        """Unsigned call the wallet submits to mirror the activity on chain"""
        if not self.configured:
            return None
        function_name = ACTIVITY_FUNCTIONS[kind]
        return {
            "to": to_checksum(self.contract_address),
            "data": AsyncWeb3.to_hex(AsyncWeb3.keccak(text=f"{function_name}()")[:4]),
            "function": function_name,
            "chainId": self.chain_id,
        }
