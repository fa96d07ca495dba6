"""
Client for the achievement NFT contract.

The contract is the system of record for "has this wallet minted type X";
the local nft_achievements table only caches it.
"""

import asyncio
from typing import Any, Optional

from eth_account import Account
from web3 import AsyncWeb3
from web3.exceptions import TransactionNotFound

from isyourdayok.core.exceptions.handler import ExternalServiceError, ServiceErrorCode
from isyourdayok.core.logger.logger import get_logger
from isyourdayok.core.service.achievement.models import MintReceipt, UNKNOWN_TOKEN_ID
from isyourdayok.core.service.chain.abis import NFT_CONTRACT_ABI
from isyourdayok.core.service.chain.provider import get_web3, to_checksum
from isyourdayok.infra.config.settings import get_settings

logger = get_logger(__name__)


def extract_token_id(receipt: Any, contract_address: str) -> str:
    """
    Token id from the first log emitted by the NFT contract (topics[1]).
    Falls back to "0" when the receipt carries no such log.
    """
    for log in receipt.get("logs") or []:
        if str(log.get("address", "")).lower() != contract_address.lower():
            continue
        topics = log.get("topics") or []
        if len(topics) > 1:
            return str(int.from_bytes(bytes(topics[1]), "big"))
        break
    return UNKNOWN_TOKEN_ID


class MintingAuthority:
    """Reads mint state from and sends mintAchievement to the NFT contract"""

    def __init__(
        self,
        web3: Optional[AsyncWeb3] = None,
        contract_address: Optional[str] = None,
        minter_private_key: Optional[str] = None
    ):
        settings = get_settings()
        self.contract_address = contract_address or settings.NFT_CONTRACT_ADDRESS
        self.chain_id = settings.CHAIN_ID
        self.receipt_timeout = settings.TX_RECEIPT_TIMEOUT_SECONDS
        self._web3 = web3
        self._send_lock = asyncio.Lock()  # serializes nonce allocation for the minter key

        key = minter_private_key or settings.MINTER_PRIVATE_KEY
        self.minter = None
        if key:
            try:
                self.minter = Account.from_key(key)
            except Exception as e:
                logger.error(f"Failed to load minter account: {e}")

    @property
    def web3(self) -> AsyncWeb3:
        if self._web3 is None:
            self._web3 = get_web3()
        return self._web3

    @property
    def configured(self) -> bool:
        return bool(self.contract_address and self.minter)

    def _contract(self):
        if not self.contract_address:
            raise ExternalServiceError(
                "Minting is not configured",
                code=ServiceErrorCode.CHAIN_NOT_CONFIGURED
            )
        return self.web3.eth.contract(address=to_checksum(self.contract_address), abi=NFT_CONTRACT_ABI)

    async def has_minted(self, wallet_address: str, achievement_code: int) -> bool:
        contract = self._contract()
        try:
            return bool(
                await contract.functions.hasUserMinted(to_checksum(wallet_address), achievement_code).call()
            )
        except Exception as e:
            logger.error(
                "hasUserMinted call failed",
                extra={"wallet_address": wallet_address, "achievement_code": achievement_code, "error": str(e)}
            )
            raise ExternalServiceError("Could not read mint state from the chain") from e

    async def send_mint(
        self,
        wallet_address: str,
        achievement_code: int,
        improvement_rating: int,
        metadata_uri: str
    ) -> str:
        """Sign and broadcast mintAchievement; returns the transaction hash"""
        contract = self._contract()
        if self.minter is None:
            raise ExternalServiceError("Minting is not configured", code=ServiceErrorCode.CHAIN_NOT_CONFIGURED)

        try:
            async with self._send_lock:
                nonce = await self.web3.eth.get_transaction_count(self.minter.address, "pending")
                transaction = await contract.functions.mintAchievement(
                    to_checksum(wallet_address),
                    achievement_code,
                    improvement_rating,
                    metadata_uri
                ).build_transaction({
                    "from": self.minter.address,
                    "nonce": nonce,
                    "chainId": self.chain_id,
                })
                signed = self.minter.sign_transaction(transaction)
                tx_hash = await self.web3.eth.send_raw_transaction(signed.raw_transaction)
        except Exception as e:
            logger.error(
                "mintAchievement submission failed",
                extra={"wallet_address": wallet_address, "achievement_code": achievement_code, "error": str(e)}
            )
            raise ExternalServiceError("Failed to submit mint transaction", code=ServiceErrorCode.TRANSACTION_FAILED) from e

        tx_hash_hex = AsyncWeb3.to_hex(tx_hash)
        logger.info(
            "Mint transaction sent",
            extra={
                "wallet_address": wallet_address,
                "achievement_code": achievement_code,
                "improvement_rating": improvement_rating,
                "metadata_uri": metadata_uri,
                "transaction_hash": tx_hash_hex
            }
        )
        return tx_hash_hex

    async def wait_for_mint(self, tx_hash: str) -> MintReceipt:
        """Block until the transaction is mined; a reverted receipt is a failure"""
        try:
            receipt = await self.web3.eth.wait_for_transaction_receipt(tx_hash, timeout=self.receipt_timeout)
        except Exception as e:
            logger.error("Waiting for mint receipt failed", extra={"transaction_hash": tx_hash, "error": str(e)})
            raise ExternalServiceError(
                "Mint transaction was not confirmed",
                code=ServiceErrorCode.TRANSACTION_FAILED,
                context={"transaction_hash": tx_hash}
            ) from e

        mint_receipt = self._to_mint_receipt(tx_hash, receipt)
        if mint_receipt.reverted:
            logger.error("Mint transaction reverted", extra={"transaction_hash": tx_hash})
            raise ExternalServiceError(
                "Mint transaction failed",
                code=ServiceErrorCode.TRANSACTION_FAILED,
                context={"transaction_hash": tx_hash}
            )
        return mint_receipt

    async def lookup_mint(self, tx_hash: str) -> Optional[MintReceipt]:
        """Receipt of a sent mint without waiting; None while it is not mined"""
        try:
            receipt = await self.web3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None
        except Exception as e:
            logger.error("Mint receipt lookup failed", extra={"transaction_hash": tx_hash, "error": str(e)})
            raise ExternalServiceError("Could not read mint receipt from the chain") from e

        return self._to_mint_receipt(tx_hash, receipt)

    def _to_mint_receipt(self, tx_hash: str, receipt: Any) -> MintReceipt:
        reverted = receipt.get("status") != 1
        token_id = UNKNOWN_TOKEN_ID if reverted else extract_token_id(receipt, self.contract_address)
        if not reverted and token_id == UNKNOWN_TOKEN_ID:
            logger.warning("No AchievementMinted log found in receipt", extra={"transaction_hash": tx_hash})

        return MintReceipt(
            transaction_hash=tx_hash,
            token_id=token_id,
            contract_address=self.contract_address,
            block_number=receipt.get("blockNumber"),
            reverted=reverted
        )
