from typing import Optional, Tuple

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_utils import is_address
from hexbytes import HexBytes

from isyourdayok.core.logger.logger import get_logger

logger = get_logger(__name__)


class SignatureVerificationService:
    """Verifies EIP-191 personal_sign signatures from EVM wallets"""

    @staticmethod
    def validate_address(address: str) -> Tuple[bool, Optional[str]]:
        if not address or not isinstance(address, str):
            return False, "Address must be a non-empty string"
        if not is_address(address.strip().lower()):
            return False, "Invalid EVM address format (must be 0x followed by 40 hex characters)"
        return True, None

    @staticmethod
    def create_challenge_message(app_name: str, nonce: str) -> str:
        return f"Sign in to {app_name}\nNonce: {nonce}"

    def verify_signature(self, claimed_address: str, signature: str, message: str) -> Tuple[bool, Optional[str]]:
        """
        Recover the signer of `message` and compare it with `claimed_address`.

        Returns:
            Tuple[bool, Optional[str]]: (is_valid, error_message)
        """
        is_valid_address, error = self.validate_address(claimed_address)
        if not is_valid_address:
            return False, error

        try:
            if isinstance(signature, str) and not signature.startswith("0x"):
                signature = "0x" + signature
            signature_bytes = HexBytes(signature)
            recovered_address = Account.recover_message(encode_defunct(text=message), signature=signature_bytes)
        except Exception as e:
            logger.warning(
                "Invalid signature format",
                extra={"wallet_address": claimed_address, "error": str(e)}
            )
            return False, "Invalid signature format"

        if recovered_address.lower() != claimed_address.strip().lower():
            logger.warning(
                "Recovered address does not match claimed address",
                extra={"wallet_address": claimed_address, "recovered_address": recovered_address}
            )
            return False, "Recovered address does not match claimed address"

        logger.info("Signature verified successfully", extra={"wallet_address": claimed_address})
        return True, None
