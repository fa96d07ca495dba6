from hexbytes import HexBytes

from isyourdayok.core.service.chain.minting_authority import extract_token_id

NFT = "0x1111111111111111111111111111111111111111"
OTHER = "0x2222222222222222222222222222222222222222"


def _topic(value: int) -> HexBytes:
    return HexBytes(value.to_bytes(32, "big"))


def test_token_id_from_first_nft_log():
    receipt = {
        "logs": [
            {"address": OTHER, "topics": [_topic(1), _topic(999)]},
            {"address": NFT.upper().replace("0X", "0x"), "topics": [_topic(7), _topic(42), _topic(3)]},
            {"address": NFT, "topics": [_topic(7), _topic(43)]},
        ]
    }
    assert extract_token_id(receipt, NFT) == "42"


def test_missing_log_defaults_to_zero():
    assert extract_token_id({"logs": []}, NFT) == "0"
    assert extract_token_id({"logs": [{"address": OTHER, "topics": [_topic(1), _topic(5)]}]}, NFT) == "0"


def test_log_without_indexed_token_defaults_to_zero():
    assert extract_token_id({"logs": [{"address": NFT, "topics": [_topic(7)]}]}, NFT) == "0"
