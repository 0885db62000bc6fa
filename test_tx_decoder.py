"""
Tests for tx_decoder.py
"""

from eth_abi import encode
from hexbytes import HexBytes
from web3 import Web3

from tx_decoder import (
    TRANSFER_TOPIC,
    decode_transfer_value,
    is_token_transfer,
    sum_token_transfers,
)

CONTRACT = "0x91e9d32262fb1c60575ba1c13205e5b95e5004ac"
FROM_TOPIC = "0x" + "00" * 12 + "11" * 20
TO_TOPIC = "0x" + "00" * 12 + "22" * 20


def transfer_log(amount, address=CONTRACT, as_bytes=False):
    data = encode(["uint256"], [amount])
    return {
        "address": address,
        "topics": [HexBytes(TRANSFER_TOPIC) if as_bytes else TRANSFER_TOPIC, FROM_TOPIC, TO_TOPIC],
        "data": HexBytes(data) if as_bytes else "0x" + data.hex(),
    }


def test_transfer_topic_is_keccak_of_signature():
    assert Web3.keccak(text="Transfer(address,address,uint256)").hex().removeprefix("0x") == \
        TRANSFER_TOPIC[2:]


def test_is_token_transfer():
    assert is_token_transfer(transfer_log(1), CONTRACT)
    assert is_token_transfer(transfer_log(1, address=CONTRACT.upper().replace("0X", "0x")), CONTRACT)
    assert is_token_transfer(transfer_log(1, as_bytes=True), CONTRACT)
    assert not is_token_transfer(transfer_log(1, address="0x" + "99" * 20), CONTRACT)


def test_other_events_are_ignored():
    approval = transfer_log(5)
    approval["topics"][0] = "0x8c5be1e5ebec7d5bd14f71427d1e84f3dd0314c0f7b2291e5b200ac8c7c3b925"
    assert not is_token_transfer(approval, CONTRACT)
    assert not is_token_transfer({"address": CONTRACT, "topics": []}, CONTRACT)


def test_decode_transfer_value():
    assert decode_transfer_value(transfer_log(10 ** 24)) == 10 ** 24
    assert decode_transfer_value(transfer_log(7, as_bytes=True)) == 7


def test_unreadable_data_is_none():
    assert decode_transfer_value({"data": "0x1234"}) is None
    assert decode_transfer_value({"data": "0x"}) is None


def test_sum_token_transfers():
    logs = [
        transfer_log(10 ** 18),
        transfer_log(2 * 10 ** 18, as_bytes=True),
        transfer_log(10 ** 30, address="0x" + "99" * 20),
        {"address": CONTRACT, "topics": [TRANSFER_TOPIC], "data": "0xzz"},
    ]
    assert sum_token_transfers(logs, CONTRACT) == 3 * 10 ** 18
    assert sum_token_transfers([], CONTRACT) == 0
