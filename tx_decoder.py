"""
Transaction log decoder for AFGScan
Extracts ERC-20 Transfer amounts emitted by a token contract from a receipt
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping, Optional

from eth_abi import decode as abi_decode
from eth_abi.exceptions import DecodingError
from web3 import Web3

logger = logging.getLogger(__name__)

# keccak256("Transfer(address,address,uint256)")
TRANSFER_TOPIC = "0xddf252ad1be2c89b69c2b068fc378daa952ba7f163c4a11628f55a4df523b3ef"


def _to_hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value).lower()
    return str(value).lower()


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    return Web3.to_bytes(hexstr=value)


def is_token_transfer(log: Mapping[str, Any], contract: str) -> bool:
    """Log was emitted by contract and carries the Transfer signature"""
    topics = log.get("topics") or []
    return (
        str(log.get("address", "")).lower() == contract.lower()
        and len(topics) > 0
        and _to_hex(topics[0]) == TRANSFER_TOPIC
    )


def decode_transfer_value(log: Mapping[str, Any]) -> Optional[int]:
    """Decode the non-indexed uint256 value of a Transfer log"""
    try:
        (value,) = abi_decode(["uint256"], _to_bytes(log.get("data") or b""))
    except (DecodingError, ValueError, TypeError) as e:
        logger.debug(f"Skipping unreadable Transfer log: {e}")
        return None
    return int(value)


def sum_token_transfers(logs: Iterable[Mapping[str, Any]], contract: str) -> int:
    """Total raw amount moved by the contract's Transfer events"""
    total = 0
    for log in logs:
        if not is_token_transfer(log, contract):
            continue
        value = decode_transfer_value(log)
        if value is not None:
            total += value
    return total
