"""
Response mappers
Translate RPC and indexer records into the explorer's output schema
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from web3 import Web3

from nodereal_client import TransferRecord


def format_units(raw_value: int, decimals: int) -> str:
    """
    Render raw_value / 10**decimals as an exact decimal string

    Integer division plus a zero-padded remainder with trailing zeros trimmed,
    e.g. format_units(1500000000000000000, 18) == "1.5".
    """
    sign = "-" if raw_value < 0 else ""
    raw_value = abs(raw_value)
    if decimals <= 0:
        return f"{sign}{raw_value}"

    divisor = 10 ** decimals
    whole, remainder = divmod(raw_value, divisor)
    if remainder == 0:
        return f"{sign}{whole}"
    fraction = str(remainder).rjust(decimals, "0").rstrip("0")
    return f"{sign}{whole}.{fraction}"


def iso_timestamp(seconds: Optional[int]) -> Optional[str]:
    """Seconds since epoch -> ISO-8601 UTC with millisecond precision"""
    if seconds is None:
        return None
    dt = datetime.fromtimestamp(int(seconds), tz=timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _hex(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    return str(value)


def _str_or_none(value: Any) -> Optional[str]:
    return str(int(value)) if value is not None else None


def address_param(hash_: str, is_contract: bool = False) -> Dict[str, Any]:
    return {
        "hash": hash_,
        "name": None,
        "implementations": None,
        "is_contract": is_contract,
        "is_verified": False,
        "ens_domain_name": None,
        "private_tags": None,
        "public_tags": None,
        "watchlist_names": None,
    }


# ==================== BLOCKS ====================


def block_from_rpc(block: Mapping[str, Any]) -> Dict[str, Any]:
    """Map an RPC block to the explorer block record"""
    withdrawals = block.get("withdrawals")
    return {
        "height": int(block["number"]),
        "timestamp": iso_timestamp(block["timestamp"]),
        "transactions_count": len(block.get("transactions") or []),
        "internal_transactions_count": 0,
        "miner": address_param(block.get("miner")),
        "size": int(block.get("size") or 0),
        "hash": _hex(block.get("hash")),
        "parent_hash": _hex(block.get("parentHash")),
        "difficulty": _str_or_none(block.get("difficulty")),
        "total_difficulty": _str_or_none(block.get("totalDifficulty")),
        "gas_used": str(int(block.get("gasUsed") or 0)),
        "gas_limit": str(int(block.get("gasLimit") or 0)),
        "nonce": _hex(block.get("nonce")),
        "base_fee_per_gas": _str_or_none(block.get("baseFeePerGas")),
        "burnt_fees": None,
        "priority_fee": None,
        "extra_data": _hex(block.get("extraData")),
        "state_root": _hex(block.get("stateRoot")),
        "gas_target_percentage": None,
        "gas_used_percentage": None,
        "burnt_fees_percentage": None,
        "type": "block",
        "transaction_fees": None,
        "uncles_hashes": [_hex(uncle) for uncle in block.get("uncles") or []],
        "withdrawals_count": len(withdrawals) if withdrawals is not None else None,
    }


# ==================== TRANSACTIONS ====================


def _tx_type(value: Any) -> Optional[int]:
    if value is None:
        return None
    if isinstance(value, str):
        return int(value, 16) if value.startswith("0x") else int(value)
    return int(value)


def _transaction_template() -> Dict[str, Any]:
    """Fields the explorer schema carries but neither upstream provides"""
    return {
        "result": "",
        "confirmation_duration": None,
        "priority_fee": None,
        "transaction_burnt_fee": None,
        "revert_reason": None,
        "decoded_input": None,
        "has_error_in_internal_transactions": None,
        "token_transfers": None,
        "token_transfers_overflow": False,
        "exchange_rate": None,
        "method": None,
        "transaction_types": [],
        "transaction_tag": None,
        "actions": [],
    }


def transaction_from_rpc(
    tx: Mapping[str, Any],
    receipt: Optional[Mapping[str, Any]] = None,
    block: Optional[Mapping[str, Any]] = None,
    confirmations: int = 0,
    position: Optional[int] = None,
) -> Dict[str, Any]:
    """Map an RPC transaction (plus optional receipt and block) to a transaction record"""
    status = None
    gas_used = None
    if receipt is not None:
        status = "ok" if receipt.get("status") == 1 else "error"
        gas_used = receipt.get("gasUsed")

    gas_price = (receipt or {}).get("effectiveGasPrice") or tx.get("gasPrice")
    fee = str(int(gas_used) * int(gas_price)) if receipt is not None and gas_price else None

    created_contract = (receipt or {}).get("contractAddress")
    block_number = tx.get("blockNumber")
    if position is None:
        position = tx.get("transactionIndex")

    record = _transaction_template()
    record.update({
        "hash": _hex(tx["hash"]),
        "from": address_param(tx["from"]),
        "to": address_param(tx["to"]) if tx.get("to") else None,
        "confirmations": confirmations,
        "status": status,
        "block_number": int(block_number) if block_number is not None else None,
        "timestamp": iso_timestamp(block["timestamp"]) if block and block.get("timestamp") else None,
        "value": str(int(tx.get("value") or 0)),
        "fee": {"type": "actual", "value": fee},
        "gas_price": _str_or_none(gas_price),
        "base_fee_per_gas": _str_or_none(block.get("baseFeePerGas")) if block else None,
        "max_fee_per_gas": _str_or_none(tx.get("maxFeePerGas")),
        "max_priority_fee_per_gas": _str_or_none(tx.get("maxPriorityFeePerGas")),
        "nonce": int(tx.get("nonce") or 0),
        "position": int(position) if position is not None else None,
        "type": _tx_type(tx.get("type")),
        "raw_input": _hex(tx.get("input")) or "0x",
        "gas_used": _str_or_none(gas_used),
        "gas_limit": str(int(tx.get("gas") or 0)),
        "created_contract": address_param(created_contract, True) if created_contract else None,
    })
    return record


def transfer_to_transaction(transfer: TransferRecord) -> Dict[str, Any]:
    """Map an indexer transfer to a transaction-shaped record for the /txs list"""
    record = _transaction_template()
    record.update({
        "hash": transfer.tx_hash,
        "from": {"hash": transfer.from_address},
        "to": {"hash": transfer.to_address},
        "created_contract": None,
        "value": format_units(transfer.raw_value, transfer.decimals),
        "block_number": transfer.block_number,
        "timestamp": iso_timestamp(transfer.block_timestamp) if transfer.block_timestamp else None,
        "gas_price": "0",
        "fee": {"type": "actual", "value": "0"},
        "result": "success",
        "status": "ok",
        "confirmations": 0,
        "type": None,
        "gas_used": None,
        "gas_limit": "0",
        "max_fee_per_gas": None,
        "max_priority_fee_per_gas": None,
        "base_fee_per_gas": None,
        "nonce": 0,
        "position": None,
        "raw_input": "0x",
        "transaction_types": ["token_transfer"],
        "has_error_in_internal_transactions": False,
    })
    return record


# ==================== ADDRESSES ====================


def has_code(code: Any) -> bool:
    """Deployed bytecode present (empty bytes and the bare "0x" both mean none)"""
    if not code:
        return False
    if isinstance(code, (bytes, bytearray)):
        return len(code) > 0
    return str(code) not in ("", "0x")


def address_from_rpc(hash_: str, balance: int, code: Any) -> Dict[str, Any]:
    """Map balance and code lookups to the explorer address record"""
    return {
        "hash": hash_,
        "coin_balance": str(int(balance)),
        "block_number_balance_updated_at": None,
        "creator_address_hash": None,
        "creation_transaction_hash": None,
        "creation_status": None,
        "exchange_rate": None,
        "ens_domain_name": None,
        "has_logs": False,
        "has_token_transfers": False,
        "has_tokens": False,
        "has_validated_blocks": False,
        "implementations": None,
        "is_contract": has_code(code),
        "is_verified": False,
        "name": None,
        "token": None,
        "watchlist_address_id": None,
        "private_tags": None,
        "public_tags": None,
        "watchlist_names": None,
    }


def stats_from_aggregate(total_blocks: int, average_block_time_ms: int,
                         total_transactions: int) -> Dict[str, Any]:
    """Home statistics record"""
    return {
        "total_blocks": str(total_blocks),
        "total_addresses": "0",
        "total_transactions": str(total_transactions),
        "average_block_time": average_block_time_ms,
        "coin_price": None,
        "coin_price_change_percentage": None,
        "total_gas_used": "0",
        "transactions_today": None,
        "gas_used_today": "0",
        "gas_prices": None,
        "gas_price_updated_at": None,
        "gas_prices_update_in": 0,
        "static_gas_price": None,
        "market_cap": None,
        "network_utilization_percentage": 0,
        "tvl": None,
    }


def transaction_stats(count_24h: int) -> Dict[str, str]:
    """Transaction stats record; fee fields are not tracked"""
    return {
        "transactions_count_24h": str(count_24h),
        "pending_transactions_count": "0",
        "transaction_fees_sum_24h": "0",
        "transaction_fees_avg_24h": "0",
    }


def block_list_page(items: List[Dict[str, Any]], items_count: int) -> Dict[str, Any]:
    """Wrap blocks with the numeric height continuation token"""
    min_height = items[-1]["height"] if items else 0
    next_page_params = (
        {"block_number": min_height, "items_count": items_count} if min_height > 1 else None
    )
    return {"items": items, "next_page_params": next_page_params}
