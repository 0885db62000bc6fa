"""
EVM JSON-RPC gateway for AFGScan
Thin read-only wrapper around web3.py that maps upstream errors onto the
explorer error taxonomy
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import Any, Callable, Optional, Union

import requests
from web3 import Web3
from web3.exceptions import BlockNotFound, TransactionNotFound, Web3Exception

from errors import UpstreamFailure

logger = logging.getLogger(__name__)

BlockIdentifier = Union[int, str]


def _upstream_call(func: Callable) -> Callable:
    """Translate transport and node errors into UpstreamFailure"""

    @wraps(func)
    def wrapper(self, *args, **kwargs):
        try:
            return func(self, *args, **kwargs)
        except UpstreamFailure:
            raise
        except (requests.exceptions.RequestException, Web3Exception, ValueError) as e:
            logger.error(f"RPC call {func.__name__} failed: {e}")
            raise UpstreamFailure(f"RPC request failed: {func.__name__}") from e

    return wrapper


class EvmRpcClient:
    """
    Read-only EVM node client

    Not-found conditions come back as None; everything else that goes wrong
    upstream raises UpstreamFailure.
    """

    def __init__(self, rpc_url: str, timeout: int = 10, web3: Optional[Web3] = None):
        """
        Initialize RPC client

        Args:
            rpc_url: JSON-RPC endpoint (e.g., https://bsc-dataseed.binance.org)
            timeout: Per-request timeout in seconds
            web3: Preconfigured Web3 instance (mainly for tests)
        """
        self.rpc_url = rpc_url
        self.timeout = timeout
        self.web3 = web3 or Web3(
            Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout})
        )

    # ==================== CHAIN STATE ====================

    @_upstream_call
    def get_latest_height(self) -> int:
        """Get the latest block number"""
        return int(self.web3.eth.block_number)

    @_upstream_call
    def get_block(
        self, block_id: BlockIdentifier, full_transactions: bool = False
    ) -> Optional[Any]:
        """Get block by height or 0x-prefixed hash"""
        try:
            return self.web3.eth.get_block(block_id, full_transactions=full_transactions)
        except BlockNotFound:
            return None

    @_upstream_call
    def get_transaction(self, tx_hash: str) -> Optional[Any]:
        """Get transaction by hash"""
        try:
            return self.web3.eth.get_transaction(tx_hash)
        except TransactionNotFound:
            return None

    @_upstream_call
    def get_receipt(self, tx_hash: str) -> Optional[Any]:
        """Get transaction receipt; pending or unknown transactions have none"""
        try:
            return self.web3.eth.get_transaction_receipt(tx_hash)
        except TransactionNotFound:
            return None

    # ==================== ACCOUNTS ====================

    @_upstream_call
    def get_balance(self, address: str) -> int:
        """Get native coin balance in wei"""
        return int(self.web3.eth.get_balance(Web3.to_checksum_address(address)))

    @_upstream_call
    def get_code(self, address: str) -> bytes:
        """Get deployed bytecode (empty for externally owned accounts)"""
        return bytes(self.web3.eth.get_code(Web3.to_checksum_address(address)))
