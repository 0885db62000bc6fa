"""
Explorer data services
Aggregation, caching and pagination on top of the RPC and indexer gateways
"""

from __future__ import annotations

import json
import logging
import math
import re
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Type
from urllib.parse import unquote

from cache import MemoryCache
from config import Config
from errors import GatewayUnconfigured, InvalidInput, NotFound, UpstreamFailure
from evm_rpc_client import EvmRpcClient
from mappers import (
    address_from_rpc,
    block_from_rpc,
    block_list_page,
    format_units,
    transaction_from_rpc,
    transfer_to_transaction,
)
from nodereal_client import NodeRealClient
from tx_decoder import sum_token_transfers

logger = logging.getLogger(__name__)

SECONDS_PER_DAY = 24 * 60 * 60

TOTAL_TXS_CACHE_KEY = "stats:total_transactions:all_time"
TX_LIST_CACHE_KEY = "transactions:first_page"

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}\Z")
HASH_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}\Z")
HEIGHT_PATTERN = re.compile(r"^[0-9]+\Z")


@dataclass
class AggregatedStats:
    """Home page statistics, computed per request"""

    total_blocks: int = 0
    average_block_time_ms: int = 0
    total_transactions: int = 0


def _require_rpc(rpc: Optional[EvmRpcClient]) -> EvmRpcClient:
    if rpc is None:
        raise GatewayUnconfigured("RPC client not configured")
    return rpc


def _require_indexer(indexer: Optional[NodeRealClient]) -> NodeRealClient:
    if indexer is None:
        raise GatewayUnconfigured("NODEREAL_BSC_RPC_URL is not configured", status_code=500)
    return indexer


# ==================== STATISTICS ====================


class StatsService:
    """
    Home page and transaction statistics

    total_transactions follows one of two policies: the cached all-time
    indexer count when the indexer is configured, otherwise a simulated
    counter that grows linearly from process start.
    """

    def __init__(
        self,
        rpc: Optional[EvmRpcClient],
        indexer: Optional[NodeRealClient],
        cache: MemoryCache,
        cfg: Type[Config],
        clock: Callable[[], float] = time.time,
        start_time: Optional[float] = None,
    ):
        self.rpc = rpc
        self.indexer = indexer
        self.cache = cache
        self.cfg = cfg
        self.clock = clock
        self.start_time = clock() if start_time is None else start_time
        self._simulated_high_water = 0

    def compute_home_stats(self) -> AggregatedStats:
        """Best-effort statistics; upstream errors degrade fields to zero"""
        stats = AggregatedStats()

        if self.rpc is not None:
            try:
                stats.total_blocks = self.rpc.get_latest_height()
            except UpstreamFailure as e:
                logger.warning(f"Latest height unavailable for stats: {e}")

            if stats.total_blocks > 0:
                stats.average_block_time_ms = self._average_block_time(stats.total_blocks)

        stats.total_transactions = self.total_transactions()
        return stats

    def _average_block_time(self, latest_height: int) -> int:
        try:
            latest = self.rpc.get_block(latest_height)
            previous = self.rpc.get_block(latest_height - 1)
        except UpstreamFailure as e:
            logger.warning(f"Block time unavailable for stats: {e}")
            return 0

        if latest is None or previous is None:
            return 0
        return round((int(latest["timestamp"]) - int(previous["timestamp"])) * 1000)

    def total_transactions(self) -> int:
        if self.indexer is not None:
            return self.all_time_transaction_count()
        return self.simulated_transaction_count()

    def all_time_transaction_count(self) -> int:
        """
        Count every transfer the indexer knows about

        Cached for CACHE_TTL_TOTAL_TXS. A failed refresh returns the last
        good value, or 0 if there never was one.
        """
        cached = self.cache.get(TOTAL_TXS_CACHE_KEY)
        if cached is not None:
            return cached

        with self.cache.single_flight(TOTAL_TXS_CACHE_KEY):
            cached = self.cache.get(TOTAL_TXS_CACHE_KEY)
            if cached is not None:
                return cached

            try:
                total = self._count_all_transfers()
            except UpstreamFailure as e:
                stale = self.cache.get_stale(TOTAL_TXS_CACHE_KEY)
                logger.warning(f"All-time transfer count failed, using last value {stale}: {e}")
                return stale if stale is not None else 0

            self.cache.set(TOTAL_TXS_CACHE_KEY, total, ttl=self.cfg.CACHE_TTL_TOTAL_TXS)
            return total

    def _count_all_transfers(self) -> int:
        indexer = _require_indexer(self.indexer)
        total = 0
        page_key = None
        pages = 0
        while True:
            page = indexer.get_asset_transfers(
                self.cfg.AFG_CONTRACT,
                self.cfg.TRANSFER_CATEGORY,
                self.cfg.ALL_TIME_PAGE_SIZE,
                page_key,
            )
            pages += 1
            total += len(page.transfers)
            if not page.next_cursor:
                break
            page_key = page.next_cursor

        logger.info(f"Counted {total} transfers across {pages} indexer pages")
        return total

    def transactions_count_24h(self) -> int:
        """
        Count transfers from the last 24 hours

        Pages arrive newest-first, so the first transfer older than the cutoff
        ends the scan. Transfers without a timestamp are skipped. Raises
        UpstreamFailure if any page fails.
        """
        indexer = _require_indexer(self.indexer)
        cutoff = self.clock() - SECONDS_PER_DAY

        count = 0
        page_key = None
        while True:
            page = indexer.get_asset_transfers(
                self.cfg.AFG_CONTRACT,
                self.cfg.TRANSFER_CATEGORY,
                self.cfg.STATS_24H_PAGE_SIZE,
                page_key,
            )

            past_cutoff = False
            for transfer in page.transfers:
                if transfer.block_timestamp is None:
                    continue
                if transfer.block_timestamp < cutoff:
                    past_cutoff = True
                    break
                count += 1

            if past_cutoff or not page.next_cursor:
                return count
            page_key = page.next_cursor

    def simulated_transaction_count(self) -> int:
        """base + floor(elapsed_days * growth_per_day), never decreasing"""
        elapsed = max(0.0, self.clock() - self.start_time)
        value = self.cfg.SIMULATED_TX_BASE + math.floor(
            elapsed / SECONDS_PER_DAY * self.cfg.SIMULATED_TX_GROWTH_PER_DAY
        )
        self._simulated_high_water = max(self._simulated_high_water, value)
        return self._simulated_high_water


# ==================== LISTINGS ====================


def page_key_from_query(raw: Optional[str]) -> Optional[str]:
    """Extract pageKey from URL-encoded JSON next_page_params; garbage means first page"""
    if not raw:
        return None
    try:
        parsed = json.loads(unquote(raw))
    except ValueError:
        logger.debug(f"Ignoring unparsable next_page_params: {raw!r}")
        return None
    if not isinstance(parsed, dict):
        return None
    page_key = parsed.get("pageKey")
    return str(page_key) if page_key else None


class ListingService:
    """Block and transaction listings with their two pagination protocols"""

    def __init__(
        self,
        rpc: Optional[EvmRpcClient],
        indexer: Optional[NodeRealClient],
        cache: MemoryCache,
        cfg: Type[Config],
    ):
        self.rpc = rpc
        self.indexer = indexer
        self.cache = cache
        self.cfg = cfg

    def clamp_items_count(self, items_count: Optional[int]) -> int:
        if items_count is None:
            return self.cfg.BLOCKS_DEFAULT_ITEMS
        return min(max(items_count, 1), self.cfg.BLOCKS_MAX_ITEMS)

    def list_blocks(
        self, start_height: Optional[int] = None, items_count: Optional[int] = None
    ) -> Dict[str, Any]:
        """
        Walk down from min(start_height - 1, latest)

        start_height is an exclusive upper bound. Missing blocks are skipped
        without counting towards items_count.
        """
        rpc = _require_rpc(self.rpc)
        items_count = self.clamp_items_count(items_count)

        latest = rpc.get_latest_height()
        current = latest if start_height is None else min(start_height - 1, latest)

        blocks: List[Dict[str, Any]] = []
        while len(blocks) < items_count and current >= 0:
            raw = rpc.get_block(current)
            if raw is not None:
                blocks.append(block_from_rpc(raw))
            current -= 1

        return block_list_page(blocks, items_count)

    def latest_blocks(self) -> List[Dict[str, Any]]:
        rpc = _require_rpc(self.rpc)
        latest = rpc.get_latest_height()
        count = min(latest, self.cfg.HOME_PAGE_BLOCKS_COUNT)

        blocks = []
        for offset in range(count):
            raw = rpc.get_block(latest - offset)
            if raw is not None:
                blocks.append(block_from_rpc(raw))
        return blocks

    def latest_transactions(self) -> List[Dict[str, Any]]:
        """First transactions of the tip block, receipts best-effort"""
        rpc = _require_rpc(self.rpc)
        latest = rpc.get_latest_height()
        block = rpc.get_block(latest, full_transactions=True)
        if block is None or not block.get("transactions"):
            return []

        transactions = []
        for position, tx in enumerate(block["transactions"][: self.cfg.HOME_PAGE_TXS_COUNT]):
            try:
                receipt = rpc.get_receipt(tx["hash"])
            except UpstreamFailure:
                receipt = None
            record = transaction_from_rpc(tx, receipt, block, confirmations=1, position=position)
            record["block_number"] = int(block["number"])
            transactions.append(record)
        return transactions

    def list_transactions(self, page_key: Optional[str] = None) -> Dict[str, Any]:
        """
        One indexer page of token transfers

        Only the first page is cached; follow-up pages always go upstream and
        are never written back.
        """
        indexer = _require_indexer(self.indexer)
        first_page = page_key is None

        if first_page:
            cached = self.cache.get(TX_LIST_CACHE_KEY)
            if cached is not None:
                return cached
            with self.cache.single_flight(TX_LIST_CACHE_KEY):
                cached = self.cache.get(TX_LIST_CACHE_KEY)
                if cached is not None:
                    return cached
                result = self._fetch_transactions_page(indexer, None)
                self.cache.set(TX_LIST_CACHE_KEY, result, ttl=self.cfg.CACHE_TTL_TX_LIST)
                return result

        return self._fetch_transactions_page(indexer, page_key)

    def _fetch_transactions_page(
        self, indexer: NodeRealClient, page_key: Optional[str]
    ) -> Dict[str, Any]:
        page = indexer.get_asset_transfers(
            self.cfg.AFG_CONTRACT,
            self.cfg.TRANSFER_CATEGORY,
            self.cfg.TX_LIST_PAGE_SIZE,
            page_key,
        )
        return {
            "items": [transfer_to_transaction(transfer) for transfer in page.transfers],
            "next_page_params": {"pageKey": page.next_cursor} if page.next_cursor else None,
        }


# ==================== LOOKUPS ====================


class LookupService:
    """Single-record lookups: blocks, transactions, addresses"""

    def __init__(self, rpc: Optional[EvmRpcClient], cfg: Type[Config]):
        self.rpc = rpc
        self.cfg = cfg

    def get_block(self, height_or_hash: str) -> Dict[str, Any]:
        if not height_or_hash:
            raise InvalidInput("Missing height_or_hash")
        if HEIGHT_PATTERN.match(height_or_hash):
            block_id: Any = int(height_or_hash)
        elif HASH_PATTERN.match(height_or_hash):
            block_id = height_or_hash
        else:
            raise InvalidInput("Invalid block height or hash")

        rpc = _require_rpc(self.rpc)
        try:
            raw = rpc.get_block(block_id)
        except UpstreamFailure:
            raw = None
        if raw is None:
            raise NotFound("Block not found")
        return block_from_rpc(raw)

    def get_transaction(self, tx_hash: str) -> Dict[str, Any]:
        if not tx_hash or not tx_hash.startswith("0x"):
            raise InvalidInput("Missing or invalid hash")
        rpc = _require_rpc(self.rpc)

        try:
            tx = rpc.get_transaction(tx_hash)
        except UpstreamFailure:
            raise NotFound("Transaction not found")
        if tx is None:
            raise NotFound("Transaction not found")

        receipt = self._best_effort(rpc.get_receipt, tx_hash)
        block = self._best_effort(rpc.get_block, tx["blockHash"]) if tx.get("blockHash") else None

        confirmations = 0
        if block is not None and tx.get("blockNumber") is not None:
            latest = self._best_effort(rpc.get_latest_height)
            if latest is not None:
                confirmations = max(latest - int(block["number"]) + 1, 0)

        return transaction_from_rpc(tx, receipt, block, confirmations=confirmations)

    def get_address(self, address: str) -> Dict[str, Any]:
        if not address or not ADDRESS_PATTERN.match(address):
            raise InvalidInput("Missing or invalid hash")
        rpc = _require_rpc(self.rpc)

        balance = self._best_effort(rpc.get_balance, address)
        if balance is None:
            raise NotFound("Address not found")
        code = self._best_effort(rpc.get_code, address)
        return address_from_rpc(address, balance, code)

    def get_token_transfer_value(self, tx_hash: str) -> Optional[str]:
        """AFG moved by a transaction's Transfer logs, as a decimal string"""
        if not tx_hash or not tx_hash.startswith("0x"):
            raise InvalidInput("Missing or invalid hash")
        rpc = _require_rpc(self.rpc)

        receipt = self._best_effort(rpc.get_receipt, tx_hash)
        if receipt is None:
            return None

        total = sum_token_transfers(receipt.get("logs") or [], self.cfg.AFG_CONTRACT)
        if total == 0:
            return None
        return format_units(total, self.cfg.AFG_DECIMALS)

    @staticmethod
    def _best_effort(call: Callable, *args: Any) -> Any:
        try:
            return call(*args)
        except UpstreamFailure:
            return None
