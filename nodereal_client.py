"""
NodeReal indexer gateway for AFGScan
Paginated ERC-20 transfer history via nr_getAssetTransfers
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from errors import UpstreamFailure

logger = logging.getLogger(__name__)


# ==================== DATA MODELS ====================


def parse_quantity(value: Any) -> int:
    """Parse a 0x-prefixed hex or decimal quantity"""
    if isinstance(value, int):
        return value
    text = str(value).strip()
    if text.lower().startswith("0x"):
        return int(text, 16)
    return int(text)


@dataclass
class TransferRecord:
    """One token transfer event"""

    from_address: str
    to_address: str
    raw_value: int
    decimals: int
    block_number: int
    block_timestamp: Optional[int]
    tx_hash: str

    @classmethod
    def from_nodereal(cls, raw: Dict[str, Any], default_decimals: int) -> "TransferRecord":
        decimal = raw.get("decimal")
        decimals = int(decimal) if decimal not in (None, "") else default_decimals

        timestamp = raw.get("blockTimeStamp")
        block_timestamp = int(timestamp) if isinstance(timestamp, (int, float)) else None

        return cls(
            from_address=raw.get("from", ""),
            to_address=raw.get("to", ""),
            raw_value=parse_quantity(raw.get("value") or 0),
            decimals=decimals,
            block_number=parse_quantity(raw.get("blockNum") or 0),
            block_timestamp=block_timestamp,
            tx_hash=raw.get("hash", ""),
        )


@dataclass
class TransferPage:
    """A single indexer page; next_cursor is None on the last page"""

    transfers: List[TransferRecord] = field(default_factory=list)
    next_cursor: Optional[str] = None


# ==================== NODEREAL CLIENT ====================


class NodeRealClient:
    """
    NodeReal enhanced API client

    Pages come back newest-first (order=desc). Cursors are passed through
    untouched.
    """

    def __init__(
        self,
        endpoint: str,
        timeout: int = 10,
        retry_count: int = 0,
        default_decimals: int = 18,
    ):
        """
        Initialize NodeReal client

        Args:
            endpoint: Full NodeReal endpoint including the API key
            timeout: Request timeout in seconds
            retry_count: Number of retries on 5xx responses
            default_decimals: Decimals used when a transfer does not report any
        """
        self.endpoint = endpoint
        self.timeout = timeout
        self.default_decimals = default_decimals

        # Configure session with retry logic
        self.session = requests.Session()
        retry = Retry(
            total=retry_count,
            backoff_factor=0.5,
            status_forcelist=[500, 502, 503, 504],
            allowed_methods=["POST"],
        )
        adapter = HTTPAdapter(max_retries=retry)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

    def _rpc_post(self, method: str, params: List[Any]) -> Dict[str, Any]:
        """Make a JSON-RPC call and return its result member"""
        body = {"jsonrpc": "2.0", "method": method, "params": params, "id": 1}

        try:
            response = self.session.post(self.endpoint, json=body, timeout=self.timeout)
        except requests.exceptions.RequestException as e:
            logger.error(f"NodeReal fetch failed: {e}")
            raise UpstreamFailure("Failed to fetch from NodeReal") from e

        if not response.ok:
            logger.error(f"NodeReal error response: {response.status_code} {response.text}")
            raise UpstreamFailure(f"NodeReal returned {response.status_code}")

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"NodeReal invalid JSON: {e}")
            raise UpstreamFailure("Invalid NodeReal response") from e

        if not isinstance(data, dict):
            logger.error(f"NodeReal unexpected body: {data!r}")
            raise UpstreamFailure("Invalid NodeReal response")

        error = data.get("error")
        if error:
            logger.error(f"NodeReal error response: {data}")
            message = error.get("message") if isinstance(error, dict) else None
            raise UpstreamFailure(message or "NodeReal API error")

        result = data.get("result") or {}
        if not isinstance(result, dict):
            logger.error(f"NodeReal unexpected result: {result!r}")
            raise UpstreamFailure("Invalid NodeReal response")
        return result

    def get_asset_transfers(
        self,
        contract: str,
        category: str,
        max_count: int,
        page_key: Optional[str] = None,
    ) -> TransferPage:
        """Fetch one page of transfers for a token contract"""
        params: Dict[str, Any] = {
            "contractAddresses": [contract],
            "category": [category],
            "maxCount": hex(max_count),
            "order": "desc",
        }
        if page_key:
            params["pageKey"] = page_key

        result = self._rpc_post("nr_getAssetTransfers", [params])
        try:
            transfers = [
                TransferRecord.from_nodereal(raw, self.default_decimals)
                for raw in result.get("transfers") or []
            ]
        except (ValueError, TypeError, AttributeError) as e:
            logger.error(f"NodeReal malformed transfer: {e}")
            raise UpstreamFailure("Invalid NodeReal response") from e
        return TransferPage(transfers=transfers, next_cursor=result.get("pageKey") or None)
