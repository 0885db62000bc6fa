"""
Search API for the explorer
Exact-pattern classification only; no lookups against the chain
"""

import re
from typing import Dict, List, Optional
from dataclasses import dataclass
from enum import Enum


class SearchCategory(Enum):
    """Search result categories"""

    BLOCK = "block"
    TRANSACTION = "transaction"
    ADDRESS = "address"


@dataclass
class SearchMatch:
    """Classified search query"""

    category: Optional[SearchCategory]
    parameter: str

    @property
    def matched(self) -> bool:
        return self.category is not None and len(self.parameter) > 0


# Checked in order; a 64-hex hash must never be taken for an address
PATTERNS = [
    (SearchCategory.TRANSACTION, re.compile(r"^0x[a-fA-F0-9]{64}\Z")),
    (SearchCategory.ADDRESS, re.compile(r"^0x[a-fA-F0-9]{40}\Z")),
    (SearchCategory.BLOCK, re.compile(r"^[0-9]+\Z")),
]


def parse_search_query(query: Optional[str]) -> SearchMatch:
    """Classify a raw search string"""
    trimmed = (query or "").strip()
    if not trimmed:
        return SearchMatch(category=None, parameter=trimmed)

    for category, pattern in PATTERNS:
        if pattern.match(trimmed):
            return SearchMatch(category=category, parameter=trimmed)

    return SearchMatch(category=None, parameter=trimmed)


def check_redirect(query: Optional[str]) -> Dict:
    """Redirect target for the search box"""
    match = parse_search_query(query)
    return {
        "redirect": match.matched,
        "type": match.category.value if match.category else None,
        "parameter": match.parameter if match.category else None,
    }


def _build_result_item(match: SearchMatch) -> Optional[Dict]:
    if match.category == SearchCategory.BLOCK:
        return {
            "type": "block",
            "block_number": match.parameter,
            "block_hash": "",
            "timestamp": "",
        }
    if match.category == SearchCategory.TRANSACTION:
        return {
            "type": "transaction",
            "transaction_hash": match.parameter,
            "timestamp": "",
        }
    if match.category == SearchCategory.ADDRESS:
        return {
            "type": "address",
            "address_hash": match.parameter,
            "name": None,
            "is_smart_contract_verified": False,
        }
    return None


def quick_search(query: Optional[str]) -> List[Dict]:
    """Quick search suggestions: at most one item"""
    item = _build_result_item(parse_search_query(query))
    return [item] if item else []
