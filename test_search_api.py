"""
Tests for search_api.py
"""

import pytest

from search_api import PATTERNS, SearchCategory, check_redirect, parse_search_query, quick_search

TX_HASH = "0x" + "ab" * 32
ADDRESS = "0x" + "Cd" * 20


class TestParseSearchQuery:
    @pytest.mark.parametrize("query,category", [
        (TX_HASH, SearchCategory.TRANSACTION),
        (ADDRESS, SearchCategory.ADDRESS),
        ("0", SearchCategory.BLOCK),
        ("123456", SearchCategory.BLOCK),
        (f"  {TX_HASH}  ", SearchCategory.TRANSACTION),
    ])
    def test_classification(self, query, category):
        match = parse_search_query(query)
        assert match.category == category
        assert match.parameter == query.strip()
        assert match.matched

    @pytest.mark.parametrize("query", [
        None, "", "   ", "hello", "0x", "0x123", "0x" + "ab" * 33, "12.5", "-1", "0x" + "zz" * 20,
    ])
    def test_no_match(self, query):
        assert not parse_search_query(query).matched

    def test_hash_is_never_an_address(self):
        assert parse_search_query("0x" + "1" * 64).category == SearchCategory.TRANSACTION
        assert parse_search_query("0x" + "1" * 40).category == SearchCategory.ADDRESS


class TestCheckRedirect:
    def test_transaction_redirect(self):
        assert check_redirect(TX_HASH) == {
            "redirect": True,
            "type": "transaction",
            "parameter": TX_HASH,
        }

    def test_block_redirect(self):
        assert check_redirect(" 42 ") == {"redirect": True, "type": "block", "parameter": "42"}

    def test_no_redirect(self):
        assert check_redirect("afg") == {"redirect": False, "type": None, "parameter": None}


class TestQuickSearch:
    def test_address_item(self):
        items = quick_search(ADDRESS)
        assert len(items) == 1
        assert items[0]["type"] == "address"
        assert items[0]["address_hash"] == ADDRESS

    def test_transaction_item(self):
        assert quick_search(TX_HASH) == [
            {"type": "transaction", "transaction_hash": TX_HASH, "timestamp": ""}
        ]

    def test_nothing_found(self):
        assert quick_search("not a thing") == []
        assert quick_search(None) == []


@pytest.mark.parametrize("value", [TX_HASH + "\n", ADDRESS + "\n", "42\n"])
def test_patterns_reject_trailing_newline(value):
    assert not any(pattern.match(value) for _, pattern in PATTERNS)
