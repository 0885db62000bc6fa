"""
Tests for evm_rpc_client.py
"""

from unittest.mock import MagicMock

import pytest
import requests
from web3.exceptions import BlockNotFound, TransactionNotFound

from errors import UpstreamFailure
from evm_rpc_client import EvmRpcClient

ADDRESS = "0x" + "11" * 20
TX_HASH = "0x" + "cd" * 32


@pytest.fixture
def web3():
    return MagicMock()


@pytest.fixture
def client(web3):
    return EvmRpcClient("http://localhost:8545", timeout=3, web3=web3)


def test_latest_height(client, web3):
    web3.eth.block_number = 12345
    assert client.get_latest_height() == 12345


def test_get_block_passes_identifier(client, web3):
    web3.eth.get_block.return_value = {"number": 7}
    assert client.get_block(7, full_transactions=True) == {"number": 7}
    web3.eth.get_block.assert_called_once_with(7, full_transactions=True)


def test_missing_block_is_none(client, web3):
    web3.eth.get_block.side_effect = BlockNotFound("no block")
    assert client.get_block(10 ** 9) is None


def test_missing_transaction_and_receipt_are_none(client, web3):
    web3.eth.get_transaction.side_effect = TransactionNotFound("nope")
    web3.eth.get_transaction_receipt.side_effect = TransactionNotFound("nope")
    assert client.get_transaction(TX_HASH) is None
    assert client.get_receipt(TX_HASH) is None


def test_transport_error_becomes_upstream_failure(client, web3):
    web3.eth.get_block.side_effect = requests.exceptions.ConnectionError("down")
    with pytest.raises(UpstreamFailure):
        client.get_block(1)


def test_node_error_becomes_upstream_failure(client, web3):
    web3.eth.get_balance.side_effect = ValueError({"code": -32000, "message": "boom"})
    with pytest.raises(UpstreamFailure):
        client.get_balance(ADDRESS)


def test_balance_and_code(client, web3):
    web3.eth.get_balance.return_value = 10 ** 20
    web3.eth.get_code.return_value = b"\x60\x80"

    assert client.get_balance(ADDRESS) == 10 ** 20
    assert client.get_code(ADDRESS) == b"\x60\x80"
    called_with = web3.eth.get_balance.call_args[0][0]
    assert called_with.lower() == ADDRESS


def test_default_provider_carries_timeout():
    client = EvmRpcClient("http://localhost:8545", timeout=7)
    assert client.web3.provider.endpoint_uri == "http://localhost:8545"
    assert client.timeout == 7
