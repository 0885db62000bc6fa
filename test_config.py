"""
Tests for config.py
"""

import pytest

from config import Config, DevelopmentConfig, ENV_CONFIGS, ProductionConfig, TestConfig


def test_defaults():
    assert Config.API_PREFIX == "/api/v2"
    assert Config.CACHE_TTL_TOTAL_TXS == 600
    assert Config.CACHE_TTL_TX_LIST == 30
    assert Config.TRANSFER_CATEGORY == "20"
    assert Config.BLOCKS_MAX_ITEMS == 50


def test_environments():
    assert ENV_CONFIGS["development"] is DevelopmentConfig
    assert ENV_CONFIGS["production"] is ProductionConfig
    assert ProductionConfig.LOG_LEVEL == "WARNING"
    assert TestConfig.rpc_configured()
    assert not TestConfig.indexer_configured()


def test_to_dict_contains_settings_only():
    settings = TestConfig.to_dict()
    assert settings["SIMULATED_TX_BASE"] == 1000
    assert "validate" not in settings
    assert all(key.isupper() for key in settings)


def test_valid_configuration():
    TestConfig.validate()


@pytest.mark.parametrize("overrides,message", [
    ({"EXPLORER_PORT": 0}, "EXPLORER_PORT"),
    ({"UPSTREAM_TIMEOUT": 0}, "UPSTREAM_TIMEOUT"),
    ({"CACHE_TTL_TX_LIST": -1}, "Cache TTLs"),
    ({"ALL_TIME_PAGE_SIZE": 5000}, "ALL_TIME_PAGE_SIZE"),
    ({"TX_LIST_PAGE_SIZE": 0}, "TX_LIST_PAGE_SIZE"),
    ({"AFG_DECIMALS": -1}, "AFG_DECIMALS"),
    ({"SIMULATED_TX_GROWTH_PER_DAY": -5}, "Simulated counter"),
])
def test_invalid_configuration(overrides, message):
    broken = type("BrokenConfig", (TestConfig,), overrides)
    with pytest.raises(ValueError, match=message):
        broken.validate()
