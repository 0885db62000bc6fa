"""
AFGScan Explorer API Configuration
Environment-driven configuration for the explorer API layer
"""

import os
from typing import Dict, Any


class Config:
    """Base configuration"""

    # Upstream Configuration
    # -------------------------------------------------------------------------
    # Both upstreams are optional. An empty NODE_RPC_URL makes the RPC-backed
    # routes answer 503; an empty NODEREAL_BSC_RPC_URL disables the indexer
    # features and switches /stats to the simulated transaction counter.
    # NODEREAL_BSC_RPC_URL is the full endpoint including the API key, e.g.
    #   https://bsc-mainnet.nodereal.io/v1/YOUR_API_KEY
    # -------------------------------------------------------------------------
    NODE_RPC_URL = os.getenv("NODE_RPC_URL", "")
    NODEREAL_BSC_RPC_URL = os.getenv("NODEREAL_BSC_RPC_URL", "")
    UPSTREAM_TIMEOUT = int(os.getenv("UPSTREAM_TIMEOUT", "10"))  # seconds
    INDEXER_RETRY_COUNT = int(os.getenv("INDEXER_RETRY_COUNT", "0"))

    # Token Configuration
    AFG_CONTRACT = os.getenv(
        "AFG_CONTRACT", "0x91e9d32262fb1c60575ba1c13205e5b95e5004ac"
    )
    AFG_DECIMALS = int(os.getenv("AFG_DECIMALS", "18"))
    TRANSFER_CATEGORY = os.getenv("TRANSFER_CATEGORY", "20")

    # Explorer Configuration
    EXPLORER_PORT = int(os.getenv("EXPLORER_PORT", "8082"))
    EXPLORER_HOST = os.getenv("EXPLORER_HOST", "0.0.0.0")
    DEBUG = os.getenv("DEBUG", "false").lower() == "true"
    API_PREFIX = "/api/v2"

    # Cache Configuration
    CACHE_TTL_TOTAL_TXS = int(os.getenv("CACHE_TTL_TOTAL_TXS", "600"))  # 10 minutes
    CACHE_TTL_TX_LIST = int(os.getenv("CACHE_TTL_TX_LIST", "30"))  # 30 seconds
    CACHE_SINGLE_FLIGHT = os.getenv("CACHE_SINGLE_FLIGHT", "true").lower() == "true"

    # Indexer Paging (NodeReal caps maxCount at 1000)
    TX_LIST_PAGE_SIZE = int(os.getenv("TX_LIST_PAGE_SIZE", "50"))
    STATS_24H_PAGE_SIZE = int(os.getenv("STATS_24H_PAGE_SIZE", "100"))
    ALL_TIME_PAGE_SIZE = int(os.getenv("ALL_TIME_PAGE_SIZE", "1000"))
    INDEXER_MAX_PAGE_SIZE = 1000

    # Block Listing
    BLOCKS_DEFAULT_ITEMS = 50
    BLOCKS_MAX_ITEMS = 50
    HOME_PAGE_BLOCKS_COUNT = 5
    HOME_PAGE_TXS_COUNT = 5

    # Simulated transaction counter (used when the indexer is not configured)
    SIMULATED_TX_BASE = int(os.getenv("SIMULATED_TX_BASE", "1250000"))
    SIMULATED_TX_GROWTH_PER_DAY = int(os.getenv("SIMULATED_TX_GROWTH_PER_DAY", "4800"))

    # CORS Configuration
    CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*").split(",")

    # Logging Configuration
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    @classmethod
    def to_dict(cls) -> Dict[str, Any]:
        """Convert configuration to dictionary"""
        return {
            key: getattr(cls, key)
            for key in dir(cls)
            if key.isupper() and not callable(getattr(cls, key))
        }

    @classmethod
    def rpc_configured(cls) -> bool:
        return bool(cls.NODE_RPC_URL)

    @classmethod
    def indexer_configured(cls) -> bool:
        return bool(cls.NODEREAL_BSC_RPC_URL)

    @classmethod
    def validate(cls) -> None:
        """Validate configuration"""
        errors = []

        if cls.EXPLORER_PORT < 1 or cls.EXPLORER_PORT > 65535:
            errors.append("EXPLORER_PORT must be between 1 and 65535")

        if cls.UPSTREAM_TIMEOUT <= 0:
            errors.append("UPSTREAM_TIMEOUT must be positive")

        if cls.CACHE_TTL_TOTAL_TXS <= 0 or cls.CACHE_TTL_TX_LIST <= 0:
            errors.append("Cache TTLs must be positive")

        for name in ("TX_LIST_PAGE_SIZE", "STATS_24H_PAGE_SIZE", "ALL_TIME_PAGE_SIZE"):
            size = getattr(cls, name)
            if size < 1 or size > cls.INDEXER_MAX_PAGE_SIZE:
                errors.append(f"{name} must be between 1 and {cls.INDEXER_MAX_PAGE_SIZE}")

        if cls.AFG_DECIMALS < 0:
            errors.append("AFG_DECIMALS must not be negative")

        if cls.SIMULATED_TX_BASE < 0 or cls.SIMULATED_TX_GROWTH_PER_DAY < 0:
            errors.append("Simulated counter settings must not be negative")

        if errors:
            raise ValueError(f"Configuration validation failed: {', '.join(errors)}")


class DevelopmentConfig(Config):
    """Development configuration"""

    DEBUG = True
    LOG_LEVEL = "DEBUG"


class ProductionConfig(Config):
    """Production configuration"""

    DEBUG = False
    LOG_LEVEL = "WARNING"


class TestConfig(Config):
    """Test configuration"""

    __test__ = False

    NODE_RPC_URL = "http://localhost:8545"
    NODEREAL_BSC_RPC_URL = ""
    UPSTREAM_TIMEOUT = 1
    SIMULATED_TX_BASE = 1000
    SIMULATED_TX_GROWTH_PER_DAY = 240


# Environment-based configuration selection
ENV_CONFIGS = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "test": TestConfig,
}


def get_config() -> Config:
    """Get configuration based on environment"""
    env = os.getenv("EXPLORER_ENV", "development")
    config_class = ENV_CONFIGS.get(env, DevelopmentConfig)
    config_class.validate()
    return config_class


# Export current configuration
config = get_config()
