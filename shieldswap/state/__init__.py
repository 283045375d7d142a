"""
State records for the shieldswap AMM
"""

from .balances import NATIVE_ASSET, BalanceTable
from .layout import (
    PLATFORM_CONFIG_LEN,
    POOL_LEN,
    REFERRER_LEN,
    decode_platform_config,
    decode_pool,
    decode_referrer,
    encode_platform_config,
    encode_pool,
    encode_referrer,
)
from .platform import PlatformConfig
from .pools import Pool, PoolStatus, compute_pool_id
from .referrers import Referrer, ReferrerTable

__all__ = [
    "NATIVE_ASSET",
    "BalanceTable",
    "PLATFORM_CONFIG_LEN",
    "POOL_LEN",
    "REFERRER_LEN",
    "decode_platform_config",
    "decode_pool",
    "decode_referrer",
    "encode_platform_config",
    "encode_pool",
    "encode_referrer",
    "PlatformConfig",
    "Pool",
    "PoolStatus",
    "compute_pool_id",
    "Referrer",
    "ReferrerTable",
]
