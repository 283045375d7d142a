"""
Fixed-size binary record layout.

Each record is an 8-byte discriminator followed by its fields in declaration
order, little-endian, with no padding:

    discriminator = sha256("account:<Name>")[:8]

Record addresses (pool_id, config_id) are the storage keys and are not part of
the encoded body.
"""

from __future__ import annotations

import hashlib
import struct
from typing import Optional

from .canonical import bytes_to_id, id_to_bytes
from .platform import PlatformConfig
from .pools import Pool, PoolStatus
from .referrers import Referrer


DISCRIMINATOR_SIZE = 8

_POOL_BODY = struct.Struct("<32s32s32s32sQQ32sBQQqq")
_PLATFORM_BODY = struct.Struct("<Qqq")
_REFERRER_BODY = struct.Struct("<32s32s32s")

POOL_LEN = DISCRIMINATOR_SIZE + _POOL_BODY.size
PLATFORM_CONFIG_LEN = DISCRIMINATOR_SIZE + _PLATFORM_BODY.size
REFERRER_LEN = DISCRIMINATOR_SIZE + _REFERRER_BODY.size

_NO_POOL = b"\x00" * 32


def discriminator(name: str) -> bytes:
    return hashlib.sha256(f"account:{name}".encode("ascii")).digest()[:DISCRIMINATOR_SIZE]


def _split(raw: bytes, name: str, expected_len: int) -> bytes:
    if not isinstance(raw, (bytes, bytearray)):
        raise TypeError("record must be bytes")
    if len(raw) != expected_len:
        raise ValueError(f"{name} record must be {expected_len} bytes, got {len(raw)}")
    if bytes(raw[:DISCRIMINATOR_SIZE]) != discriminator(name):
        raise ValueError(f"not a {name} record (discriminator mismatch)")
    return bytes(raw[DISCRIMINATOR_SIZE:])


def encode_pool(pool: Pool) -> bytes:
    body = _POOL_BODY.pack(
        id_to_bytes(pool.authority),
        id_to_bytes(pool.share_token_type),
        id_to_bytes(pool.asset_a_type),
        id_to_bytes(pool.asset_b_type),
        pool.referral_fee_rate,
        pool.lp_fee_rate,
        id_to_bytes(pool.tax_config_ref),
        pool.state.value,
        pool.accrued_fee_a,
        pool.accrued_fee_b,
        pool.created_at,
        pool.updated_at,
    )
    return discriminator("Pool") + body


def decode_pool(pool_id: str, raw: bytes) -> Pool:
    (
        authority,
        share_token,
        asset_a,
        asset_b,
        referral_fee_rate,
        lp_fee_rate,
        tax_config,
        state,
        accrued_a,
        accrued_b,
        created_at,
        updated_at,
    ) = _POOL_BODY.unpack(_split(raw, "Pool", POOL_LEN))
    return Pool(
        pool_id=pool_id,
        authority=bytes_to_id(authority),
        share_token_type=bytes_to_id(share_token),
        asset_a_type=bytes_to_id(asset_a),
        asset_b_type=bytes_to_id(asset_b),
        referral_fee_rate=referral_fee_rate,
        lp_fee_rate=lp_fee_rate,
        tax_config_ref=bytes_to_id(tax_config),
        state=PoolStatus(state),
        accrued_fee_a=accrued_a,
        accrued_fee_b=accrued_b,
        created_at=created_at,
        updated_at=updated_at,
    )


def encode_platform_config(config: PlatformConfig) -> bytes:
    return discriminator("PlatformConfig") + _PLATFORM_BODY.pack(config.tax_rate, config.created_at, config.updated_at)


def decode_platform_config(config_id: str, raw: bytes) -> PlatformConfig:
    tax_rate, created_at, updated_at = _PLATFORM_BODY.unpack(_split(raw, "PlatformConfig", PLATFORM_CONFIG_LEN))
    return PlatformConfig(config_id=config_id, tax_rate=tax_rate, created_at=created_at, updated_at=updated_at)


def encode_referrer(record: Referrer) -> bytes:
    pool = _NO_POOL if record.pool is None else id_to_bytes(record.pool)
    return discriminator("Referrer") + _REFERRER_BODY.pack(id_to_bytes(record.owner), id_to_bytes(record.referee), pool)


def decode_referrer(raw: bytes) -> Referrer:
    owner, referee, pool_raw = _REFERRER_BODY.unpack(_split(raw, "Referrer", REFERRER_LEN))
    pool: Optional[str] = None if pool_raw == _NO_POOL else bytes_to_id(pool_raw)
    return Referrer(owner=bytes_to_id(owner), referee=bytes_to_id(referee), pool=pool)
