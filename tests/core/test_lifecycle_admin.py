# [TESTER] v1

from __future__ import annotations

import pytest

from shieldswap.core.admin import create_platform_config, update_platform_config, update_tax
from shieldswap.core.effects import EventKind, MintShares, TokenTransfer
from shieldswap.core.lifecycle import (
    initialize,
    pause,
    requires_custom_fee,
    resume,
    transfer_ownership,
    update_fee,
    update_referral_fee,
)
from shieldswap.core.referral import create_referrer
from shieldswap.errors import AmmError, ErrorCode
from shieldswap.state.balances import NATIVE_ASSET
from shieldswap.state.platform import PlatformConfig
from shieldswap.state.pools import Pool, PoolStatus

A = "0x" + "aa" * 32
B = "0x" + "bb" * 32
OWNER = "0x" + "01" * 32
STRANGER = "0x" + "66" * 32
ADMIN = "0x" + "ad" * 32
ESCROW = "0x" + "e5" * 32
SHARE = "0x" + "55" * 32
FEE_RECEIVER = "0x" + "fe" * 32
POOL_ID = "0x" + "99" * 32
PLATFORM = PlatformConfig(config_id="0x" + "77" * 32, tax_rate=0)


def _init(**overrides):
    kwargs = dict(
        pool_id=POOL_ID,
        caller=OWNER,
        escrow=ESCROW,
        share_token_type=SHARE,
        asset_a=A,
        asset_b=B,
        platform=PLATFORM,
        a=1_000_000,
        b=1_000_000,
        referral_fee_rate=0,
        lp_fee_rate=3_000_000,
        custom_fee_amount=0,
        fee_receiver=FEE_RECEIVER,
        now=100,
    )
    kwargs.update(overrides)
    return initialize(**kwargs)


def _active_pool() -> Pool:
    return _init().record


def _expect(code: ErrorCode, fn, *args, **kwargs) -> None:
    with pytest.raises(AmmError) as exc:
        fn(*args, **kwargs)
    assert exc.value.code is code


# --- initialize --------------------------------------------------------------


def test_initialize_creates_active_pool() -> None:
    t = _init()
    pool = t.record
    assert pool.state is PoolStatus.INITIALIZED
    assert pool.authority == OWNER
    assert pool.tax_config_ref == PLATFORM.config_id
    assert (pool.created_at, pool.updated_at) == (100, 100)
    assert t.value == 1_000_000
    assert t.requests == (
        TokenTransfer(asset=A, source=OWNER, destination=ESCROW, amount=1_000_000, signer=OWNER),
        TokenTransfer(asset=B, source=OWNER, destination=ESCROW, amount=1_000_000, signer=OWNER),
        MintShares(asset=SHARE, destination=OWNER, amount=1_000_000, signer=ESCROW),
    )
    assert t.event.kind is EventKind.INITIALIZE
    assert set(t.event.fields) == {
        "authority",
        "pool",
        "asset_a",
        "asset_b",
        "share_token",
        "a",
        "b",
        "shares",
        "referral_fee_rate",
        "lp_fee_rate",
        "tax_config",
        "created_at",
    }


def test_initialize_rejects_identical_assets() -> None:
    _expect(ErrorCode.INVALID_PARAMS, _init, asset_b=A.upper().replace("0X", "0x"))


def test_initialize_rejects_zero_deposit_and_bad_rates() -> None:
    _expect(ErrorCode.INVALID_PARAMS, _init, a=0)
    _expect(ErrorCode.INVALID_PARAMS, _init, lp_fee_rate=1_000_000_001)
    _expect(ErrorCode.INVALID_PARAMS, _init, referral_fee_rate=1_000_000_001)


def test_custom_fee_bound_is_exclusive() -> None:
    assert not requires_custom_fee(50_000_000)
    assert requires_custom_fee(50_000_001)
    t = _init(lp_fee_rate=50_000_000)
    assert all(r.asset != NATIVE_ASSET for r in t.requests if isinstance(r, TokenTransfer))


def test_high_fee_requires_side_payment_first() -> None:
    _expect(ErrorCode.INVALID_PARAMS, _init, lp_fee_rate=60_000_000, custom_fee_amount=0)
    t = _init(lp_fee_rate=60_000_000, custom_fee_amount=5)
    assert t.requests[0] == TokenTransfer(
        asset=NATIVE_ASSET, source=OWNER, destination=FEE_RECEIVER, amount=5, signer=OWNER
    )
    assert len(t.requests) == 4


def test_minimum_side_payment_is_configurable() -> None:
    _expect(ErrorCode.INVALID_PARAMS, _init, lp_fee_rate=60_000_000, custom_fee_amount=9, min_custom_fee_amount=10)
    assert _init(lp_fee_rate=60_000_000, custom_fee_amount=10, min_custom_fee_amount=10).value == 1_000_000
    # Custom bound moves the threshold.
    assert len(_init(lp_fee_rate=60_000_000, customed_fee_bound=100_000_000).requests) == 3


# --- pause / resume ---------------------------------------------------------


def test_pause_resume_cycle() -> None:
    paused = pause(_active_pool(), caller=OWNER, now=200).record
    assert paused.is_paused()
    assert paused.updated_at == 200
    resumed = resume(paused, caller=OWNER, now=300).record
    assert resumed.is_active()


def test_pause_and_resume_require_matching_state() -> None:
    pool = _active_pool()
    _expect(ErrorCode.INVALID_STATE, resume, pool, caller=OWNER, now=1)
    paused = pause(pool, caller=OWNER, now=1).record
    _expect(ErrorCode.INVALID_STATE, pause, paused, caller=OWNER, now=2)


def test_lifecycle_is_authority_only_and_auth_wins() -> None:
    pool = _active_pool()
    _expect(ErrorCode.UNAUTHORIZED, pause, pool, caller=STRANGER, now=1)
    _expect(ErrorCode.UNAUTHORIZED, resume, pool, caller=STRANGER, now=1)
    _expect(ErrorCode.UNAUTHORIZED, update_fee, pool, caller=STRANGER, lp_fee_rate=2**40, now=1)
    _expect(ErrorCode.UNAUTHORIZED, update_referral_fee, pool, caller=ADMIN, referral_fee_rate=1, now=1)
    _expect(ErrorCode.UNAUTHORIZED, transfer_ownership, pool, caller=STRANGER, new_owner=STRANGER, now=1)


# --- parameter updates -------------------------------------------------------


def test_update_fee_bounds() -> None:
    pool = _active_pool()
    t = update_fee(pool, caller=OWNER, lp_fee_rate=1_000_000_000, now=5)
    assert t.record.lp_fee_rate == 1_000_000_000
    assert t.event.fields["old_lp_fee_rate"] == 3_000_000
    _expect(ErrorCode.INVALID_PARAMS, update_fee, pool, caller=OWNER, lp_fee_rate=1_000_000_001, now=5)


def test_update_referral_fee() -> None:
    t = update_referral_fee(_active_pool(), caller=OWNER, referral_fee_rate=42, now=5)
    assert t.record.referral_fee_rate == 42
    assert t.event.kind is EventKind.UPDATE_REFERRAL_FEE


def test_transfer_ownership_moves_authority() -> None:
    pool = transfer_ownership(_active_pool(), caller=OWNER, new_owner=STRANGER, now=5).record
    assert pool.authority == STRANGER
    _expect(ErrorCode.UNAUTHORIZED, pause, pool, caller=OWNER, now=6)
    assert pause(pool, caller=STRANGER, now=6).record.is_paused()


# --- platform config ---------------------------------------------------------


def test_platform_config_is_admin_only() -> None:
    _expect(
        ErrorCode.UNAUTHORIZED,
        create_platform_config,
        config_id=PLATFORM.config_id,
        caller=OWNER,
        protocol_admin=ADMIN,
        tax_rate=2_000_000_000,
        now=1,
    )
    t = create_platform_config(config_id=PLATFORM.config_id, caller=ADMIN, protocol_admin=ADMIN, tax_rate=1_000, now=1)
    cfg = t.record
    assert cfg.tax_rate == 1_000
    _expect(ErrorCode.UNAUTHORIZED, update_tax, cfg, caller=OWNER, protocol_admin=ADMIN, tax_rate=5, now=2)
    _expect(ErrorCode.INVALID_PARAMS, update_tax, cfg, caller=ADMIN, protocol_admin=ADMIN, tax_rate=1_000_000_001, now=2)


def test_update_platform_config_and_update_tax_emit_distinct_events() -> None:
    cfg = PLATFORM
    a = update_platform_config(cfg, caller=ADMIN, protocol_admin=ADMIN, tax_rate=7, now=3)
    b = update_tax(cfg, caller=ADMIN, protocol_admin=ADMIN, tax_rate=7, now=3)
    assert a.record == b.record
    assert a.record.updated_at == 3
    assert a.event.kind is EventKind.UPDATE_PLATFORM_CONFIG
    assert b.event.kind is EventKind.UPDATE_TAX


def test_create_referrer_records_caller_as_referee() -> None:
    t = create_referrer(caller=STRANGER, referrer=OWNER, pool=POOL_ID)
    assert t.record.referee == STRANGER
    assert t.record.owner == OWNER
    assert t.event.kind is EventKind.CREATE_REFERRER
