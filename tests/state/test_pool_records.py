# [TESTER] v1

from __future__ import annotations

from dataclasses import replace

import pytest

from shieldswap.errors import AmmError, ErrorCode
from shieldswap.state.platform import PlatformConfig
from shieldswap.state.pools import TRANSITIONS, Pool, PoolStatus, can_transition, compute_pool_id
from shieldswap.state.referrers import Referrer, ReferrerTable

A = "0x" + "aa" * 32
B = "0x" + "bb" * 32
OWNER = "0x" + "01" * 32


def _pool(**overrides) -> Pool:
    base = dict(
        pool_id="0x" + "99" * 32,
        authority=OWNER,
        share_token_type="0x" + "55" * 32,
        asset_a_type=A,
        asset_b_type=B,
        referral_fee_rate=0,
        lp_fee_rate=3_000_000,
        tax_config_ref="0x" + "77" * 32,
        state=PoolStatus.INITIALIZED,
    )
    base.update(overrides)
    return Pool(**base)


def test_transition_table_edges() -> None:
    assert can_transition(PoolStatus.UNINITIALIZED, PoolStatus.INITIALIZED)
    assert can_transition(PoolStatus.INITIALIZED, PoolStatus.PAUSED)
    assert can_transition(PoolStatus.PAUSED, PoolStatus.INITIALIZED)
    assert not can_transition(PoolStatus.PAUSED, PoolStatus.PAUSED)
    assert not can_transition(PoolStatus.INITIALIZED, PoolStatus.INITIALIZED)
    # Canceled is reserved: nothing enters it, nothing leaves it.
    assert all(PoolStatus.CANCELED not in targets for targets in TRANSITIONS.values())
    assert TRANSITIONS[PoolStatus.CANCELED] == frozenset()


def test_pool_canonicalizes_identities() -> None:
    pool = _pool(asset_a_type="0X" + "AA" * 32)
    assert pool.asset_a_type == A
    with pytest.raises(ValueError):
        _pool(authority="0x1234")


def test_pool_rejects_out_of_range_rates() -> None:
    with pytest.raises(ValueError):
        _pool(lp_fee_rate=1_000_000_001)
    with pytest.raises(TypeError):
        _pool(referral_fee_rate=True)


def test_detect_direction() -> None:
    pool = _pool()
    assert pool.detect_direction(A, B) is True
    assert pool.detect_direction(B, A) is False
    assert pool.detect_direction(A, A) is None
    assert pool.detect_direction(A, "0x" + "cc" * 32) is None


def test_matches_optional_expectations() -> None:
    pool = _pool()
    assert pool.matches()
    assert pool.matches(asset_a=A, asset_b=B, share_token=pool.share_token_type)
    assert not pool.matches(asset_a=B)


def test_effective_reserves_subtract_accrued_fees() -> None:
    pool = _pool(accrued_fee_a=30, accrued_fee_b=5)
    assert pool.effective_reserves(1_010_000, 100) == (1_009_970, 95)
    with pytest.raises(AmmError) as exc:
        pool.effective_reserves(29, 100)
    assert exc.value.code is ErrorCode.OVERFLOW


def test_calc_fee_and_tax() -> None:
    assert _pool().calc_fee(10_000) == 30
    cfg = PlatformConfig(config_id="0x" + "77" * 32, tax_rate=1_000_000)
    assert cfg.calc_tax(10_000) == 10
    with pytest.raises(ValueError):
        PlatformConfig(config_id="0x" + "77" * 32, tax_rate=-1)


def test_compute_pool_id_is_deterministic_and_salted() -> None:
    p1 = compute_pool_id(OWNER, A, B)
    assert p1 == compute_pool_id(OWNER, A.upper().replace("0X", "0x"), B)
    assert p1 != compute_pool_id(OWNER, B, A)
    assert p1 != compute_pool_id(OWNER, A, B, salt=1)
    assert p1.startswith("0x") and len(p1) == 66
    with pytest.raises(ValueError):
        compute_pool_id(OWNER, A, B, salt=-1)


def test_replace_revalidates() -> None:
    pool = _pool()
    with pytest.raises(ValueError):
        replace(pool, lp_fee_rate=2_000_000_000)


def test_referrer_table_is_keyed_by_referee() -> None:
    table = ReferrerTable()
    rec = Referrer(owner=OWNER, referee=A)
    table.put(rec)
    assert table.contains(A)
    assert table.get(A.upper().replace("0X", "0x")) == rec
    assert table.get(B) is None
    snapshot = table.copy()
    table.put(Referrer(owner=OWNER, referee=B))
    assert len(snapshot) == 1
    assert len(table) == 2
