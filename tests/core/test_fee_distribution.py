# [TESTER] v1

from __future__ import annotations

import importlib.util

import pytest

from shieldswap.core.effects import EventKind, TokenTransfer
from shieldswap.core.fees import distribute_lp_fee
from shieldswap.errors import AmmError, ErrorCode
from shieldswap.state.pools import Pool, PoolStatus

A = "0x" + "aa" * 32
B = "0x" + "bb" * 32
OWNER = "0x" + "01" * 32
ADMIN = "0x" + "ad" * 32
ESCROW = "0x" + "e5" * 32
R1 = "0x" + "c1" * 32
R2 = "0x" + "c2" * 32


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
        accrued_fee_a=30,
        accrued_fee_b=7,
    )
    base.update(overrides)
    return Pool(**base)


def _distribute(pool: Pool, caller: str = OWNER, requested_a: int = 0, requested_b: int = 0):
    return distribute_lp_fee(
        pool,
        caller=caller,
        protocol_admin=ADMIN,
        escrow=ESCROW,
        requested_a=requested_a,
        requested_b=requested_b,
        recipient_a=R1,
        recipient_b=R2,
        now=9,
    )


def test_partial_distribution() -> None:
    t = _distribute(_pool(), requested_a=10, requested_b=7)
    assert t.value == (10, 7)
    assert (t.record.accrued_fee_a, t.record.accrued_fee_b) == (20, 0)
    assert t.requests == (
        TokenTransfer(asset=A, source=ESCROW, destination=R1, amount=10, signer=ESCROW),
        TokenTransfer(asset=B, source=ESCROW, destination=R2, amount=7, signer=ESCROW),
    )
    assert t.event.kind is EventKind.DISTRIBUTE_LP_FEE
    assert t.event.fields["amount_a"] == 10


def test_over_request_is_clamped() -> None:
    t = _distribute(_pool(), requested_a=2**64 - 1, requested_b=1_000)
    assert t.value == (30, 7)
    assert (t.record.accrued_fee_a, t.record.accrued_fee_b) == (0, 0)


def test_admin_may_distribute() -> None:
    assert _distribute(_pool(), caller=ADMIN, requested_a=1).value == (1, 0)


def test_stranger_is_unauthorized() -> None:
    with pytest.raises(AmmError) as exc:
        _distribute(_pool(), caller="0x" + "66" * 32, requested_a=1)
    assert exc.value.code is ErrorCode.UNAUTHORIZED


def test_works_while_paused() -> None:
    assert _distribute(_pool(state=PoolStatus.PAUSED), requested_a=5).value == (5, 0)


_HAS_HYPOTHESIS = importlib.util.find_spec("hypothesis") is not None

if _HAS_HYPOTHESIS:
    import hypothesis.strategies as st
    from hypothesis import given, settings

    _u64 = st.integers(min_value=0, max_value=2**64 - 1)

    @settings(max_examples=200, deadline=None)
    @given(acc_a=_u64, acc_b=_u64, req_a=_u64, req_b=_u64)
    def test_distribution_conserves_fees(acc_a: int, acc_b: int, req_a: int, req_b: int) -> None:
        pool = _pool(accrued_fee_a=acc_a, accrued_fee_b=acc_b)
        t = _distribute(pool, requested_a=req_a, requested_b=req_b)
        amount_a, amount_b = t.value
        assert amount_a == min(req_a, acc_a)
        assert amount_b == min(req_b, acc_b)
        assert t.record.accrued_fee_a + amount_a == acc_a
        assert t.record.accrued_fee_b + amount_b == acc_b
