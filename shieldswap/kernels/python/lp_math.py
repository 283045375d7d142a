"""
Share-token issuance and redemption kernel.

Semantics:
- issuance:   shares = floor(sqrt(a * b)) with a u128 product, narrowed to u64
- redemption: amount = floor(shares * reserve / supply) with u128 intermediates

These are deterministic, integer-only, and round down (in the pool's favor).
"""

from __future__ import annotations

from dataclasses import dataclass

from ...errors import ErrorCode, fail
from .fixed_point import checked_div, checked_mul, isqrt, to_u128, to_u64


@dataclass(frozen=True)
class RedeemResult:
    amount_a: int
    amount_b: int
    reserve_a: int
    reserve_b: int
    supply: int


def calc_liquidity(a: int, b: int) -> int:
    """``floor(sqrt(a * b))``; raises Overflow if the product or result leaves range."""
    product = checked_mul(to_u128(to_u64(a)), to_u128(to_u64(b)), bits=128)
    return to_u64(isqrt(product))


def initial_issue(a: int, b: int) -> int:
    if not isinstance(a, int) or isinstance(a, bool) or not isinstance(b, int) or isinstance(b, bool):
        raise TypeError("deposit amounts must be ints")
    if a <= 0 or b <= 0:
        fail(ErrorCode.INVALID_PARAMS, f"deposit amounts must be positive: ({a}, {b})")
    return calc_liquidity(a, b)


def hydrate_liquidity(shares: int, reserve: int, supply: int) -> int:
    """``floor(shares * reserve / supply)`` narrowed to u64."""
    product = checked_mul(to_u128(to_u64(shares)), to_u128(reserve), bits=128)
    return to_u64(checked_div(product, to_u128(to_u64(supply))))


def redeem(shares: int, reserve_a: int, reserve_b: int, supply: int) -> RedeemResult:
    """Proportional redemption of ``shares`` against effective reserves."""
    if not isinstance(shares, int) or isinstance(shares, bool):
        raise TypeError("shares must be an int")
    if shares <= 0:
        fail(ErrorCode.INVALID_PARAMS, f"shares must be positive: {shares}")
    return RedeemResult(
        amount_a=hydrate_liquidity(shares, reserve_a, supply),
        amount_b=hydrate_liquidity(shares, reserve_b, supply),
        reserve_a=reserve_a,
        reserve_b=reserve_b,
        supply=supply,
    )
