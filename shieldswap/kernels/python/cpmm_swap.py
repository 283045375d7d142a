"""
CPMM swap kernel (fee-withheld semantics).

- LP fee and protocol tax are charged on the *gross* bid amount using floor
  rounding over PRECISION.
- Pricing uses ``net_bid = bid - fee - tax``; the fee is withheld from the
  pricing reserves (accrued separately), the tax leaves the pool entirely.
- ``ask = ask_reserve - floor(k / (bid_reserve + net_bid))``. Flooring the
  next ask reserve can leave the post-swap product up to one ask unit below
  ``k``; the withheld fee is what keeps the pool whole.

Reserves passed in are *effective* reserves (custody balance minus accrued
fee) as u128 values; amounts are u64.
"""

from __future__ import annotations

from dataclasses import dataclass

from ...errors import ErrorCode, fail
from .fixed_point import (
    MAX_RATE,
    apply_rate,
    checked_add,
    checked_div,
    checked_mul,
    checked_sub,
    to_u128,
    to_u64,
)


@dataclass(frozen=True)
class SwapQuote:
    bid_amount: int
    fee: int
    tax: int
    net_bid: int
    bid_reserve: int
    ask_reserve: int
    k: int
    next_bid_reserve: int
    next_ask_reserve: int
    ask_amount: int


def compute_fee(*, bid_amount: int, fee_rate: int) -> int:
    """``floor(bid_amount * fee_rate / PRECISION)``."""
    if not (0 <= fee_rate <= MAX_RATE):
        fail(ErrorCode.OVERFLOW, f"rate out of range: {fee_rate}")
    return apply_rate(bid_amount, fee_rate)


def swap_exact_in(
    *,
    bid_reserve: int,
    ask_reserve: int,
    bid_amount: int,
    lp_fee_rate: int,
    tax_rate: int,
) -> SwapQuote:
    """Exact-in swap quote; raises ``AmmError`` on invalid input or overflow."""
    for name, v in (
        ("bid_reserve", bid_reserve),
        ("ask_reserve", ask_reserve),
        ("bid_amount", bid_amount),
        ("lp_fee_rate", lp_fee_rate),
        ("tax_rate", tax_rate),
    ):
        if not isinstance(v, int) or isinstance(v, bool):
            raise TypeError(f"{name} must be an int")

    if bid_amount <= 0:
        fail(ErrorCode.INVALID_PARAMS, f"bid_amount must be positive: {bid_amount}")
    to_u64(bid_amount)

    fee = compute_fee(bid_amount=bid_amount, fee_rate=lp_fee_rate)
    tax = compute_fee(bid_amount=bid_amount, fee_rate=tax_rate)
    net_bid = checked_sub(checked_sub(bid_amount, fee), tax)

    bid_reserve = to_u128(bid_reserve)
    ask_reserve = to_u128(ask_reserve)
    k = checked_mul(bid_reserve, ask_reserve, bits=128)

    next_bid_reserve = checked_add(bid_reserve, net_bid, bits=128)
    next_ask_reserve = checked_div(k, next_bid_reserve)
    ask_amount = to_u64(checked_sub(ask_reserve, next_ask_reserve, bits=128))

    return SwapQuote(
        bid_amount=bid_amount,
        fee=fee,
        tax=tax,
        net_bid=net_bid,
        bid_reserve=bid_reserve,
        ask_reserve=ask_reserve,
        k=k,
        next_bid_reserve=next_bid_reserve,
        next_ask_reserve=next_ask_reserve,
        ask_amount=ask_amount,
    )
