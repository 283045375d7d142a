"""
Constant Product Market Maker (CPMM) swap operation.

Algorithm Design:
- Type: Fixed-Point Integer Arithmetic / Deterministic Rounding
- Fee and tax are floor(bid * rate / PRECISION), charged on the gross bid
- The LP fee is withheld from the pricing reserves and accrued on the pool;
  effective reserves = custody balance - accrued fee
- ask = ask_reserve - floor(bid_reserve * ask_reserve / (bid_reserve + net_bid))
- Invariant: fee and tax floor (never overcharge); the post-swap product
  next_bid_reserve * next_ask_reserve is within one ask unit of k
"""

from dataclasses import replace
from typing import Tuple

from ..errors import ErrorCode, fail
from ..kernels.python.cpmm_swap import SwapQuote, swap_exact_in
from ..kernels.python.fixed_point import checked_add
from ..state.balances import Amount, AssetId, PubKey
from ..state.canonical import canonical_id
from ..state.platform import PlatformConfig
from ..state.pools import Pool, PoolStatus
from .effects import AuditEvent, EventKind, TokenTransfer, Transition
from .guards import require_amount, require_state


def quote_swap(
    pool: Pool,
    platform: PlatformConfig,
    *,
    bid_asset: AssetId,
    ask_asset: AssetId,
    bid_amount: Amount,
    custody_a: Amount,
    custody_b: Amount,
) -> Tuple[bool, SwapQuote]:
    """
    Price a swap without side effects.

    Returns:
        Tuple of (a_to_b, SwapQuote)

    Raises:
        AmmError: InvalidState, InvalidParams, UnmatchPool or Overflow
    """
    require_state(pool, PoolStatus.INITIALIZED)
    require_amount("bid_amount", bid_amount, positive=True)

    a_to_b = pool.detect_direction(canonical_id(bid_asset, name="bid_asset"), canonical_id(ask_asset, name="ask_asset"))
    if a_to_b is None:
        fail(ErrorCode.UNMATCH_POOL, f"({bid_asset}, {ask_asset}) is not a pair of pool {pool.pool_id}")

    reserve_a, reserve_b = pool.effective_reserves(custody_a, custody_b)
    bid_reserve, ask_reserve = (reserve_a, reserve_b) if a_to_b else (reserve_b, reserve_a)

    quote = swap_exact_in(
        bid_reserve=bid_reserve,
        ask_reserve=ask_reserve,
        bid_amount=bid_amount,
        lp_fee_rate=pool.lp_fee_rate,
        tax_rate=platform.tax_rate,
    )
    return a_to_b, quote


def swap(
    pool: Pool,
    platform: PlatformConfig,
    *,
    caller: PubKey,
    escrow: PubKey,
    tax_recipient: PubKey,
    bid_asset: AssetId,
    ask_asset: AssetId,
    bid_amount: Amount,
    limit: Amount,
    custody_a: Amount,
    custody_b: Amount,
    now: int,
) -> Transition:
    """
    Exact-in swap with a minimum acceptable ask amount (`limit`).

    Custody requests, in order:
        caller -> bid custody (bid_amount - tax)
        ask custody -> caller (ask_amount), signed by the custody authority
        caller -> tax recipient (tax)

    The LP fee is accrued on the bid side.
    """
    a_to_b, quote = quote_swap(
        pool,
        platform,
        bid_asset=bid_asset,
        ask_asset=ask_asset,
        bid_amount=bid_amount,
        custody_a=custody_a,
        custody_b=custody_b,
    )

    require_amount("limit", limit)
    if quote.ask_amount < limit:
        fail(ErrorCode.LARGE_SLIPPAGE, f"ask_amount {quote.ask_amount} < limit {limit}")

    bid_type, ask_type = (pool.asset_a_type, pool.asset_b_type) if a_to_b else (pool.asset_b_type, pool.asset_a_type)
    requests = (
        TokenTransfer(asset=bid_type, source=caller, destination=escrow, amount=bid_amount - quote.tax, signer=caller),
        TokenTransfer(asset=ask_type, source=escrow, destination=caller, amount=quote.ask_amount, signer=escrow),
        TokenTransfer(asset=bid_type, source=caller, destination=tax_recipient, amount=quote.tax, signer=caller),
    )

    if a_to_b:
        next_pool = replace(pool, accrued_fee_a=checked_add(pool.accrued_fee_a, quote.fee), updated_at=now)
    else:
        next_pool = replace(pool, accrued_fee_b=checked_add(pool.accrued_fee_b, quote.fee), updated_at=now)

    event = AuditEvent(
        EventKind.SWAP,
        {
            "authority": caller,
            "pool": pool.pool_id,
            "bid_asset": bid_type,
            "ask_asset": ask_type,
            "bid_amount": bid_amount,
            "ask_amount": quote.ask_amount,
        },
    )
    return Transition(record=next_pool, event=event, requests=requests, value=quote.ask_amount)
