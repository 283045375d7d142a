"""
Liquidity operations: share issuance on deposit, proportional redemption on withdrawal.
"""

from typing import Optional

from ..errors import ErrorCode, fail
from ..kernels.python.lp_math import initial_issue, redeem
from ..state.balances import Amount, AssetId, PubKey
from ..state.pools import Pool
from .effects import AuditEvent, BurnShares, EventKind, MintShares, TokenTransfer, Transition
from .guards import require_amount


def _require_match(
    pool: Pool,
    asset_a: Optional[AssetId],
    asset_b: Optional[AssetId],
    share_token: Optional[AssetId],
) -> None:
    if not pool.matches(asset_a=asset_a, asset_b=asset_b, share_token=share_token):
        fail(ErrorCode.UNMATCH_POOL, f"token types do not match pool {pool.pool_id}")


def add_liquidity(
    pool: Pool,
    *,
    caller: PubKey,
    escrow: PubKey,
    a: Amount,
    b: Amount,
    asset_a: Optional[AssetId] = None,
    asset_b: Optional[AssetId] = None,
    share_token: Optional[AssetId] = None,
) -> Transition:
    """
    Deposit `a` of asset A and `b` of asset B and mint shares.

    Shares are issued with the same formula as the first deposit:
        shares = floor(sqrt(a * b))
    regardless of existing supply or reserves.

    Custody requests, in order:
        caller -> custody A (a), caller -> custody B (b), mint shares -> caller
    """
    _require_match(pool, asset_a, asset_b, share_token)
    require_amount("a", a, positive=True)
    require_amount("b", b, positive=True)

    shares = initial_issue(a, b)

    requests = (
        TokenTransfer(asset=pool.asset_a_type, source=caller, destination=escrow, amount=a, signer=caller),
        TokenTransfer(asset=pool.asset_b_type, source=caller, destination=escrow, amount=b, signer=caller),
        MintShares(asset=pool.share_token_type, destination=caller, amount=shares, signer=escrow),
    )
    event = AuditEvent(
        EventKind.ADD_LIQUIDITY,
        {"authority": caller, "pool": pool.pool_id, "a": a, "b": b, "shares": shares},
    )
    return Transition(record=pool, event=event, requests=requests, value=shares)


def remove_liquidity(
    pool: Pool,
    *,
    caller: PubKey,
    escrow: PubKey,
    shares: Amount,
    custody_a: Amount,
    custody_b: Amount,
    supply: Amount,
    asset_a: Optional[AssetId] = None,
    asset_b: Optional[AssetId] = None,
    share_token: Optional[AssetId] = None,
) -> Transition:
    """
    Burn `shares` and return the proportional slice of the effective reserves.

        a = floor(shares * (custody_a - accrued_fee_a) / supply)
        b = floor(shares * (custody_b - accrued_fee_b) / supply)

    `supply` is the outstanding share total before the burn.

    Custody requests, in order:
        burn shares from caller, custody A -> caller (a), custody B -> caller (b)
    """
    _require_match(pool, asset_a, asset_b, share_token)
    require_amount("shares", shares, positive=True)

    reserve_a, reserve_b = pool.effective_reserves(custody_a, custody_b)
    res = redeem(shares, reserve_a, reserve_b, supply)

    requests = (
        BurnShares(asset=pool.share_token_type, owner=caller, amount=shares, signer=caller),
        TokenTransfer(asset=pool.asset_a_type, source=escrow, destination=caller, amount=res.amount_a, signer=escrow),
        TokenTransfer(asset=pool.asset_b_type, source=escrow, destination=caller, amount=res.amount_b, signer=escrow),
    )
    event = AuditEvent(
        EventKind.REMOVE_LIQUIDITY,
        {"authority": caller, "pool": pool.pool_id, "a": res.amount_a, "b": res.amount_b, "shares": shares},
    )
    return Transition(record=pool, event=event, requests=requests, value=(res.amount_a, res.amount_b))
