"""
LP fee distribution.

Accrued fees sit in the pool's custody accounts but are excluded from the
pricing reserves. Distribution pays them out and decrements the accrual;
requests above the accrued amount are clamped, never rejected.
"""

from __future__ import annotations

from dataclasses import replace

from ..kernels.python.fixed_point import checked_sub
from ..state.balances import Amount, PubKey
from ..state.pools import Pool
from .effects import AuditEvent, EventKind, TokenTransfer, Transition
from .guards import require_amount, require_authority_or_admin


def clamp_to_accrued(requested: Amount, accrued: Amount) -> Amount:
    return min(requested, accrued)


def distribute_lp_fee(
    pool: Pool,
    *,
    caller: PubKey,
    protocol_admin: PubKey,
    escrow: PubKey,
    requested_a: Amount,
    requested_b: Amount,
    recipient_a: PubKey,
    recipient_b: PubKey,
    now: int,
) -> Transition:
    """
    Pay out up to `requested_a` / `requested_b` of accrued LP fees.

    Custody requests, in order:
        custody A -> recipient_a (amount_a), custody B -> recipient_b (amount_b)

    Returns a Transition whose value is (amount_a, amount_b).
    """
    require_authority_or_admin(pool, caller, protocol_admin)
    require_amount("requested_a", requested_a)
    require_amount("requested_b", requested_b)

    amount_a = clamp_to_accrued(requested_a, pool.accrued_fee_a)
    amount_b = clamp_to_accrued(requested_b, pool.accrued_fee_b)

    next_pool = replace(
        pool,
        accrued_fee_a=checked_sub(pool.accrued_fee_a, amount_a),
        accrued_fee_b=checked_sub(pool.accrued_fee_b, amount_b),
        updated_at=now,
    )
    requests = (
        TokenTransfer(asset=pool.asset_a_type, source=escrow, destination=recipient_a, amount=amount_a, signer=escrow),
        TokenTransfer(asset=pool.asset_b_type, source=escrow, destination=recipient_b, amount=amount_b, signer=escrow),
    )
    event = AuditEvent(
        EventKind.DISTRIBUTE_LP_FEE,
        {"authority": caller, "pool": pool.pool_id, "amount_a": amount_a, "amount_b": amount_b},
    )
    return Transition(record=next_pool, event=event, requests=requests, value=(amount_a, amount_b))
