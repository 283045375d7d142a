"""
Pool lifecycle: creation, pause/resume and authority-only parameter updates.

State machine (see ``state.pools.TRANSITIONS``):

    Uninitialized --initialize--> Initialized --pause--> Paused
                                       ^                    |
                                       +------resume--------+

Authorization is checked before any parameter validation.
"""

from __future__ import annotations

from dataclasses import replace

from ..constants import CUSTOMED_FEE_BOUND
from ..errors import ErrorCode, fail
from ..kernels.python.lp_math import initial_issue
from ..state.balances import NATIVE_ASSET, Amount, AssetId, PubKey
from ..state.canonical import canonical_id
from ..state.platform import PlatformConfig
from ..state.pools import Pool, PoolStatus, can_transition
from .effects import AuditEvent, EventKind, MintShares, TokenTransfer, Transition
from .guards import require_amount, require_authority, require_rate, require_state


def requires_custom_fee(lp_fee_rate: int, customed_fee_bound: int = CUSTOMED_FEE_BOUND) -> bool:
    return lp_fee_rate > customed_fee_bound


def initialize(
    *,
    pool_id: str,
    caller: PubKey,
    escrow: PubKey,
    share_token_type: AssetId,
    asset_a: AssetId,
    asset_b: AssetId,
    platform: PlatformConfig,
    a: Amount,
    b: Amount,
    referral_fee_rate: int,
    lp_fee_rate: int,
    custom_fee_amount: Amount,
    fee_receiver: PubKey,
    now: int,
    customed_fee_bound: int = CUSTOMED_FEE_BOUND,
    min_custom_fee_amount: Amount = 1,
) -> Transition:
    """
    Create a pool and seed it with the first deposit.

    Custody requests, in order:
        [caller -> fee_receiver (custom_fee_amount, native)]  if lp_fee_rate > bound
        caller -> custody A (a), caller -> custody B (b), mint shares -> caller

    Returns a Transition whose record is the new Pool and value is the share amount.
    """
    asset_a = canonical_id(asset_a, name="asset_a")
    asset_b = canonical_id(asset_b, name="asset_b")
    if asset_a == asset_b:
        fail(ErrorCode.INVALID_PARAMS, "pool assets must be distinct")
    require_amount("a", a, positive=True)
    require_amount("b", b, positive=True)
    require_rate("lp_fee_rate", lp_fee_rate)
    require_rate("referral_fee_rate", referral_fee_rate)

    requests = []
    if requires_custom_fee(lp_fee_rate, customed_fee_bound):
        require_amount("custom_fee_amount", custom_fee_amount)
        if custom_fee_amount < min_custom_fee_amount:
            fail(
                ErrorCode.INVALID_PARAMS,
                f"lp_fee_rate {lp_fee_rate} exceeds {customed_fee_bound}; "
                f"custom fee payment must be at least {min_custom_fee_amount}",
            )
        requests.append(
            TokenTransfer(
                asset=NATIVE_ASSET,
                source=caller,
                destination=fee_receiver,
                amount=custom_fee_amount,
                signer=caller,
            )
        )

    shares = initial_issue(a, b)
    pool = Pool(
        pool_id=pool_id,
        authority=caller,
        share_token_type=share_token_type,
        asset_a_type=asset_a,
        asset_b_type=asset_b,
        referral_fee_rate=referral_fee_rate,
        lp_fee_rate=lp_fee_rate,
        tax_config_ref=platform.config_id,
        state=PoolStatus.INITIALIZED,
        created_at=now,
        updated_at=now,
    )
    requests.extend(
        (
            TokenTransfer(asset=asset_a, source=caller, destination=escrow, amount=a, signer=caller),
            TokenTransfer(asset=asset_b, source=caller, destination=escrow, amount=b, signer=caller),
            MintShares(asset=pool.share_token_type, destination=caller, amount=shares, signer=escrow),
        )
    )
    event = AuditEvent(
        EventKind.INITIALIZE,
        {
            "authority": pool.authority,
            "pool": pool.pool_id,
            "asset_a": asset_a,
            "asset_b": asset_b,
            "share_token": pool.share_token_type,
            "a": a,
            "b": b,
            "shares": shares,
            "referral_fee_rate": referral_fee_rate,
            "lp_fee_rate": lp_fee_rate,
            "tax_config": platform.config_id,
            "created_at": now,
        },
    )
    return Transition(record=pool, event=event, requests=tuple(requests), value=shares)


def _move(pool: Pool, target: PoolStatus, now: int) -> Pool:
    if not can_transition(pool.state, target):
        fail(ErrorCode.INVALID_STATE, f"cannot move pool from {pool.state.name} to {target.name}")
    return replace(pool, state=target, updated_at=now)


def pause(pool: Pool, *, caller: PubKey, now: int) -> Transition:
    require_authority(pool, caller)
    require_state(pool, PoolStatus.INITIALIZED)
    next_pool = _move(pool, PoolStatus.PAUSED, now)
    event = AuditEvent(EventKind.PAUSE, {"authority": caller, "pool": pool.pool_id, "updated_at": now})
    return Transition(record=next_pool, event=event)


def resume(pool: Pool, *, caller: PubKey, now: int) -> Transition:
    require_authority(pool, caller)
    require_state(pool, PoolStatus.PAUSED)
    next_pool = _move(pool, PoolStatus.INITIALIZED, now)
    event = AuditEvent(EventKind.RESUME, {"authority": caller, "pool": pool.pool_id, "updated_at": now})
    return Transition(record=next_pool, event=event)


def update_fee(pool: Pool, *, caller: PubKey, lp_fee_rate: int, now: int) -> Transition:
    require_authority(pool, caller)
    require_rate("lp_fee_rate", lp_fee_rate)
    next_pool = replace(pool, lp_fee_rate=lp_fee_rate, updated_at=now)
    event = AuditEvent(
        EventKind.UPDATE_LP_FEE,
        {
            "authority": caller,
            "pool": pool.pool_id,
            "old_lp_fee_rate": pool.lp_fee_rate,
            "lp_fee_rate": lp_fee_rate,
            "updated_at": now,
        },
    )
    return Transition(record=next_pool, event=event)


def update_referral_fee(pool: Pool, *, caller: PubKey, referral_fee_rate: int, now: int) -> Transition:
    require_authority(pool, caller)
    require_rate("referral_fee_rate", referral_fee_rate)
    next_pool = replace(pool, referral_fee_rate=referral_fee_rate, updated_at=now)
    event = AuditEvent(
        EventKind.UPDATE_REFERRAL_FEE,
        {
            "authority": caller,
            "pool": pool.pool_id,
            "old_referral_fee_rate": pool.referral_fee_rate,
            "referral_fee_rate": referral_fee_rate,
            "updated_at": now,
        },
    )
    return Transition(record=next_pool, event=event)


def transfer_ownership(pool: Pool, *, caller: PubKey, new_owner: PubKey, now: int) -> Transition:
    require_authority(pool, caller)
    new_owner = canonical_id(new_owner, name="new_owner")
    next_pool = replace(pool, authority=new_owner, updated_at=now)
    event = AuditEvent(
        EventKind.TRANSFER_OWNERSHIP,
        {"authority": caller, "pool": pool.pool_id, "new_owner": new_owner, "updated_at": now},
    )
    return Transition(record=next_pool, event=event)
