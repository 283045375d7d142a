"""
Pool state for constant-product pools.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from enum import Enum, unique
from typing import Dict, FrozenSet, Optional, Tuple

from ..constants import MAXIMUM_FEE
from ..kernels.python.fixed_point import apply_rate, checked_sub, to_u128, to_u64
from .balances import AssetId, Amount, PubKey
from .canonical import canonical_id, domain_sep_bytes, id_to_bytes


@unique
class PoolStatus(Enum):
    """Pool lifecycle state. The integer value is the persisted tag."""
    UNINITIALIZED = 0
    INITIALIZED = 1
    PAUSED = 2
    # Reserved: no operation transitions into CANCELED.
    CANCELED = 3


# Allowed (from, to) lifecycle edges.
TRANSITIONS: Dict[PoolStatus, FrozenSet[PoolStatus]] = {
    PoolStatus.UNINITIALIZED: frozenset({PoolStatus.INITIALIZED}),
    PoolStatus.INITIALIZED: frozenset({PoolStatus.PAUSED}),
    PoolStatus.PAUSED: frozenset({PoolStatus.INITIALIZED}),
    PoolStatus.CANCELED: frozenset(),
}


def can_transition(current: PoolStatus, target: PoolStatus) -> bool:
    return target in TRANSITIONS[current]


def compute_pool_id(creator: PubKey, asset_a: AssetId, asset_b: AssetId, salt: int = 0) -> str:
    """
    Deterministically compute a pool_id.

        pool_id = H(domain("pool_id") || creator || asset_a || asset_b || salt_u64_le)
    """
    if not isinstance(salt, int) or isinstance(salt, bool) or salt < 0:
        raise ValueError("salt must be a non-negative int")
    data = (
        domain_sep_bytes("pool_id")
        + id_to_bytes(creator, name="creator")
        + id_to_bytes(asset_a, name="asset_a")
        + id_to_bytes(asset_b, name="asset_b")
        + to_u64(salt).to_bytes(8, "little")
    )
    return "0x" + hashlib.sha256(data).hexdigest()


def _require_rate(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if not (0 <= value <= MAXIMUM_FEE):
        raise ValueError(f"{name} must be in [0, {MAXIMUM_FEE}]: {value}")


@dataclass(frozen=True)
class Pool:
    """
    Per-market pool record.

    Attributes:
        pool_id: 32-byte pool identifier
        authority: Identity allowed to administer the pool
        share_token_type: Share-token type minted by this pool
        asset_a_type, asset_b_type: The two traded asset types
        referral_fee_rate: Stored and bounded, not used by any computation
        lp_fee_rate: LP fee numerator over PRECISION
        tax_config_ref: PlatformConfig the pool is taxed by
        state: Lifecycle state
        accrued_fee_a, accrued_fee_b: LP fees held out of the pricing reserves
        created_at, updated_at: Ledger timestamps
    """
    pool_id: str
    authority: PubKey
    share_token_type: AssetId
    asset_a_type: AssetId
    asset_b_type: AssetId
    referral_fee_rate: int
    lp_fee_rate: int
    tax_config_ref: str
    state: PoolStatus = PoolStatus.UNINITIALIZED
    accrued_fee_a: Amount = 0
    accrued_fee_b: Amount = 0
    created_at: int = 0
    updated_at: int = 0

    def __post_init__(self) -> None:
        for name in ("pool_id", "authority", "share_token_type", "asset_a_type", "asset_b_type", "tax_config_ref"):
            object.__setattr__(self, name, canonical_id(getattr(self, name), name=name))
        _require_rate("referral_fee_rate", self.referral_fee_rate)
        _require_rate("lp_fee_rate", self.lp_fee_rate)
        if not isinstance(self.state, PoolStatus):
            raise TypeError("state must be a PoolStatus")
        for name in ("accrued_fee_a", "accrued_fee_b"):
            v = getattr(self, name)
            if not isinstance(v, int) or isinstance(v, bool):
                raise TypeError(f"{name} must be an int")
            to_u64(v)

    def is_active(self) -> bool:
        return self.state == PoolStatus.INITIALIZED

    def is_paused(self) -> bool:
        return self.state == PoolStatus.PAUSED

    def detect_direction(self, bid_asset: AssetId, ask_asset: AssetId) -> Optional[bool]:
        """
        True for A -> B, False for B -> A, None if the pair does not match this pool.
        """
        if bid_asset == self.asset_a_type and ask_asset == self.asset_b_type:
            return True
        if bid_asset == self.asset_b_type and ask_asset == self.asset_a_type:
            return False
        return None

    def matches(
        self,
        *,
        asset_a: Optional[AssetId] = None,
        asset_b: Optional[AssetId] = None,
        share_token: Optional[AssetId] = None,
    ) -> bool:
        for expected, actual in (
            (asset_a, self.asset_a_type),
            (asset_b, self.asset_b_type),
            (share_token, self.share_token_type),
        ):
            if expected is not None and canonical_id(expected) != actual:
                return False
        return True

    def calc_fee(self, amount: Amount) -> Amount:
        return apply_rate(amount, self.lp_fee_rate)

    def effective_reserves(self, custody_a: Amount, custody_b: Amount) -> Tuple[int, int]:
        """Custody balances minus accrued fees; Overflow if a fee exceeds its balance."""
        return (
            checked_sub(to_u128(custody_a), self.accrued_fee_a, bits=128),
            checked_sub(to_u128(custody_b), self.accrued_fee_b, bits=128),
        )

    def __repr__(self) -> str:
        return (
            f"Pool(pool_id={self.pool_id[:18]}..., state={self.state.name}, "
            f"lp_fee_rate={self.lp_fee_rate}, accrued=({self.accrued_fee_a}, {self.accrued_fee_b}))"
        )
