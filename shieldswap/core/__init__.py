"""
Core AMM operations (pure: each returns a Transition, nothing is mutated)
"""

from .admin import create_platform_config, update_platform_config, update_tax
from .cpmm import quote_swap, swap
from .effects import (
    AuditEvent,
    BurnShares,
    CustodyRequest,
    EventKind,
    MintShares,
    TokenTransfer,
    Transition,
)
from .fees import distribute_lp_fee
from .lifecycle import (
    initialize,
    pause,
    resume,
    transfer_ownership,
    update_fee,
    update_referral_fee,
)
from .liquidity import add_liquidity, remove_liquidity
from .referral import create_referrer

__all__ = [
    "create_platform_config",
    "update_platform_config",
    "update_tax",
    "quote_swap",
    "swap",
    "AuditEvent",
    "BurnShares",
    "CustodyRequest",
    "EventKind",
    "MintShares",
    "TokenTransfer",
    "Transition",
    "distribute_lp_fee",
    "initialize",
    "pause",
    "resume",
    "transfer_ownership",
    "update_fee",
    "update_referral_fee",
    "add_liquidity",
    "remove_liquidity",
    "create_referrer",
]
