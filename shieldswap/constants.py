"""Protocol-wide constants."""

from .kernels.python.fixed_point import PRECISION, U64_MAX, U128_MAX

# Upper bound for any rate numerator (lp fee, referral fee, tax).
MAXIMUM_FEE = 1_000_000_000

# Default lp-fee threshold above which `initialize` charges a one-time side payment (5%).
CUSTOMED_FEE_BOUND = 50_000_000

SHARE_TOKEN_DECIMALS = 6

# Domain tags for identities derived from a pool id.
ESCROW_TAG = "escrow"
SHARE_MINT_TAG = "share_mint"

__all__ = [
    "PRECISION",
    "U64_MAX",
    "U128_MAX",
    "MAXIMUM_FEE",
    "CUSTOMED_FEE_BOUND",
    "SHARE_TOKEN_DECIMALS",
    "ESCROW_TAG",
    "SHARE_MINT_TAG",
]
