"""Exception types for the shieldswap AMM engine.

Every engine failure is an ``AmmError`` carrying one ``ErrorCode``. Failures
abort the whole operation; the ledger rolls back whatever was staged.
"""

from __future__ import annotations

from enum import Enum, unique
from typing import NoReturn, Optional


@unique
class ErrorCode(Enum):
    OVERFLOW = "Overflow"
    UNAUTHORIZED = "Unauthorized"
    INVALID_PARAMS = "InvalidParams"
    INVALID_STATE = "InvalidState"
    UNMATCH_POOL = "UnmatchPool"
    # Reserved: declared for wire compatibility, never raised.
    SWAP_FAILED = "SwapFailed"
    LARGE_SLIPPAGE = "LargeSlippage"
    INVALID_PLATFORM_CONFIG = "InvalidPlatformConfig"
    INVALID_REFERER = "InvalidReferer"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES = {
    ErrorCode.OVERFLOW: "Operation overflowed",
    ErrorCode.UNAUTHORIZED: "Not have permission",
    ErrorCode.INVALID_PARAMS: "Invalid params",
    ErrorCode.INVALID_STATE: "Invalid state",
    ErrorCode.UNMATCH_POOL: "Unmatch pool",
    ErrorCode.SWAP_FAILED: "Swap failed",
    ErrorCode.LARGE_SLIPPAGE: "Large slippage",
    ErrorCode.INVALID_PLATFORM_CONFIG: "Invalid platform config",
    ErrorCode.INVALID_REFERER: "Invalid referer",
}


class AmmError(Exception):
    """Raised when an operation is rejected by the engine."""

    def __init__(self, code: ErrorCode, detail: Optional[str] = None) -> None:
        self.code = code
        self.detail = detail
        text = code.message if not detail else f"{code.message}: {detail}"
        super().__init__(text)


class CustodyError(Exception):
    """Raised by the token-custody collaborator (bad signer, insufficient funds)."""


class LedgerError(Exception):
    """Raised by the ledger collaborator (missing or duplicate record)."""


def fail(code: ErrorCode, detail: Optional[str] = None) -> NoReturn:
    raise AmmError(code, detail)
