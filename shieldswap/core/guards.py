"""Precondition checks shared by the core operations.

Each guard raises ``AmmError`` with the code the operation table assigns to
the failure; none of them mutate anything.
"""

from __future__ import annotations

from typing import Any

from ..constants import MAXIMUM_FEE, U64_MAX
from ..errors import ErrorCode, fail
from ..state.balances import PubKey
from ..state.pools import Pool, PoolStatus


def require_authority(pool: Pool, caller: PubKey) -> None:
    if caller != pool.authority:
        fail(ErrorCode.UNAUTHORIZED, "caller is not the pool authority")


def require_admin(caller: PubKey, protocol_admin: PubKey) -> None:
    if caller != protocol_admin:
        fail(ErrorCode.UNAUTHORIZED, "caller is not the protocol admin")


def require_authority_or_admin(pool: Pool, caller: PubKey, protocol_admin: PubKey) -> None:
    if caller != pool.authority and caller != protocol_admin:
        fail(ErrorCode.UNAUTHORIZED, "caller is neither pool authority nor protocol admin")


def require_state(pool: Pool, expected: PoolStatus) -> None:
    if pool.state != expected:
        fail(ErrorCode.INVALID_STATE, f"pool is {pool.state.name}, expected {expected.name}")


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def require_amount(name: str, value: Any, *, positive: bool = False) -> int:
    """Caller-supplied u64 amount."""
    if not _is_int(value) or value < 0 or value > U64_MAX:
        fail(ErrorCode.INVALID_PARAMS, f"{name} must be a u64: {value!r}")
    if positive and value == 0:
        fail(ErrorCode.INVALID_PARAMS, f"{name} must be positive")
    return value


def require_rate(name: str, value: Any) -> int:
    if not _is_int(value) or value < 0 or value > MAXIMUM_FEE:
        fail(ErrorCode.INVALID_PARAMS, f"{name} must be in [0, {MAXIMUM_FEE}]: {value!r}")
    return value
