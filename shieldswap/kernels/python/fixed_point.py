"""
Checked unsigned fixed-point arithmetic.

Python ints never overflow, so the 64/128-bit bounds the pool math relies on
are enforced explicitly here. Every helper raises ``AmmError(Overflow)`` when a
result leaves its unsigned range or on division by zero; none of them round
up (all divisions floor toward zero on non-negative operands).
"""

from __future__ import annotations

import math

from ...errors import ErrorCode, fail


U64_MAX = (1 << 64) - 1
U128_MAX = (1 << 128) - 1

# Every rate is a numerator over PRECISION.
PRECISION = 1_000_000_000
MAX_RATE = PRECISION


def _require_int(name: str, value: int) -> None:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")


def to_u64(value: int) -> int:
    _require_int("value", value)
    if value < 0 or value > U64_MAX:
        fail(ErrorCode.OVERFLOW, f"{value} does not fit in u64")
    return value


def to_u128(value: int) -> int:
    _require_int("value", value)
    if value < 0 or value > U128_MAX:
        fail(ErrorCode.OVERFLOW, f"{value} does not fit in u128")
    return value


def _bound(bits: int) -> int:
    if bits == 64:
        return U64_MAX
    if bits == 128:
        return U128_MAX
    raise ValueError(f"unsupported width: {bits}")


def checked_add(a: int, b: int, *, bits: int = 64) -> int:
    out = a + b
    if a < 0 or b < 0 or out > _bound(bits):
        fail(ErrorCode.OVERFLOW, f"add overflow: {a} + {b}")
    return out


def checked_sub(a: int, b: int, *, bits: int = 64) -> int:
    out = a - b
    if out < 0 or a > _bound(bits):
        fail(ErrorCode.OVERFLOW, f"sub underflow: {a} - {b}")
    return out


def checked_mul(a: int, b: int, *, bits: int = 128) -> int:
    out = a * b
    if a < 0 or b < 0 or out > _bound(bits):
        fail(ErrorCode.OVERFLOW, f"mul overflow: {a} * {b}")
    return out


def checked_div(a: int, b: int) -> int:
    if b == 0:
        fail(ErrorCode.OVERFLOW, "division by zero")
    if a < 0 or b < 0:
        fail(ErrorCode.OVERFLOW, f"signed division: {a} / {b}")
    return a // b


def mul_div_floor(a: int, b: int, denominator: int) -> int:
    """``floor(a * b / denominator)`` with a u128 intermediate, narrowed to u64."""
    product = checked_mul(to_u128(a), to_u128(b), bits=128)
    return to_u64(checked_div(product, denominator))


def apply_rate(amount: int, rate: int) -> int:
    """``floor(amount * rate / PRECISION)`` for a u64 amount."""
    return mul_div_floor(to_u64(amount), to_u64(rate), PRECISION)


def isqrt(value: int) -> int:
    """Integer square root (floor); ``math.isqrt`` is exact where float sqrt is not."""
    _require_int("value", value)
    if value < 0:
        fail(ErrorCode.OVERFLOW, "square root of a negative value")
    return math.isqrt(value)
