"""
Protocol-wide tax configuration.
"""

from __future__ import annotations

from dataclasses import dataclass

from ..constants import MAXIMUM_FEE
from ..kernels.python.fixed_point import apply_rate
from .balances import Amount
from .canonical import canonical_id


@dataclass(frozen=True)
class PlatformConfig:
    """
    Protocol tax record. One instance may be referenced by many pools.

    Attributes:
        config_id: 32-byte record identifier
        tax_rate: Tax numerator over PRECISION, in [0, MAXIMUM_FEE]
        created_at, updated_at: Ledger timestamps
    """
    config_id: str
    tax_rate: int
    created_at: int = 0
    updated_at: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "config_id", canonical_id(self.config_id, name="config_id"))
        if not isinstance(self.tax_rate, int) or isinstance(self.tax_rate, bool):
            raise TypeError("tax_rate must be an int")
        if not (0 <= self.tax_rate <= MAXIMUM_FEE):
            raise ValueError(f"tax_rate must be in [0, {MAXIMUM_FEE}]: {self.tax_rate}")

    def calc_tax(self, amount: Amount) -> Amount:
        """``floor(amount * tax_rate / PRECISION)``."""
        return apply_rate(amount, self.tax_rate)
