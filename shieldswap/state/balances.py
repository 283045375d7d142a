"""
Multi-asset balance tracking for the token-custody service.

Implements BalanceTable[Owner, AssetId] -> Amount
"""

from typing import Dict, Tuple


# Type aliases
PubKey = str  # 32-byte identity as 0x-prefixed hex
AssetId = str  # 32-byte token-type identifier (0x...)
Amount = int  # Non-negative integer (u64 at the engine boundary)

# Native currency identifier (used for the custom-fee side payment)
NATIVE_ASSET = "0x" + "00" * 32


class BalanceTable:
    """
    Balance table mapping (owner, asset) -> amount.

    Note: balances live in a plain dict. Callers that hash or serialize must
    sort keys explicitly (see `shieldswap/integration/snapshot.py`).
    """

    def __init__(self):
        self._balances: Dict[Tuple[PubKey, AssetId], Amount] = {}

    def get(self, owner: PubKey, asset: AssetId) -> Amount:
        """Get balance for (owner, asset). Returns 0 if not found."""
        return self._balances.get((owner, asset), 0)

    def set(self, owner: PubKey, asset: AssetId, amount: Amount) -> None:
        """
        Set balance for (owner, asset).

        Raises:
            ValueError: If amount is negative
        """
        if amount < 0:
            raise ValueError(f"Balance cannot be negative: {amount}")
        if amount == 0:
            # Keep the table sparse
            self._balances.pop((owner, asset), None)
        else:
            self._balances[(owner, asset)] = amount

    def add(self, owner: PubKey, asset: AssetId, delta: int) -> None:
        """
        Add delta to balance (delta may be negative).

        Raises:
            ValueError: If resulting balance would be negative
        """
        current = self.get(owner, asset)
        new_balance = current + delta
        if new_balance < 0:
            raise ValueError(
                f"Insufficient balance: {current} + {delta} = {new_balance} < 0"
            )
        self.set(owner, asset, new_balance)

    def subtract(self, owner: PubKey, asset: AssetId, delta: Amount) -> None:
        if delta < 0:
            raise ValueError(f"Delta must be non-negative: {delta}")
        self.add(owner, asset, -delta)

    def total(self, asset: AssetId) -> Amount:
        """Sum of all holders' balances of `asset`."""
        return sum(amount for (_owner, a), amount in self._balances.items() if a == asset)

    def get_all_balances(self) -> Dict[Tuple[PubKey, AssetId], Amount]:
        return dict(self._balances)

    def copy(self) -> "BalanceTable":
        out = BalanceTable()
        out._balances = dict(self._balances)
        return out

    def __repr__(self) -> str:
        return f"BalanceTable({len(self._balances)} entries)"
