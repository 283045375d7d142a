"""
Token custody collaborator.

The engine never moves balances itself; it hands ordered custody requests
(`TokenTransfer`, `MintShares`, `BurnShares`) to a `TokenCustody`. The
in-memory reference implementation keeps balances in a `BalanceTable` and a
registry of token types (mint authority, decimals, outstanding supply).

Signer rules:
- transfer: signer must be the source account holder
- mint: signer must be the token type's registered mint authority
- burn: signer must be the holder
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Optional, Protocol, Tuple

from ..constants import U64_MAX
from ..core.effects import BurnShares, CustodyRequest, MintShares, TokenTransfer
from ..errors import CustodyError
from ..state.balances import NATIVE_ASSET, Amount, AssetId, BalanceTable, PubKey
from ..state.canonical import canonical_id


class TokenCustody(Protocol):
    def balance_of(self, owner: PubKey, asset: AssetId) -> Amount: ...

    def supply_of(self, asset: AssetId) -> Amount: ...

    def has_token_type(self, asset: AssetId) -> bool: ...

    def create_token_type(self, asset: AssetId, *, mint_authority: Optional[PubKey], decimals: int) -> None: ...

    def apply(self, request: CustodyRequest) -> None: ...

    def checkpoint(self) -> object: ...

    def restore(self, checkpoint: object) -> None: ...


@dataclass(frozen=True)
class TokenType:
    asset: AssetId
    mint_authority: Optional[PubKey]
    decimals: int


def _require_amount(amount: int) -> int:
    if not isinstance(amount, int) or isinstance(amount, bool) or amount < 0 or amount > U64_MAX:
        raise CustodyError(f"amount must be a u64: {amount!r}")
    return amount


class InMemoryCustody:
    """Reference `TokenCustody` backed by a `BalanceTable`."""

    def __init__(self) -> None:
        self.balances = BalanceTable()
        self._types: Dict[AssetId, TokenType] = {}
        self._supply: Dict[AssetId, Amount] = {}
        self.create_token_type(NATIVE_ASSET, mint_authority=None, decimals=9)

    @classmethod
    def from_parts(cls, types: Iterable[TokenType], balances: BalanceTable) -> "InMemoryCustody":
        """Rebuild custody state; supplies are recomputed as the sum of holder balances."""
        out = cls()
        for info in types:
            if info.asset == NATIVE_ASSET:
                continue
            out.create_token_type(info.asset, mint_authority=info.mint_authority, decimals=info.decimals)
        for (owner, asset), amount in balances.get_all_balances().items():
            out.token_type(asset)
            out._grow(canonical_id(owner, name="owner"), asset, _require_amount(amount))
        return out

    # --- registry -----------------------------------------------------------

    def has_token_type(self, asset: AssetId) -> bool:
        return asset in self._types

    def token_type(self, asset: AssetId) -> TokenType:
        try:
            return self._types[asset]
        except KeyError:
            raise CustodyError(f"unknown token type {asset}") from None

    def token_types(self) -> Dict[AssetId, TokenType]:
        return dict(self._types)

    def create_token_type(self, asset: AssetId, *, mint_authority: Optional[PubKey], decimals: int) -> None:
        asset = canonical_id(asset, name="asset")
        if asset in self._types:
            raise CustodyError(f"token type {asset} already exists")
        if not isinstance(decimals, int) or isinstance(decimals, bool) or not (0 <= decimals <= 18):
            raise CustodyError(f"decimals must be in [0, 18]: {decimals!r}")
        if mint_authority is not None:
            mint_authority = canonical_id(mint_authority, name="mint_authority")
        self._types[asset] = TokenType(asset=asset, mint_authority=mint_authority, decimals=decimals)
        self._supply[asset] = 0

    # --- reads --------------------------------------------------------------

    def balance_of(self, owner: PubKey, asset: AssetId) -> Amount:
        return self.balances.get(owner, asset)

    def supply_of(self, asset: AssetId) -> Amount:
        self.token_type(asset)
        return self._supply[asset]

    # --- writes -------------------------------------------------------------

    def credit(self, owner: PubKey, asset: AssetId, amount: Amount) -> None:
        """Faucet: create `amount` of `asset` out of thin air for `owner` (tests, demos)."""
        owner = canonical_id(owner, name="owner")
        asset = canonical_id(asset, name="asset")
        self.token_type(asset)
        self._grow(owner, asset, _require_amount(amount))

    def apply(self, request: CustodyRequest) -> None:
        if isinstance(request, TokenTransfer):
            self._transfer(request)
        elif isinstance(request, MintShares):
            self._mint(request)
        elif isinstance(request, BurnShares):
            self._burn(request)
        else:
            raise CustodyError(f"unsupported custody request: {type(request).__name__}")

    def _transfer(self, req: TokenTransfer) -> None:
        self.token_type(req.asset)
        amount = _require_amount(req.amount)
        if req.signer != req.source:
            raise CustodyError(f"signer {req.signer} does not own {req.source}")
        current = self.balances.get(req.source, req.asset)
        if current < amount:
            raise CustodyError(f"insufficient funds: {req.source} holds {current} of {req.asset}, needs {amount}")
        dest = self.balances.get(req.destination, req.asset)
        if dest + amount > U64_MAX:
            raise CustodyError("destination balance overflow")
        self.balances.subtract(req.source, req.asset, amount)
        self.balances.add(req.destination, req.asset, amount)

    def _mint(self, req: MintShares) -> None:
        info = self.token_type(req.asset)
        amount = _require_amount(req.amount)
        if info.mint_authority is None or req.signer != info.mint_authority:
            raise CustodyError(f"signer {req.signer} is not the mint authority of {req.asset}")
        self._grow(req.destination, req.asset, amount)

    def _burn(self, req: BurnShares) -> None:
        self.token_type(req.asset)
        amount = _require_amount(req.amount)
        if req.signer != req.owner:
            raise CustodyError(f"signer {req.signer} does not hold {req.owner}")
        current = self.balances.get(req.owner, req.asset)
        if current < amount:
            raise CustodyError(f"insufficient shares: {req.owner} holds {current}, burning {amount}")
        self.balances.subtract(req.owner, req.asset, amount)
        self._supply[req.asset] -= amount

    def _grow(self, owner: PubKey, asset: AssetId, amount: Amount) -> None:
        supply = self._supply[asset] + amount
        balance = self.balances.get(owner, asset) + amount
        if supply > U64_MAX or balance > U64_MAX:
            raise CustodyError(f"supply overflow for {asset}")
        self.balances.set(owner, asset, balance)
        self._supply[asset] = supply

    # --- rollback support ---------------------------------------------------

    def checkpoint(self) -> Tuple[BalanceTable, Dict[AssetId, TokenType], Dict[AssetId, Amount]]:
        return self.balances.copy(), dict(self._types), dict(self._supply)

    def restore(self, checkpoint: Tuple[BalanceTable, Dict[AssetId, TokenType], Dict[AssetId, Amount]]) -> None:
        """Reinstate `checkpoint`, taking ownership of it; a checkpoint restores once."""
        self.balances, self._types, self._supply = checkpoint
