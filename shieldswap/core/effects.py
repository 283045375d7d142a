"""Custody requests and audit events produced by core operations.

Core operations are pure: they return the next record together with the
ordered custody requests the shell must submit and one audit event. Nothing
here touches balances.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, unique
from typing import Any, Dict, Mapping, Tuple, Union

from ..state.balances import Amount, AssetId, PubKey


@dataclass(frozen=True)
class TokenTransfer:
    """Move `amount` of `asset` from `source` to `destination`; `signer` must own `source`."""
    asset: AssetId
    source: PubKey
    destination: PubKey
    amount: Amount
    signer: PubKey


@dataclass(frozen=True)
class MintShares:
    """Mint share tokens to `destination`; `signer` must be the mint authority."""
    asset: AssetId
    destination: PubKey
    amount: Amount
    signer: PubKey


@dataclass(frozen=True)
class BurnShares:
    """Burn share tokens held by `owner`; `signer` must be the holder."""
    asset: AssetId
    owner: PubKey
    amount: Amount
    signer: PubKey


CustodyRequest = Union[TokenTransfer, MintShares, BurnShares]


@unique
class EventKind(Enum):
    INITIALIZE = "Initialize"
    ADD_LIQUIDITY = "AddLiquidity"
    REMOVE_LIQUIDITY = "RemoveLiquidity"
    SWAP = "Swap"
    DISTRIBUTE_LP_FEE = "DistributeLpFee"
    PAUSE = "Pause"
    RESUME = "Resume"
    UPDATE_LP_FEE = "UpdateLpFee"
    UPDATE_REFERRAL_FEE = "UpdateReferralFee"
    TRANSFER_OWNERSHIP = "TransferOwnership"
    CREATE_PLATFORM_CONFIG = "CreatePlatformConfig"
    UPDATE_PLATFORM_CONFIG = "UpdatePlatformConfig"
    UPDATE_TAX = "UpdateTax"
    CREATE_REFERRER = "CreateReferrer"


@dataclass(frozen=True)
class AuditEvent:
    kind: EventKind
    fields: Mapping[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"event": self.kind.value, **dict(self.fields)}


@dataclass(frozen=True)
class Transition:
    """Result of a core operation: next record, event, ordered custody requests, return value."""
    record: Any
    event: AuditEvent
    requests: Tuple[CustodyRequest, ...] = ()
    value: Any = None
