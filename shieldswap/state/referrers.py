"""
Referrer relationship records.

A referrer record is keyed by its referee (one record per referee identity)
and stores who referred them. Nothing in the pricing or fee math reads it.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from .balances import PubKey
from .canonical import canonical_id


@dataclass(frozen=True)
class Referrer:
    owner: PubKey
    referee: PubKey
    pool: Optional[str] = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "owner", canonical_id(self.owner, name="owner"))
        object.__setattr__(self, "referee", canonical_id(self.referee, name="referee"))
        if self.pool is not None:
            object.__setattr__(self, "pool", canonical_id(self.pool, name="pool"))


class ReferrerTable:
    """Mapping referee -> Referrer."""

    def __init__(self) -> None:
        self._records: Dict[PubKey, Referrer] = {}

    def get(self, referee: PubKey) -> Optional[Referrer]:
        return self._records.get(canonical_id(referee, name="referee"))

    def contains(self, referee: PubKey) -> bool:
        return self.get(referee) is not None

    def put(self, record: Referrer) -> None:
        self._records[record.referee] = record

    def all(self) -> Dict[PubKey, Referrer]:
        return dict(self._records)

    def copy(self) -> "ReferrerTable":
        out = ReferrerTable()
        out._records = dict(self._records)
        return out

    def __len__(self) -> int:
        return len(self._records)
