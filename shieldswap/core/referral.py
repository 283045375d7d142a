"""Referrer registration."""

from __future__ import annotations

from typing import Optional

from ..state.balances import PubKey
from ..state.referrers import Referrer
from .effects import AuditEvent, EventKind, Transition


def create_referrer(*, caller: PubKey, referrer: PubKey, pool: Optional[str] = None) -> Transition:
    """Record that `referrer` referred `caller`. Uniqueness per referee is enforced by the ledger."""
    record = Referrer(owner=referrer, referee=caller, pool=pool)
    event = AuditEvent(
        EventKind.CREATE_REFERRER,
        {"owner": record.owner, "referee": record.referee, "pool": record.pool},
    )
    return Transition(record=record, event=event)
