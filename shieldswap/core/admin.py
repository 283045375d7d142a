"""
Protocol-admin operations on the PlatformConfig (tax) record.
"""

from __future__ import annotations

from dataclasses import replace

from ..state.balances import PubKey
from ..state.platform import PlatformConfig
from .effects import AuditEvent, EventKind, Transition
from .guards import require_admin, require_rate


def create_platform_config(
    *,
    config_id: str,
    caller: PubKey,
    protocol_admin: PubKey,
    tax_rate: int,
    now: int,
) -> Transition:
    require_admin(caller, protocol_admin)
    require_rate("tax_rate", tax_rate)
    config = PlatformConfig(config_id=config_id, tax_rate=tax_rate, created_at=now, updated_at=now)
    event = AuditEvent(
        EventKind.CREATE_PLATFORM_CONFIG,
        {"authority": caller, "config": config.config_id, "tax_rate": tax_rate, "created_at": now},
    )
    return Transition(record=config, event=event)


def _set_tax(config: PlatformConfig, kind: EventKind, *, caller: PubKey, protocol_admin: PubKey, tax_rate: int, now: int) -> Transition:
    require_admin(caller, protocol_admin)
    require_rate("tax_rate", tax_rate)
    next_config = replace(config, tax_rate=tax_rate, updated_at=now)
    event = AuditEvent(
        kind,
        {
            "authority": caller,
            "config": config.config_id,
            "old_tax_rate": config.tax_rate,
            "tax_rate": tax_rate,
            "updated_at": now,
        },
    )
    return Transition(record=next_config, event=event)


def update_platform_config(config: PlatformConfig, *, caller: PubKey, protocol_admin: PubKey, tax_rate: int, now: int) -> Transition:
    return _set_tax(config, EventKind.UPDATE_PLATFORM_CONFIG, caller=caller, protocol_admin=protocol_admin, tax_rate=tax_rate, now=now)


def update_tax(config: PlatformConfig, *, caller: PubKey, protocol_admin: PubKey, tax_rate: int, now: int) -> Transition:
    """Same effect as ``update_platform_config``; kept as its own entry point and event."""
    return _set_tax(config, EventKind.UPDATE_TAX, caller=caller, protocol_admin=protocol_admin, tax_rate=tax_rate, now=now)
