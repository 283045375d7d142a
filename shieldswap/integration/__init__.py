"""
Imperative shell: ledger, custody, configuration, envelopes and HTTP surface.
"""

from .authority import DerivedAuthority, derive_authority, verify_authority
from .clock import FixedClock, SystemClock
from .config import EngineConfig, engine_config_from_env, load_engine_config
from .custody import InMemoryCustody, TokenCustody
from .engine import AmmEngine
from .ledger import Ledger
from .operations import OpResult, Operation, apply_ops, parse_operation
from .snapshot import LedgerSnapshot, ledger_from_snapshot, snapshot_from_ledger

__all__ = [
    "DerivedAuthority",
    "derive_authority",
    "verify_authority",
    "FixedClock",
    "SystemClock",
    "EngineConfig",
    "engine_config_from_env",
    "load_engine_config",
    "InMemoryCustody",
    "TokenCustody",
    "AmmEngine",
    "Ledger",
    "OpResult",
    "Operation",
    "apply_ops",
    "parse_operation",
    "LedgerSnapshot",
    "ledger_from_snapshot",
    "snapshot_from_ledger",
]
