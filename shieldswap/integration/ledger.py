"""
In-memory ledger: record storage, atomic transactions and event publication.

Every engine operation runs inside `Ledger.transaction()`:
- a re-entrant lock serializes operations
- pools, platform configs, referrers and custody state are checkpointed on entry
- any exception restores the checkpoint and drops buffered events
- buffered audit events are appended and logged, then handed to listeners,
  only after the block exits cleanly; a failing listener is logged and skipped
"""

from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Callable, Dict, Iterator, List, Optional, Sequence

from ..core.effects import AuditEvent, CustodyRequest
from ..errors import LedgerError
from ..state.canonical import canonical_id, canonical_json_bytes
from ..state.platform import PlatformConfig
from ..state.pools import Pool
from ..state.referrers import Referrer, ReferrerTable
from .custody import InMemoryCustody, TokenCustody


logger = logging.getLogger(__name__)

EventListener = Callable[[AuditEvent], None]


def format_event(event: AuditEvent) -> str:
    return f"event={event.kind.value} {canonical_json_bytes(dict(event.fields)).decode('utf-8')}"


class Ledger:
    def __init__(self, custody: Optional[TokenCustody] = None) -> None:
        self.custody: TokenCustody = custody if custody is not None else InMemoryCustody()
        self.pools: Dict[str, Pool] = {}
        self.platform_configs: Dict[str, PlatformConfig] = {}
        self.referrers = ReferrerTable()
        self._events: List[AuditEvent] = []
        self._pending: List[AuditEvent] = []
        self._listeners: List[EventListener] = []
        self._lock = threading.RLock()
        self._depth = 0

    # --- transactions -------------------------------------------------------

    @contextmanager
    def transaction(self) -> Iterator["Ledger"]:
        with self._lock:
            if self._depth > 0:
                # Nested blocks join the outermost transaction.
                yield self
                return
            checkpoint = (
                dict(self.pools),
                dict(self.platform_configs),
                self.referrers.copy(),
                self.custody.checkpoint(),
            )
            self._depth += 1
            try:
                yield self
            except BaseException as exc:
                pools, configs, referrers, custody_state = checkpoint
                self.pools = pools
                self.platform_configs = configs
                self.referrers = referrers
                self.custody.restore(custody_state)
                dropped = len(self._pending)
                self._pending.clear()
                logger.debug("rolled back transaction (%s), dropped %d event(s)", type(exc).__name__, dropped)
                raise
            finally:
                self._depth -= 1
            self._publish()

    def _publish(self) -> None:
        pending, self._pending = self._pending, []
        for event in pending:
            self._events.append(event)
            logger.info(format_event(event))
        # Listeners observe committed state; a raising listener cannot undo it.
        listeners = list(self._listeners)
        for event in pending:
            for listener in listeners:
                try:
                    listener(event)
                except Exception:
                    logger.exception("event listener %r failed on event=%s", listener, event.kind.value)

    # --- events -------------------------------------------------------------

    def emit(self, event: AuditEvent) -> None:
        if self._depth == 0:
            raise LedgerError("events can only be emitted inside a transaction")
        self._pending.append(event)

    def subscribe(self, listener: EventListener) -> None:
        self._listeners.append(listener)

    @property
    def events(self) -> List[AuditEvent]:
        return list(self._events)

    # --- custody ------------------------------------------------------------

    def submit(self, requests: Sequence[CustodyRequest]) -> None:
        """Apply custody requests in order; the first failure aborts the transaction."""
        for request in requests:
            self.custody.apply(request)

    # --- pools --------------------------------------------------------------

    def has_pool(self, pool_id: str) -> bool:
        return canonical_id(pool_id, name="pool_id") in self.pools

    def get_pool(self, pool_id: str) -> Pool:
        key = canonical_id(pool_id, name="pool_id")
        try:
            return self.pools[key]
        except KeyError:
            raise LedgerError(f"pool {key} not found") from None

    def insert_pool(self, pool: Pool) -> None:
        if pool.pool_id in self.pools:
            raise LedgerError(f"pool {pool.pool_id} already exists")
        self.pools[pool.pool_id] = pool

    def put_pool(self, pool: Pool) -> None:
        if pool.pool_id not in self.pools:
            raise LedgerError(f"pool {pool.pool_id} not found")
        self.pools[pool.pool_id] = pool

    # --- platform configs ---------------------------------------------------

    def get_platform_config(self, config_id: str) -> PlatformConfig:
        key = canonical_id(config_id, name="config_id")
        try:
            return self.platform_configs[key]
        except KeyError:
            raise LedgerError(f"platform config {key} not found") from None

    def insert_platform_config(self, config: PlatformConfig) -> None:
        if config.config_id in self.platform_configs:
            raise LedgerError(f"platform config {config.config_id} already exists")
        self.platform_configs[config.config_id] = config

    def put_platform_config(self, config: PlatformConfig) -> None:
        if config.config_id not in self.platform_configs:
            raise LedgerError(f"platform config {config.config_id} not found")
        self.platform_configs[config.config_id] = config

    # --- referrers ----------------------------------------------------------

    def get_referrer(self, referee: str) -> Optional[Referrer]:
        return self.referrers.get(referee)

    def insert_referrer(self, record: Referrer) -> None:
        if self.referrers.contains(record.referee):
            raise LedgerError(f"referrer record for {record.referee} already exists")
        self.referrers.put(record)
