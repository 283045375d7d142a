"""
AMM engine: the imperative shell around the pure core operations.

Each mutating method:
1. reads the records it needs from the ledger,
2. derives the pool's custody authority / share-token type,
3. calls the pure core operation (which validates and returns a Transition),
4. submits the custody requests in order, stores the new record and emits
   the audit event,
all inside one `Ledger.transaction()`, so a failure at any step leaves no trace.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Callable, Optional, Tuple, TypeVar

from .. import core
from ..constants import SHARE_TOKEN_DECIMALS
from ..core.effects import Transition
from ..core.guards import require_amount
from ..errors import AmmError
from ..kernels.python.cpmm_swap import SwapQuote
from ..state.balances import Amount, AssetId, PubKey
from ..state.canonical import canonical_id, domain_sep_bytes, id_to_bytes
from ..state.platform import PlatformConfig
from ..state.pools import Pool, compute_pool_id
from ..state.referrers import Referrer
from .authority import escrow_authority, share_token_type
from .clock import Clock, SystemClock
from .config import EngineConfig
from .ledger import Ledger


logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_platform_config_id(admin: PubKey, index: int) -> str:
    """H(domain("platform_config") || admin || index_u64_le)."""
    data = domain_sep_bytes("platform_config") + id_to_bytes(admin, name="admin") + index.to_bytes(8, "little")
    return "0x" + hashlib.sha256(data).hexdigest()


class AmmEngine:
    def __init__(
        self,
        config: EngineConfig,
        *,
        ledger: Optional[Ledger] = None,
        clock: Optional[Clock] = None,
    ) -> None:
        self.config = config
        self.ledger = ledger if ledger is not None else Ledger()
        self.clock: Clock = clock if clock is not None else SystemClock()

    @property
    def custody(self):
        return self.ledger.custody

    # --- plumbing -----------------------------------------------------------

    def _execute(self, op: str, body: Callable[[], T]) -> T:
        try:
            with self.ledger.transaction():
                return body()
        except AmmError as exc:
            logger.warning("op=%s rejected code=%s detail=%s", op, exc.code.value, exc.detail)
            raise

    def _commit(self, transition: Transition) -> None:
        self.ledger.submit(transition.requests)
        self.ledger.emit(transition.event)

    def _custody_balances(self, pool: Pool, escrow: PubKey) -> Tuple[Amount, Amount]:
        return (
            self.custody.balance_of(escrow, pool.asset_a_type),
            self.custody.balance_of(escrow, pool.asset_b_type),
        )

    # --- platform config ----------------------------------------------------

    def create_platform_config(self, caller: PubKey, tax_rate: int, *, config_id: Optional[str] = None) -> str:
        caller = canonical_id(caller, name="caller")

        def body() -> str:
            cid = config_id
            if cid is None:
                cid = compute_platform_config_id(caller, len(self.ledger.platform_configs))
            t = core.create_platform_config(
                config_id=cid,
                caller=caller,
                protocol_admin=self.config.protocol_admin,
                tax_rate=tax_rate,
                now=self.clock.now(),
            )
            self.ledger.insert_platform_config(t.record)
            self._commit(t)
            return t.record.config_id

        return self._execute("create_platform_config", body)

    def update_platform_config(self, caller: PubKey, config_id: str, tax_rate: int) -> PlatformConfig:
        return self._set_tax("update_platform_config", core.update_platform_config, caller, config_id, tax_rate)

    def update_tax(self, caller: PubKey, config_id: str, tax_rate: int) -> PlatformConfig:
        return self._set_tax("update_tax", core.update_tax, caller, config_id, tax_rate)

    def _set_tax(self, op: str, fn, caller: PubKey, config_id: str, tax_rate: int) -> PlatformConfig:
        caller = canonical_id(caller, name="caller")

        def body() -> PlatformConfig:
            cfg = self.ledger.get_platform_config(config_id)
            t = fn(cfg, caller=caller, protocol_admin=self.config.protocol_admin, tax_rate=tax_rate, now=self.clock.now())
            self.ledger.put_platform_config(t.record)
            self._commit(t)
            return t.record

        return self._execute(op, body)

    # --- pool lifecycle -----------------------------------------------------

    def initialize(
        self,
        caller: PubKey,
        *,
        asset_a: AssetId,
        asset_b: AssetId,
        a: Amount,
        b: Amount,
        config_id: str,
        lp_fee_rate: int,
        referral_fee_rate: int = 0,
        custom_fee_amount: Amount = 0,
        salt: int = 0,
    ) -> Tuple[str, Amount]:
        """Create and seed a pool. Returns (pool_id, shares minted to the caller)."""
        caller = canonical_id(caller, name="caller")

        def body() -> Tuple[str, Amount]:
            require_amount("salt", salt)
            pool_id = compute_pool_id(caller, asset_a, asset_b, salt)
            platform = self.ledger.get_platform_config(config_id)
            escrow = escrow_authority(pool_id)
            share_type = share_token_type(pool_id)
            t = core.initialize(
                pool_id=pool_id,
                caller=caller,
                escrow=escrow,
                share_token_type=share_type,
                asset_a=asset_a,
                asset_b=asset_b,
                platform=platform,
                a=a,
                b=b,
                referral_fee_rate=referral_fee_rate,
                lp_fee_rate=lp_fee_rate,
                custom_fee_amount=custom_fee_amount,
                fee_receiver=self.config.fee_receiver,
                now=self.clock.now(),
                customed_fee_bound=self.config.customed_fee_bound,
                min_custom_fee_amount=self.config.min_custom_fee_amount,
            )
            self.ledger.insert_pool(t.record)
            self.custody.create_token_type(share_type, mint_authority=escrow, decimals=SHARE_TOKEN_DECIMALS)
            self._commit(t)
            return pool_id, t.value

        return self._execute("initialize", body)

    def _pool_update(self, op: str, pool_id: str, fn: Callable[[Pool], Transition]) -> Pool:
        def body() -> Pool:
            t = fn(self.ledger.get_pool(pool_id))
            self.ledger.put_pool(t.record)
            self._commit(t)
            return t.record

        return self._execute(op, body)

    def pause(self, caller: PubKey, pool_id: str) -> Pool:
        caller = canonical_id(caller, name="caller")
        return self._pool_update("pause", pool_id, lambda p: core.pause(p, caller=caller, now=self.clock.now()))

    def resume(self, caller: PubKey, pool_id: str) -> Pool:
        caller = canonical_id(caller, name="caller")
        return self._pool_update("resume", pool_id, lambda p: core.resume(p, caller=caller, now=self.clock.now()))

    def update_fee(self, caller: PubKey, pool_id: str, lp_fee_rate: int) -> Pool:
        caller = canonical_id(caller, name="caller")
        return self._pool_update(
            "update_fee",
            pool_id,
            lambda p: core.update_fee(p, caller=caller, lp_fee_rate=lp_fee_rate, now=self.clock.now()),
        )

    def update_referral_fee(self, caller: PubKey, pool_id: str, referral_fee_rate: int) -> Pool:
        caller = canonical_id(caller, name="caller")
        return self._pool_update(
            "update_referral_fee",
            pool_id,
            lambda p: core.update_referral_fee(p, caller=caller, referral_fee_rate=referral_fee_rate, now=self.clock.now()),
        )

    def transfer_ownership(self, caller: PubKey, pool_id: str, new_owner: PubKey) -> Pool:
        caller = canonical_id(caller, name="caller")
        return self._pool_update(
            "transfer_ownership",
            pool_id,
            lambda p: core.transfer_ownership(p, caller=caller, new_owner=new_owner, now=self.clock.now()),
        )

    # --- liquidity ----------------------------------------------------------

    def add_liquidity(
        self,
        caller: PubKey,
        pool_id: str,
        a: Amount,
        b: Amount,
        *,
        asset_a: Optional[AssetId] = None,
        asset_b: Optional[AssetId] = None,
        share_token: Optional[AssetId] = None,
    ) -> Amount:
        caller = canonical_id(caller, name="caller")

        def body() -> Amount:
            pool = self.ledger.get_pool(pool_id)
            t = core.add_liquidity(
                pool,
                caller=caller,
                escrow=escrow_authority(pool.pool_id),
                a=a,
                b=b,
                asset_a=asset_a,
                asset_b=asset_b,
                share_token=share_token,
            )
            self._commit(t)
            return t.value

        return self._execute("add_liquidity", body)

    def remove_liquidity(
        self,
        caller: PubKey,
        pool_id: str,
        shares: Amount,
        *,
        asset_a: Optional[AssetId] = None,
        asset_b: Optional[AssetId] = None,
        share_token: Optional[AssetId] = None,
    ) -> Tuple[Amount, Amount]:
        caller = canonical_id(caller, name="caller")

        def body() -> Tuple[Amount, Amount]:
            pool = self.ledger.get_pool(pool_id)
            escrow = escrow_authority(pool.pool_id)
            custody_a, custody_b = self._custody_balances(pool, escrow)
            t = core.remove_liquidity(
                pool,
                caller=caller,
                escrow=escrow,
                shares=shares,
                custody_a=custody_a,
                custody_b=custody_b,
                supply=self.custody.supply_of(pool.share_token_type),
                asset_a=asset_a,
                asset_b=asset_b,
                share_token=share_token,
            )
            self._commit(t)
            return t.value

        return self._execute("remove_liquidity", body)

    # --- trading ------------------------------------------------------------

    def swap(
        self,
        caller: PubKey,
        pool_id: str,
        *,
        bid_asset: AssetId,
        ask_asset: AssetId,
        bid_amount: Amount,
        min_ask_amount: Amount,
    ) -> Amount:
        caller = canonical_id(caller, name="caller")

        def body() -> Amount:
            pool = self.ledger.get_pool(pool_id)
            platform = self.ledger.get_platform_config(pool.tax_config_ref)
            escrow = escrow_authority(pool.pool_id)
            custody_a, custody_b = self._custody_balances(pool, escrow)
            t = core.swap(
                pool,
                platform,
                caller=caller,
                escrow=escrow,
                tax_recipient=self.config.tax_recipient,
                bid_asset=bid_asset,
                ask_asset=ask_asset,
                bid_amount=bid_amount,
                limit=min_ask_amount,
                custody_a=custody_a,
                custody_b=custody_b,
                now=self.clock.now(),
            )
            self.ledger.put_pool(t.record)
            self._commit(t)
            return t.value

        return self._execute("swap", body)

    def distribute_lp_fee(
        self,
        caller: PubKey,
        pool_id: str,
        requested_a: Amount,
        requested_b: Amount,
        *,
        recipient_a: Optional[PubKey] = None,
        recipient_b: Optional[PubKey] = None,
    ) -> Tuple[Amount, Amount]:
        """Pay out accrued LP fees (clamped); recipients default to the caller."""
        caller = canonical_id(caller, name="caller")
        recipient_a = caller if recipient_a is None else canonical_id(recipient_a, name="recipient_a")
        recipient_b = caller if recipient_b is None else canonical_id(recipient_b, name="recipient_b")

        def body() -> Tuple[Amount, Amount]:
            pool = self.ledger.get_pool(pool_id)
            t = core.distribute_lp_fee(
                pool,
                caller=caller,
                protocol_admin=self.config.protocol_admin,
                escrow=escrow_authority(pool.pool_id),
                requested_a=requested_a,
                requested_b=requested_b,
                recipient_a=recipient_a,
                recipient_b=recipient_b,
                now=self.clock.now(),
            )
            self.ledger.put_pool(t.record)
            self._commit(t)
            return t.value

        return self._execute("distribute_lp_fee", body)

    # --- referrers ----------------------------------------------------------

    def create_referrer(self, caller: PubKey, referrer: PubKey, *, pool_id: Optional[str] = None) -> Referrer:
        caller = canonical_id(caller, name="caller")

        def body() -> Referrer:
            if pool_id is not None:
                self.ledger.get_pool(pool_id)
            t = core.create_referrer(caller=caller, referrer=referrer, pool=pool_id)
            self.ledger.insert_referrer(t.record)
            self._commit(t)
            return t.record

        return self._execute("create_referrer", body)

    # --- reads --------------------------------------------------------------

    def get_pool(self, pool_id: str) -> Pool:
        return self.ledger.get_pool(pool_id)

    def get_platform_config(self, config_id: str) -> PlatformConfig:
        return self.ledger.get_platform_config(config_id)

    def get_referrer(self, referee: PubKey) -> Optional[Referrer]:
        return self.ledger.get_referrer(referee)

    def escrow_of(self, pool_id: str) -> PubKey:
        return escrow_authority(self.ledger.get_pool(pool_id).pool_id)

    def share_supply(self, pool_id: str) -> Amount:
        return self.custody.supply_of(self.ledger.get_pool(pool_id).share_token_type)

    def balance_of(self, owner: PubKey, asset: AssetId) -> Amount:
        return self.custody.balance_of(canonical_id(owner, name="owner"), canonical_id(asset, name="asset"))

    def effective_reserves(self, pool_id: str) -> Tuple[int, int]:
        pool = self.ledger.get_pool(pool_id)
        return pool.effective_reserves(*self._custody_balances(pool, escrow_authority(pool.pool_id)))

    def quote_swap(self, pool_id: str, *, bid_asset: AssetId, ask_asset: AssetId, bid_amount: Amount) -> SwapQuote:
        pool = self.ledger.get_pool(pool_id)
        platform = self.ledger.get_platform_config(pool.tax_config_ref)
        custody_a, custody_b = self._custody_balances(pool, escrow_authority(pool.pool_id))
        _a_to_b, quote = core.quote_swap(
            pool,
            platform,
            bid_asset=bid_asset,
            ask_asset=ask_asset,
            bid_amount=bid_amount,
            custody_a=custody_a,
            custody_b=custody_b,
        )
        return quote
