#!/usr/bin/env python3
"""
Offline end-to-end demo: platform config -> pool -> swap -> fee payout -> snapshot.

Runs entirely in memory through operation envelopes, printing each result and
the final snapshot commitment.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from shieldswap.integration.clock import FixedClock
from shieldswap.integration.config import EngineConfig
from shieldswap.integration.engine import AmmEngine
from shieldswap.integration.operations import apply_ops, create_operation
from shieldswap.integration.snapshot import snapshot_from_ledger


ADMIN = "0x" + "ad" * 32
FEE_RECEIVER = "0x" + "fe" * 32
LP = "0x" + "01" * 32
TRADER = "0x" + "02" * 32
ASSET_A = "0x" + "aa" * 32
ASSET_B = "0x" + "bb" * 32


def _parse_args(argv):
    p = argparse.ArgumentParser(description=__doc__)
    p.add_argument("--reserve-a", type=int, default=1_000_000)
    p.add_argument("--reserve-b", type=int, default=1_000_000)
    p.add_argument("--lp-fee-rate", type=int, default=3_000_000, help="numerator over 1e9")
    p.add_argument("--tax-rate", type=int, default=0, help="numerator over 1e9")
    p.add_argument("--bid", type=int, default=10_000, help="asset A amount to swap for asset B")
    p.add_argument("--verbose", action="store_true")
    return p.parse_args(argv)


def _run(engine: AmmEngine, label: str, envelope) -> object:
    (result,) = apply_ops(engine, [envelope])
    print(f"[amm-demo] {label}: {json.dumps(result.to_dict(), sort_keys=True)}")
    if not result.ok:
        raise SystemExit(1)
    return result.value


def main(argv=None) -> int:
    args = _parse_args(argv)
    logging.basicConfig(level=logging.INFO if args.verbose else logging.WARNING, format="%(levelname)s %(name)s: %(message)s")

    engine = AmmEngine(EngineConfig(protocol_admin=ADMIN, fee_receiver=FEE_RECEIVER), clock=FixedClock(1_700_000_000))
    custody = engine.custody
    for asset in (ASSET_A, ASSET_B):
        custody.create_token_type(asset, mint_authority=None, decimals=9)
    custody.credit(LP, ASSET_A, args.reserve_a)
    custody.credit(LP, ASSET_B, args.reserve_b)
    custody.credit(TRADER, ASSET_A, args.bid)

    config_id = _run(engine, "create_platform_config", create_operation("create_platform_config", ADMIN, tax_rate=args.tax_rate))
    pool_id, shares = _run(
        engine,
        "initialize",
        create_operation(
            "initialize",
            LP,
            asset_a=ASSET_A,
            asset_b=ASSET_B,
            a=args.reserve_a,
            b=args.reserve_b,
            config_id=config_id,
            lp_fee_rate=args.lp_fee_rate,
        ),
    )
    _run(
        engine,
        "swap",
        create_operation(
            "swap",
            TRADER,
            pool_id=pool_id,
            bid_asset=ASSET_A,
            ask_asset=ASSET_B,
            bid_amount=args.bid,
            min_ask_amount=0,
        ),
    )
    _run(engine, "distribute_lp_fee", create_operation("distribute_lp_fee", LP, pool_id=pool_id, requested_a=2**63, requested_b=2**63))
    _run(engine, "remove_liquidity", create_operation("remove_liquidity", LP, pool_id=pool_id, shares=shares))

    print(f"[amm-demo] trader asset B balance={engine.balance_of(TRADER, ASSET_B)}")
    print(f"[amm-demo] snapshot commitment={snapshot_from_ledger(engine.ledger).commitment_hex()}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
