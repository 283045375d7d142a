# [TESTER] v1

from __future__ import annotations

import pytest

from shieldswap.integration.clock import FixedClock
from shieldswap.integration.config import EngineConfig
from shieldswap.integration.engine import AmmEngine
from shieldswap.integration.operations import (
    MAX_OPS_PER_BATCH,
    OP_SCHEMAS,
    apply_ops,
    create_operation,
    parse_operation,
)

ADMIN = "0x" + "ad" * 32
FEE_RECEIVER = "0x" + "fe" * 32
LP = "0x" + "01" * 32
TRADER = "0x" + "02" * 32
A = "0x" + "aa" * 32
B = "0x" + "bb" * 32


def _engine() -> AmmEngine:
    engine = AmmEngine(EngineConfig(protocol_admin=ADMIN, fee_receiver=FEE_RECEIVER), clock=FixedClock(5))
    for asset in (A, B):
        engine.custody.create_token_type(asset, mint_authority=None, decimals=9)
        engine.custody.credit(LP, asset, 5_000_000)
        engine.custody.credit(TRADER, asset, 5_000_000)
    return engine


def test_every_engine_operation_has_a_schema() -> None:
    assert set(OP_SCHEMAS) == {
        "create_platform_config",
        "update_platform_config",
        "update_tax",
        "initialize",
        "add_liquidity",
        "remove_liquidity",
        "swap",
        "distribute_lp_fee",
        "pause",
        "resume",
        "update_fee",
        "update_referral_fee",
        "transfer_ownership",
        "create_referrer",
    }


def test_parse_operation_canonicalizes_ids() -> None:
    op = parse_operation(create_operation("pause", "AB" * 32, pool_id="0X" + "CD" * 32))
    assert op.caller == "0x" + "ab" * 32
    assert op.args == {"pool_id": "0x" + "cd" * 32}
    assert op.signature is None


def test_parse_operation_rejects_unknown_op() -> None:
    with pytest.raises(ValueError, match="unknown op"):
        parse_operation({"op": "mint_money", "caller": LP, "args": {}})


def test_parse_operation_rejects_unknown_envelope_key() -> None:
    with pytest.raises(ValueError, match="unknown envelope keys"):
        parse_operation({"op": "pause", "caller": LP, "args": {"pool_id": A}, "nonce": 1})


def test_parse_operation_rejects_missing_and_extra_args() -> None:
    with pytest.raises(ValueError, match="missing args"):
        parse_operation(create_operation("swap", TRADER, pool_id=A))
    with pytest.raises(ValueError, match="unknown args"):
        parse_operation(create_operation("pause", LP, pool_id=A, lp_fee_rate=1))


@pytest.mark.parametrize("bad", [True, -1, "10", 1.5])
def test_parse_operation_rejects_non_integer_amounts(bad: object) -> None:
    with pytest.raises(ValueError):
        parse_operation(create_operation("update_fee", LP, pool_id=A, lp_fee_rate=bad))


def test_parse_operation_rejects_bad_ids() -> None:
    with pytest.raises(ValueError):
        parse_operation(create_operation("pause", LP, pool_id="0x1234"))
    with pytest.raises(ValueError):
        parse_operation(create_operation("pause", "alice", pool_id=A))


def test_parse_operation_rejects_oversized_envelope() -> None:
    env = create_operation("pause", LP, pool_id=A)
    env["signature"] = "0x" + "ab" * 10_000
    with pytest.raises(ValueError, match="exceeds max_bytes"):
        parse_operation(env)


def test_apply_ops_runs_a_full_session() -> None:
    engine = _engine()
    [created] = apply_ops(engine, [create_operation("create_platform_config", ADMIN, tax_rate=0)])
    assert created.ok
    config_id = created.value

    [init] = apply_ops(
        engine,
        [
            create_operation(
                "initialize",
                LP,
                asset_a=A,
                asset_b=B,
                a=1_000_000,
                b=1_000_000,
                config_id=config_id,
                lp_fee_rate=3_000_000,
            )
        ],
    )
    assert init.ok
    pool_id, shares = init.value
    assert shares == 1_000_000

    results = apply_ops(
        engine,
        [
            create_operation(
                "swap", TRADER, pool_id=pool_id, bid_asset=A, ask_asset=B, bid_amount=10_000, min_ask_amount=0
            ),
            create_operation("pause", TRADER, pool_id=pool_id),
            {"op": "pause"},
            create_operation("pause", LP, pool_id=pool_id),
            create_operation("distribute_lp_fee", LP, pool_id=pool_id, requested_a=1_000, requested_b=0),
        ],
    )
    assert [r.ok for r in results] == [True, False, False, True, True]
    assert results[0].value == 9_872
    assert results[1].code == "Unauthorized"
    assert results[2].code is None and results[2].error.startswith("invalid operation")
    assert results[3].value["state"] == 2
    assert results[4].value == [30, 0]
    assert results[1].to_dict() == {"ok": False, "error": results[1].error, "code": "Unauthorized"}


def test_apply_ops_reports_collaborator_failures_without_code() -> None:
    engine = _engine()
    [res] = apply_ops(engine, [create_operation("pause", LP, pool_id="0x" + "12" * 32)])
    assert not res.ok
    assert res.code is None
    assert res.error.startswith("LedgerError")


def test_apply_ops_rejects_oversized_batches() -> None:
    engine = _engine()
    with pytest.raises(ValueError, match="too many operations"):
        apply_ops(engine, [create_operation("pause", LP, pool_id=A)] * (MAX_OPS_PER_BATCH + 1))
    with pytest.raises(ValueError):
        apply_ops(engine, {"op": "pause"})


def test_apply_ops_reports_oversized_salt_as_invalid_params() -> None:
    engine = _engine()
    config_id = engine.create_platform_config(ADMIN, 0)
    op = create_operation(
        "initialize", LP, asset_a=A, asset_b=B, a=1_000, b=1_000, config_id=config_id, lp_fee_rate=0, salt=2**64
    )
    [res] = apply_ops(engine, [op])
    assert not res.ok
    assert res.code == "InvalidParams"
    assert engine.ledger.pools == {}
