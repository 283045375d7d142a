# [TESTER] v1

from __future__ import annotations

import pytest

pytest.importorskip("py_ecc")

from py_ecc.bls import G2Basic

from shieldswap.integration.clock import FixedClock
from shieldswap.integration.config import EngineConfig
from shieldswap.integration.engine import AmmEngine
from shieldswap.integration.operations import apply_ops, create_operation
from shieldswap.integration.signatures import (
    op_message_hash,
    pubkey_from_privkey,
    sign_envelope,
    verify_envelope,
)

ADMIN = "0x" + "ad" * 32
FEE_RECEIVER = "0x" + "fe" * 32
CHAIN = "shieldswap-test"

PRIV = G2Basic.KeyGen(b"\x01" * 32)
OTHER_PRIV = G2Basic.KeyGen(b"\x02" * 32)


def _signed_engine() -> AmmEngine:
    cfg = EngineConfig(
        protocol_admin=ADMIN,
        fee_receiver=FEE_RECEIVER,
        chain_id=CHAIN,
        require_signatures=True,
        signer_pubkeys={ADMIN: pubkey_from_privkey(PRIV)},
    )
    return AmmEngine(cfg, clock=FixedClock(1))


def test_sign_then_verify() -> None:
    env = create_operation("create_platform_config", ADMIN, tax_rate=5)
    env["signature"] = sign_envelope(env, PRIV, chain_id=CHAIN)
    assert verify_envelope(env, pubkey_hex=pubkey_from_privkey(PRIV), chain_id=CHAIN) == (True, None)


def test_message_hash_ignores_signature_and_binds_chain() -> None:
    env = create_operation("pause", ADMIN, pool_id=ADMIN)
    signed = dict(env, signature="0x00")
    assert op_message_hash(env, chain_id=CHAIN) == op_message_hash(signed, chain_id=CHAIN)
    assert op_message_hash(env, chain_id=CHAIN) != op_message_hash(env, chain_id="other-chain")


def test_signature_from_another_chain_or_key_is_rejected() -> None:
    env = create_operation("create_platform_config", ADMIN, tax_rate=5)
    pk = pubkey_from_privkey(PRIV)
    env["signature"] = sign_envelope(env, PRIV, chain_id="other-chain")
    assert verify_envelope(env, pubkey_hex=pk, chain_id=CHAIN) == (False, "invalid signature")
    env["signature"] = sign_envelope(env, OTHER_PRIV, chain_id=CHAIN)
    assert verify_envelope(env, pubkey_hex=pk, chain_id=CHAIN) == (False, "invalid signature")


def test_tampered_args_are_rejected() -> None:
    env = create_operation("create_platform_config", ADMIN, tax_rate=5)
    env["signature"] = sign_envelope(env, PRIV, chain_id=CHAIN)
    env["args"] = {"tax_rate": 6}
    ok, err = verify_envelope(env, pubkey_hex=pubkey_from_privkey(PRIV), chain_id=CHAIN)
    assert not ok
    assert err == "invalid signature"


def test_malformed_signature_reports_error() -> None:
    env = dict(create_operation("create_platform_config", ADMIN, tax_rate=5), signature="0x1234")
    ok, err = verify_envelope(env, pubkey_hex=pubkey_from_privkey(PRIV), chain_id=CHAIN)
    assert not ok
    assert err.startswith("signature verification error")


def test_engine_enforces_signatures_when_required() -> None:
    engine = _signed_engine()
    unsigned = create_operation("create_platform_config", ADMIN, tax_rate=5)
    signed = dict(unsigned, signature=sign_envelope(unsigned, PRIV, chain_id=CHAIN))
    stranger = create_operation("create_platform_config", "0x" + "01" * 32, tax_rate=5)

    results = apply_ops(engine, [unsigned, signed, stranger])
    assert [r.ok for r in results] == [False, True, False]
    assert results[0].error == "missing signature"
    assert results[2].error.startswith("no signer pubkey registered")
    assert len(engine.ledger.platform_configs) == 1
