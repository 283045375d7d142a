"""
Operation envelopes for the AMM engine.

Envelope format (JSON object):

    {"op": "<name>", "caller": "0x<32-byte id>", "args": {...}, "signature": "0x<96-byte bls sig>"?}

`parse_operation` validates structure and argument types strictly (ValueError
on anything malformed). `apply_ops` executes a list of envelopes in order,
each in its own ledger transaction, and reports one `OpResult` per envelope;
engine rejections become failed results instead of exceptions.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Sequence, Tuple

from ..errors import AmmError, CustodyError, LedgerError
from ..state.canonical import bounded_canonical_json_bytes, canonical_id
from ..state.platform import PlatformConfig
from ..state.pools import Pool
from ..state.referrers import Referrer
from .engine import AmmEngine
from .signatures import verify_envelope
from .snapshot import platform_config_to_dict, pool_to_dict, referrer_to_dict


logger = logging.getLogger(__name__)

MAX_ENVELOPE_BYTES = 16_000
MAX_OPS_PER_BATCH = 256

_ENVELOPE_KEYS = frozenset({"op", "caller", "args", "signature"})

# Argument names whose values are 32-byte identities; every other argument is an int.
_ID_ARGS = frozenset(
    {
        "pool_id",
        "config_id",
        "asset_a",
        "asset_b",
        "share_token",
        "bid_asset",
        "ask_asset",
        "new_owner",
        "referrer",
        "recipient_a",
        "recipient_b",
    }
)


@dataclass(frozen=True)
class OpSchema:
    required: FrozenSet[str]
    optional: FrozenSet[str] = frozenset()


def _schema(required: Sequence[str], optional: Sequence[str] = ()) -> OpSchema:
    return OpSchema(required=frozenset(required), optional=frozenset(optional))


OP_SCHEMAS: Dict[str, OpSchema] = {
    "create_platform_config": _schema(["tax_rate"], ["config_id"]),
    "update_platform_config": _schema(["config_id", "tax_rate"]),
    "update_tax": _schema(["config_id", "tax_rate"]),
    "initialize": _schema(
        ["asset_a", "asset_b", "a", "b", "config_id", "lp_fee_rate"],
        ["referral_fee_rate", "custom_fee_amount", "salt"],
    ),
    "add_liquidity": _schema(["pool_id", "a", "b"], ["asset_a", "asset_b", "share_token"]),
    "remove_liquidity": _schema(["pool_id", "shares"], ["asset_a", "asset_b", "share_token"]),
    "swap": _schema(["pool_id", "bid_asset", "ask_asset", "bid_amount", "min_ask_amount"]),
    "distribute_lp_fee": _schema(["pool_id", "requested_a", "requested_b"], ["recipient_a", "recipient_b"]),
    "pause": _schema(["pool_id"]),
    "resume": _schema(["pool_id"]),
    "update_fee": _schema(["pool_id", "lp_fee_rate"]),
    "update_referral_fee": _schema(["pool_id", "referral_fee_rate"]),
    "transfer_ownership": _schema(["pool_id", "new_owner"]),
    "create_referrer": _schema(["referrer"], ["pool_id"]),
}


@dataclass(frozen=True)
class Operation:
    op: str
    caller: str
    args: Dict[str, Any] = field(default_factory=dict)
    signature: Optional[str] = None


@dataclass(frozen=True)
class OpResult:
    ok: bool
    value: Any = None
    error: Optional[str] = None
    code: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"ok": self.ok}
        if self.ok:
            out["value"] = self.value
        else:
            out["error"] = self.error
            out["code"] = self.code
        return out


def _require_int(value: Any, *, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValueError(f"{name} must be an int")
    if value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _parse_args(op: str, raw: Any) -> Dict[str, Any]:
    schema = OP_SCHEMAS[op]
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ValueError("args must be an object")
    keys = set(raw.keys())
    missing = sorted(schema.required - keys)
    if missing:
        raise ValueError(f"{op}: missing args {missing}")
    unknown = sorted(keys - schema.required - schema.optional)
    if unknown:
        raise ValueError(f"{op}: unknown args {unknown}")

    out: Dict[str, Any] = {}
    for name, value in raw.items():
        if name in _ID_ARGS:
            try:
                out[name] = canonical_id(value, name=name)
            except (TypeError, ValueError) as exc:
                raise ValueError(str(exc)) from exc
        else:
            out[name] = _require_int(value, name=name)
    return out


def parse_operation(envelope: Any) -> Operation:
    if not isinstance(envelope, Mapping):
        raise ValueError(f"operation must be an object, got {type(envelope).__name__}")
    try:
        bounded_canonical_json_bytes(dict(envelope), max_bytes=MAX_ENVELOPE_BYTES)
    except TypeError as exc:
        raise ValueError(f"operation is not canonical JSON: {exc}") from exc

    unknown = sorted(set(envelope.keys()) - _ENVELOPE_KEYS)
    if unknown:
        raise ValueError(f"unknown envelope keys {unknown}")
    op = envelope.get("op")
    if not isinstance(op, str) or op not in OP_SCHEMAS:
        raise ValueError(f"unknown op {op!r}")
    try:
        caller = canonical_id(envelope.get("caller"), name="caller")
    except (TypeError, ValueError) as exc:
        raise ValueError(str(exc)) from exc
    signature = envelope.get("signature")
    if signature is not None and not isinstance(signature, str):
        raise ValueError("signature must be a hex string")
    return Operation(op=op, caller=caller, args=_parse_args(op, envelope.get("args")), signature=signature)


def create_operation(op: str, caller: str, **args: Any) -> Dict[str, Any]:
    """Build an (unsigned) envelope dict."""
    return {"op": op, "caller": caller, "args": dict(args)}


def to_jsonable(value: Any) -> Any:
    if isinstance(value, Pool):
        return pool_to_dict(value)
    if isinstance(value, PlatformConfig):
        return platform_config_to_dict(value)
    if isinstance(value, Referrer):
        return referrer_to_dict(value)
    if isinstance(value, tuple):
        return [to_jsonable(v) for v in value]
    return value


_DISPATCH: Dict[str, Callable[[AmmEngine, Operation], Any]] = {
    "create_platform_config": lambda e, o: e.create_platform_config(o.caller, o.args["tax_rate"], config_id=o.args.get("config_id")),
    "update_platform_config": lambda e, o: e.update_platform_config(o.caller, o.args["config_id"], o.args["tax_rate"]),
    "update_tax": lambda e, o: e.update_tax(o.caller, o.args["config_id"], o.args["tax_rate"]),
    "initialize": lambda e, o: e.initialize(o.caller, **o.args),
    "add_liquidity": lambda e, o: e.add_liquidity(
        o.caller,
        o.args["pool_id"],
        o.args["a"],
        o.args["b"],
        asset_a=o.args.get("asset_a"),
        asset_b=o.args.get("asset_b"),
        share_token=o.args.get("share_token"),
    ),
    "remove_liquidity": lambda e, o: e.remove_liquidity(
        o.caller,
        o.args["pool_id"],
        o.args["shares"],
        asset_a=o.args.get("asset_a"),
        asset_b=o.args.get("asset_b"),
        share_token=o.args.get("share_token"),
    ),
    "swap": lambda e, o: e.swap(
        o.caller,
        o.args["pool_id"],
        bid_asset=o.args["bid_asset"],
        ask_asset=o.args["ask_asset"],
        bid_amount=o.args["bid_amount"],
        min_ask_amount=o.args["min_ask_amount"],
    ),
    "distribute_lp_fee": lambda e, o: e.distribute_lp_fee(
        o.caller,
        o.args["pool_id"],
        o.args["requested_a"],
        o.args["requested_b"],
        recipient_a=o.args.get("recipient_a"),
        recipient_b=o.args.get("recipient_b"),
    ),
    "pause": lambda e, o: e.pause(o.caller, o.args["pool_id"]),
    "resume": lambda e, o: e.resume(o.caller, o.args["pool_id"]),
    "update_fee": lambda e, o: e.update_fee(o.caller, o.args["pool_id"], o.args["lp_fee_rate"]),
    "update_referral_fee": lambda e, o: e.update_referral_fee(o.caller, o.args["pool_id"], o.args["referral_fee_rate"]),
    "transfer_ownership": lambda e, o: e.transfer_ownership(o.caller, o.args["pool_id"], o.args["new_owner"]),
    "create_referrer": lambda e, o: e.create_referrer(o.caller, o.args["referrer"], pool_id=o.args.get("pool_id")),
}


def _check_signature(engine: AmmEngine, envelope: Mapping[str, Any], op: Operation) -> Tuple[bool, Optional[str]]:
    cfg = engine.config
    if not cfg.require_signatures:
        return True, None
    pubkey = cfg.signer_pubkeys.get(op.caller)
    if pubkey is None:
        return False, f"no signer pubkey registered for {op.caller}"
    return verify_envelope(envelope, pubkey_hex=pubkey, chain_id=cfg.chain_id)


def apply_op(engine: AmmEngine, envelope: Any) -> OpResult:
    try:
        op = parse_operation(envelope)
    except ValueError as exc:
        return OpResult(ok=False, error=f"invalid operation: {exc}")

    ok, err = _check_signature(engine, envelope, op)
    if not ok:
        logger.warning("op=%s caller=%s signature rejected: %s", op.op, op.caller, err)
        return OpResult(ok=False, error=err)

    try:
        value = _DISPATCH[op.op](engine, op)
    except AmmError as exc:
        return OpResult(ok=False, error=str(exc), code=exc.code.value)
    except (CustodyError, LedgerError) as exc:
        logger.warning("op=%s caller=%s failed: %s", op.op, op.caller, exc)
        return OpResult(ok=False, error=f"{type(exc).__name__}: {exc}")
    return OpResult(ok=True, value=to_jsonable(value))


def apply_ops(engine: AmmEngine, operations: Sequence[Any]) -> List[OpResult]:
    """
    Execute envelopes in order. Each is atomic on its own; a failed envelope
    does not stop later ones.
    """
    if not isinstance(operations, (list, tuple)):
        raise ValueError("operations must be a list")
    if len(operations) > MAX_OPS_PER_BATCH:
        raise ValueError(f"too many operations: {len(operations)} > {MAX_OPS_PER_BATCH}")
    return [apply_op(engine, envelope) for envelope in operations]
