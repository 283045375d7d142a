"""
Engine configuration.

The engine needs a handful of deployment identities (protocol admin, fee
receiver, tax recipient) and policy knobs. They are validated once here so the
core never sees an unchecked value.

Sources:
- YAML file (`load_engine_config`), parsed with `yaml.safe_load`
- environment (`engine_config_from_env`), `SHIELDSWAP_*` variables
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

import yaml

from ..constants import CUSTOMED_FEE_BOUND, MAXIMUM_FEE, U64_MAX
from ..state.canonical import canonical_hex_fixed_allow_0x, canonical_id


ENV_PREFIX = "SHIELDSWAP_"
BLS_PUBKEY_NBYTES = 48


def env_str(name: str, default: str) -> str:
    raw = os.environ.get(name)
    if raw is None:
        return default
    v = raw.strip()
    return v if v else default


def env_int(name: str, default: int, *, lo: int, hi: int) -> int:
    """Integer env var clamped to [lo, hi]; unparsable values fall back to `default`."""
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return int(default)
    try:
        v = int(raw.strip())
    except ValueError:
        return int(default)
    return max(lo, min(hi, v))


def _parse_bool(value: Any, *, name: str) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        s = value.strip().lower()
        if s in ("1", "true", "yes", "on"):
            return True
        if s in ("0", "false", "no", "off", ""):
            return False
    raise ValueError(f"{name} must be a boolean")


def _require_int(value: Any, *, name: str, lo: int, hi: int) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if not (lo <= value <= hi):
        raise ValueError(f"{name} must be in [{lo}, {hi}]: {value}")
    return value


@dataclass(frozen=True)
class EngineConfig:
    """
    Deployment configuration for `AmmEngine`.

    Attributes:
        protocol_admin: Identity allowed to manage PlatformConfig records
        fee_receiver: Recipient of custom-fee side payments at initialize
        tax_recipient: Recipient of swap tax; defaults to fee_receiver
        customed_fee_bound: lp_fee_rate above which initialize charges a side payment
        min_custom_fee_amount: Smallest accepted side payment
        chain_id: Binds operation signatures to one deployment
        require_signatures: If True, every operation envelope must carry a valid BLS signature
        signer_pubkeys: identity -> 48-byte BLS public key (hex)
    """

    protocol_admin: str
    fee_receiver: str
    tax_recipient: Optional[str] = None
    customed_fee_bound: int = CUSTOMED_FEE_BOUND
    min_custom_fee_amount: int = 1
    chain_id: str = "shieldswap-local"
    require_signatures: bool = False
    signer_pubkeys: Mapping[str, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "protocol_admin", canonical_id(self.protocol_admin, name="protocol_admin"))
        object.__setattr__(self, "fee_receiver", canonical_id(self.fee_receiver, name="fee_receiver"))
        if self.tax_recipient is None:
            object.__setattr__(self, "tax_recipient", self.fee_receiver)
        else:
            object.__setattr__(self, "tax_recipient", canonical_id(self.tax_recipient, name="tax_recipient"))
        _require_int(self.customed_fee_bound, name="customed_fee_bound", lo=0, hi=MAXIMUM_FEE)
        _require_int(self.min_custom_fee_amount, name="min_custom_fee_amount", lo=0, hi=U64_MAX)
        if not isinstance(self.chain_id, str) or not self.chain_id or len(self.chain_id) > 128:
            raise ValueError("chain_id must be a non-empty string (max 128 chars)")
        if not self.chain_id.isascii():
            raise ValueError("chain_id must be ASCII")
        if not isinstance(self.require_signatures, bool):
            raise TypeError("require_signatures must be a bool")
        if not isinstance(self.signer_pubkeys, Mapping):
            raise TypeError("signer_pubkeys must be a mapping")
        pubkeys: Dict[str, str] = {}
        for ident, pk in self.signer_pubkeys.items():
            pubkeys[canonical_id(ident, name="signer identity")] = canonical_hex_fixed_allow_0x(
                pk, nbytes=BLS_PUBKEY_NBYTES, name="signer pubkey"
            )
        object.__setattr__(self, "signer_pubkeys", pubkeys)
        if self.require_signatures and not pubkeys:
            raise ValueError("require_signatures needs at least one signer_pubkeys entry")


_FIELDS = (
    "protocol_admin",
    "fee_receiver",
    "tax_recipient",
    "customed_fee_bound",
    "min_custom_fee_amount",
    "chain_id",
    "require_signatures",
    "signer_pubkeys",
)


def engine_config_from_mapping(obj: Mapping[str, Any]) -> EngineConfig:
    if not isinstance(obj, Mapping):
        raise TypeError("engine config must be a mapping")
    unknown = sorted(set(obj.keys()) - set(_FIELDS))
    if unknown:
        raise ValueError(f"unknown engine config keys: {unknown}")
    for required in ("protocol_admin", "fee_receiver"):
        if required not in obj:
            raise ValueError(f"engine config missing {required}")
    kwargs = dict(obj)
    if "require_signatures" in kwargs:
        kwargs["require_signatures"] = _parse_bool(kwargs["require_signatures"], name="require_signatures")
    if kwargs.get("signer_pubkeys") is None:
        kwargs.pop("signer_pubkeys", None)
    return EngineConfig(**kwargs)


def load_engine_config(path: Union[str, Path]) -> EngineConfig:
    """Load an `EngineConfig` from a YAML mapping (optionally nested under `engine:`)."""
    raw = Path(path).read_text(encoding="utf-8")
    obj = yaml.safe_load(raw)
    if not isinstance(obj, Mapping):
        raise TypeError("engine config YAML must be a mapping")
    if "engine" in obj and isinstance(obj["engine"], Mapping):
        obj = obj["engine"]
    return engine_config_from_mapping(obj)


def _parse_signer_pubkeys(value: str) -> Dict[str, str]:
    """`id1=pk1,id2=pk2`."""
    out: Dict[str, str] = {}
    for item in value.split(","):
        item = item.strip()
        if not item:
            continue
        ident, sep, pk = item.partition("=")
        if not sep:
            raise ValueError(f"{ENV_PREFIX}SIGNER_PUBKEYS entries must be identity=pubkey")
        out[ident.strip()] = pk.strip()
    return out


def engine_config_from_env(environ: Optional[Mapping[str, str]] = None) -> EngineConfig:
    """
    Build an `EngineConfig` from `SHIELDSWAP_*` environment variables.

    Identities are not defaulted: a missing SHIELDSWAP_PROTOCOL_ADMIN or
    SHIELDSWAP_FEE_RECEIVER raises ValueError.
    """
    env = os.environ if environ is None else environ

    def _get(name: str) -> Optional[str]:
        raw = env.get(ENV_PREFIX + name)
        if raw is None or not raw.strip():
            return None
        return raw.strip()

    obj: Dict[str, Any] = {}
    for name in ("protocol_admin", "fee_receiver", "tax_recipient", "chain_id"):
        v = _get(name.upper())
        if v is not None:
            obj[name] = v
    for name in ("customed_fee_bound", "min_custom_fee_amount"):
        v = _get(name.upper())
        if v is not None:
            try:
                obj[name] = int(v)
            except ValueError as exc:
                raise ValueError(f"{ENV_PREFIX}{name.upper()} must be an integer") from exc
    v = _get("REQUIRE_SIGNATURES")
    if v is not None:
        obj["require_signatures"] = v
    v = _get("SIGNER_PUBKEYS")
    if v is not None:
        obj["signer_pubkeys"] = _parse_signer_pubkeys(v)
    return engine_config_from_mapping(obj)
