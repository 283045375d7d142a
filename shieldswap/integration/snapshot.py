"""
Ledger snapshot encoding.

Goals:
- Deterministic JSON serialization for hashing / snapshot distribution.
- Round-trippable into a fresh `Ledger` with `InMemoryCustody`.
- Explicit versioning.

All entry lists are sorted by their identifying keys, so two ledgers with the
same state produce byte-identical snapshots and commitments.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ..state.balances import BalanceTable
from ..state.canonical import canonical_id, canonical_json_bytes, domain_sep_bytes, sha256_hex
from ..state.platform import PlatformConfig
from ..state.pools import Pool, PoolStatus
from ..state.referrers import Referrer
from .authority import escrow_authority, share_token_type
from .custody import InMemoryCustody, TokenType
from .ledger import Ledger


LEDGER_SNAPSHOT_VERSION = 1


def _require_int(value: Any, *, name: str, non_negative: bool = True) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise TypeError(f"{name} must be an int")
    if non_negative and value < 0:
        raise ValueError(f"{name} must be non-negative")
    return int(value)


def _require_mapping(value: Any, *, name: str) -> Mapping[str, Any]:
    if not isinstance(value, Mapping):
        raise TypeError(f"{name} must be an object")
    return value


def _require_list(value: Any, *, name: str) -> list:
    if not isinstance(value, list):
        raise TypeError(f"{name} must be a list")
    return value


# --- record <-> dict --------------------------------------------------------


def pool_to_dict(pool: Pool) -> Dict[str, Any]:
    return {
        "pool_id": pool.pool_id,
        "authority": pool.authority,
        "share_token_type": pool.share_token_type,
        "asset_a_type": pool.asset_a_type,
        "asset_b_type": pool.asset_b_type,
        "referral_fee_rate": pool.referral_fee_rate,
        "lp_fee_rate": pool.lp_fee_rate,
        "tax_config_ref": pool.tax_config_ref,
        "state": pool.state.value,
        "accrued_fee_a": pool.accrued_fee_a,
        "accrued_fee_b": pool.accrued_fee_b,
        "created_at": pool.created_at,
        "updated_at": pool.updated_at,
    }


def pool_from_dict(obj: Mapping[str, Any]) -> Pool:
    obj = _require_mapping(obj, name="pool")
    return Pool(
        pool_id=obj["pool_id"],
        authority=obj["authority"],
        share_token_type=obj["share_token_type"],
        asset_a_type=obj["asset_a_type"],
        asset_b_type=obj["asset_b_type"],
        referral_fee_rate=_require_int(obj["referral_fee_rate"], name="referral_fee_rate"),
        lp_fee_rate=_require_int(obj["lp_fee_rate"], name="lp_fee_rate"),
        tax_config_ref=obj["tax_config_ref"],
        state=PoolStatus(_require_int(obj["state"], name="state")),
        accrued_fee_a=_require_int(obj["accrued_fee_a"], name="accrued_fee_a"),
        accrued_fee_b=_require_int(obj["accrued_fee_b"], name="accrued_fee_b"),
        created_at=_require_int(obj["created_at"], name="created_at", non_negative=False),
        updated_at=_require_int(obj["updated_at"], name="updated_at", non_negative=False),
    )


def platform_config_to_dict(config: PlatformConfig) -> Dict[str, Any]:
    return {
        "config_id": config.config_id,
        "tax_rate": config.tax_rate,
        "created_at": config.created_at,
        "updated_at": config.updated_at,
    }


def platform_config_from_dict(obj: Mapping[str, Any]) -> PlatformConfig:
    obj = _require_mapping(obj, name="platform_config")
    return PlatformConfig(
        config_id=obj["config_id"],
        tax_rate=_require_int(obj["tax_rate"], name="tax_rate"),
        created_at=_require_int(obj["created_at"], name="created_at", non_negative=False),
        updated_at=_require_int(obj["updated_at"], name="updated_at", non_negative=False),
    )


def referrer_to_dict(record: Referrer) -> Dict[str, Any]:
    return {"owner": record.owner, "referee": record.referee, "pool": record.pool}


def referrer_from_dict(obj: Mapping[str, Any]) -> Referrer:
    obj = _require_mapping(obj, name="referrer")
    return Referrer(owner=obj["owner"], referee=obj["referee"], pool=obj.get("pool"))


# --- snapshot ---------------------------------------------------------------


@dataclass(frozen=True)
class LedgerSnapshot:
    """
    Deterministic, versioned snapshot of a `Ledger`.

    The commitment is *not* included inside `data` to avoid self-reference.
    """

    version: int
    data: Dict[str, Any]

    def canonical_bytes(self) -> bytes:
        return canonical_json_bytes(self.data)

    def commitment_bytes(self) -> bytes:
        payload = domain_sep_bytes("ledger_snapshot", version=self.version) + self.canonical_bytes()
        return hashlib.sha256(payload).digest()

    def commitment_hex(self) -> str:
        payload = domain_sep_bytes("ledger_snapshot", version=self.version) + self.canonical_bytes()
        return sha256_hex(payload)


def snapshot_from_ledger(ledger: Ledger, *, version: int = LEDGER_SNAPSHOT_VERSION) -> LedgerSnapshot:
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    custody = ledger.custody
    if not isinstance(custody, InMemoryCustody):
        raise TypeError("snapshots require InMemoryCustody")

    pools = sorted((pool_to_dict(p) for p in ledger.pools.values()), key=lambda e: e["pool_id"])
    configs = sorted(
        (platform_config_to_dict(c) for c in ledger.platform_configs.values()),
        key=lambda e: e["config_id"],
    )
    referrers = sorted((referrer_to_dict(r) for r in ledger.referrers.all().values()), key=lambda e: e["referee"])

    token_types = sorted(
        (
            {
                "asset": info.asset,
                "mint_authority": info.mint_authority,
                "decimals": info.decimals,
                "supply": custody.supply_of(info.asset),
            }
            for info in custody.token_types().values()
        ),
        key=lambda e: e["asset"],
    )
    balances = sorted(
        (
            {"owner": owner, "asset": asset, "amount": int(amount)}
            for (owner, asset), amount in custody.balances.get_all_balances().items()
        ),
        key=lambda e: (e["owner"], e["asset"]),
    )

    data = {
        "schema": "shieldswap_ledger_snapshot",
        "version": version,
        "pools": pools,
        "platform_configs": configs,
        "referrers": referrers,
        "token_types": token_types,
        "balances": balances,
    }
    return LedgerSnapshot(version=version, data=data)


def _require_derived_share_type(pool: Pool, custody: InMemoryCustody) -> None:
    if pool.share_token_type != share_token_type(pool.pool_id):
        raise ValueError(f"pool {pool.pool_id} share token type is not derived from its id")
    if not custody.has_token_type(pool.share_token_type):
        raise ValueError(f"pool {pool.pool_id} share token type is not registered")
    if custody.token_type(pool.share_token_type).mint_authority != escrow_authority(pool.pool_id):
        raise ValueError(f"pool {pool.pool_id} share token is not minted by the pool escrow")


def ledger_from_snapshot(snapshot: LedgerSnapshot) -> Ledger:
    data = _require_mapping(snapshot.data, name="snapshot.data")
    if data.get("schema") != "shieldswap_ledger_snapshot":
        raise ValueError("unsupported snapshot schema")
    if data.get("version") != snapshot.version:
        raise ValueError("snapshot version mismatch")

    types = []
    supplies: Dict[str, int] = {}
    for entry in _require_list(data.get("token_types"), name="token_types"):
        entry = _require_mapping(entry, name="token_type")
        asset = canonical_id(entry["asset"], name="asset")
        authority: Optional[str] = entry.get("mint_authority")
        types.append(
            TokenType(
                asset=asset,
                mint_authority=None if authority is None else canonical_id(authority, name="mint_authority"),
                decimals=_require_int(entry["decimals"], name="decimals"),
            )
        )
        supplies[asset] = _require_int(entry["supply"], name="supply")

    balances = BalanceTable()
    for entry in _require_list(data.get("balances"), name="balances"):
        entry = _require_mapping(entry, name="balance")
        balances.set(
            canonical_id(entry["owner"], name="owner"),
            canonical_id(entry["asset"], name="asset"),
            _require_int(entry["amount"], name="amount"),
        )

    custody = InMemoryCustody.from_parts(types, balances)
    for asset, supply in supplies.items():
        if custody.supply_of(asset) != supply:
            raise ValueError(f"supply of {asset} does not match holder balances")

    ledger = Ledger(custody=custody)
    for entry in _require_list(data.get("pools"), name="pools"):
        pool = pool_from_dict(entry)
        _require_derived_share_type(pool, custody)
        ledger.insert_pool(pool)
    for entry in _require_list(data.get("platform_configs"), name="platform_configs"):
        ledger.insert_platform_config(platform_config_from_dict(entry))
    for entry in _require_list(data.get("referrers"), name="referrers"):
        ledger.insert_referrer(referrer_from_dict(entry))
    return ledger


def snapshot_from_dict(obj: Mapping[str, Any]) -> LedgerSnapshot:
    obj = _require_mapping(obj, name="snapshot")
    version = _require_int(obj.get("version"), name="version")
    return LedgerSnapshot(version=version, data=dict(obj))
