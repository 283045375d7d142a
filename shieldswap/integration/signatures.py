"""
BLS12-381 signatures over operation envelopes (py_ecc G2Basic).

    msg_hash = H(domain("amm_op_sig:<chain_id>") || canonical_json(envelope without "signature"))

Binding the chain id into the domain prevents replay across deployments.
"""

from __future__ import annotations

import hashlib
from typing import Any, Dict, Mapping, Optional, Tuple

from ..state.canonical import canonical_json_bytes, domain_sep_bytes


try:
    from py_ecc.bls import G2Basic

    _BLS_AVAILABLE = True
except Exception:  # pragma: no cover - optional dependency
    G2Basic = None  # type: ignore[assignment]
    _BLS_AVAILABLE = False


BLS_PUBKEY_NBYTES = 48
BLS_SIGNATURE_NBYTES = 96


def bls_available() -> bool:
    return _BLS_AVAILABLE


def signing_payload(envelope: Mapping[str, Any]) -> Dict[str, Any]:
    if not isinstance(envelope, Mapping):
        raise TypeError("envelope must be a mapping")
    return {k: v for k, v in envelope.items() if k != "signature"}


def op_message_hash(envelope: Mapping[str, Any], *, chain_id: str) -> bytes:
    msg = domain_sep_bytes(f"amm_op_sig:{chain_id}", version=1) + canonical_json_bytes(signing_payload(envelope))
    return hashlib.sha256(msg).digest()


def _fixed_hex(value: Any, *, name: str, nbytes: int) -> bytes:
    if not isinstance(value, str):
        raise TypeError(f"{name} must be a hex string")
    s = value[2:] if value.startswith("0x") else value
    if len(s) != 2 * nbytes:
        raise ValueError(f"{name} must be {nbytes} bytes")
    return bytes.fromhex(s)


def pubkey_from_privkey(privkey: int) -> str:
    if not _BLS_AVAILABLE:
        raise RuntimeError("py_ecc (BLS) not available (pip install py_ecc)")
    return "0x" + bytes(G2Basic.SkToPk(privkey)).hex()  # type: ignore[attr-defined]


def sign_envelope(envelope: Mapping[str, Any], privkey: int, *, chain_id: str) -> str:
    """Return the hex signature for `envelope` (any existing "signature" key is ignored)."""
    if not _BLS_AVAILABLE:
        raise RuntimeError("py_ecc (BLS) not available (pip install py_ecc)")
    sig = G2Basic.Sign(privkey, op_message_hash(envelope, chain_id=chain_id))  # type: ignore[attr-defined]
    return "0x" + bytes(sig).hex()


def verify_envelope(
    envelope: Mapping[str, Any],
    *,
    pubkey_hex: str,
    chain_id: str,
) -> Tuple[bool, Optional[str]]:
    if not _BLS_AVAILABLE:
        return False, "py_ecc (BLS) not available"
    signature = envelope.get("signature")
    if signature is None:
        return False, "missing signature"
    try:
        pk = _fixed_hex(pubkey_hex, name="pubkey", nbytes=BLS_PUBKEY_NBYTES)
        sig = _fixed_hex(signature, name="signature", nbytes=BLS_SIGNATURE_NBYTES)
        ok = bool(G2Basic.Verify(pk, op_message_hash(envelope, chain_id=chain_id), sig))  # type: ignore[attr-defined]
    except Exception as exc:
        return False, f"signature verification error: {exc}"
    if not ok:
        return False, "invalid signature"
    return True, None
