"""
Delegated custody authority derivation.

Each pool owns two derived identities: the custody ("escrow") authority that
signs outbound transfers and share mints, and the share-token type
("share_mint"). Both are recomputed from the pool id whenever they are needed
and never stored.

    digest(nonce) = H(domain("pool_authority") || pool_id || tag || nonce_u8)

Nonces are searched from 255 down to 0; the first digest whose last byte is
not 0xff is accepted. Rejecting the 0xff byte stands in for the off-curve
requirement of a program-derived key, so `verify_authority` can check that no
higher nonce would have been chosen.
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass

from ..constants import ESCROW_TAG, SHARE_MINT_TAG
from ..state.canonical import domain_sep_bytes, id_to_bytes


_TAGS = frozenset({ESCROW_TAG, SHARE_MINT_TAG})


@dataclass(frozen=True)
class DerivedAuthority:
    authority: str
    nonce: int


def _digest(pool_id: str, tag: str, nonce: int) -> bytes:
    data = (
        domain_sep_bytes("pool_authority")
        + id_to_bytes(pool_id, name="pool_id")
        + tag.encode("ascii")
        + bytes([nonce])
    )
    return hashlib.sha256(data).digest()


def _accepted(digest: bytes) -> bool:
    return digest[-1] != 0xFF


def _require_tag(tag: str) -> None:
    if tag not in _TAGS:
        raise ValueError(f"unknown authority tag: {tag!r}")


def derive_authority(pool_id: str, tag: str) -> DerivedAuthority:
    _require_tag(tag)
    for nonce in range(255, -1, -1):
        digest = _digest(pool_id, tag, nonce)
        if _accepted(digest):
            return DerivedAuthority(authority="0x" + digest.hex(), nonce=nonce)
    raise ValueError(f"no authority nonce for pool {pool_id} tag {tag}")


def verify_authority(pool_id: str, tag: str, authority: str, nonce: int) -> bool:
    """True iff (`authority`, `nonce`) is exactly what `derive_authority` returns."""
    if not isinstance(nonce, int) or isinstance(nonce, bool) or not (0 <= nonce <= 255):
        return False
    try:
        expected = derive_authority(pool_id, tag)
    except ValueError:
        return False
    return expected.nonce == nonce and expected.authority == authority.lower()


def escrow_authority(pool_id: str) -> str:
    return derive_authority(pool_id, ESCROW_TAG).authority


def share_token_type(pool_id: str) -> str:
    return derive_authority(pool_id, SHARE_MINT_TAG).authority
