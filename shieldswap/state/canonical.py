"""
Deterministic canonical encoding primitives.

Used for pool-id / authority derivation, snapshot commitments and operation
signatures. Identities are 0x-prefixed lowercase 32-byte hex strings.
"""

from __future__ import annotations

import hashlib
import json
import re
from typing import Any


CANONICAL_ENCODING_VERSION = 1
ID_NBYTES = 32

_HEX_CHARS_RE = re.compile(r"^[0-9a-fA-F]+$")


def _reject_floats(value: Any) -> None:
    if isinstance(value, float):
        raise TypeError("floats are not allowed in canonical encoding")
    if isinstance(value, dict):
        for k, v in value.items():
            if not isinstance(k, str):
                raise TypeError("dict keys must be str for canonical encoding")
            _reject_floats(v)
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _reject_floats(item)


def canonical_json_bytes(value: Any) -> bytes:
    """
    Canonical JSON encoding for hashing/signing.

    Rules:
    - UTF-8
    - sort_keys=True
    - separators=(',', ':') (no whitespace)
    - allow_nan=False
    - floats rejected (to avoid representation ambiguity)
    """
    _reject_floats(value)
    text = json.dumps(
        value,
        sort_keys=True,
        separators=(",", ":"),
        ensure_ascii=False,
        allow_nan=False,
    )
    return text.encode("utf-8")


def _check_shape(value: Any, *, max_depth: int, max_items: int) -> None:
    items_left = max_items
    stack = [(value, 1)]
    while stack:
        v, depth = stack.pop()
        if depth > max_depth:
            raise ValueError("json nesting exceeds max_depth")
        items_left -= 1
        if items_left < 0:
            raise ValueError("json item count exceeds max_items")
        if isinstance(v, dict):
            stack.extend((item, depth + 1) for item in v.values())
        elif isinstance(v, (list, tuple)):
            stack.extend((item, depth + 1) for item in v)


def bounded_canonical_json_bytes(
    value: Any,
    *,
    max_bytes: int,
    max_depth: int = 32,
    max_items: int = 10_000,
) -> bytes:
    """
    `canonical_json_bytes(value)` with DoS limits.

    Nesting depth and item count are checked before encoding, the encoded
    size after. Raises ValueError when any limit is exceeded.
    """
    if not isinstance(max_bytes, int) or isinstance(max_bytes, bool) or max_bytes <= 0:
        raise ValueError("max_bytes must be a positive int")
    _check_shape(value, max_depth=max_depth, max_items=max_items)
    out = canonical_json_bytes(value)
    if len(out) > max_bytes:
        raise ValueError(f"json size {len(out)} exceeds max_bytes {max_bytes}")
    return out


def sha256_hex(data: bytes) -> str:
    return "0x" + hashlib.sha256(data).hexdigest()


def domain_sep_bytes(label: str, version: int = 1) -> bytes:
    """
    Create a domain separation prefix.

    The output is ASCII-only and NUL-terminated to make concatenation unambiguous.
    """
    if not isinstance(label, str) or not label:
        raise TypeError("label must be a non-empty str")
    if "\x00" in label:
        raise ValueError("label must not contain NUL")
    try:
        label_bytes = label.encode("ascii")
    except UnicodeEncodeError as exc:
        raise ValueError("label must be ASCII") from exc
    if not isinstance(version, int) or isinstance(version, bool) or version <= 0:
        raise ValueError("version must be a positive int")
    return b"shieldswap:" + label_bytes + b":v" + str(version).encode("ascii") + b"\x00"


def canonical_hex_fixed_allow_0x(hex_str: str, *, nbytes: int, name: str) -> str:
    """
    Canonicalize a fixed-size hex string (lowercase, 0x-prefixed).

    Accepts either 0x-prefixed or raw hex input.
    """
    if not isinstance(hex_str, str):
        raise TypeError(f"{name} must be a str")
    if not isinstance(nbytes, int) or isinstance(nbytes, bool) or nbytes <= 0:
        raise ValueError("nbytes must be a positive int")

    s = hex_str.strip()
    if s.lower().startswith("0x"):
        s = s[2:]
    expected_len = 2 * nbytes
    if len(s) != expected_len:
        raise ValueError(f"{name} must be {nbytes} bytes (hex length {expected_len})")
    if not _HEX_CHARS_RE.fullmatch(s):
        raise ValueError(f"{name} must be valid hex")
    return "0x" + s.lower()


def canonical_id(value: str, *, name: str = "identity") -> str:
    return canonical_hex_fixed_allow_0x(value, nbytes=ID_NBYTES, name=name)


def id_to_bytes(value: str, *, name: str = "identity") -> bytes:
    return bytes.fromhex(canonical_id(value, name=name)[2:])


def bytes_to_id(raw: bytes) -> str:
    if len(raw) != ID_NBYTES:
        raise ValueError(f"identity must be {ID_NBYTES} bytes, got {len(raw)}")
    return "0x" + raw.hex()
