"""
Minimal HTTP API for the AMM engine.

Endpoints:
- GET  /health           container health check
- GET  /pools            all pool records
- GET  /pools/<pool_id>  one pool with effective reserves, share supply and its binary record
- POST /ops              JSON list of operation envelopes -> list of results

Security posture:
- Default-deny CORS (no wildcard by default)
- Basic rate limiting (per-IP, token bucket)
- Tight request parsing and bounded request sizes
"""

from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Dict, Optional, Sequence, Set

from ..errors import LedgerError
from ..state.layout import encode_pool
from .config import engine_config_from_env, env_int, env_str
from .engine import AmmEngine
from .operations import MAX_ENVELOPE_BYTES, MAX_OPS_PER_BATCH, apply_ops
from .snapshot import pool_to_dict


logger = logging.getLogger(__name__)

MAX_BODY_BYTES = MAX_ENVELOPE_BYTES * 8


def _parse_cors_origins(value: str) -> Set[str]:
    """
    Parse CORS origins list. Supports comma-separated values.

    '*' is ignored; operators must list trusted origins.
    """
    out: Set[str] = set()
    for item in (value or "").split(","):
        origin = item.strip()
        if origin and origin != "*":
            out.add(origin)
    return out


@dataclass
class RateLimitBucket:
    tokens: float
    updated_at: float


class TokenBucketRateLimiter:
    """Per-IP token bucket, O(1) per request."""

    def __init__(self, *, rpm: int) -> None:
        self._rpm = int(max(0, rpm))
        self._capacity = float(max(1, rpm)) if rpm > 0 else 0.0
        self._refill_per_s = float(rpm) / 60.0 if rpm > 0 else 0.0
        self._buckets: Dict[str, RateLimitBucket] = {}

    def allow(self, key: str, *, now: Optional[float] = None) -> bool:
        if self._rpm <= 0:
            return True
        now = time.time() if now is None else now
        b = self._buckets.get(key)
        if b is None:
            self._buckets[key] = RateLimitBucket(tokens=self._capacity - 1.0, updated_at=now)
            return True
        dt = max(0.0, now - b.updated_at)
        b.tokens = min(self._capacity, b.tokens + dt * self._refill_per_s)
        b.updated_at = now
        if b.tokens >= 1.0:
            b.tokens -= 1.0
            return True
        return False


def pool_view(engine: AmmEngine, pool_id: str) -> Dict[str, Any]:
    pool = engine.get_pool(pool_id)
    out = pool_to_dict(pool)
    reserve_a, reserve_b = engine.effective_reserves(pool.pool_id)
    out["effective_reserve_a"] = reserve_a
    out["effective_reserve_b"] = reserve_b
    out["share_supply"] = engine.share_supply(pool.pool_id)
    out["escrow"] = engine.escrow_of(pool.pool_id)
    out["record"] = "0x" + encode_pool(pool).hex()
    return out


class _Handler(BaseHTTPRequestHandler):
    server_version = "ShieldSwapApi/1"

    # Caps request line / header count.
    max_requestline = 8192
    max_headers = 100

    @property
    def engine(self) -> AmmEngine:
        return getattr(self.server, "engine")  # type: ignore[attr-defined]

    def _client_ip(self) -> str:
        # X-Forwarded-For is not trusted.
        try:
            return str(self.client_address[0])
        except (TypeError, IndexError):
            return "unknown"

    def _write_json(self, status: int, obj: object, *, cors_origin: Optional[str]) -> None:
        body = json.dumps(obj, separators=(",", ":"), ensure_ascii=False).encode("utf-8")
        self.send_response(int(status))
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Cache-Control", "no-store")
        self.send_header("Content-Length", str(len(body)))
        if cors_origin is not None:
            self.send_header("Access-Control-Allow-Origin", cors_origin)
            self.send_header("Vary", "Origin")
        self.end_headers()
        self.wfile.write(body)

    def _maybe_rate_limit(self) -> bool:
        limiter: TokenBucketRateLimiter = getattr(self.server, "rate_limiter")  # type: ignore[attr-defined]
        return limiter.allow(self._client_ip())

    def _allowed_cors_origin_or_none(self) -> Optional[str]:
        allowed: Set[str] = getattr(self.server, "cors_origins")  # type: ignore[attr-defined]
        origin = self.headers.get("Origin")
        if not isinstance(origin, str) or not origin:
            return None
        return origin if origin in allowed else None

    def do_OPTIONS(self) -> None:  # noqa: N802
        cors_origin = self._allowed_cors_origin_or_none()
        self.send_response(204)
        if cors_origin is not None:
            self.send_header("Access-Control-Allow-Origin", cors_origin)
            self.send_header("Access-Control-Allow-Methods", "GET,POST,OPTIONS")
            self.send_header("Access-Control-Allow-Headers", "Content-Type")
            self.send_header("Access-Control-Max-Age", "600")
            self.send_header("Vary", "Origin")
        self.end_headers()

    def do_GET(self) -> None:  # noqa: N802
        if not self._maybe_rate_limit():
            self._write_json(429, {"ok": False, "error": "rate_limited"}, cors_origin=None)
            return

        cors_origin = self._allowed_cors_origin_or_none()
        path = (self.path or "").split("?", 1)[0]

        if path == "/health":
            self._write_json(200, {"status": "healthy", "service": "shieldswap-api"}, cors_origin=cors_origin)
            return

        if path == "/pools":
            with self.engine.ledger.transaction():
                pools = sorted((pool_to_dict(p) for p in self.engine.ledger.pools.values()), key=lambda e: e["pool_id"])
            self._write_json(200, {"ok": True, "pools": pools}, cors_origin=cors_origin)
            return

        if path.startswith("/pools/"):
            pool_id = path[len("/pools/"):]
            try:
                with self.engine.ledger.transaction():
                    view = pool_view(self.engine, pool_id)
            except (LedgerError, ValueError, TypeError):
                self._write_json(404, {"ok": False, "error": "pool_not_found"}, cors_origin=cors_origin)
                return
            self._write_json(200, {"ok": True, "pool": view}, cors_origin=cors_origin)
            return

        self._write_json(404, {"ok": False, "error": "not_found"}, cors_origin=cors_origin)

    def do_POST(self) -> None:  # noqa: N802
        if not self._maybe_rate_limit():
            self._write_json(429, {"ok": False, "error": "rate_limited"}, cors_origin=None)
            return

        cors_origin = self._allowed_cors_origin_or_none()
        path = (self.path or "").split("?", 1)[0]
        if path != "/ops":
            self._write_json(404, {"ok": False, "error": "not_found"}, cors_origin=cors_origin)
            return

        try:
            length = int(self.headers.get("Content-Length", ""))
        except ValueError:
            self._write_json(411, {"ok": False, "error": "length_required"}, cors_origin=cors_origin)
            return
        if length < 0 or length > MAX_BODY_BYTES:
            self._write_json(413, {"ok": False, "error": "body_too_large"}, cors_origin=cors_origin)
            return

        try:
            payload = json.loads(self.rfile.read(length).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError):
            self._write_json(400, {"ok": False, "error": "invalid_json"}, cors_origin=cors_origin)
            return
        if not isinstance(payload, list) or len(payload) > MAX_OPS_PER_BATCH:
            self._write_json(400, {"ok": False, "error": "expected_operation_list"}, cors_origin=cors_origin)
            return

        results = apply_ops(self.engine, payload)
        self._write_json(200, {"ok": True, "results": [r.to_dict() for r in results]}, cors_origin=cors_origin)

    def log_message(self, fmt: str, *args: object) -> None:
        # Path only: query strings and headers are not logged.
        msg = fmt % args if args else fmt
        logger.info("%s %s => %s", self.command, (self.path or "").split("?", 1)[0], msg)


def make_server(engine: AmmEngine, host: str, port: int, *, cors_origins: Set[str], rpm: int) -> ThreadingHTTPServer:
    httpd = ThreadingHTTPServer((host, port), _Handler)
    httpd.engine = engine  # type: ignore[attr-defined]
    httpd.cors_origins = cors_origins  # type: ignore[attr-defined]
    httpd.rate_limiter = TokenBucketRateLimiter(rpm=rpm)  # type: ignore[attr-defined]
    return httpd


def main(argv: Optional[Sequence[str]] = None) -> int:
    _ = argv
    logging.basicConfig(level=env_str("LOG_LEVEL", "INFO").upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    host = env_str("API_HOST", "127.0.0.1")
    port = env_int("API_PORT", 8000, lo=1, hi=65535)
    cors_origins = _parse_cors_origins(env_str("CORS_ORIGINS", ""))
    rpm = env_int("RATE_LIMIT_RPM", 600, lo=0, hi=1_000_000)

    engine = AmmEngine(engine_config_from_env())
    httpd = make_server(engine, host, port, cors_origins=cors_origins, rpm=rpm)
    logger.info("shieldswap-api listening on http://%s:%d (cors_origins=%s, rpm=%d)", host, port, sorted(cors_origins), rpm)
    httpd.serve_forever(poll_interval=0.25)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
