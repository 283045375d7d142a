# [TESTER] v1

from __future__ import annotations

import json
import threading
import urllib.error
import urllib.request
from typing import Any, Iterator, Tuple

import pytest

from shieldswap.integration.api_server import TokenBucketRateLimiter, _parse_cors_origins, make_server
from shieldswap.integration.clock import FixedClock
from shieldswap.integration.config import EngineConfig
from shieldswap.integration.engine import AmmEngine
from shieldswap.integration.operations import create_operation
from shieldswap.state import POOL_LEN, decode_pool

ADMIN = "0x" + "ad" * 32
FEE_RECEIVER = "0x" + "fe" * 32
LP = "0x" + "01" * 32
A = "0x" + "aa" * 32
B = "0x" + "bb" * 32


def test_parse_cors_origins_ignores_wildcard() -> None:
    assert _parse_cors_origins(" https://a.example , *, ,https://b.example") == {
        "https://a.example",
        "https://b.example",
    }
    assert _parse_cors_origins("") == set()


def test_rate_limiter_refills_over_time() -> None:
    limiter = TokenBucketRateLimiter(rpm=2)
    assert limiter.allow("ip", now=0.0)
    assert limiter.allow("ip", now=0.0)
    assert not limiter.allow("ip", now=0.0)
    assert limiter.allow("other", now=0.0)
    assert limiter.allow("ip", now=30.0)


def test_rate_limiter_disabled_when_rpm_is_zero() -> None:
    limiter = TokenBucketRateLimiter(rpm=0)
    assert all(limiter.allow("ip", now=0.0) for _ in range(100))


@pytest.fixture()
def server() -> Iterator[Tuple[str, AmmEngine]]:
    engine = AmmEngine(EngineConfig(protocol_admin=ADMIN, fee_receiver=FEE_RECEIVER), clock=FixedClock(3))
    for asset in (A, B):
        engine.custody.create_token_type(asset, mint_authority=None, decimals=9)
        engine.custody.credit(LP, asset, 1_000_000)
    httpd = make_server(engine, "127.0.0.1", 0, cors_origins={"https://app.example"}, rpm=0)
    thread = threading.Thread(target=httpd.serve_forever, kwargs={"poll_interval": 0.05}, daemon=True)
    thread.start()
    try:
        yield f"http://127.0.0.1:{httpd.server_address[1]}", engine
    finally:
        httpd.shutdown()
        httpd.server_close()
        thread.join(timeout=5)


def _get(url: str) -> Tuple[int, Any]:
    try:
        with urllib.request.urlopen(url, timeout=5) as resp:
            return resp.status, json.loads(resp.read())
    except urllib.error.HTTPError as exc:
        return exc.code, json.loads(exc.read())


def _post(url: str, body: bytes) -> Tuple[int, Any]:
    req = urllib.request.Request(url, data=body, method="POST", headers={"Content-Type": "application/json"})
    try:
        with urllib.request.urlopen(req, timeout=5) as resp:
            return resp.status, json.loads(resp.read())
    except urllib.error.HTTPError as exc:
        return exc.code, json.loads(exc.read())


def test_health(server: Tuple[str, AmmEngine]) -> None:
    base, _engine = server
    status, body = _get(base + "/health")
    assert status == 200
    assert body["status"] == "healthy"


def test_ops_then_pool_views(server: Tuple[str, AmmEngine]) -> None:
    base, engine = server
    config_id = engine.create_platform_config(ADMIN, 0)
    ops = [
        create_operation(
            "initialize", LP, asset_a=A, asset_b=B, a=10_000, b=40_000, config_id=config_id, lp_fee_rate=0
        ),
        create_operation("pause", "0x" + "02" * 32, pool_id=config_id),
    ]
    status, body = _post(base + "/ops", json.dumps(ops).encode("utf-8"))
    assert status == 200
    first, second = body["results"]
    assert first["ok"] is True
    pool_id, shares = first["value"]
    assert shares == 20_000
    assert second["ok"] is False and second["code"] is None

    status, body = _get(base + "/pools")
    assert status == 200
    assert [p["pool_id"] for p in body["pools"]] == [pool_id]

    status, body = _get(base + f"/pools/{pool_id}")
    assert status == 200
    view = body["pool"]
    assert (view["effective_reserve_a"], view["effective_reserve_b"]) == (10_000, 40_000)
    assert view["share_supply"] == 20_000
    assert view["escrow"] == engine.escrow_of(pool_id)
    assert decode_pool(pool_id, bytes.fromhex(view["record"][2:])) == engine.get_pool(pool_id)
    assert len(view["record"]) == 2 + 2 * POOL_LEN


def test_unknown_pool_and_route(server: Tuple[str, AmmEngine]) -> None:
    base, _engine = server
    assert _get(base + "/pools/" + "0x" + "12" * 32) == (404, {"ok": False, "error": "pool_not_found"})
    assert _get(base + "/pools/not-hex")[0] == 404
    assert _get(base + "/nope")[1]["error"] == "not_found"


def test_post_rejects_bad_payloads(server: Tuple[str, AmmEngine]) -> None:
    base, _engine = server
    assert _post(base + "/ops", b"{not json") == (400, {"ok": False, "error": "invalid_json"})
    assert _post(base + "/ops", b'{"op": "pause"}')[1]["error"] == "expected_operation_list"
