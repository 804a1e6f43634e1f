import logging
from typing import Dict

import pytest
from fastapi.testclient import TestClient

from subscribe_api.api.subscribe import get_subscription_guard
from subscribe_api.main import app

TOKEN = "0123456789abcdef" * 4


@pytest.fixture
def test_app(make_guard, provider) -> Dict[str, object]:
    guard = make_guard(environment="production")
    app.dependency_overrides[get_subscription_guard] = lambda: guard
    client = TestClient(app)
    yield {"client": client, "provider": provider, "guard": guard}
    client.close()
    app.dependency_overrides.clear()


def _headers(**extra: str) -> dict[str, str]:
    headers = {
        "Origin": "https://bluebeaconshow.com",
        "X-CSRF-Token": TOKEN,
        "Cookie": f"csrf_token={TOKEN}",
        "X-Real-IP": "192.0.2.44",
    }
    headers.update(extra)
    return headers


def test_subscribe_end_to_end(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]

    res = client.post("/api/subscribe", json={"email": "user@example.com"}, headers=_headers())

    assert res.status_code == 200, res.text
    assert res.json() == {"success": True, "message": "Subscribed successfully"}
    assert res.headers["access-control-allow-origin"] == "https://bluebeaconshow.com"
    assert res.headers["x-ratelimit-remaining"] == "4"
    assert res.headers.get("X-Request-ID")
    assert res.headers["x-content-type-options"] == "nosniff"
    assert test_app["provider"].calls == ["user@example.com"]  # type: ignore[attr-defined]


def test_subscribe_missing_email(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]

    res = client.post("/api/subscribe", json={"website": ""}, headers=_headers())

    assert res.status_code == 400
    assert res.json() == {"error": "Email is required"}


def test_subscribe_accepts_text_plain_json(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]

    res = client.post(
        "/api/subscribe",
        content='{"email": "Reader@Example.com"}',
        headers=_headers(**{"Content-Type": "text/plain"}),
    )

    assert res.status_code == 200, res.text
    assert test_app["provider"].calls == ["reader@example.com"]  # type: ignore[attr-defined]


def test_subscribe_rejects_missing_csrf_header(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]
    headers = _headers()
    headers.pop("X-CSRF-Token")

    res = client.post("/api/subscribe", json={"email": "user@example.com"}, headers=headers)

    assert res.status_code == 403
    assert res.json() == {"error": "Invalid request"}


def test_preflight_and_cors_allow_list(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]

    allowed = client.options("/api/subscribe", headers={"Origin": "https://bluebeaconshow.com"})
    denied = client.options("/api/subscribe", headers={"Origin": "https://attacker.example"})

    assert allowed.status_code == 200
    assert allowed.content == b""
    assert allowed.headers["access-control-allow-origin"] == "https://bluebeaconshow.com"
    assert allowed.headers["access-control-allow-methods"] == "POST, OPTIONS"
    assert denied.status_code == 200
    assert "access-control-allow-origin" not in denied.headers


def test_get_is_method_not_allowed(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]

    res = client.get("/api/subscribe", headers=_headers())

    assert res.status_code == 405
    assert res.json() == {"error": "Method not allowed"}


def test_rate_limit_over_http(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]

    statuses = [
        client.post("/api/subscribe", json={"email": "user@example.com"}, headers=_headers()).status_code
        for _ in range(6)
    ]
    other_client = client.post(
        "/api/subscribe", json={"email": "user@example.com"}, headers=_headers(**{"X-Real-IP": "192.0.2.45"})
    )

    assert statuses == [200, 200, 200, 200, 200, 429]
    assert other_client.status_code == 200


def test_unknown_route_uses_error_shape(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]

    res = client.get("/api/nope")

    assert res.status_code == 404
    assert res.json() == {"error": "Not Found"}


def test_health_and_metrics(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]

    assert client.get("/api/health").json() == {"status": "ok"}
    assert client.get("/api/health/ready").json() == {"status": "ready"}
    client.post("/api/subscribe", json={"email": "user@example.com", "website": "x"}, headers=_headers())
    assert client.get("/api/metrics").json() == {"honeypot_hits": 1}


def test_head_reaches_the_guard(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]

    res = client.head("/api/subscribe", headers=_headers())

    assert res.status_code == 405
    assert res.headers["allow"] == "POST, OPTIONS"
    assert res.headers["access-control-allow-origin"] == "https://bluebeaconshow.com"


def test_non_utf8_body_is_invalid_format(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]

    res = client.post(
        "/api/subscribe",
        content=b'{"email": "\xff\xfe@example.com"}',
        headers=_headers(**{"Content-Type": "application/json"}),
    )

    assert res.status_code == 400
    assert res.json() == {"error": "Invalid request format"}


def test_deeply_nested_body_gets_error_shape(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]

    res = client.post(
        "/api/subscribe",
        content=b"[" * 100_000,
        headers=_headers(**{"Content-Type": "application/json"}),
    )

    assert res.status_code == 413
    assert res.json() == {"error": "Payload too large"}
    assert res.headers["access-control-allow-origin"] == "https://bluebeaconshow.com"


def test_request_log_names_guard_stage_and_client(
    test_app: Dict[str, object], caplog: pytest.LogCaptureFixture
) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]
    headers = _headers()
    headers.pop("X-CSRF-Token")

    with caplog.at_level(logging.INFO, logger="subscribe_api.request"):
        client.post("/api/subscribe", json={"email": "user@example.com"}, headers=headers)
        client.get("/api/health")

    records = [r for r in caplog.records if r.name == "subscribe_api.request"]
    assert len(records) == 2
    assert records[0].guard_stage == "csrf"
    assert records[0].client == "unknown"
    assert records[0].status_code == 403
    assert not hasattr(records[1], "guard_stage")


def test_request_id_is_reused_when_well_formed(test_app: Dict[str, object]) -> None:
    client: TestClient = test_app["client"]  # type: ignore[assignment]

    reused = client.get("/api/health", headers={"X-Request-ID": "edge-4f1c2a9b"})
    replaced = client.get("/api/health", headers={"X-Request-ID": "bad id <script>"})

    assert reused.headers["X-Request-ID"] == "edge-4f1c2a9b"
    assert replaced.headers["X-Request-ID"] != "bad id <script>"
    assert len(replaced.headers["X-Request-ID"]) == 32
