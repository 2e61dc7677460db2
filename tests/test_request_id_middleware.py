from __future__ import annotations

import logging

from fastapi.testclient import TestClient


def test_preserves_incoming_request_id_header(client: TestClient):
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client: TestClient):
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert isinstance(generated, str)

    duration = resp.headers.get("X-Request-Duration-ms")
    assert duration is not None


def test_error_envelope_carries_request_id(client: TestClient):
    resp = client.get("/api/cms-pages/missing", headers={"X-Request-ID": "trace-404"})

    assert resp.status_code == 404
    assert resp.json()["error"]["request_id"] == "trace-404"
    assert resp.headers.get("X-Request-ID") == "trace-404"


def test_access_log_line_per_request(client: TestClient, caplog):
    with caplog.at_level(logging.INFO, logger="app.http"):
        client.get("/health")

    records = [r for r in caplog.records if r.getMessage() == "http.request"]
    assert len(records) == 1
    assert records[0].path == "/health"
    assert records[0].status_code == 200


def test_health_lists_rate_limit_policies(client: TestClient):
    body = client.get("/health").json()

    assert body["status"] == "ok"
    assert {"api", "auth", "content", "search"} <= set(body["rate_limit_policies"])
