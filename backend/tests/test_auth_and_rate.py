r"""backend/tests/test_auth_and_rate.py"""

from __future__ import annotations

import sys
from collections import defaultdict, deque
from pathlib import Path

from fastapi.testclient import TestClient

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.main import app  # noqa: E402


def test_auth_and_rate_limit(monkeypatch):
    from backend.app.core import observability as obs

    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_token", "X", raising=False)
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_per_minute", 1, raising=False)
    monkeypatch.setattr(
        obs.TokenAndRateLimitMiddleware,
        "_buckets",
        defaultdict(deque),
        raising=False,
    )

    client = TestClient(app)

    response = client.get("/api/v1/data/summary")
    assert response.status_code == 401

    authed = client.get("/api/v1/data/summary", headers={"Authorization": "Bearer X"})
    assert authed.status_code == 200

    limited = client.get("/api/v1/data/summary", headers={"Authorization": "Bearer X"})
    assert limited.status_code == 429

    # health and metrics stay reachable without a token
    assert client.get("/api/v1/health").status_code != 401


def test_metrics_endpoint_exposes_request_counter():
    client = TestClient(app)
    client.get("/api/v1/health")

    response = client.get("/metrics")

    assert response.status_code == 200
    assert "http_requests_total" in response.text


def test_access_log_records_segment(caplog):
    client = TestClient(app)

    with caplog.at_level("INFO", logger="demand_planner.access"):
        client.post(
            "/api/v1/forecasts/run",
            json={"filter": {"category": "Snacks", "brand": "all", "sku": "all"}},
        )

    records = [record.getMessage() for record in caplog.records if record.name == "demand_planner.access"]
    assert any('"segment": "Snacks/all/all"' in message for message in records)
