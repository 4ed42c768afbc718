r"""backend\app\core\observability.py"""

from __future__ import annotations

import json
import logging
import os
import threading
import time
import uuid
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Callable

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

ACCESS_LOGGER = logging.getLogger("demand_planner.access")

_REQUEST_COUNTER = Counter(
    "http_requests_total", "Total HTTP requests", ["method", "path", "status"]
)
_LATENCY_HISTOGRAM = Histogram(
    "http_request_latency_seconds", "Request latency", ["method", "path"]
)


class TokenAndRateLimitMiddleware(BaseHTTPMiddleware):
    """Middleware enforcing auth, rate limiting, logging, and Prometheus metrics."""

    _lock: threading.Lock = threading.Lock()
    _buckets: dict[str, deque[float]] = defaultdict(deque)
    _per_minute: int = int(os.getenv("RATE_LIMIT_PER_MIN", "60"))
    # Auth is disabled under pytest even when the host shell exports API_TOKEN.
    # test_auth_and_rate.py monkeypatches this attribute to exercise auth.
    _token: str | None = None if os.getenv("PYTEST_CURRENT_TEST") else os.getenv("API_TOKEN")
    _exempt_prefixes: tuple[str, ...] = (
        "/api/v1/health",
        "/metrics",
        "/docs",
        "/redoc",
        "/openapi.json",
    )

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        path = request.url.path
        method = request.method
        client_ip = request.client.host if request.client else "unknown"
        request_id = (
            request.headers.get("x-request-id")
            or request.headers.get("request-id")
            or str(uuid.uuid4())
        )
        segment: str | None = None

        # Peek at forecast-run bodies so the access log carries the segment.
        # Reading the body consumes it; the request is rebuilt with a replaying
        # ``receive`` so the route still sees the original payload.
        if method == "POST" and path.startswith("/api/v1/forecasts/run"):
            try:
                body_bytes = await request.body()
            except Exception:
                body_bytes = b""

            if body_bytes:
                try:
                    data = json.loads(body_bytes.decode("utf-8"))
                except (UnicodeDecodeError, json.JSONDecodeError):
                    data = None
                if isinstance(data, dict) and isinstance(data.get("filter"), dict):
                    selected = data["filter"]
                    segment = "/".join(
                        str(selected.get(key, "all")) for key in ("category", "brand", "sku")
                    )

                async def receive() -> dict:
                    return {"type": "http.request", "body": body_bytes, "more_body": False}

                request = Request(request.scope, receive)

        start_perf = time.perf_counter()
        start_wall = time.time()

        def _finalize(response: Response) -> Response:
            latency = time.perf_counter() - start_perf
            status_code = getattr(response, "status_code", 500)

            try:
                _REQUEST_COUNTER.labels(method, path, str(status_code)).inc()
                _LATENCY_HISTOGRAM.labels(method, path).observe(latency)
            except Exception:
                # Metrics errors should never break request handling.
                ACCESS_LOGGER.debug("Failed to record metrics for %s %s", method, path)

            forecast_source = (
                response.headers.get("x-forecast-source") if hasattr(response, "headers") else None
            )

            log_payload = {
                "timestamp": datetime.fromtimestamp(start_wall, tz=timezone.utc).isoformat(),
                "path": path,
                "method": method,
                "status": status_code,
                "latency_ms": int(latency * 1000),
                "request_id": request_id,
                "client_ip": client_ip,
                "segment": segment,
                "forecast_source": forecast_source,
            }
            ACCESS_LOGGER.info(json.dumps(log_payload))
            return response

        # Token authentication
        if self._token and not path.startswith(self._exempt_prefixes):
            auth_header = request.headers.get("authorization", "")
            if auth_header != f"Bearer {self._token}":
                error_response = PlainTextResponse("Unauthorized", status_code=401)
                return _finalize(error_response)

        # Rate limiting per client IP
        if self._per_minute > 0:
            now = time.time()
            with self._lock:
                window = self._buckets[client_ip]
                while window and now - window[0] > 60.0:
                    window.popleft()
                if len(window) >= self._per_minute:
                    error_response = PlainTextResponse("Too Many Requests", status_code=429)
                    return _finalize(error_response)
                window.append(now)

        response: Response
        try:
            response = await call_next(request)
        except Exception:
            # Still record metrics/logs for failed requests; re-raise after logging.
            _finalize(PlainTextResponse("Internal Server Error", status_code=500))
            raise

        return _finalize(response)


def metrics_endpoint() -> Response:
    """Return Prometheus metrics payload."""

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
