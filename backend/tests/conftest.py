from __future__ import annotations

import sys
from collections import defaultdict, deque
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.core import observability as obs  # noqa: E402
from backend.app.core.config import get_settings  # noqa: E402
from backend.app.core.state import get_store  # noqa: E402


@pytest.fixture(autouse=True)
def _isolated_app_state(monkeypatch):
    """Start every test with an empty store, no LLM key and no rate limiting."""

    # An empty variable also shadows any key in a local .env file.
    monkeypatch.setenv("GEMINI_API_KEY", "")
    get_settings.cache_clear()
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_token", None, raising=False)
    monkeypatch.setattr(obs.TokenAndRateLimitMiddleware, "_per_minute", 0, raising=False)
    monkeypatch.setattr(
        obs.TokenAndRateLimitMiddleware, "_buckets", defaultdict(deque), raising=False
    )
    get_store().reset()
    yield
    get_store().reset()
    get_settings.cache_clear()
