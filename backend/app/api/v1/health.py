r"""backend\app\api\v1\health.py

Health check endpoints.

Orchestrators and load balancers can poll `/api/v1/health` to verify that the
service is running.  The payload also reports whether the Gemini key is
configured, since simulated forecasts are unavailable without it.
"""

from fastapi import APIRouter

from ...core.config import get_settings

router = APIRouter()


@router.get("/health")
async def health_check() -> dict[str, object]:
    """Return a basic health indicator."""
    return {"status": "ok", "llm_configured": bool(get_settings().gemini_api_key)}
