r"""backend\app\main.py

Main entrypoint for the FastAPI application.

The API accepts sales, item master and promotion uploads, narrows the sales
history to a category/brand/SKU segment, and merges it with a forecast series
coming either from a BigQuery table or from Gemini.  The merged series can be
downloaded as CSV.  Configuration is read from environment variables and
YAML files in `configs/`.
"""


from fastapi import FastAPI, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse
import os
import logging
from pathlib import Path

from dotenv import load_dotenv

# Load .env from repo root before settings are first read
BASE_DIR = Path(__file__).resolve().parents[2]  # repo root
load_dotenv(BASE_DIR / ".env")

from .api.v1 import data, drivers, forecasts, health, segments, warehouse
from .core.config import get_settings
from .core.observability import TokenAndRateLimitMiddleware, metrics_endpoint

logging.getLogger(__name__).info(
    "LLM enabled: %s forecast_model=%s",
    bool(get_settings().gemini_api_key),
    get_settings().gemini_forecast_model,
)

app = FastAPI(title="Demand Planner API", version="0.1.0")

# Allow cross-origin requests from the dashboard (and others).
origins_env = os.getenv("CORS_ORIGINS", "")
origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()] or ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,  # In production specify your UI domain(s)
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TokenAndRateLimitMiddleware)

# Include versioned routers
app.include_router(health.router, prefix="/api/v1")
app.include_router(data.router, prefix="/api/v1")
app.include_router(segments.router, prefix="/api/v1")
app.include_router(drivers.router, prefix="/api/v1")
app.include_router(warehouse.router, prefix="/api/v1")
app.include_router(forecasts.router, prefix="/api/v1")


@app.get("/", include_in_schema=False)
def _root() -> RedirectResponse:
    """Redirect the root path to the interactive docs."""

    return RedirectResponse(url="/docs")


@app.get("/metrics", include_in_schema=False)
async def _metrics() -> Response:
    """Expose Prometheus metrics."""

    return metrics_endpoint()


if __name__ == "__main__":  # pragma: no cover - manual launch
    import uvicorn

    settings = get_settings()
    uvicorn.run("backend.app.main:app", host=settings.api_host, port=settings.api_port)
