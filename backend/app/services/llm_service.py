r"""backend/app/services/llm_service.py

Integration with Google's Gemini API for simulated forecasts and insights.

``generate_forecast`` asks the model to play four forecasting models plus a
consensus over the uploaded history and returns the answer as a series.
``analyze_forecast`` turns a series into a short business summary.  If the
``GEMINI_API_KEY`` environment variable is not set, forecast generation
raises :class:`ForecastGenerationError` and insights fall back to a fixed
message.
"""

from __future__ import annotations

import json
import logging
from typing import Any, List, Optional, Sequence

import google.generativeai as genai

from ..core.config import get_settings
from ..models.schemas import (
    DriverSetting,
    ForecastPoint,
    ItemRecord,
    PromotionRecord,
    SalesRecord,
)

LOGGER = logging.getLogger(__name__)

HISTORY_SAMPLE_SIZE = 50
FALLBACK_INSIGHTS = "No insights available."

_configured_key: Optional[str] = None

# The model sometimes answers with camelCase keys.
_RESPONSE_ALIASES = {"randomForest": "random_forest", "lightGbm": "light_gbm", "lightGBM": "light_gbm"}
_NUMERIC_FIELDS = frozenset(field for field in ForecastPoint.model_fields if field != "date")


class ForecastGenerationError(Exception):
    """The language model could not be reached or refused the request."""


def _get_client() -> Optional[Any]:
    """Return the configured ``genai`` module if an API key is available."""

    api_key = get_settings().gemini_api_key
    if not api_key:
        return None

    global _configured_key
    if _configured_key != api_key:
        genai.configure(api_key=api_key)
        _configured_key = api_key
    return genai


def _dump(records: Sequence[Any]) -> str:
    return json.dumps([record.model_dump(exclude_none=True) for record in records])


def build_forecast_prompt(
    sales: Sequence[SalesRecord],
    items: Sequence[ItemRecord],
    promotions: Sequence[PromotionRecord],
    drivers: Sequence[DriverSetting],
) -> str:
    return (
        "Act as a Senior Data Scientist. I am providing you with historical sales data, item "
        "metadata, promotions, and external planning drivers. Your task is to simulate the output "
        "of four machine learning models (XGBoost, Random Forest, LightGBM, and a Deep Neural "
        "Network) for the next 6 months.\n\n"
        f"Sales History Summary: {_dump(list(sales)[-HISTORY_SAMPLE_SIZE:])}\n"
        f"Item Master: {_dump(items)}\n"
        f"Promotions: {_dump(promotions)}\n"
        f"Driver Constraints: {_dump(drivers)}\n\n"
        "Rules:\n"
        "1. Provide monthly data points (date as YYYY-MM-DD) starting from the month after the "
        "last sales date.\n"
        "2. Each point must contain numeric 'xgboost', 'random_forest', 'light_gbm' and 'dnn' "
        "values.\n"
        "3. 'xgboost' is slightly more sensitive to promotions; 'dnn' is smoother.\n"
        "4. Keep values realistic relative to the historical quantity average.\n"
        "5. Include a 'consensus' value which is the weighted average.\n"
        "Respond with a JSON array of objects only."
    )


def parse_forecast_response(text: str) -> List[ForecastPoint]:
    """Parse the model's JSON answer; malformed output yields an empty series."""

    try:
        payload = json.loads(text)
    except (TypeError, json.JSONDecodeError):
        LOGGER.error("Failed to parse Gemini forecast response")
        return []
    if not isinstance(payload, list):
        LOGGER.error("Gemini forecast response is not a JSON array")
        return []

    series: List[ForecastPoint] = []
    for entry in payload:
        if not isinstance(entry, dict) or not entry.get("date"):
            continue
        values = {}
        for key, value in entry.items():
            field = _RESPONSE_ALIASES.get(key, key)
            if field in _NUMERIC_FIELDS and isinstance(value, (int, float)) and not isinstance(value, bool):
                values[field] = float(value)
        series.append(ForecastPoint(date=str(entry["date"]), **values))
    return series


def generate_forecast(
    sales: Sequence[SalesRecord],
    items: Sequence[ItemRecord],
    promotions: Sequence[PromotionRecord],
    drivers: Sequence[DriverSetting],
) -> List[ForecastPoint]:
    """Return a simulated multi-model forecast series from Gemini."""

    client = _get_client()
    if client is None:
        raise ForecastGenerationError(
            "GEMINI_API_KEY is not configured; connect a warehouse table or set an API key."
        )

    prompt = build_forecast_prompt(sales, items, promotions, drivers)
    model_name = get_settings().gemini_forecast_model
    try:
        model = client.GenerativeModel(model_name)
        response = model.generate_content(
            prompt,
            generation_config={"response_mime_type": "application/json"},
        )
        text = response.text
    except Exception as exc:
        LOGGER.exception("Gemini forecast request failed (model=%s)", model_name)
        raise ForecastGenerationError(f"Forecast generation failed: {exc}") from exc

    series = parse_forecast_response(text)
    LOGGER.info("Gemini returned %d forecast points (model=%s)", len(series), model_name)
    return series


def analyze_forecast(series: Sequence[ForecastPoint]) -> str:
    """Return three business insights and a risk assessment for ``series``."""

    client = _get_client()
    if client is None:
        return FALLBACK_INSIGHTS

    prompt = (
        "Analyze this demand forecast data and provide 3 key business insights and a risk "
        "assessment. Keep it professional and concise. "
        f"Data: {_dump(series)}"
    )
    model_name = get_settings().gemini_insight_model
    try:
        text = client.GenerativeModel(model_name).generate_content(prompt).text
    except Exception:
        LOGGER.exception("Gemini insight request failed (model=%s)", model_name)
        return FALLBACK_INSIGHTS
    return text.strip() if isinstance(text, str) and text.strip() else FALLBACK_INSIGHTS
