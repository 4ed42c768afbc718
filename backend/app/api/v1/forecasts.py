"""Routes for running the forecast pipeline and exporting its output."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Response, status

from ...core.state import get_store, get_warehouse_client
from ...models import schemas
from ...services import llm_service
from ...services.export_service import EXPORT_MEDIA_TYPE, export_filename, export_series_csv
from ...services.llm_service import ForecastGenerationError
from ...services.planning_service import (
    MissingHistoryError,
    PlanningState,
    run_pipeline,
    with_run_result,
)
from ...services.warehouse_service import (
    WarehouseAuthError,
    WarehouseError,
    WarehouseNotFoundError,
    WarehousePermissionError,
)

LOGGER = logging.getLogger(__name__)

router = APIRouter()

_WAREHOUSE_STATUS: dict[type[WarehouseError], int] = {
    WarehouseAuthError: status.HTTP_401_UNAUTHORIZED,
    WarehouseNotFoundError: status.HTTP_404_NOT_FOUND,
    WarehousePermissionError: status.HTTP_403_FORBIDDEN,
}


def _error_payload(code: str, message: str) -> dict[str, str]:
    """Return a standardised error payload."""

    return {"error": code, "message": message}


def _run_response(state: PlanningState, response: Response) -> schemas.ForecastRunResponse:
    if state.source:
        response.headers["x-forecast-source"] = state.source
    return schemas.ForecastRunResponse(
        source=state.source,
        filter=state.segment,
        series=list(state.series),
        insights=state.insights,
    )


@router.post("/forecasts/run", response_model=schemas.ForecastRunResponse)
def run_forecast(body: schemas.ForecastRunRequest, response: Response) -> schemas.ForecastRunResponse:
    """Filter, aggregate and merge history with a fresh forecast series."""

    store = get_store()
    snapshot = store.state
    try:
        result = run_pipeline(
            snapshot,
            body.filter,
            forecast_fn=llm_service.generate_forecast,
            insight_fn=llm_service.analyze_forecast,
            warehouse_fn=get_warehouse_client().fetch_forecast,
        )
    except MissingHistoryError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=_error_payload("history_missing", str(exc)),
        ) from exc
    except WarehouseError as exc:
        LOGGER.warning("Warehouse forecast failed: %s", exc)
        raise HTTPException(
            status_code=_WAREHOUSE_STATUS.get(type(exc), status.HTTP_502_BAD_GATEWAY),
            detail=_error_payload(exc.code, str(exc)),
        ) from exc
    except ForecastGenerationError as exc:
        LOGGER.warning("Forecast generation unavailable: %s", exc)
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=_error_payload("forecast_unavailable", str(exc)),
        ) from exc

    store.update(lambda current: with_run_result(current, snapshot, result))
    return _run_response(result, response)


@router.get("/forecasts/latest", response_model=schemas.ForecastRunResponse)
def latest_forecast(response: Response) -> schemas.ForecastRunResponse:
    return _run_response(get_store().state, response)


@router.get("/forecasts/export")
def export_forecast() -> Response:
    """Download the latest merged series as CSV."""

    state = get_store().state
    if not state.series:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=_error_payload("no_forecast", "Run a forecast before exporting."),
        )
    filename = export_filename(state.source)
    return Response(
        content=export_series_csv(state.series),
        media_type=EXPORT_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
