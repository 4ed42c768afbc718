r"""backend/app/services/planning_service.py

Planning state and the reconciliation pipeline.

The state is an immutable snapshot: every stage takes the current snapshot
and returns a new one, and :class:`PlanningStore` only swaps the reference.
The pipeline itself runs

    filter → aggregate → forecast (warehouse or LLM) → merge → insights

and never mutates the snapshot it was given.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field, replace
from typing import Callable, List, Optional, Sequence, Tuple

from ..models.schemas import (
    DriverSetting,
    ForecastPoint,
    ItemRecord,
    PromotionRecord,
    RecordKind,
    SalesRecord,
    SegmentFilter,
    WarehouseConfig,
)
from .aggregation_service import aggregate_history
from .driver_service import set_driver_value
from .segment_service import filter_sales
from .series_service import merge_series

LOGGER = logging.getLogger(__name__)

SOURCE_WAREHOUSE = "bigquery"
SOURCE_SIMULATION = "simulation"

ForecastFn = Callable[
    [Sequence[SalesRecord], Sequence[ItemRecord], Sequence[PromotionRecord], Sequence[DriverSetting]],
    List[ForecastPoint],
]
InsightFn = Callable[[Sequence[ForecastPoint]], str]
WarehouseFn = Callable[[WarehouseConfig], List[ForecastPoint]]


class MissingHistoryError(ValueError):
    """Raised when a run has neither uploaded sales nor an enabled warehouse."""


@dataclass(frozen=True)
class PlanningState:
    sales: Tuple[SalesRecord, ...] = ()
    items: Tuple[ItemRecord, ...] = ()
    promotions: Tuple[PromotionRecord, ...] = ()
    drivers: Tuple[DriverSetting, ...] = ()
    segment: SegmentFilter = field(default_factory=SegmentFilter)
    warehouse: WarehouseConfig = field(default_factory=WarehouseConfig)
    series: Tuple[ForecastPoint, ...] = ()
    insights: str = ""
    source: Optional[str] = None

    @property
    def warehouse_active(self) -> bool:
        return self.warehouse.enabled and bool(self.warehouse.access_token)


def with_records(state: PlanningState, kind: RecordKind, records: Sequence[object]) -> PlanningState:
    """Return ``state`` with the records of ``kind`` replaced.

    New sales history invalidates the previously merged series.
    """

    if kind == "sales":
        return replace(state, sales=tuple(records), series=(), insights="", source=None)
    if kind == "items":
        return replace(state, items=tuple(records))
    if kind == "promotions":
        return replace(state, promotions=tuple(records))
    raise ValueError(f"unknown record kind '{kind}'")


def with_driver_value(state: PlanningState, driver_id: str, value: float) -> PlanningState:
    return replace(state, drivers=tuple(set_driver_value(state.drivers, driver_id, value)))


def run_pipeline(
    state: PlanningState,
    segment: SegmentFilter,
    *,
    forecast_fn: ForecastFn,
    insight_fn: InsightFn,
    warehouse_fn: Optional[WarehouseFn] = None,
) -> PlanningState:
    """Build the merged history + forecast series for ``segment``.

    The forecast comes from the warehouse when a table is enabled with a token,
    otherwise from ``forecast_fn``.  Transport failures from either boundary
    propagate unchanged.
    """

    use_warehouse = state.warehouse_active and warehouse_fn is not None
    if not state.sales and not use_warehouse:
        raise MissingHistoryError(
            "Upload sales history or enable a warehouse connection before forecasting."
        )

    filtered = filter_sales(state.sales, state.items, segment)
    history = aggregate_history(filtered)
    LOGGER.info(
        "Segment %s/%s/%s: %d of %d sales records, %d history points",
        segment.category,
        segment.brand,
        segment.sku,
        len(filtered),
        len(state.sales),
        len(history),
    )

    if use_warehouse:
        source = SOURCE_WAREHOUSE
        forecast = warehouse_fn(state.warehouse)
    else:
        source = SOURCE_SIMULATION
        forecast = forecast_fn(filtered, state.items, state.promotions, state.drivers)
    LOGGER.info("Received %d forecast points from %s", len(forecast), source)

    merged = merge_series(history, forecast)
    insights = insight_fn(forecast)
    return replace(
        state,
        segment=segment,
        series=tuple(merged),
        insights=insights,
        source=source,
    )


def with_run_result(
    state: PlanningState, base: PlanningState, result: PlanningState
) -> PlanningState:
    """Copy the outputs of a run started from ``base`` onto the current ``state``.

    Inputs stored while the run was in flight are kept.  When the sales
    history itself was replaced in the meantime the result is stale and
    ``state`` is returned unchanged.
    """

    if state.sales is not base.sales:
        LOGGER.info("Sales history changed during the forecast run; discarding its result")
        return state
    return replace(
        state,
        segment=result.segment,
        series=result.series,
        insights=result.insights,
        source=result.source,
    )


class PlanningStore:
    """Holds the current :class:`PlanningState` reference for the API.

    Read-modify-write changes go through :meth:`update` so that concurrent
    requests cannot drop each other's edits.
    """

    def __init__(self, initial: Callable[[], PlanningState]) -> None:
        self._initial = initial
        self._lock = threading.Lock()
        self._state = initial()

    @property
    def state(self) -> PlanningState:
        return self._state

    def replace(self, new_state: PlanningState) -> PlanningState:
        with self._lock:
            self._state = new_state
        return new_state

    def update(self, change: Callable[[PlanningState], PlanningState]) -> PlanningState:
        """Apply ``change`` to the current state under the store lock."""

        with self._lock:
            self._state = change(self._state)
            return self._state

    def reset(self) -> PlanningState:
        return self.replace(self._initial())
