r"""backend\app\core\state.py

Process-wide planning store and warehouse client shared by the API routers."""

from __future__ import annotations

from ..services.driver_service import load_default_drivers
from ..services.planning_service import PlanningState, PlanningStore
from ..services.warehouse_service import WarehouseClient
from .config import get_settings


def initial_state() -> PlanningState:
    """Return an empty planning state seeded with the configured drivers."""

    return PlanningState(drivers=tuple(load_default_drivers(get_settings().config_dir)))


_store = PlanningStore(initial_state)

_settings = get_settings()
_warehouse_client = WarehouseClient(
    _settings.bigquery_api_url,
    timeout=_settings.warehouse_timeout_seconds,
    row_limit=_settings.warehouse_row_limit,
)


def get_store() -> PlanningStore:
    return _store


def get_warehouse_client() -> WarehouseClient:
    return _warehouse_client
