r"""backend\app\api\v1\warehouse.py

Endpoints for configuring and probing the BigQuery forecast table."""

from __future__ import annotations

import logging
from dataclasses import replace

from fastapi import APIRouter

from ...core.state import get_store, get_warehouse_client
from ...models import schemas

LOGGER = logging.getLogger(__name__)

router = APIRouter()


def _public_view(config: schemas.WarehouseConfig) -> dict:
    payload = config.model_dump(exclude={"access_token"})
    payload["has_token"] = bool(config.access_token)
    return payload


@router.get("/warehouse/config")
def get_config() -> dict:
    return _public_view(get_store().state.warehouse)


@router.put("/warehouse/config")
def put_config(body: schemas.WarehouseConfig) -> dict:
    """Store the table location and bearer token used for warehouse forecasts."""

    updated = get_store().update(lambda state: replace(state, warehouse=body))
    LOGGER.info(
        "Warehouse bridge %s for %s",
        "enabled" if body.enabled else "disabled",
        body.table_path,
    )
    return _public_view(updated.warehouse)


@router.post("/warehouse/test", response_model=schemas.ConnectionTestResponse)
def test_connection() -> schemas.ConnectionTestResponse:
    config = get_store().state.warehouse
    ok = get_warehouse_client().test_connection(config)
    return schemas.ConnectionTestResponse(ok=ok, table=config.table_path)
