"""API endpoints for reading and adjusting planning drivers."""

from __future__ import annotations

from dataclasses import replace
from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException, status

from ...core.state import get_store, initial_state
from ...models import schemas
from ...services.planning_service import with_driver_value

router = APIRouter()


def _dump(drivers: tuple[schemas.DriverSetting, ...]) -> List[Dict[str, Any]]:
    return [driver.model_dump() for driver in drivers]


@router.get("/drivers")
def get_drivers() -> Dict[str, List[Dict[str, Any]]]:
    return {"drivers": _dump(get_store().state.drivers)}


@router.put("/drivers/{driver_id}")
def put_driver(driver_id: str, body: schemas.DriverUpdate) -> Dict[str, List[Dict[str, Any]]]:
    """Move one driver, clamping and snapping the value onto its step grid."""

    try:
        updated = get_store().update(
            lambda state: with_driver_value(state, driver_id, body.value)
        )
    except KeyError as exc:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"error": "driver_not_found", "message": f"Driver '{driver_id}' does not exist."},
        ) from exc
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"error": "invalid_driver_value", "message": str(exc)},
        ) from exc
    return {"drivers": _dump(updated.drivers)}


@router.post("/drivers/reset")
def reset_drivers() -> Dict[str, List[Dict[str, Any]]]:
    """Restore the configured default drivers."""

    defaults = initial_state().drivers
    updated = get_store().update(lambda state: replace(state, drivers=defaults))
    return {"drivers": _dump(updated.drivers)}
