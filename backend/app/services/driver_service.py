r"""backend/app/services/driver_service.py

Planning drivers: bounded numeric assumptions handed to forecast generation.

Defaults come from ``configs/drivers.yaml`` when present; the built-in set
below is used otherwise.
"""

from __future__ import annotations

import logging
import math
import os
from typing import Any, Dict, List, Sequence

from pydantic import ValidationError

from ..core.config import load_yaml
from ..models.schemas import DriverSetting

LOGGER = logging.getLogger(__name__)

DRIVERS_FILENAME = "drivers.yaml"

BUILTIN_DRIVERS: tuple[DriverSetting, ...] = (
    DriverSetting(
        id="promo",
        name="Promotion Intensity",
        value=0,
        min=-50,
        max=100,
        step=5,
        description="Adjusts the impact of marketing events.",
    ),
    DriverSetting(
        id="price",
        name="Price Elasticity",
        value=0,
        min=-20,
        max=20,
        step=1,
        description="Simulates sensitivity to price changes.",
    ),
    DriverSetting(
        id="season",
        name="Seasonal Strength",
        value=0,
        min=-30,
        max=30,
        step=5,
        description="Amplifies or dampens cyclical trends.",
    ),
)


def load_default_drivers(config_dir: str) -> List[DriverSetting]:
    """Return the configured default drivers, falling back to the built-in set."""

    path = os.path.join(config_dir, DRIVERS_FILENAME)
    payload: Dict[str, Any] = load_yaml(path)
    entries = payload.get("drivers") if isinstance(payload, dict) else None
    if not entries:
        return list(BUILTIN_DRIVERS)
    try:
        return [DriverSetting.model_validate(entry) for entry in entries]
    except ValidationError:
        LOGGER.exception("Invalid driver definitions in %s; using built-in defaults", path)
        return list(BUILTIN_DRIVERS)


def snap_value(driver: DriverSetting, value: float) -> float:
    """Clamp ``value`` into the driver's range and round it onto the step grid.

    Raises ``ValueError`` for NaN or infinite input.
    """

    if not math.isfinite(value):
        raise ValueError(f"driver value must be finite, got {value!r}")
    bounded = min(max(float(value), driver.min), driver.max)
    steps = round((bounded - driver.min) / driver.step)
    snapped = driver.min + steps * driver.step
    if snapped > driver.max:
        snapped -= driver.step
    return snapped


def set_driver_value(
    drivers: Sequence[DriverSetting], driver_id: str, value: float
) -> List[DriverSetting]:
    """Return a new driver list with ``driver_id`` moved to ``value``.

    Raises ``KeyError`` when no driver has that id.
    """

    if not any(driver.id == driver_id for driver in drivers):
        raise KeyError(driver_id)
    return [
        DriverSetting.model_validate(
            {**driver.model_dump(), "value": snap_value(driver, value)}
        )
        if driver.id == driver_id
        else driver
        for driver in drivers
    ]
