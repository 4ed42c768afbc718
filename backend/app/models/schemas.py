r"""backend\app\models\schemas.py

Pydantic models used throughout the API.

These models serve as both request payload validators and response
serialisation schemas.  Records parsed from uploads are frozen so that the
pipeline stages can share them without defensive copies.
"""

from __future__ import annotations

import math
from typing import Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

WILDCARD = "all"

# Canonical model-value fields of a forecast point, in export column order.
MODEL_FIELDS: tuple[str, ...] = ("xgboost", "random_forest", "light_gbm", "dnn")
SERIES_COLUMNS: tuple[str, ...] = ("date", "actual", *MODEL_FIELDS, "consensus")

RecordKind = Literal["sales", "items", "promotions"]
Scalar = Union[str, int, float, bool, None]


class SalesRecord(BaseModel):
    """A single sales transaction line."""

    model_config = ConfigDict(frozen=True)

    date: Optional[str] = None
    sku: Optional[str] = None
    quantity: float = 0.0
    unit_price: float = 0.0


class ItemRecord(BaseModel):
    """Item master entry keyed by SKU."""

    model_config = ConfigDict(frozen=True)

    sku: Optional[str] = None
    category: Optional[str] = None
    brand: Optional[str] = None
    unit_cost: float = 0.0


class PromotionRecord(BaseModel):
    """A promotion window for one SKU."""

    model_config = ConfigDict(frozen=True)

    sku: Optional[str] = None
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    discount_percent: float = 0.0


class ForecastPoint(BaseModel):
    """One dated point carrying an observed value and/or model predictions.

    Every numeric field is optional: an absent value is a gap on the chart
    and an empty cell on export, never a zero.
    """

    model_config = ConfigDict(frozen=True)

    date: str
    actual: Optional[float] = None
    xgboost: Optional[float] = None
    random_forest: Optional[float] = None
    light_gbm: Optional[float] = None
    dnn: Optional[float] = None
    consensus: Optional[float] = None


class SegmentFilter(BaseModel):
    """Cascading category → brand → SKU selection; ``"all"`` is the wildcard."""

    model_config = ConfigDict(frozen=True)

    category: str = WILDCARD
    brand: str = WILDCARD
    sku: str = WILDCARD

    def is_identity(self) -> bool:
        return self.category == WILDCARD and self.brand == WILDCARD and self.sku == WILDCARD


class SegmentOptions(BaseModel):
    categories: List[str]
    brands: List[str]
    skus: List[str]


class DriverSetting(BaseModel):
    """A bounded numeric planning control passed through to forecast generation."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    name: str
    value: float
    min: float
    max: float
    step: float = Field(..., gt=0)
    description: str = ""

    @model_validator(mode="after")
    def _check_bounds(self) -> "DriverSetting":
        if self.min > self.max:
            raise ValueError(f"driver '{self.id}' has min greater than max")
        if not self.min <= self.value <= self.max:
            raise ValueError(
                f"driver '{self.id}' value {self.value} is outside [{self.min}, {self.max}]"
            )
        steps = (self.value - self.min) / self.step
        if not math.isclose(steps, round(steps), abs_tol=1e-9):
            raise ValueError(
                f"driver '{self.id}' value {self.value} is not a multiple of {self.step} from {self.min}"
            )
        return self


class WarehouseConfig(BaseModel):
    """Location of the forecast table and the bearer token used to read it."""

    model_config = ConfigDict(frozen=True)

    project_id: str = ""
    dataset_id: str = ""
    table_id: str = ""
    access_token: str = ""
    enabled: bool = False

    @property
    def table_path(self) -> str:
        return f"{self.project_id}.{self.dataset_id}.{self.table_id}"


class WarehouseResult(BaseModel):
    """Warehouse rows converted to ``{column name -> scalar}`` mappings."""

    model_config = ConfigDict(frozen=True)

    columns: List[str] = Field(default_factory=list)
    rows: List[Dict[str, Scalar]] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# API payloads


class UploadResponse(BaseModel):
    kind: RecordKind
    records: int


class DataSummary(BaseModel):
    total_volume: float
    sales_records: int
    active_skus: int
    promotions: int
    warehouse_enabled: bool


class DriverUpdate(BaseModel):
    value: float = Field(..., allow_inf_nan=False)


class ForecastRunRequest(BaseModel):
    filter: SegmentFilter = Field(default_factory=SegmentFilter)


class ForecastRunResponse(BaseModel):
    source: Optional[str]
    filter: SegmentFilter
    series: List[ForecastPoint]
    insights: str


class ConnectionTestResponse(BaseModel):
    ok: bool
    table: str
