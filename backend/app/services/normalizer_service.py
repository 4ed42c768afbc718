r"""backend/app/services/normalizer_service.py

Map warehouse query results onto the canonical forecast-point schema.

Forecast tables written by notebooks use whatever column names the author
picked (``ds``/``yhat``, ``xgboost_pred``, ``LightGBM``...).  Each column is
classified once against :data:`COLUMN_RULES`, an ordered table where the first
matching rule wins, and every row is then converted through that mapping.

Unlike the upload parser, an unparseable numeric cell is left *absent* here:
a missing model output has to render as a gap, not as a zero trough.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

from ..models.schemas import ForecastPoint, Scalar, WarehouseResult

LOGGER = logging.getLogger(__name__)

IGNORE = "__ignore__"


@dataclass(frozen=True, slots=True)
class ColumnRule:
    """Route a column to ``field`` when its key equals or contains a pattern."""

    field: str
    equals: tuple[str, ...] = ()
    contains: tuple[str, ...] = ()
    suffixes: tuple[str, ...] = ()

    def matches(self, key: str) -> bool:
        return (
            key in self.equals
            or any(fragment in key for fragment in self.contains)
            or any(key.endswith(suffix) for suffix in self.suffixes)
        )


# Priority order matters: ``yhat_lower`` must be dropped before the consensus
# rule sees ``yhat``, and model names must win over the generic synonyms.
COLUMN_RULES: tuple[ColumnRule, ...] = (
    ColumnRule("date", equals=("date", "timestamp", "ds")),
    ColumnRule(IGNORE, suffixes=("_lower", "_upper")),
    ColumnRule("xgboost", contains=("xgboost", "xgb")),
    ColumnRule("random_forest", contains=("random_forest", "randomforest")),
    ColumnRule("light_gbm", contains=("light_gbm", "lightgbm", "lgbm")),
    ColumnRule("dnn", contains=("dnn", "neural")),
    ColumnRule("consensus", contains=("consensus", "ensemble", "prediction", "yhat")),
    ColumnRule("actual", equals=("y",), contains=("actual", "quantity", "sales", "observed")),
)


def column_key(name: str) -> str:
    return name.strip().lower()


def classify_column(name: str, rules: Sequence[ColumnRule] = COLUMN_RULES) -> Optional[str]:
    """Return the canonical field fed by column ``name`` or ``None``."""

    key = column_key(name)
    for rule in rules:
        if rule.matches(key):
            return None if rule.field == IGNORE else rule.field
    return None


def build_column_map(
    columns: Iterable[str], rules: Sequence[ColumnRule] = COLUMN_RULES
) -> Dict[str, str]:
    """Classify every column, keeping only those that feed a canonical field."""

    mapping: Dict[str, str] = {}
    for column in columns:
        field = classify_column(column, rules)
        if field is not None:
            mapping[column] = field
    unmatched = [column for column in columns if column not in mapping]
    if unmatched:
        LOGGER.debug("Warehouse columns without a canonical field: %s", unmatched)
    return mapping


def coerce_optional_number(raw: Scalar) -> Optional[float]:
    """Return ``raw`` as a float or ``None`` when it is missing or unparseable."""

    if raw is None or isinstance(raw, bool):
        return None
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def normalize_date(raw: Scalar) -> Optional[str]:
    """Return the calendar-day part of a date or timestamp cell."""

    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    return text.split("T", 1)[0]


def normalize_rows(
    columns: Sequence[str],
    rows: Iterable[Mapping[str, Scalar]],
    rules: Sequence[ColumnRule] = COLUMN_RULES,
) -> List[ForecastPoint]:
    """Convert warehouse rows into a series, preserving upstream row order.

    Duplicate dates are passed through untouched. Rows without a usable date
    cannot become a point and are skipped.
    """

    mapping = build_column_map(columns, rules)
    series: List[ForecastPoint] = []
    skipped = 0
    for row in rows:
        values: Dict[str, object] = {}
        for column, field in mapping.items():
            cell = row.get(column)
            if field == "date":
                # a blank secondary date column must not erase a parsed one
                day = normalize_date(cell)
                if day is not None:
                    values["date"] = day
            else:
                number = coerce_optional_number(cell)
                if number is not None:
                    values[field] = number
        if not values.get("date"):
            skipped += 1
            continue
        series.append(ForecastPoint(**values))

    if skipped:
        LOGGER.warning("Skipped %d warehouse rows without a date value", skipped)
    return series


def normalize_result(result: WarehouseResult) -> List[ForecastPoint]:
    return normalize_rows(result.columns, result.rows)
