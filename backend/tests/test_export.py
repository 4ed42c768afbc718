r"""backend/tests/test_export.py"""

from __future__ import annotations

import sys
from datetime import date
from pathlib import Path

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.models.schemas import ForecastPoint
from backend.app.services.export_service import (
    export_filename,
    export_series_csv,
    read_series_csv,
)

HEADER = "date,actual,xgboost,random_forest,light_gbm,dnn,consensus"


def test_export_has_fixed_header_and_empty_cells_for_absent_fields() -> None:
    series = [
        ForecastPoint(date="2024-01-01", actual=100),
        ForecastPoint(date="2024-02-01", xgboost=110.5, consensus=108.25),
    ]

    lines = export_series_csv(series).splitlines()

    assert lines[0] == HEADER
    assert lines[1] == "2024-01-01,100.0,,,,,"
    assert lines[2] == "2024-02-01,,110.5,,,,108.25"


def test_export_keeps_input_order() -> None:
    series = [
        ForecastPoint(date="2024-03-01", consensus=1),
        ForecastPoint(date="2024-01-01", actual=2),
    ]

    rows = export_series_csv(series).splitlines()[1:]

    assert [row.split(",")[0] for row in rows] == ["2024-03-01", "2024-01-01"]


def test_export_of_empty_series_is_header_only() -> None:
    assert export_series_csv([]).splitlines() == [HEADER]


def test_exported_values_survive_a_reread() -> None:
    series = [
        ForecastPoint(date="2024-01-01", actual=0.1 + 0.2),
        ForecastPoint(date="2024-02-01", xgboost=1 / 3, random_forest=0.0, light_gbm=12345.678901234, dnn=7),
        ForecastPoint(date="2024-02-01", consensus=-2.5),
    ]

    assert read_series_csv(export_series_csv(series)) == series


def test_export_filename_carries_source_and_date() -> None:
    assert export_filename("bigquery", date(2024, 5, 17)) == "demand_forecast_bigquery_2024-05-17.csv"
    assert export_filename(None, date(2024, 5, 17)) == "demand_forecast_export_2024-05-17.csv"


def test_reread_leaves_blank_and_unparseable_cells_absent() -> None:
    text = f"{HEADER}\n2024-01-01,12,n/a,,,,inf\n,5,,,,,\n2024-02-01,,,,,,3\n"

    assert read_series_csv(text) == [
        ForecastPoint(date="2024-01-01", actual=12),
        ForecastPoint(date="2024-02-01", consensus=3),
    ]
