r"""backend/tests/test_normalizer.py"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.models.schemas import ForecastPoint, WarehouseResult
from backend.app.services.normalizer_service import (
    COLUMN_RULES,
    build_column_map,
    classify_column,
    normalize_result,
    normalize_rows,
)


def test_prophet_style_columns_map_to_date_and_consensus() -> None:
    series = normalize_rows(["ds", "yhat"], [{"ds": "2024-03-01T00:00:00", "yhat": "142.5"}])

    assert series == [ForecastPoint(date="2024-03-01", consensus=142.5)]


@pytest.mark.parametrize(
    ("column", "expected"),
    [
        ("Date", "date"),
        ("TIMESTAMP", "date"),
        ("xgboost_pred", "xgboost"),
        ("XGB", "xgboost"),
        ("Random_Forest", "random_forest"),
        ("randomForestForecast", "random_forest"),
        ("LightGBM", "light_gbm"),
        ("lgbm_v2", "light_gbm"),
        ("dnn_output", "dnn"),
        ("neural_net", "dnn"),
        ("Consensus", "consensus"),
        ("ensemble_mean", "consensus"),
        ("prediction", "consensus"),
        ("Actual", "actual"),
        ("quantity", "actual"),
        ("total_sales", "actual"),
        ("observed_units", "actual"),
        ("y", "actual"),
        ("yhat_lower", None),
        ("yhat_upper", None),
        ("store_id", None),
        ("order_date", None),
    ],
)
def test_classify_column(column: str, expected: str | None) -> None:
    assert classify_column(column) == expected


def test_rule_table_starts_with_date_rule() -> None:
    assert COLUMN_RULES[0].field == "date"
    assert [rule.field for rule in COLUMN_RULES].index("consensus") < [
        rule.field for rule in COLUMN_RULES
    ].index("actual")


def test_unmatched_columns_are_dropped_from_column_map() -> None:
    mapping = build_column_map(["date", "region", "xgboost", "notes"])

    assert mapping == {"date": "date", "xgboost": "xgboost"}


def test_unparseable_numbers_are_left_absent_not_zero() -> None:
    rows = [
        {"date": "2024-01-01", "xgboost": "oops", "dnn": None, "consensus": "0"},
        {"date": "2024-01-02", "xgboost": 12, "dnn": "NaN", "consensus": True},
    ]

    series = normalize_rows(["date", "xgboost", "dnn", "consensus"], rows)

    assert series[0] == ForecastPoint(date="2024-01-01", consensus=0.0)
    assert series[0].xgboost is None
    assert series[1] == ForecastPoint(date="2024-01-02", xgboost=12.0)


def test_duplicate_dates_and_row_order_are_preserved() -> None:
    rows = [
        {"date": "2024-02-01", "actual": "5"},
        {"date": "2024-01-01", "actual": "3"},
        {"date": "2024-02-01", "consensus": "6"},
    ]

    series = normalize_rows(["date", "actual", "consensus"], rows)

    assert [point.date for point in series] == ["2024-02-01", "2024-01-01", "2024-02-01"]


def test_rows_without_date_are_skipped() -> None:
    rows = [{"date": None, "actual": "1"}, {"date": "", "actual": "2"}, {"date": "2024-01-05", "actual": "3"}]

    series = normalize_rows(["date", "actual"], rows)

    assert series == [ForecastPoint(date="2024-01-05", actual=3.0)]


def test_empty_result_is_an_empty_series() -> None:
    assert normalize_result(WarehouseResult(columns=["date", "consensus"], rows=[])) == []


def test_blank_second_date_column_keeps_the_first_date() -> None:
    rows = [
        {"date": "2024-05-01", "timestamp": None, "consensus": "7"},
        {"date": "", "timestamp": "2024-06-01T08:00:00Z", "consensus": "8"},
    ]

    series = normalize_rows(["date", "timestamp", "consensus"], rows)

    assert series == [
        ForecastPoint(date="2024-05-01", consensus=7.0),
        ForecastPoint(date="2024-06-01", consensus=8.0),
    ]
