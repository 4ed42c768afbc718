r"""backend/app/services/export_service.py

CSV export of merged forecast series.

The export has a fixed schema, ``date,actual,<model columns>,consensus``,
with an empty cell wherever a point has no value.  Writing uses pandas'
minimal quoting, so in practice nothing is quoted: every column is a date or
a number.
"""

from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence

import pandas as pd

from ..models.schemas import SERIES_COLUMNS, ForecastPoint
from .parser_service import read_text_frame

EXPORT_MEDIA_TYPE = "text/csv"


def series_to_frame(series: Sequence[ForecastPoint]) -> pd.DataFrame:
    """Return ``series`` as a frame with exactly the export columns, in input order."""

    frame = pd.DataFrame(
        [point.model_dump() for point in series],
        columns=list(SERIES_COLUMNS),
    )
    return frame.astype({column: "float64" for column in SERIES_COLUMNS[1:]})


def export_series_csv(series: Sequence[ForecastPoint]) -> str:
    """Serialise ``series`` to CSV text, keeping the input row order."""

    frame = series_to_frame(series)
    return frame.to_csv(
        index=False,
        na_rep="",
        lineterminator="\n",
    )


def export_filename(source: Optional[str], today: Optional[date] = None) -> str:
    stamp = (today or date.today()).isoformat()
    return f"demand_forecast_{source or 'export'}_{stamp}.csv"


def read_series_csv(text: str) -> List[ForecastPoint]:
    """Parse an exported file back into a series.

    Empty or unparseable cells stay absent rather than becoming zero,
    mirroring the warehouse normalisation policy.
    """

    frame = read_text_frame(text)
    if frame.empty or "date" not in frame.columns:
        return []

    frame = frame[[column for column in SERIES_COLUMNS if column in frame.columns]]
    numeric = [column for column in frame.columns if column != "date"]
    numbers = frame[numeric].apply(pd.to_numeric, errors="coerce")
    frame = frame.copy()
    frame[numeric] = numbers.mask(numbers.abs() == float("inf"))

    series: List[ForecastPoint] = []
    for row in frame.to_dict("records"):
        if pd.isna(row["date"]):
            continue
        values = {key: value for key, value in row.items() if not pd.isna(value)}
        series.append(ForecastPoint(**values))
    return series
