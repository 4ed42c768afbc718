r"""backend/app/services/series_service.py"""

from __future__ import annotations

from typing import List, Sequence

from ..models.schemas import ForecastPoint


def merge_series(
    history: Sequence[ForecastPoint], forecast: Sequence[ForecastPoint]
) -> List[ForecastPoint]:
    """Concatenate history and forecast and order the result by date.

    The sort is stable and compares date strings directly.  Points that share
    a date are kept as separate entries, history first.
    """

    return sorted([*history, *forecast], key=lambda point: point.date)
