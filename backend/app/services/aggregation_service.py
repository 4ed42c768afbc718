r"""backend/app/services/aggregation_service.py"""

from __future__ import annotations

from typing import List, Sequence

import pandas as pd

from ..models.schemas import ForecastPoint, SalesRecord


def aggregate_history(sales: Sequence[SalesRecord]) -> List[ForecastPoint]:
    """Collapse sales records into one ``actual`` point per distinct date.

    Quantities are summed per exact date string and the points are ordered by
    plain string comparison, which is chronological for ISO ``YYYY-MM-DD``
    dates.  Dates without records do not appear; gaps are not zero-filled.
    """

    if not sales:
        return []

    frame = pd.DataFrame(
        {
            "date": [record.date for record in sales],
            "quantity": [float(record.quantity) for record in sales],
        }
    )
    frame = frame[frame["date"].notna() & (frame["date"] != "")]
    totals = frame.groupby("date", sort=True)["quantity"].sum()
    return [
        ForecastPoint(date=str(day), actual=float(total))
        for day, total in totals.items()
    ]
