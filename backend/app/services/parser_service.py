r"""backend/app/services/parser_service.py

Parse uploaded comma-separated files into typed planning records.

The caller decides which of the three schemas (sales, item master,
promotions) a file follows; nothing is auto-detected.  Parsing is lenient by
design of the upload flow: a malformed numeric cell becomes ``0`` and a short
row leaves its trailing fields empty, so a single bad line never rejects the
whole file.  The only failure reported to the caller is an upload whose bytes
cannot be read as text.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Callable, Dict, List, Sequence

import pandas as pd

from ..models.schemas import ItemRecord, PromotionRecord, RecordKind, SalesRecord

LOGGER = logging.getLogger(__name__)

NUMERIC_HEADERS = frozenset({"quantity", "price", "unitcost", "discountpercent"})

RECOGNISED_HEADERS: Dict[str, frozenset[str]] = {
    "sales": frozenset({"date", "sku", "quantity", "price"}),
    "items": frozenset({"sku", "category", "brand", "unitcost"}),
    # ``date`` doubles as start/end for single-day promotion files
    "promotions": frozenset({"sku", "startdate", "enddate", "discountpercent", "date"}),
}


class UploadReadError(Exception):
    """Raised when an uploaded payload cannot be decoded as text."""


def decode_upload(payload: bytes, encoding: str = "utf-8") -> str:
    """Decode raw upload bytes, stripping a UTF-8 byte order mark if present."""

    try:
        return payload.decode(encoding).lstrip("\ufeff")
    except UnicodeDecodeError as exc:
        raise UploadReadError(
            f"Uploaded file could not be read as {encoding} text: {exc.reason}"
        ) from exc


def read_text_frame(text: str) -> pd.DataFrame:
    """Read delimited ``text`` into an all-text frame.

    Whitespace-only lines are dropped, header names are trimmed and
    lowercased, cells are trimmed, and empty or missing cells are ``NaN``.
    Rows longer than the header are cut to the header width; short rows are
    padded.  Fewer than two non-empty lines give an empty frame.
    """

    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        return pd.DataFrame()

    width = len(lines[0].split(","))
    frame = pd.read_csv(
        io.StringIO("\n".join(lines)),
        dtype=str,
        keep_default_na=False,
        na_values=[""],
        quoting=csv.QUOTE_NONE,
        skip_blank_lines=True,
        index_col=False,
        usecols=list(range(width)),
        engine="python",
    )
    frame.columns = frame.columns.str.strip().str.lower()
    frame = frame.loc[:, ~frame.columns.duplicated()]
    frame = frame.replace(r"^\s+|\s+$", "", regex=True)
    return frame.mask(frame == "")


def coerce_numbers(values: pd.Series) -> pd.Series:
    """Return ``values`` as floats, substituting ``0`` for anything unparseable."""

    numbers = pd.to_numeric(values, errors="coerce")
    return numbers.mask(numbers.abs() == float("inf")).fillna(0.0).astype(float)


def _read_rows(text: str, kind: RecordKind) -> List[Dict[str, object]]:
    frame = read_text_frame(text)
    if frame.empty:
        return []

    recognised = RECOGNISED_HEADERS[kind]
    ignored = [header for header in frame.columns if header not in recognised]
    if ignored:
        LOGGER.debug("Ignoring unrecognised %s headers: %s", kind, ignored)

    frame = frame.reindex(columns=sorted(recognised))
    numeric = [header for header in frame.columns if header in NUMERIC_HEADERS]
    frame[numeric] = frame[numeric].apply(coerce_numbers)
    return [
        {
            header: value if header in NUMERIC_HEADERS or not pd.isna(value) else None
            for header, value in row.items()
        }
        for row in frame.to_dict("records")
    ]


def _to_sales(row: Dict[str, object]) -> SalesRecord:
    return SalesRecord(
        date=row["date"], sku=row["sku"], quantity=row["quantity"], unit_price=row["price"]
    )


def _to_item(row: Dict[str, object]) -> ItemRecord:
    return ItemRecord(
        sku=row["sku"], category=row["category"], brand=row["brand"], unit_cost=row["unitcost"]
    )


def _to_promotion(row: Dict[str, object]) -> PromotionRecord:
    start = row["startdate"] or row["date"]
    end = row["enddate"] or row["date"] or start
    return PromotionRecord(
        sku=row["sku"],
        start_date=start,
        end_date=end,
        discount_percent=row["discountpercent"],
    )


_BUILDERS: Dict[str, Callable[[Dict[str, object]], object]] = {
    "sales": _to_sales,
    "items": _to_item,
    "promotions": _to_promotion,
}


def parse_records(text: str, kind: RecordKind) -> Sequence[object]:
    """Parse delimited ``text`` into records of the requested ``kind``.

    Parameters
    ----------
    text:
        Raw file contents. The first non-empty line is the header; header
        names are trimmed and matched case-insensitively.
    kind:
        ``"sales"``, ``"items"`` or ``"promotions"``.

    Returns
    -------
    A list with one record per non-empty data line, or an empty list when the
    text holds fewer than two non-empty lines.
    """

    if kind not in _BUILDERS:
        raise ValueError(f"unknown record kind '{kind}'")
    build = _BUILDERS[kind]
    records = [build(row) for row in _read_rows(text, kind)]
    LOGGER.info("Parsed %d %s records", len(records), kind)
    return records


def parse_sales(text: str) -> List[SalesRecord]:
    return list(parse_records(text, "sales"))


def parse_items(text: str) -> List[ItemRecord]:
    return list(parse_records(text, "items"))


def parse_promotions(text: str) -> List[PromotionRecord]:
    return list(parse_records(text, "promotions"))
