r"""backend/tests/test_parser.py"""

from __future__ import annotations

import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[2]
if str(ROOT) not in sys.path:
    sys.path.append(str(ROOT))

from backend.app.models.schemas import ItemRecord, PromotionRecord, SalesRecord
from backend.app.services.parser_service import (
    UploadReadError,
    decode_upload,
    parse_items,
    parse_promotions,
    parse_records,
    parse_sales,
)

SALES_CSV = """date,sku,quantity,price
2024-01-01,SKU-1,10,2.50
2024-01-01,SKU-2,15,3.00
2024-01-02,SKU-1,7,2.50
"""


def test_parse_sales_returns_one_record_per_data_line() -> None:
    records = parse_sales(SALES_CSV)

    assert len(records) == 3
    assert records[0] == SalesRecord(date="2024-01-01", sku="SKU-1", quantity=10.0, unit_price=2.5)
    assert [record.sku for record in records] == ["SKU-1", "SKU-2", "SKU-1"]


@pytest.mark.parametrize("text", ["", "\n\n", "date,sku,quantity,price\n", "   \n date,sku \n"])
def test_fewer_than_two_lines_yields_empty_result(text: str) -> None:
    assert parse_sales(text) == []


def test_headers_are_trimmed_case_insensitive_and_any_order() -> None:
    text = " Price , SKU,Region, QUANTITY ,Date\n1.25,A,west,4,2024-02-01\n"

    (record,) = parse_sales(text)

    assert record == SalesRecord(date="2024-02-01", sku="A", quantity=4.0, unit_price=1.25)


def test_malformed_numbers_become_zero_and_blank_lines_are_skipped() -> None:
    text = "date,sku,quantity,price\n\n2024-01-01,A,ten,abc\n   \n2024-01-02,B,NaN,1\n"

    records = parse_sales(text)

    assert len(records) == 2
    assert records[0].quantity == 0.0
    assert records[0].unit_price == 0.0
    assert records[1].quantity == 0.0
    assert records[1].unit_price == 1.0


def test_short_rows_leave_trailing_text_fields_absent() -> None:
    text = "sku,category,brand,unitcost\nA,Snacks\n"

    (item,) = parse_items(text)

    assert item == ItemRecord(sku="A", category="Snacks", brand=None, unit_cost=0.0)


def test_windows_line_endings_are_supported() -> None:
    text = "sku,category,brand,unitCost\r\nA,Snacks,Acme,1.5\r\nB,Drinks,Fizz,2\r\n"

    items = parse_items(text)

    assert [item.unit_cost for item in items] == [1.5, 2.0]
    assert items[1].brand == "Fizz"


def test_promotion_end_date_falls_back_to_start_date() -> None:
    text = (
        "sku,startDate,endDate,discountPercent\n"
        "A,2024-03-01,2024-03-07,10\n"
        "B,2024-04-01,,25\n"
        "C,2024-05-01\n"
    )

    promos = parse_promotions(text)

    assert promos[0] == PromotionRecord(
        sku="A", start_date="2024-03-01", end_date="2024-03-07", discount_percent=10.0
    )
    assert promos[1].end_date == "2024-04-01"
    assert promos[2].end_date == "2024-05-01"
    assert promos[2].discount_percent == 0.0


def test_promotion_single_date_column_feeds_both_bounds() -> None:
    (promo,) = parse_promotions("sku,date,discountpercent\nA,2024-06-01,15\n")

    assert promo.start_date == promo.end_date == "2024-06-01"


def test_unknown_kind_is_rejected() -> None:
    with pytest.raises(ValueError):
        parse_records(SALES_CSV, "orders")  # type: ignore[arg-type]


def test_decode_upload_strips_bom_and_reports_unreadable_bytes() -> None:
    assert decode_upload("\ufeffdate,sku\n".encode("utf-8")) == "date,sku\n"

    with pytest.raises(UploadReadError):
        decode_upload(b"\xff\xfe\xfa")


def test_long_rows_are_cut_to_header_width_and_text_is_kept_verbatim() -> None:
    text = "date,sku,quantity,price\n2024-01-01,NA,3,1,extra,cells\n2024-01-02, null ,inf,-1e999\n"

    records = parse_sales(text)

    assert records == [
        SalesRecord(date="2024-01-01", sku="NA", quantity=3.0, unit_price=1.0),
        SalesRecord(date="2024-01-02", sku="null", quantity=0.0, unit_price=0.0),
    ]


def test_blank_cells_are_absent_text_and_zero_numbers() -> None:
    (item,) = parse_items("sku,category,brand,unitcost\nA,  ,Acme,\n")

    assert item == ItemRecord(sku="A", category=None, brand="Acme", unit_cost=0.0)
